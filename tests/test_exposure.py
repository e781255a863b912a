"""
tests/test_exposure.py
Unit tests for entitygen.exposure (GraphQL exposure resolver).
"""

from __future__ import annotations

import logging

import pytest

from entitygen.errors import SchemaError
from entitygen.exposure import resolve_exposure, resolve_operations, resolve_policy
from entitygen.models import ALL_OPERATIONS, EntityField, ParsedEntity, RelationshipSpec


def _plain(graphql=None) -> EntityField:
    return EntityField(name="title", type="string", graphql=graphql)


def _related(graphql=None, rel_type: str = "ManyToOne") -> EntityField:
    return EntityField(
        name="author",
        type="relation",
        relationship=RelationshipSpec(target_entity="User", type=rel_type),
        graphql=graphql,
    )


# ===========================================================================
# Field exposure
# ===========================================================================


class TestFieldExposure:
    """Three-state field policy."""

    def test_default_plain_field(self) -> None:
        exposure = resolve_exposure(_plain())
        assert set(exposure) == {"object", "inputs"}
        assert exposure.object and exposure.inputs
        assert not exposure.foreign_key and not exposure.relation

    def test_true_equals_default(self) -> None:
        assert set(resolve_exposure(_plain(True))) == set(resolve_exposure(_plain()))

    def test_default_relationship_field(self) -> None:
        exposure = resolve_exposure(_related())
        assert set(exposure) == {"object", "inputs", "foreignKey", "relation"}
        assert exposure.foreign_key and exposure.relation

    @pytest.mark.parametrize("field_factory", [_plain, _related])
    def test_false_is_empty(self, field_factory) -> None:
        exposure = resolve_exposure(field_factory(False))
        assert len(exposure) == 0
        assert not exposure.any

    def test_explicit_list_is_verbatim(self) -> None:
        exposure = resolve_exposure(_related(["relation"]))
        assert set(exposure) == {"relation"}
        assert exposure.relation
        assert not exposure.foreign_key
        assert not exposure.object

    def test_relationship_flags_ignored_on_plain_field(self) -> None:
        exposure = resolve_exposure(_plain(["object", "foreignKey", "relation"]))
        assert "foreignKey" in exposure
        assert not exposure.foreign_key
        assert not exposure.relation
        assert exposure.object


# ===========================================================================
# Unknown flags
# ===========================================================================


class TestUnknownFlags:
    """Unknown list values follow the configured policy."""

    def test_ignore_passes_through(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="entitygen.exposure"):
            exposure = resolve_exposure(_plain(["object", "sparkle"]), policy="ignore")
        assert "sparkle" in exposure
        assert not caplog.records

    def test_warn_passes_through_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="entitygen.exposure"):
            exposure = resolve_exposure(_plain(["object", "sparkle"]), "warn", "Post")
        assert "sparkle" in exposure
        assert any("sparkle" in r.getMessage() for r in caplog.records)

    def test_reject_raises(self) -> None:
        with pytest.raises(SchemaError) as exc_info:
            resolve_exposure(_plain(["sparkle"]), policy="reject", entity_name="Post")
        assert exc_info.value.entity == "Post"
        assert exc_info.value.field == "title"

    def test_known_flags_never_rejected(self) -> None:
        exposure = resolve_policy(
            ["object", "inputs", "foreignKey", "relation"], True, policy="reject"
        )
        assert len(exposure) == 4


# ===========================================================================
# Entity operations
# ===========================================================================


class TestEntityOperations:
    """Entity-level graphql gates whole operations."""

    def test_default_enables_all(self) -> None:
        assert resolve_operations(ParsedEntity(name="Post")) == ALL_OPERATIONS

    def test_false_disables_all(self) -> None:
        assert resolve_operations(ParsedEntity(name="Post", graphql=False)) == ()

    def test_list_in_canonical_order(self) -> None:
        entity = ParsedEntity(name="Post", graphql=["single", "create", "list"])
        assert resolve_operations(entity) == ("create", "list", "single")

    def test_entity_and_field_flags_are_orthogonal(self, post_entity) -> None:
        assert resolve_operations(post_entity) == ("create", "list", "single")
        assert set(resolve_exposure(post_entity.get_field("title"))) == {"object", "inputs"}
