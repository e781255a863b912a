"""
tests/test_types.py
Unit tests for entitygen.types (TypeStrategyRegistry).
"""

from __future__ import annotations

import pytest

from entitygen.errors import StrategyError
from entitygen.models import EntityField, RelationshipSpec
from entitygen.types import (
    GRAPHQL_JSON,
    GRAPHQL_JSON_OBJECT,
    RECORD_TYPE,
    ScalarTypeStrategy,
    TypeStrategyRegistry,
    resolve_type,
)
from entitygen.utils import enum_name_for, singularize


def _field(**kwargs) -> EntityField:
    kwargs.setdefault("name", "value")
    return EntityField(**kwargs)


# ===========================================================================
# Scalars
# ===========================================================================


class TestScalarTypes:
    """Tests for plain scalar kinds and scalar arrays."""

    @pytest.mark.parametrize(
        "kind, column, host, api",
        [
            ("string", "varchar", "string", "String"),
            ("text", "text", "string", "String"),
            ("number", "integer", "number", "Number"),
            ("boolean", "boolean", "boolean", "Boolean"),
            ("date", "datetime", "Date", "Date"),
            ("uuid", "uuid", "string", "String"),
            ("key", "varchar", "string", "String"),
        ],
    )
    def test_scalar_mapping(self, kind: str, column: str, host: str, api: str) -> None:
        resolved = resolve_type(_field(type=kind), "Post")
        assert (resolved.column_type, resolved.host_type, resolved.api_type) == (column, host, api)

    @pytest.mark.parametrize("kind", ["string", "text", "number", "boolean", "date", "uuid"])
    def test_scalar_arrays_are_list_types(self, kind: str) -> None:
        single = resolve_type(_field(type=kind), "Post")
        many = resolve_type(_field(type=kind, array=True), "Post")
        assert many.host_type.endswith("[]")
        assert many.host_type == f"{single.host_type}[]"
        assert many.api_type == f"[{single.api_type}!]"
        assert many.column_type == "json"


# ===========================================================================
# Enums
# ===========================================================================


class TestEnumTypes:
    """Tests for enum type naming."""

    def test_enum_name_from_singular_field(self) -> None:
        resolved = resolve_type(_field(name="categories", type="enum", enum=["a"]), "Post")
        assert resolved.host_type == "PostCategory"
        assert resolved.api_type == "PostCategory"
        assert resolved.column_type == "text"

    def test_enum_array(self) -> None:
        resolved = resolve_type(_field(name="labels", type="enum", enum=["a"], array=True), "Post")
        assert resolved.host_type == "PostLabel[]"
        assert resolved.api_type == "[PostLabel!]"

    @pytest.mark.parametrize(
        "word, expected",
        [
            ("status", "status"),
            ("class", "class"),
            ("process", "process"),
            ("address", "address"),
            ("witness", "witness"),
            ("success", "success"),
            ("progress", "progress"),
            ("comments", "comment"),
            ("categories", "category"),
            ("boxes", "box"),
            ("matches", "match"),
            ("types", "type"),
            ("glass", "glass"),
        ],
    )
    def test_singularize(self, word: str, expected: str) -> None:
        assert singularize(word) == expected

    def test_status_enum_name(self) -> None:
        assert enum_name_for("Post", "status") == "PostStatus"


# ===========================================================================
# JSON
# ===========================================================================


class TestJsonTypes:
    """Tests for JSON blobs and structured arrays."""

    def test_json_object(self) -> None:
        resolved = resolve_type(_field(type="json"), "Post")
        assert resolved.host_type == RECORD_TYPE
        assert resolved.api_type == GRAPHQL_JSON_OBJECT

    def test_json_array_without_item_schema(self) -> None:
        resolved = resolve_type(_field(type="json", array=True), "Post")
        assert resolved.host_type == f"{RECORD_TYPE}[]"
        assert resolved.api_type == GRAPHQL_JSON

    def test_json_array_with_item_schema(self, post_entity) -> None:
        resolved = resolve_type(post_entity.get_field("attachments"), "Post")
        assert resolved.host_type == "PostAttachmentType[]"
        assert resolved.api_type == GRAPHQL_JSON
        assert resolved.column_type == "json"


# ===========================================================================
# Identifiers
# ===========================================================================


class TestIdentifierTypes:
    """Relationship and polymorphic fields resolve to identifier strings."""

    def test_relationship_field(self) -> None:
        fld = _field(
            name="author",
            type="relation",
            relationship=RelationshipSpec(target_entity="User", type="ManyToOne"),
        )
        resolved = resolve_type(fld, "Post")
        assert (resolved.column_type, resolved.host_type) == ("varchar", "string")
        assert "User" not in resolved.host_type

    def test_relationship_overrides_declared_kind(self) -> None:
        fld = _field(
            name="postId",
            type="number",
            relationship=RelationshipSpec(target_entity="Post", type="ManyToOne"),
        )
        assert resolve_type(fld, "Comment").host_type == "string"

    def test_polymorphic_field(self) -> None:
        resolved = resolve_type(_field(name="owner", type="polymorphic"), "Post")
        assert resolved.host_type == "string"


# ===========================================================================
# Registry
# ===========================================================================


class TestTypeStrategyRegistry:
    """Tests for registration and dispatch."""

    def test_default_kinds(self) -> None:
        registry = TypeStrategyRegistry()
        for kind in ("string", "enum", "json", "relation", "polymorphic"):
            assert kind in registry
        assert len(registry) == 11

    def test_unregistered_kind_raises(self) -> None:
        registry = TypeStrategyRegistry()
        registry.unregister("date")
        with pytest.raises(StrategyError) as exc_info:
            registry.resolve(_field(name="publishedAt", type="date"), "Post")
        assert exc_info.value.entity == "Post"
        assert exc_info.value.field == "publishedAt"

    def test_untyped_field_raises(self) -> None:
        with pytest.raises(StrategyError):
            TypeStrategyRegistry().resolve(_field(), "Post")

    def test_register_replaces_strategy(self) -> None:
        registry = TypeStrategyRegistry()
        registry.register(ScalarTypeStrategy("number", "decimal", "number", "Float"))
        resolved = registry.resolve(_field(type="number"), "Post")
        assert resolved.column_type == "decimal"
        assert resolved.api_type == "Float"

    def test_register_under_explicit_kind(self) -> None:
        registry = TypeStrategyRegistry(strategies=[])
        registry.register(ScalarTypeStrategy("string", "char", "string", "String"), kind="key")
        assert registry.kinds() == ["key"]
        assert registry.resolve(_field(type="key"), "Post").column_type == "char"

    def test_dispatch_key(self) -> None:
        assert TypeStrategyRegistry.dispatch_key(_field(type="polymorphic")) == "polymorphic"
        assert TypeStrategyRegistry.dispatch_key(_field()) is None
        assert TypeStrategyRegistry.dispatch_key(_field(type="text")) == "text"
