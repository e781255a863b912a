# File: entitygen/exposure.py
"""
entitygen - GraphQL Exposure Resolver
=======================================
Decides which API artifacts a field (or an entity) produces.

Field level, four independent flags: ``object``, ``inputs``, ``foreignKey``,
``relation``.

    graphql: false       -> nothing
    graphql: true / None -> object + inputs (+ foreignKey + relation for
                            relationship fields)
    graphql: [...]       -> exactly the listed flags

Entity level, the operation set drawn from ``create``, ``update``,
``createUpdate``, ``delete``, ``destroy``, ``list``, ``array`` and ``single``.
Entity defaults are passed in as values; nothing here reads global state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, Tuple

from entitygen.errors import SchemaError
from entitygen.models import (
    ALL_OPERATIONS,
    KNOWN_EXPOSURE_FLAGS,
    EntityField,
    ExposureFlag,
    GraphQLPolicy,
    ParsedEntity,
)

logger: logging.Logger = logging.getLogger("entitygen.exposure")

_DEFAULT_FLAGS: FrozenSet[str] = frozenset({
    ExposureFlag.OBJECT.value,
    ExposureFlag.INPUTS.value,
})
_RELATIONSHIP_FLAGS: FrozenSet[str] = frozenset({
    ExposureFlag.FOREIGN_KEY.value,
    ExposureFlag.RELATION.value,
})

UNKNOWN_FLAG_POLICIES: Tuple[str, ...] = ("ignore", "warn", "reject")


@dataclass(frozen=True, slots=True)
class ExposureSet:
    """
    Resolved exposure flags of one field.

    ``flags`` holds exactly what was resolved, unknown flags included.  The
    ``foreign_key`` and ``relation`` helpers are only true for relationship
    fields.
    """

    flags: FrozenSet[str]
    has_relationship: bool = False

    @property
    def object(self) -> bool:
        return ExposureFlag.OBJECT.value in self.flags

    @property
    def inputs(self) -> bool:
        return ExposureFlag.INPUTS.value in self.flags

    @property
    def foreign_key(self) -> bool:
        return self.has_relationship and ExposureFlag.FOREIGN_KEY.value in self.flags

    @property
    def relation(self) -> bool:
        return self.has_relationship and ExposureFlag.RELATION.value in self.flags

    @property
    def any(self) -> bool:
        return bool(self.flags)

    def __contains__(self, flag: object) -> bool:
        return str(getattr(flag, "value", flag)) in self.flags

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.flags))

    def __len__(self) -> int:
        return len(self.flags)


def resolve_policy(
    graphql: GraphQLPolicy,
    has_relationship: bool,
    *,
    policy: str = "warn",
    entity_name: str = "",
    field_name: str = "",
) -> ExposureSet:
    """Resolve a raw ``graphql`` value into an ``ExposureSet``."""
    if graphql is False:
        return ExposureSet(frozenset(), has_relationship)

    if graphql is True or graphql is None:
        flags: FrozenSet[str] = _DEFAULT_FLAGS
        if has_relationship:
            flags = flags | _RELATIONSHIP_FLAGS
        return ExposureSet(flags, has_relationship)

    flags = frozenset(graphql)
    unknown: List[str] = sorted(flags - KNOWN_EXPOSURE_FLAGS)
    if unknown:
        if policy == "reject":
            raise SchemaError(
                f"unknown graphql exposure flag(s): {', '.join(unknown)}. "
                f"Allowed: {', '.join(sorted(KNOWN_EXPOSURE_FLAGS))}",
                entity=entity_name or None,
                field=field_name or None,
            )
        if policy == "warn":
            logger.warning(
                "%s.%s: unknown graphql exposure flag(s) passed through: %s",
                entity_name or "?",
                field_name or "?",
                ", ".join(unknown),
            )
    return ExposureSet(flags, has_relationship)


def resolve_exposure(
    field: EntityField,
    policy: str = "warn",
    entity_name: str = "",
) -> ExposureSet:
    """
    Resolve the exposure set of *field*.

    *policy* governs unknown flags in an explicit list: ``ignore`` keeps
    them silently, ``warn`` keeps them and logs, ``reject`` raises
    ``SchemaError``.
    """
    return resolve_policy(
        field.graphql,
        field.is_relationship,
        policy=policy,
        entity_name=entity_name,
        field_name=field.name,
    )


def resolve_operations(entity: ParsedEntity) -> Tuple[str, ...]:
    """
    Entity-level operations, in canonical order.

    ``false`` disables all operations, ``true`` or absent enables all of
    them, a list enables just those.
    """
    graphql: GraphQLPolicy = entity.graphql
    if graphql is False:
        return ()
    if graphql is True or graphql is None:
        return ALL_OPERATIONS
    listed: FrozenSet[str] = frozenset(graphql)
    return tuple(op for op in ALL_OPERATIONS if op in listed)


__all__: List[str] = [
    "UNKNOWN_FLAG_POLICIES",
    "ExposureSet",
    "resolve_policy",
    "resolve_exposure",
    "resolve_operations",
]

logger.debug("entitygen.exposure loaded, %d public symbols.", len(__all__))
