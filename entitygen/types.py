# File: entitygen/types.py
"""
entitygen - Type Strategy Registry
====================================
Maps a field onto three parallel representations:

    column_type   storage column type (``varchar``, ``json``, ...)
    host_type     TypeScript type of the entity property
    api_type      GraphQL type name

Dispatch is a single dictionary lookup on a key computed once per field:
``polymorphic`` for polymorphic fields, ``relation`` for any field carrying a
relationship, otherwise the declared kind.  Adding a kind means registering
one strategy, never editing the others.

Resolution failures raise ``StrategyError``; there is no fallback here.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from entitygen.errors import StrategyError
from entitygen.models import EntityField, FieldKind
from entitygen.utils import enum_name_for, item_interface_name_for

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.types")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

RECORD_TYPE: str = "Record<string, any>"
GRAPHQL_JSON: str = "GraphQLJSON"
GRAPHQL_JSON_OBJECT: str = "GraphQLJSONObject"

# kind -> (column_type, host_type, api_type)
_SCALAR_TYPE_MAP: Dict[str, tuple] = {
    "string": ("varchar", "string", "String"),
    "text": ("text", "string", "String"),
    "number": ("integer", "number", "Number"),
    "boolean": ("boolean", "boolean", "Boolean"),
    "date": ("datetime", "Date", "Date"),
    "uuid": ("uuid", "string", "String"),
    "key": ("varchar", "string", "String"),
}


@dataclass(frozen=True, slots=True)
class ResolvedType:
    """The three resolved representations of one field."""

    column_type: str
    host_type: str
    api_type: str


def _kind_key(kind: object) -> str:
    return str(getattr(kind, "value", kind))


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class TypeStrategy:
    """Base class: one strategy per dispatch key."""

    kind: str = ""

    def resolve(self, field: EntityField, entity_name: str) -> ResolvedType:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind}>"


class ScalarTypeStrategy(TypeStrategy):
    """Plain scalars; arrays become ``T[]`` / ``[T!]`` stored as JSON."""

    def __init__(self, kind: str, column_type: str, host_type: str, api_type: str) -> None:
        self.kind = kind
        self.column_type: str = column_type
        self.host_type: str = host_type
        self.api_type: str = api_type

    def resolve(self, field: EntityField, entity_name: str) -> ResolvedType:
        if field.array:
            return ResolvedType("json", f"{self.host_type}[]", f"[{self.api_type}!]")
        return ResolvedType(self.column_type, self.host_type, self.api_type)


class IdentifierTypeStrategy(TypeStrategy):
    """Relationship and polymorphic fields: always a surrogate identifier string."""

    def __init__(self, kind: str) -> None:
        self.kind = kind

    def resolve(self, field: EntityField, entity_name: str) -> ResolvedType:
        return ResolvedType("varchar", "string", "String")


class EnumTypeStrategy(TypeStrategy):
    """Enums resolve to ``EntityName + PascalCase(singular field name)``."""

    kind = FieldKind.ENUM.value

    def resolve(self, field: EntityField, entity_name: str) -> ResolvedType:
        enum_name: str = enum_name_for(entity_name, field.name)
        if field.array:
            return ResolvedType("simple-json", f"{enum_name}[]", f"[{enum_name}!]")
        return ResolvedType("text", enum_name, enum_name)


class JsonTypeStrategy(TypeStrategy):
    """
    JSON blobs.

    Arrays map to the any-JSON API scalar, objects to the object-only one;
    arrays with an ``itemSchema`` get a named element interface.
    """

    kind = FieldKind.JSON.value

    def resolve(self, field: EntityField, entity_name: str) -> ResolvedType:
        if field.array:
            if field.item_schema is not None:
                iface: str = item_interface_name_for(entity_name, field.name)
                return ResolvedType("json", f"{iface}[]", GRAPHQL_JSON)
            return ResolvedType("json", f"{RECORD_TYPE}[]", GRAPHQL_JSON)
        return ResolvedType("json", RECORD_TYPE, GRAPHQL_JSON_OBJECT)


def default_type_strategies() -> List[TypeStrategy]:
    """One strategy per ``FieldKind``."""
    strategies: List[TypeStrategy] = [
        ScalarTypeStrategy(kind, *types) for kind, types in _SCALAR_TYPE_MAP.items()
    ]
    strategies.extend([
        EnumTypeStrategy(),
        JsonTypeStrategy(),
        IdentifierTypeStrategy(FieldKind.RELATION.value),
        IdentifierTypeStrategy(FieldKind.POLYMORPHIC.value),
    ])
    return strategies


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TypeStrategyRegistry:
    """
    Kind-keyed registry of ``TypeStrategy`` objects.

    Usage::

        registry = TypeStrategyRegistry()
        resolved = registry.resolve(field, "Post")
        resolved.column_type, resolved.host_type, resolved.api_type
    """

    def __init__(self, strategies: Optional[Iterable[TypeStrategy]] = None) -> None:
        self._strategies: Dict[str, TypeStrategy] = {}
        for strategy in (
            strategies if strategies is not None else default_type_strategies()
        ):
            self.register(strategy)

    def register(self, strategy: TypeStrategy, kind: Optional[str] = None) -> None:
        """Add or replace the strategy for *kind* (defaults to ``strategy.kind``)."""
        key: str = _kind_key(kind or strategy.kind)
        if not key:
            raise ValueError(f"{strategy!r} has no kind to register under")
        if key in self._strategies:
            logger.debug("Replacing type strategy for kind '%s'.", key)
        self._strategies[key] = strategy

    def unregister(self, kind: str) -> None:
        self._strategies.pop(_kind_key(kind), None)

    def kinds(self) -> List[str]:
        return sorted(self._strategies)

    @staticmethod
    def dispatch_key(field: EntityField) -> Optional[str]:
        if field.is_polymorphic:
            return FieldKind.POLYMORPHIC.value
        if field.relationship is not None:
            return FieldKind.RELATION.value
        if field.type is None:
            return None
        return _kind_key(field.type)

    def resolve(self, field: EntityField, entity_name: str) -> ResolvedType:
        """
        Resolve *field* to its column / host / API types.

        Raises:
            StrategyError: No strategy is registered for the field's kind.
        """
        key: Optional[str] = self.dispatch_key(field)
        strategy: Optional[TypeStrategy] = (
            self._strategies.get(key) if key is not None else None
        )
        if strategy is None:
            raise StrategyError(
                f"no type strategy registered for kind {key!r}",
                entity=entity_name,
                field=field.name,
            )
        return strategy.resolve(field, entity_name)

    def __contains__(self, kind: object) -> bool:
        return _kind_key(kind) in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)


@functools.lru_cache(maxsize=1)
def default_type_registry() -> TypeStrategyRegistry:
    return TypeStrategyRegistry()


def resolve_type(field: EntityField, entity_name: str) -> ResolvedType:
    """Resolve *field* with the default registry."""
    return default_type_registry().resolve(field, entity_name)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RECORD_TYPE",
    "GRAPHQL_JSON",
    "GRAPHQL_JSON_OBJECT",
    "ResolvedType",
    "TypeStrategy",
    "ScalarTypeStrategy",
    "IdentifierTypeStrategy",
    "EnumTypeStrategy",
    "JsonTypeStrategy",
    "default_type_strategies",
    "TypeStrategyRegistry",
    "default_type_registry",
    "resolve_type",
]

logger.debug("entitygen.types loaded, %d public symbols.", len(__all__))
