# File: entitygen/preparators.py
"""
entitygen - Field Preparator Registry
=======================================
Decides, per field, how many storage columns to emit and of what kind.

Strategies are tried in priority order; the first match wins:

    100  PolymorphicFieldStrategy    -> two columns, <f>Id + <f>Type
     90  ForeignKeyFieldStrategy     -> one FK column (ManyToOne / OneToOne)
     80  RelationOnlyFieldStrategy   -> no column
     70  EnumFieldStrategy           -> one enum column
     60  JsonFieldStrategy           -> one JSON column (also scalar arrays)
     10  RegularFieldStrategy        -> one scalar column

A field with neither a type nor a relationship matches nothing and is
dropped.  When a strategy fails with ``StrategyError`` the registry, by
default, logs a warning and emits a generic string column instead; with
``field_error_policy="raise"`` the error propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, Iterable, List, Optional, Union

from entitygen.errors import SchemaError, StrategyError
from entitygen.exposure import ExposureSet, resolve_exposure
from entitygen.models import (
    SCHEMA_ARRAY_KINDS,
    ColumnDescriptor,
    ColumnKind,
    CompilerConfig,
    EntityField,
    FieldKind,
    ParsedEntity,
)
from entitygen.schemas import constraints_for
from entitygen.types import ResolvedType, TypeStrategyRegistry, default_type_registry
from entitygen.utils import enum_name_for, schema_const_name_for, upper_first

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.preparators")

PreparedColumns = Union[ColumnDescriptor, List[ColumnDescriptor], None]

POLYMORPHIC_ID_LENGTH: int = 36


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldContext:
    """Everything a strategy needs to prepare one field."""

    entity: ParsedEntity
    field: EntityField
    config: CompilerConfig = dc_field(default_factory=CompilerConfig)
    types: TypeStrategyRegistry = dc_field(default_factory=default_type_registry)

    def exposure_of(self, fld: Optional[EntityField] = None) -> ExposureSet:
        return resolve_exposure(
            fld or self.field,
            self.config.unknown_exposure_policy,
            self.entity.name,
        )

    def resolve(self, fld: Optional[EntityField] = None) -> ResolvedType:
        return self.types.resolve(fld or self.field, self.entity.name)


def _column(
    ctx: FieldContext,
    fld: EntityField,
    kind: ColumnKind,
    resolved: ResolvedType,
    exposure: ExposureSet,
    **overrides: Any,
) -> ColumnDescriptor:
    values: Dict[str, Any] = {
        "name": fld.name,
        "origin_field": ctx.field.name,
        "kind": kind,
        "column_type": resolved.column_type,
        "host_type": resolved.host_type,
        "api_type": resolved.api_type,
        "required": fld.required,
        "unique": fld.unique,
        "array": fld.array,
        "graphql_object": exposure.object,
        "graphql_inputs": exposure.inputs,
        "description": fld.description,
        "default_value": fld.default_value,
        "max_length": fld.max_length,
        "constraints": constraints_for(fld),
    }
    values.update(overrides)
    return ColumnDescriptor(**values)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class FieldStrategy:
    """Base class for field preparation strategies."""

    priority: int = 0

    def matches(self, ctx: FieldContext) -> bool:
        raise NotImplementedError

    def prepare(self, ctx: FieldContext) -> PreparedColumns:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} priority={self.priority}>"


class PolymorphicFieldStrategy(FieldStrategy):
    """``owner`` -> ``ownerId`` + ``ownerType``, both sharing ``required``."""

    priority = 100

    def matches(self, ctx: FieldContext) -> bool:
        return ctx.field.is_polymorphic

    def prepare(self, ctx: FieldContext) -> List[ColumnDescriptor]:
        fld: EntityField = ctx.field
        resolved: ResolvedType = ctx.resolve()
        desc: Optional[str] = fld.description

        id_field: EntityField = EntityField(
            name=f"{fld.name}Id",
            type=FieldKind.STRING,
            required=fld.required,
            max_length=POLYMORPHIC_ID_LENGTH,
            description=f"{desc} ID" if desc else "Polymorphic association to any entity ID",
            graphql=fld.graphql,
        )
        type_field: EntityField = EntityField(
            name=f"{fld.name}Type",
            type=FieldKind.STRING,
            required=fld.required,
            description=f"{desc} type" if desc else "Polymorphic association to any entity type",
            graphql=fld.graphql,
        )
        return [
            _column(ctx, id_field, "polymorphic_id", resolved, ctx.exposure_of(id_field)),
            _column(ctx, type_field, "polymorphic_type", resolved, ctx.exposure_of(type_field)),
        ]


class ForeignKeyFieldStrategy(FieldStrategy):
    """FK column for owning-side relations whose exposure keeps ``foreignKey``."""

    priority = 90

    def matches(self, ctx: FieldContext) -> bool:
        rel = ctx.field.relationship
        if rel is None or not rel.owns_join_column:
            return False
        return ctx.exposure_of().foreign_key

    def prepare(self, ctx: FieldContext) -> ColumnDescriptor:
        fld: EntityField = ctx.field
        fk_name: str = fld.foreign_key_name
        desc: str = (
            f"{fld.description} (Foreign key for {fld.name})"
            if fld.description
            else f"Foreign key for {fld.name}"
        )
        fk_field: EntityField = EntityField(
            name=fk_name,
            type=FieldKind.STRING,
            required=fld.required,
            description=desc,
            graphql=fld.graphql,
        )
        exposure: ExposureSet = ctx.exposure_of()
        return _column(
            ctx,
            fk_field,
            "foreign_key",
            ctx.resolve(),
            exposure,
            api_type="ID",
        )


class RelationOnlyFieldStrategy(FieldStrategy):
    """Other relationship fields live only as relation properties."""

    priority = 80

    def matches(self, ctx: FieldContext) -> bool:
        return ctx.field.relationship is not None

    def prepare(self, ctx: FieldContext) -> None:
        return None


class EnumFieldStrategy(FieldStrategy):
    priority = 70

    def matches(self, ctx: FieldContext) -> bool:
        return ctx.field.type == FieldKind.ENUM

    def prepare(self, ctx: FieldContext) -> ColumnDescriptor:
        resolved: ResolvedType = ctx.resolve()
        return _column(
            ctx,
            ctx.field,
            "enum",
            resolved,
            ctx.exposure_of(),
            enum_name=enum_name_for(ctx.entity.name, ctx.field.name),
        )


class JsonFieldStrategy(FieldStrategy):
    """JSON blobs, and scalar arrays routed through a validated JSON column."""

    priority = 60

    def matches(self, ctx: FieldContext) -> bool:
        fld: EntityField = ctx.field
        if fld.type == FieldKind.JSON:
            return True
        return fld.array and fld.kind in SCHEMA_ARRAY_KINDS

    def prepare(self, ctx: FieldContext) -> ColumnDescriptor:
        fld: EntityField = ctx.field
        schema_name: Optional[str] = None
        if fld.item_schema is not None or fld.json_schema is not None or fld.type != FieldKind.JSON:
            schema_name = schema_const_name_for(ctx.entity.name, fld.name)
        return _column(
            ctx,
            fld,
            "json",
            ctx.resolve(),
            ctx.exposure_of(),
            schema_name=schema_name,
        )


class RegularFieldStrategy(FieldStrategy):
    """Remaining scalars, including date arrays."""

    priority = 10

    def matches(self, ctx: FieldContext) -> bool:
        return ctx.field.type is not None

    def prepare(self, ctx: FieldContext) -> ColumnDescriptor:
        return _column(ctx, ctx.field, "scalar", ctx.resolve(), ctx.exposure_of())


def default_field_strategies() -> List[FieldStrategy]:
    return [
        PolymorphicFieldStrategy(),
        ForeignKeyFieldStrategy(),
        RelationOnlyFieldStrategy(),
        EnumFieldStrategy(),
        JsonFieldStrategy(),
        RegularFieldStrategy(),
    ]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class FieldPreparatorRegistry:
    """
    Priority-ordered field strategies.

    Usage::

        registry = FieldPreparatorRegistry()
        prepared = registry.prepare_field(FieldContext(entity, field, config))
    """

    def __init__(self, strategies: Optional[Iterable[FieldStrategy]] = None) -> None:
        self._strategies: List[FieldStrategy] = []
        for strategy in (
            strategies if strategies is not None else default_field_strategies()
        ):
            self.register(strategy)

    def register(self, strategy: FieldStrategy) -> None:
        self._strategies.append(strategy)
        # Stable sort: equal priorities keep registration order.
        self._strategies.sort(key=lambda s: -s.priority)

    @property
    def strategies(self) -> List[FieldStrategy]:
        return list(self._strategies)

    def find_strategy(self, ctx: FieldContext) -> Optional[FieldStrategy]:
        for strategy in self._strategies:
            if strategy.matches(ctx):
                return strategy
        return None

    def prepare_field(self, ctx: FieldContext) -> PreparedColumns:
        """
        Prepare the columns for one field.

        Returns a descriptor, a list of descriptors, or ``None`` when the
        field produces no column.
        """
        try:
            strategy: Optional[FieldStrategy] = self.find_strategy(ctx)
            if strategy is None:
                logger.debug(
                    "%s.%s: no type and no relationship, skipped.",
                    ctx.entity.name,
                    ctx.field.name,
                )
                return None
            return strategy.prepare(ctx)
        except (StrategyError, ValueError) as exc:
            if ctx.config.field_error_policy == "raise":
                raise
            logger.warning(
                "%s.%s: %s; falling back to a generic string column.",
                ctx.entity.name,
                ctx.field.name,
                exc,
            )
            return self._fallback(ctx)

    @staticmethod
    def _fallback(ctx: FieldContext) -> ColumnDescriptor:
        fld: EntityField = ctx.field
        return ColumnDescriptor(
            name=fld.name,
            origin_field=fld.name,
            kind="fallback",
            column_type="varchar",
            host_type="string",
            api_type="String",
            required=fld.required,
            description=fld.description,
            graphql_object=fld.graphql is not False,
            graphql_inputs=fld.graphql is not False,
        )


def prepare_entity_columns(
    entity: ParsedEntity,
    config: Optional[CompilerConfig] = None,
    registry: Optional[FieldPreparatorRegistry] = None,
    types: Optional[TypeStrategyRegistry] = None,
) -> List[ColumnDescriptor]:
    """
    All columns of *entity*, fields taken in name order.

    Raises:
        SchemaError: Two fields produce the same column name.
    """
    cfg: CompilerConfig = config or CompilerConfig()
    reg: FieldPreparatorRegistry = registry if registry is not None else FieldPreparatorRegistry()
    type_registry: TypeStrategyRegistry = types if types is not None else default_type_registry()

    columns: List[ColumnDescriptor] = []
    owners: Dict[str, str] = {}
    for fld in entity.sorted_fields():
        prepared: PreparedColumns = reg.prepare_field(
            FieldContext(entity=entity, field=fld, config=cfg, types=type_registry)
        )
        if prepared is None:
            continue
        batch: List[ColumnDescriptor] = prepared if isinstance(prepared, list) else [prepared]
        for col in batch:
            if col.name in owners:
                raise SchemaError(
                    f"column '{col.name}' is produced by both "
                    f"'{owners[col.name]}' and '{fld.name}'",
                    entity=entity.name,
                    field=fld.name,
                )
            owners[col.name] = fld.name
            columns.append(col)
    return columns


def accessor_method_name(field_name: str) -> str:
    """``owner`` -> ``getOwner``."""
    return f"get{upper_first(field_name)}"


__all__: List[str] = [
    "POLYMORPHIC_ID_LENGTH",
    "PreparedColumns",
    "FieldContext",
    "FieldStrategy",
    "PolymorphicFieldStrategy",
    "ForeignKeyFieldStrategy",
    "RelationOnlyFieldStrategy",
    "EnumFieldStrategy",
    "JsonFieldStrategy",
    "RegularFieldStrategy",
    "default_field_strategies",
    "FieldPreparatorRegistry",
    "prepare_entity_columns",
    "accessor_method_name",
]

logger.debug("entitygen.preparators loaded, %d public symbols.", len(__all__))
