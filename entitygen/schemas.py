# File: entitygen/schemas.py
"""
entitygen - Validation & Nested-Schema Generator
==================================================
Two jobs:

1. ``constraints_for`` derives validation constraints from a field's
   declared attributes, one constraint per attribute.
2. The ``*_schema_for`` / ``interface_definition_for`` functions emit
   structural validators (Zod source) and TypeScript interfaces for JSON
   columns and scalar arrays.

Scalar arrays always go through an explicit array schema; they are never
stored by naive serialisation.

All functions are pure and return new objects.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Optional, Set

from entitygen.models import (
    ArrayOptions,
    ColumnDescriptor,
    Constraint,
    EntityField,
    FieldKind,
    ObjectSchema,
    NestedInterface,
    NestedSchema,
    PropertySchema,
)
from entitygen.utils import (
    format_literal,
    item_interface_name_for,
    quote,
    schema_const_name_for,
)

logger: logging.Logger = logging.getLogger("entitygen.schemas")

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

_TYPE_CHECKS: Dict[str, str] = {
    "string": "IsString",
    "text": "IsString",
    "key": "IsString",
    "relation": "IsString",
    "polymorphic": "IsString",
    "number": "IsNumber",
    "boolean": "IsBoolean",
    "date": "IsDate",
    "uuid": "IsUUID",
}

_ZOD_LEAVES: Dict[str, str] = {
    "string": "z.string()",
    "number": "z.number()",
    "integer": "z.number().int()",
    "boolean": "z.boolean()",
    "date": "z.date()",
}

_TS_LEAVES: Dict[str, str] = {
    "string": "string",
    "number": "number",
    "integer": "number",
    "boolean": "boolean",
    "date": "Date",
}

_INDENT: str = "  "


def _num(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _regex_literal(pattern: str) -> str:
    return "/" + pattern.replace("/", "\\/") + "/"


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


def constraints_for(field: EntityField) -> List[Constraint]:
    """
    Validation constraints derived from *field*'s declared attributes.

    Order: optionality, type check, length bounds, pattern, numeric bounds,
    array bounds.
    """
    constraints: List[Constraint] = []
    kind: str = field.kind

    if not field.required:
        constraints.append(Constraint(kind="optional", validator="IsOptional"))

    if field.array:
        constraints.append(Constraint(kind="type_check", validator="IsArray"))
    elif kind == FieldKind.ENUM.value and field.enum:
        constraints.append(
            Constraint(kind="type_check", validator="IsIn", args=[format_literal(field.enum)])
        )
    elif kind == FieldKind.JSON.value:
        constraints.append(Constraint(kind="type_check", validator="IsObject"))
    elif kind in _TYPE_CHECKS:
        constraints.append(Constraint(kind="type_check", validator=_TYPE_CHECKS[kind]))

    if field.min_length is not None:
        constraints.append(
            Constraint(kind="min_length", validator="MinLength", args=[str(field.min_length)])
        )
    if field.max_length is not None:
        constraints.append(
            Constraint(kind="max_length", validator="MaxLength", args=[str(field.max_length)])
        )
    if field.pattern:
        constraints.append(
            Constraint(kind="pattern", validator="Matches", args=[_regex_literal(field.pattern)])
        )
    if field.min is not None:
        constraints.append(Constraint(kind="min", validator="Min", args=[_num(field.min)]))
    if field.max is not None:
        constraints.append(Constraint(kind="max", validator="Max", args=[_num(field.max)]))

    options: Optional[ArrayOptions] = field.array_options
    if field.array and options is not None:
        if options.min_length is not None:
            constraints.append(
                Constraint(kind="array_min", validator="ArrayMinSize", args=[str(options.min_length)])
            )
        if options.max_length is not None:
            constraints.append(
                Constraint(kind="array_max", validator="ArrayMaxSize", args=[str(options.max_length)])
            )
        if options.unique_items:
            constraints.append(Constraint(kind="unique_items", validator="ArrayUnique"))

    return constraints


def validator_imports(columns: Iterable[ColumnDescriptor]) -> List[str]:
    """Sorted validator names used by *columns* (for the import line)."""
    names: Set[str] = set()
    for col in columns:
        names.update(c.validator for c in col.constraints)
    return sorted(names)


# ---------------------------------------------------------------------------
# Structural schemas: shared walkers
# ---------------------------------------------------------------------------


def _is_required(required: Optional[List[str]], name: str) -> bool:
    # A nested object without a 'required' list treats every property as required.
    if required is None:
        return True
    return name in required


def _zod_for(prop: PropertySchema, depth: int) -> str:
    desc: str = f".describe({json.dumps(prop.description)})" if prop.description else ""
    if prop.type == "object" and prop.properties:
        pad: str = _INDENT * (depth + 1)
        lines: List[str] = []
        for name, child in prop.properties.items():
            optional: str = "" if _is_required(prop.required, name) else ".optional()"
            lines.append(f"{pad}{name}: {_zod_for(child, depth + 1)}{optional},")
        return "z.object({\n" + "\n".join(lines) + "\n" + _INDENT * depth + "})" + desc
    if prop.type == "array":
        inner: str = _zod_for(prop.items, depth) if prop.items is not None else "z.any()"
        return f"z.array({inner}){desc}"
    return _ZOD_LEAVES.get(prop.type, "z.any()") + desc


def _ts_for(prop: PropertySchema) -> str:
    if prop.type == "object" and prop.properties:
        members: List[str] = []
        for name, child in prop.properties.items():
            marker: str = "" if _is_required(prop.required, name) else "?"
            members.append(f"{name}{marker}: {_ts_for(child)};")
        return "{ " + " ".join(members) + " }"
    if prop.type == "array":
        inner: str = _ts_for(prop.items) if prop.items is not None else "any"
        return f"{inner}[]"
    return _TS_LEAVES.get(prop.type, "any")


def _object_body(schema: ObjectSchema) -> List[str]:
    lines: List[str] = []
    for name, prop in schema.properties.items():
        optional: str = "" if schema.is_required(name) else ".optional()"
        lines.append(f"{_INDENT}{name}: {_zod_for(prop, 1)}{optional},")
    return lines


# ---------------------------------------------------------------------------
# Structural schemas: public generators
# ---------------------------------------------------------------------------


def interface_definition_for(
    entity_name: str,
    field_name: str,
    item_schema: ObjectSchema,
) -> NestedInterface:
    """TypeScript interface for one element of a structured JSON array."""
    name: str = item_interface_name_for(entity_name, field_name)
    lines: List[str] = [f"export interface {name} {{"]
    for prop_name, prop in item_schema.properties.items():
        marker: str = "" if item_schema.is_required(prop_name) else "?"
        lines.append(f"{_INDENT}{prop_name}{marker}: {_ts_for(prop)};")
    lines.append("}")
    return NestedInterface(name=name, definition_text="\n".join(lines))


def nested_schema_for(
    entity_name: str,
    field_name: str,
    item_schema: ObjectSchema,
) -> NestedSchema:
    """
    Object + array validators for a JSON array with an ``itemSchema``.

    Property required-ness comes from the item schema's own ``required``
    list, never from the parent field.
    """
    interface_name: str = item_interface_name_for(entity_name, field_name)
    object_name: str = f"{interface_name}Schema"
    array_name: str = schema_const_name_for(entity_name, field_name)

    object_schema: str = (
        f"const {object_name} = z.object({{\n"
        + "\n".join(_object_body(item_schema))
        + f"\n}}).describe({quote(interface_name + ': Generated schema')});"
    )
    array_schema: str = (
        f"const {array_name} = z.array({object_name})"
        f".describe({quote(f'{array_name}: Array of {interface_name}')});"
    )
    return NestedSchema(
        schema_name=array_name,
        interface_name=interface_name,
        object_schema=object_schema,
        array_schema=array_schema,
    )


def deep_json_schema_for(
    entity_name: str,
    field_name: str,
    schema: ObjectSchema,
) -> NestedSchema:
    """Object validator for a non-array JSON field with a ``schema``."""
    schema_name: str = schema_const_name_for(entity_name, field_name)
    object_schema: str = (
        f"const {schema_name} = z.object({{\n"
        + "\n".join(_object_body(schema))
        + f"\n}}).describe({quote(f'{schema_name}: Generated schema for {field_name} field')});"
    )
    return NestedSchema(schema_name=schema_name, object_schema=object_schema)


def scalar_array_schema_for(
    entity_name: str,
    field_name: str,
    kind: str,
    array_options: Optional[ArrayOptions] = None,
) -> NestedSchema:
    """
    Array validator for ``string[]`` / ``number[]`` / ``boolean[]`` columns.

    Supports array-level bounds and per-item bounds; boolean items take none.
    """
    schema_name: str = schema_const_name_for(entity_name, field_name)
    options: ArrayOptions = array_options or ArrayOptions()

    array_bounds: List[str] = []
    if options.min_length is not None:
        array_bounds.append(f".min({options.min_length})")
    if options.max_length is not None:
        array_bounds.append(f".max({options.max_length})")

    item_bounds: List[str] = []
    if kind == "string":
        if options.item_min_length is not None:
            item_bounds.append(f".min({options.item_min_length})")
        if options.item_max_length is not None:
            item_bounds.append(f".max({options.item_max_length})")
    elif kind == "number":
        if options.item_min is not None:
            item_bounds.append(f".min({_num(options.item_min)})")
        if options.item_max is not None:
            item_bounds.append(f".max({_num(options.item_max)})")

    item: str = _ZOD_LEAVES.get(kind, "z.any()") + "".join(item_bounds)
    array_schema: str = (
        f"const {schema_name} = z.array({item}){''.join(array_bounds)}"
        f".describe({quote(f'{schema_name}: Array of {kind}s')});"
    )
    return NestedSchema(schema_name=schema_name, array_schema=array_schema)


__all__: List[str] = [
    "constraints_for",
    "validator_imports",
    "interface_definition_for",
    "nested_schema_for",
    "deep_json_schema_for",
    "scalar_array_schema_for",
]

logger.debug("entitygen.schemas loaded, %d public symbols.", len(__all__))
