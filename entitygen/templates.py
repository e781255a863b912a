# File: entitygen/templates.py
"""
entitygen - Template Assembly
===============================
Turns a ``CompiledEntity`` into TypeScript source text.

Two steps, kept apart so other rendering backends can be plugged in:

1. ``build_template_data`` flattens the compiled tree into a plain,
   render-ready dictionary (decorators pre-rendered, imports collected).
2. A ``TemplateRenderer`` turns that dictionary into file content.  The
   default backend, ``TemplateGenerator``, knows two templates:

       base       regenerated on every run (``<Name>Base.ts``)
       extension  user-owned stub, written once (``<Name>.ts``)

All string assembly uses ``List[str]`` + ``"\\n".join()``; the generator
holds no mutable state.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from entitygen.errors import TemplateNotFoundError
from entitygen.models import (
    ColumnDescriptor,
    CompiledEntity,
    CompilerConfig,
    EnumDescriptor,
    PolymorphicAccessor,
    RelationDescriptor,
)
from entitygen.relationships import MARKER_OPTIONAL, MARKER_VALIDATE_NESTED
from entitygen.schemas import validator_imports
from entitygen.types import GRAPHQL_JSON, GRAPHQL_JSON_OBJECT
from entitygen.utils import format_literal, quote, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_INDENT: str = "  "
_DOUBLE_INDENT: str = "    "

BASE_TEMPLATE: str = "base"
EXTENSION_TEMPLATE: str = "extension"

_GRAPHQL_BUILTINS: Dict[str, str] = {
    "String": "String",
    "Number": "Number",
    "Boolean": "Boolean",
    "Date": "Date",
}
_GRAPHQL_JSON_SCALARS: Set[str] = {GRAPHQL_JSON, GRAPHQL_JSON_OBJECT}

_RELATION_DECORATORS: Dict[str, str] = {
    "ManyToOne": "ManyToOne",
    "OneToMany": "OneToMany",
    "ManyToMany": "ManyToMany",
    "OneToOne": "OneToOne",
}

_ENUM_MEMBER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_DATA_SOURCE_IMPORT: str = "import { DataSourceProvider } from '../../DataSourceProvider.js';"


class TemplateRenderer(Protocol):
    """Anything that turns (template name, data) into text."""

    def render(self, template_name: str, data: Dict[str, Any]) -> str:
        ...


# ---------------------------------------------------------------------------
# Small rendering helpers
# ---------------------------------------------------------------------------


def _import_line(names: Set[str], module: str) -> Optional[str]:
    if not names:
        return None
    return f"import {{ {', '.join(sorted(names))} }} from {quote(module)};"


def _module_path(target_dir: str, from_dir: str) -> str:
    rel: str = posixpath.relpath(target_dir, from_dir)
    return rel if rel.startswith(".") else f"./{rel}"


def _options_literal(options: Dict[str, Any]) -> str:
    return format_literal(options) if options else ""


def graphql_type_expr(api_type: str) -> str:
    """``[String!]`` -> ``[String]``; scalars and enum names pass through."""
    if api_type.startswith("["):
        inner: str = api_type.strip("[]").rstrip("!")
        return f"[{_GRAPHQL_BUILTINS.get(inner, inner)}]"
    return _GRAPHQL_BUILTINS.get(api_type, api_type)


def enum_member_name(value: str) -> str:
    """``in-progress`` -> ``IN_PROGRESS``."""
    member: str = to_snake_case(value).upper()
    if not member:
        return "EMPTY"
    if not _ENUM_MEMBER_RE.match(member):
        return f"V_{member}"
    return member


def _relation_kind(rel: RelationDescriptor) -> str:
    return str(getattr(rel.relation_type, "value", rel.relation_type))


def _column_decorators(col: ColumnDescriptor) -> List[str]:
    decorators: List[str] = []
    if col.graphql_object and col.api_type:
        field_opts: Dict[str, Any] = {}
        if not col.required:
            field_opts["nullable"] = True
        if col.description:
            field_opts["description"] = col.description
        opts: str = _options_literal(field_opts)
        decorators.append(
            f"@Field(() => {graphql_type_expr(col.api_type)}{', ' + opts if opts else ''})"
        )
    decorators.append(f"@Column({format_literal(col.column_options())})")
    decorators.extend(c.render() for c in col.constraints)
    return decorators


def _relation_decorators(rel: RelationDescriptor) -> List[str]:
    decorators: List[str] = []
    target: str = rel.target_entity
    if rel.graphql_field:
        gql_target: str = f"[{target}]" if rel.return_type.many else target
        field_opts: Dict[str, Any] = {
            "description": rel.description,
            "nullable": not rel.required,
        }
        decorators.append(f"@Field(() => {gql_target}, {format_literal(field_opts)})")

    opts: str = rel.options.render() if rel.options.as_dict() else ""
    decorator: str = _RELATION_DECORATORS[_relation_kind(rel)]
    decorators.append(f"@{decorator}(() => {target}{', ' + opts if opts else ''})")

    if rel.join_column:
        decorators.append(f"@JoinColumn({{ name: {quote(rel.join_column)} }})")
    if MARKER_OPTIONAL in rel.markers:
        decorators.append("@IsOptional()")
    if MARKER_VALIDATE_NESTED in rel.markers:
        decorators.append("@ValidateNested()")
    return decorators


def _enum_data(enum: EnumDescriptor) -> Dict[str, Any]:
    return {
        "name": enum.name,
        "description": enum.description or f"{enum.name} options",
        "members": [(enum_member_name(v), v) for v in enum.values],
    }


def _accessor_data(acc: PolymorphicAccessor) -> Dict[str, Any]:
    return {
        "method_name": acc.method_name,
        "id_column": acc.id_column,
        "type_column": acc.type_column,
    }


def index_decorator(entity_name: str, columns: List[str]) -> str:
    """``@Index("IDX_post_title_status", ['title', 'status'])``."""
    name: str = f"IDX_{entity_name.lower()}_{'_'.join(columns)}"
    cols: str = ", ".join(quote(c) for c in columns)
    return f'@Index("{name}", [{cols}])'


# ---------------------------------------------------------------------------
# Render-ready data
# ---------------------------------------------------------------------------


def build_template_data(
    compiled: CompiledEntity,
    config: Optional[CompilerConfig] = None,
) -> Dict[str, Any]:
    """
    Flatten *compiled* into the dictionary both templates consume.

    Pure: the same compiled tree always yields an equal dictionary.
    """
    cfg: CompilerConfig = config or CompilerConfig()
    base_to_ext: str = _module_path(cfg.extension_dir, cfg.base_dir)
    ext_to_base: str = _module_path(cfg.base_dir, cfg.extension_dir)

    typeorm: Set[str] = set()
    graphql: Set[str] = {"ObjectType"}
    validators: Set[str] = set(validator_imports(compiled.columns))
    json_scalars: Set[str] = set()

    columns: List[Dict[str, Any]] = []
    for col in compiled.columns:
        typeorm.add("Column")
        if col.graphql_object and col.api_type:
            graphql.add("Field")
            if col.api_type == "ID":
                graphql.add("ID")
            if col.api_type in _GRAPHQL_JSON_SCALARS:
                json_scalars.add(col.api_type)
        columns.append({
            "name": col.name,
            "nullability": col.nullability,
            "host_type": col.host_type,
            "decorators": _column_decorators(col),
        })

    relations: List[Dict[str, Any]] = []
    targets: List[str] = []
    for rel in compiled.relations:
        typeorm.add(_RELATION_DECORATORS[_relation_kind(rel)])
        if rel.join_column:
            typeorm.add("JoinColumn")
        if rel.graphql_field:
            graphql.add("Field")
        if MARKER_OPTIONAL in rel.markers:
            validators.add("IsOptional")
        if MARKER_VALIDATE_NESTED in rel.markers:
            validators.add("ValidateNested")
        if rel.target_entity != compiled.name and rel.target_entity not in targets:
            targets.append(rel.target_entity)
        relations.append({
            "name": rel.name,
            "nullability": "!" if rel.required else "?",
            "host_type": rel.return_type.render(),
            "decorators": _relation_decorators(rel),
        })

    if compiled.enums:
        graphql.add("registerEnumType")
    if compiled.polymorphic_accessors:
        typeorm.update({"FindOneOptions", "ObjectLiteral"})

    imports: List[str] = [
        line
        for line in (
            _import_line(typeorm, "typeorm"),
            _import_line(graphql, "type-graphql"),
            _import_line(json_scalars, "graphql-type-json"),
            _import_line(validators, "class-validator"),
        )
        if line
    ]
    if compiled.nested_schemas:
        imports.append("import { z } from 'zod';")
    if compiled.polymorphic_accessors:
        imports.append(_DATA_SOURCE_IMPORT)
    for target in sorted(targets):
        imports.append(f"import {{ {target} }} from '{base_to_ext}/{target}.js';")

    json_schemas: List[Dict[str, str]] = [
        {"column": col.name, "schema": col.schema_name}
        for col in compiled.columns
        if col.schema_name
    ]

    return {
        "class_name": compiled.name,
        "base_class_name": f"{compiled.name}Base",
        "table_name": compiled.table_name,
        "description": compiled.description,
        "imports": imports,
        "base_import_path": f"{ext_to_base}/{compiled.name}Base.js",
        "enums": [_enum_data(e) for e in compiled.enums],
        "interfaces": [i.definition_text for i in compiled.nested_interfaces],
        "schemas": [s.definition_text for s in compiled.nested_schemas],
        "columns": columns,
        "relations": relations,
        "polymorphic_methods": [_accessor_data(a) for a in compiled.polymorphic_accessors],
        "json_schemas": json_schemas,
        "indexes": [index_decorator(compiled.name, idx) for idx in compiled.indexes],
        "operations": list(compiled.operations),
    }


# ---------------------------------------------------------------------------
# Default backend
# ---------------------------------------------------------------------------


class TemplateGenerator:
    """
    Stateless TypeScript backend.

    Usage::

        generator = TemplateGenerator()
        text = generator.render("base", build_template_data(compiled))
    """

    def __init__(self) -> None:
        self._templates: Dict[str, Callable[[Dict[str, Any]], str]] = {
            BASE_TEMPLATE: self._render_base,
            EXTENSION_TEMPLATE: self._render_extension,
        }

    @property
    def template_names(self) -> List[str]:
        return sorted(self._templates)

    def render(self, template_name: str, data: Dict[str, Any]) -> str:
        """
        Render *template_name* with *data*.

        Raises:
            TemplateNotFoundError: *template_name* is not a known template.
        """
        template: Optional[Callable[[Dict[str, Any]], str]] = self._templates.get(template_name)
        if template is None:
            raise TemplateNotFoundError(
                f"unknown template '{template_name}'. "
                f"Available: {', '.join(self.template_names)}",
                entity=data.get("class_name"),
            )
        content: str = template(data)
        logger.debug(
            "Rendered '%s' for %s: %d lines.",
            template_name,
            data.get("class_name"),
            content.count("\n") + 1,
        )
        return content

    # ===================================================================
    # base
    # ===================================================================

    def _render_base(self, data: Dict[str, Any]) -> str:
        lines: List[str] = []
        base: str = data["base_class_name"]

        lines.append("/**")
        lines.append(f" * {base} - generated by entitygen from the {data['class_name']} schema.")
        lines.append(" * Do not edit: this file is rewritten on every generation.")
        lines.append(f" * Extend it in {data['class_name']}.ts instead.")
        lines.append(" */")
        lines.append("")
        lines.extend(data["imports"])
        lines.append("")

        for enum in data["enums"]:
            lines.append(f"export enum {enum['name']} {{")
            for member, value in enum["members"]:
                lines.append(f"{_INDENT}{member} = {quote(value)},")
            lines.append("}")
            lines.append("")
            lines.append(
                f"registerEnumType({enum['name']}, "
                f"{format_literal({'name': enum['name'], 'description': enum['description']})});"
            )
            lines.append("")

        for definition in data["interfaces"]:
            lines.append(definition)
            lines.append("")

        for definition in data["schemas"]:
            lines.append(definition)
            lines.append("")

        object_opts: Dict[str, Any] = {"isAbstract": True}
        if data.get("description"):
            object_opts["description"] = data["description"]
        lines.append(f"@ObjectType({format_literal(object_opts)})")
        lines.append(f"export abstract class {base} {{")

        if data["json_schemas"]:
            lines.append(f"{_INDENT}static readonly jsonSchemas = {{")
            for entry in data["json_schemas"]:
                lines.append(f"{_DOUBLE_INDENT}{entry['column']}: {entry['schema']},")
            lines.append(f"{_INDENT}}};")
            lines.append("")

        members: List[List[str]] = []
        for col in data["columns"]:
            block: List[str] = [f"{_INDENT}{d}" for d in col["decorators"]]
            block.append(f"{_INDENT}{col['name']}{col['nullability']}: {col['host_type']};")
            members.append(block)
        for rel in data["relations"]:
            block = [f"{_INDENT}{d}" for d in rel["decorators"]]
            block.append(f"{_INDENT}{rel['name']}{rel['nullability']}: {rel['host_type']};")
            members.append(block)
        for method in data["polymorphic_methods"]:
            members.append(self._polymorphic_method(method))

        for i, block in enumerate(members):
            if i:
                lines.append("")
            lines.extend(block)

        lines.append("}")
        lines.append("")
        return "\n".join(lines)

    @staticmethod
    def _polymorphic_method(method: Dict[str, Any]) -> List[str]:
        id_col: str = method["id_column"]
        type_col: str = method["type_column"]
        return [
            f"{_INDENT}async {method['method_name']}<T extends ObjectLiteral>(): Promise<T | null> {{",
            f"{_DOUBLE_INDENT}if (!this.{id_col} || !this.{type_col}) {{",
            f"{_DOUBLE_INDENT}{_INDENT}return null;",
            f"{_DOUBLE_INDENT}}}",
            f"{_DOUBLE_INDENT}const repository = DataSourceProvider.get().getRepository<T>(this.{type_col});",
            f"{_DOUBLE_INDENT}return repository.findOne({{ where: {{ id: this.{id_col} }} }} as FindOneOptions<T>);",
            f"{_INDENT}}}",
        ]

    # ===================================================================
    # extension
    # ===================================================================

    def _render_extension(self, data: Dict[str, Any]) -> str:
        lines: List[str] = []
        name: str = data["class_name"]
        base: str = data["base_class_name"]

        typeorm: Set[str] = {"Entity"}
        if data["indexes"]:
            typeorm.add("Index")

        lines.append("/**")
        lines.append(f" * {name} - custom logic for the {name} entity.")
        lines.append(f" * Generated once by entitygen; the generated columns live in {base}.")
        lines.append(" */")
        lines.append("")
        lines.append(_import_line(typeorm, "typeorm") or "")
        lines.append("import { ObjectType } from 'type-graphql';")
        lines.append(f"import {{ {base} }} from {quote(data['base_import_path'])};")
        lines.append("")

        object_opts: Dict[str, Any] = {}
        if data.get("description"):
            object_opts["description"] = data["description"]
        lines.append(f"@ObjectType({_options_literal(object_opts)})")
        lines.append(f"@Entity({quote(data['table_name'])})")
        lines.extend(data["indexes"])
        lines.append(f"export class {name} extends {base} {{")
        lines.append(f"{_INDENT}// Custom methods and computed properties go here.")
        lines.append("}")
        lines.append("")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BASE_TEMPLATE",
    "EXTENSION_TEMPLATE",
    "TemplateRenderer",
    "TemplateGenerator",
    "build_template_data",
    "graphql_type_expr",
    "enum_member_name",
    "index_decorator",
]

logger.debug("entitygen.templates loaded, %d public symbols.", len(__all__))
