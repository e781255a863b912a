# File: entitygen/models.py
"""
entitygen - Core Data Models
==============================
Pydantic V2 models for every stage of the compiler:

    input side   FieldKind, RelationshipSpec, EntityField, ParsedEntity
    output side  ColumnDescriptor, RelationDescriptor, EnumDescriptor,
                 NestedInterface, NestedSchema, CompiledEntity
    settings     CompilerConfig

Input-side models are frozen: a ``ParsedEntity`` is built once per
invocation and flows unchanged through the resolve phase.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from entitygen.utils import foreign_key_name_for, format_literal

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    """Declared kind of an entity field."""

    STRING = "string"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    UUID = "uuid"
    ENUM = "enum"
    JSON = "json"
    KEY = "key"
    RELATION = "relation"
    POLYMORPHIC = "polymorphic"


SCALAR_KINDS: FrozenSet[str] = frozenset({
    "string", "text", "number", "boolean", "date", "uuid", "key",
})

# Scalar kinds whose arrays are stored through a validated JSON schema.
SCHEMA_ARRAY_KINDS: FrozenSet[str] = frozenset({"string", "number", "boolean"})


class RelationType(str, Enum):
    """Relationship cardinalities."""

    MANY_TO_ONE = "ManyToOne"
    ONE_TO_MANY = "OneToMany"
    MANY_TO_MANY = "ManyToMany"
    ONE_TO_ONE = "OneToOne"


TO_MANY_RELATIONS: FrozenSet[str] = frozenset({"OneToMany", "ManyToMany"})
JOIN_COLUMN_RELATIONS: FrozenSet[str] = frozenset({"ManyToOne", "OneToOne"})


class ExposureFlag(str, Enum):
    """Per-field GraphQL artifacts."""

    OBJECT = "object"
    INPUTS = "inputs"
    FOREIGN_KEY = "foreignKey"
    RELATION = "relation"


KNOWN_EXPOSURE_FLAGS: FrozenSet[str] = frozenset(f.value for f in ExposureFlag)


class EntityOperation(str, Enum):
    """Entity-level CRUD operations."""

    CREATE = "create"
    UPDATE = "update"
    CREATE_UPDATE = "createUpdate"
    DELETE = "delete"
    DESTROY = "destroy"
    LIST = "list"
    ARRAY = "array"
    SINGLE = "single"


ALL_OPERATIONS: Tuple[str, ...] = tuple(op.value for op in EntityOperation)

# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)

# Structural schemas are JSON-Schema-like; unknown keywords are dropped.
_SCHEMA_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)

GraphQLPolicy = Union[bool, List[str], None]


# ---------------------------------------------------------------------------
# Input side: structural schemas
# ---------------------------------------------------------------------------


class PropertySchema(BaseModel):
    """One property of a structural (JSON-Schema-like) object."""

    model_config = _SCHEMA_CONFIG

    type: str = Field(default="string", description="Leaf kind or 'object' / 'array'.")
    description: Optional[str] = None
    format: Optional[str] = None
    examples: Optional[List[Any]] = None
    properties: Optional[Dict[str, "PropertySchema"]] = None
    items: Optional["PropertySchema"] = None
    required: Optional[List[str]] = None

    def is_required(self, name: str) -> bool:
        return name in (self.required or [])


PropertySchema.model_rebuild()


class ObjectSchema(BaseModel):
    """Structural description of a JSON object (``{type, properties, required}``)."""

    model_config = _SCHEMA_CONFIG

    type: Literal["object"] = "object"
    properties: Dict[str, PropertySchema] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    def is_required(self, name: str) -> bool:
        return name in self.required


class ArrayOptions(BaseModel):
    """Bounds for array fields, at array level and per item."""

    model_config = _FROZEN_CONFIG

    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    item_min_length: Optional[int] = Field(default=None, ge=0)
    item_max_length: Optional[int] = Field(default=None, ge=0)
    item_min: Optional[float] = None
    item_max: Optional[float] = None
    unique_items: bool = False


# ---------------------------------------------------------------------------
# Input side: fields & entities
# ---------------------------------------------------------------------------


class RelationshipSpec(BaseModel):
    """Association metadata carried by a relationship field."""

    model_config = _FROZEN_CONFIG

    target_entity: str = Field(..., min_length=1)
    type: RelationType
    cascade: Optional[List[str]] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None
    eager: bool = False
    join_column: Optional[str] = None
    key: Optional[str] = None

    @computed_field  # type: ignore[misc]
    @property
    def is_to_many(self) -> bool:
        return self.type in TO_MANY_RELATIONS

    @computed_field  # type: ignore[misc]
    @property
    def owns_join_column(self) -> bool:
        return self.type in JOIN_COLUMN_RELATIONS

    def __repr__(self) -> str:
        return f"<Relationship {self.type} -> {self.target_entity}>"


class EntityField(BaseModel):
    """One declared field of an entity schema."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    type: Optional[FieldKind] = None
    array: bool = False
    required: bool = True
    unique: bool = False
    description: Optional[str] = None
    default_value: Any = None
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    pattern: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    enum: Optional[List[str]] = None
    item_schema: Optional[ObjectSchema] = None
    json_schema: Optional[ObjectSchema] = None
    array_options: Optional[ArrayOptions] = None
    key: Optional[str] = None
    relationship: Optional[RelationshipSpec] = None
    graphql: GraphQLPolicy = None

    @property
    def kind(self) -> str:
        """Declared kind as a plain string (empty when untyped)."""
        if self.type is None:
            return ""
        return str(getattr(self.type, "value", self.type))

    @computed_field  # type: ignore[misc]
    @property
    def is_relationship(self) -> bool:
        return self.relationship is not None

    @computed_field  # type: ignore[misc]
    @property
    def is_polymorphic(self) -> bool:
        return self.type == FieldKind.POLYMORPHIC

    @computed_field  # type: ignore[misc]
    @property
    def foreign_key_name(self) -> str:
        explicit: Optional[str] = self.key
        if explicit is None and self.relationship is not None:
            explicit = self.relationship.key
        return foreign_key_name_for(self.name, explicit)

    @model_validator(mode="after")
    def _check_payload_matches_kind(self) -> "EntityField":
        if self.enum is not None and self.type != FieldKind.ENUM:
            raise ValueError("'enum' values are only allowed on enum fields")
        if self.item_schema is not None and not (
            self.type == FieldKind.JSON and self.array
        ):
            raise ValueError("'itemSchema' is only allowed on json array fields")
        if self.type == FieldKind.RELATION and self.relationship is None:
            raise ValueError("relation fields need a 'relation' block")
        return self

    def __repr__(self) -> str:
        suffix: str = "[]" if self.array else ""
        return f"<Field {self.name}: {self.type}{suffix}>"


class ParsedEntity(BaseModel):
    """Normalised in-memory form of one entity schema."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    fields: List[EntityField] = Field(default_factory=list)
    graphql: GraphQLPolicy = None
    description: Optional[str] = None
    indexes: List[Union[str, List[str]]] = Field(default_factory=list)
    source_file: Optional[str] = None

    @field_validator("fields")
    @classmethod
    def _unique_field_names(cls, v: List[EntityField]) -> List[EntityField]:
        seen: set = set()
        for fld in v:
            if fld.name in seen:
                raise ValueError(f"Duplicate field name '{fld.name}'")
            seen.add(fld.name)
        return v

    def sorted_fields(self) -> List[EntityField]:
        """Fields in deterministic (alphabetical) order."""
        return sorted(self.fields, key=lambda f: f.name)

    def get_field(self, name: str) -> Optional[EntityField]:
        for fld in self.fields:
            if fld.name == name:
                return fld
        return None

    def __repr__(self) -> str:
        return f"<Entity {self.name} ({len(self.fields)} fields)>"


# ---------------------------------------------------------------------------
# Output side: descriptors
# ---------------------------------------------------------------------------


ColumnKind = Literal[
    "scalar",
    "enum",
    "json",
    "foreign_key",
    "polymorphic_id",
    "polymorphic_type",
    "fallback",
]


class Constraint(BaseModel):
    """A single validation constraint, rendered as a decorator."""

    model_config = _SHARED_CONFIG

    kind: str = Field(..., description="optional | type_check | min_length | ...")
    validator: str = Field(..., description="Decorator name, e.g. 'MaxLength'.")
    args: List[str] = Field(default_factory=list, description="Pre-rendered arguments.")

    def render(self) -> str:
        return f"@{self.validator}({', '.join(self.args)})"


class ColumnDescriptor(BaseModel):
    """Render-ready representation of one storage column."""

    model_config = _SHARED_CONFIG

    name: str
    origin_field: str
    kind: ColumnKind = "scalar"
    column_type: str
    host_type: str
    api_type: Optional[str] = None
    required: bool = True
    unique: bool = False
    array: bool = False
    graphql_object: bool = False
    graphql_inputs: bool = False
    description: Optional[str] = None
    default_value: Any = None
    max_length: Optional[int] = None
    constraints: List[Constraint] = Field(default_factory=list)
    enum_name: Optional[str] = None
    schema_name: Optional[str] = None

    @computed_field  # type: ignore[misc]
    @property
    def nullability(self) -> str:
        return "!" if self.required else "?"

    def column_options(self) -> Dict[str, Any]:
        """Ordered storage-column options (type, nullable, unique, default, length)."""
        options: Dict[str, Any] = {"type": self.column_type}
        if not self.required:
            options["nullable"] = True
        if self.unique:
            options["unique"] = True
        if self.default_value is not None:
            options["default"] = self.default_value
        if self.max_length is not None and self.column_type == "varchar":
            options["length"] = self.max_length
        return options

    def __repr__(self) -> str:
        return f"<Column {self.name} {self.column_type}{self.nullability}>"


class RelationOptions(BaseModel):
    """Relation options; only options that were declared are emitted."""

    model_config = _SHARED_CONFIG

    eager: Optional[bool] = None
    cascade: Optional[List[str]] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self.eager:
            options["eager"] = True
        if self.cascade:
            options["cascade"] = list(self.cascade)
        if self.on_delete:
            options["onDelete"] = self.on_delete
        if self.on_update:
            options["onUpdate"] = self.on_update
        return options

    def render(self) -> str:
        return format_literal(self.as_dict())


class HostReturnType(BaseModel):
    """
    Host-language type of a relation property.

    ``direct`` relations are loaded with the owning row; ``deferred`` ones
    are resolved on demand and are wrapped in a ``Promise``.
    """

    model_config = _SHARED_CONFIG

    mode: Literal["direct", "deferred"]
    target: str
    many: bool = False
    nullable: bool = False

    @property
    def is_deferred(self) -> bool:
        return self.mode == "deferred"

    def render(self) -> str:
        if self.many:
            inner: str = f"{self.target}[]"
        elif self.nullable:
            inner = f"{self.target} | null"
        else:
            inner = self.target
        if self.mode == "deferred":
            return f"Promise<{inner}>"
        return inner


class RelationDescriptor(BaseModel):
    """Render-ready representation of one relation property."""

    model_config = _SHARED_CONFIG

    name: str
    target_entity: str
    relation_type: RelationType
    graphql_field: bool = False
    options: RelationOptions = Field(default_factory=RelationOptions)
    join_column: Optional[str] = None
    return_type: HostReturnType
    required: bool = True
    markers: List[str] = Field(default_factory=list)
    description: str = ""

    @computed_field  # type: ignore[misc]
    @property
    def eager(self) -> bool:
        return self.return_type.mode == "direct"

    def __repr__(self) -> str:
        return f"<Relation {self.name} {self.relation_type} -> {self.target_entity}>"


class EnumDescriptor(BaseModel):
    """A named constant set derived from an enum field."""

    model_config = _SHARED_CONFIG

    name: str
    values: List[str] = Field(..., min_length=1)
    array: bool = False
    description: Optional[str] = None


class NestedInterface(BaseModel):
    """A host-language interface describing one structured JSON item."""

    model_config = _SHARED_CONFIG

    name: str
    definition_text: str


class NestedSchema(BaseModel):
    """Structural validator source text for one JSON / scalar-array column."""

    model_config = _SHARED_CONFIG

    schema_name: str
    interface_name: Optional[str] = None
    object_schema: Optional[str] = None
    array_schema: Optional[str] = None

    @property
    def definition_text(self) -> str:
        parts: List[str] = [
            p for p in (self.object_schema, self.array_schema) if p
        ]
        return "\n\n".join(parts)


class PolymorphicAccessor(BaseModel):
    """Getter resolving a polymorphic (id, type) pair at runtime."""

    model_config = _SHARED_CONFIG

    field_name: str
    method_name: str
    id_column: str
    type_column: str
    required: bool = True


class CompiledEntity(BaseModel):
    """The full render-ready tree for one entity."""

    model_config = _SHARED_CONFIG

    name: str
    table_name: str
    description: Optional[str] = None
    columns: List[ColumnDescriptor] = Field(default_factory=list)
    relations: List[RelationDescriptor] = Field(default_factory=list)
    enums: List[EnumDescriptor] = Field(default_factory=list)
    nested_interfaces: List[NestedInterface] = Field(default_factory=list)
    nested_schemas: List[NestedSchema] = Field(default_factory=list)
    polymorphic_accessors: List[PolymorphicAccessor] = Field(default_factory=list)
    operations: List[str] = Field(default_factory=list)
    relation_targets: List[str] = Field(default_factory=list)
    indexes: List[List[str]] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def get_relation(self, name: str) -> Optional[RelationDescriptor]:
        for rel in self.relations:
            if rel.name == name:
                return rel
        return None

    def to_tree(self) -> Dict[str, Any]:
        """JSON-compatible dump, stable across runs for identical input."""
        return self.model_dump(mode="json")

    def __repr__(self) -> str:
        return (
            f"<CompiledEntity {self.name}: {len(self.columns)} columns, "
            f"{len(self.relations)} relations>"
        )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class CompilerConfig(BaseModel):
    """Settings threaded explicitly through every pipeline stage."""

    model_config = _SHARED_CONFIG

    unknown_exposure_policy: Literal["ignore", "warn", "reject"] = Field(
        default="warn",
        description="What to do with unknown per-field graphql flags.",
    )
    field_error_policy: Literal["degrade", "raise"] = Field(
        default="degrade",
        description="Fallback to a generic scalar, or abort the entity.",
    )
    output_dir: str = Field(default=".", description="Root of the output tree.")
    base_dir: str = Field(
        default="main/db/entities/__generated__",
        description="Directory (relative to output_dir) for regenerated base files.",
    )
    extension_dir: str = Field(
        default="main/db/entities",
        description="Directory (relative to output_dir) for user extension files.",
    )
    force: bool = Field(default=False, description="Overwrite extension files.")
    dry_run: bool = Field(default=False, description="Render without writing.")


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldKind",
    "SCALAR_KINDS",
    "SCHEMA_ARRAY_KINDS",
    "RelationType",
    "TO_MANY_RELATIONS",
    "JOIN_COLUMN_RELATIONS",
    "ExposureFlag",
    "KNOWN_EXPOSURE_FLAGS",
    "EntityOperation",
    "ALL_OPERATIONS",
    "GraphQLPolicy",
    "PropertySchema",
    "ObjectSchema",
    "ArrayOptions",
    "RelationshipSpec",
    "EntityField",
    "ParsedEntity",
    "ColumnKind",
    "Constraint",
    "ColumnDescriptor",
    "RelationOptions",
    "HostReturnType",
    "RelationDescriptor",
    "EnumDescriptor",
    "NestedInterface",
    "NestedSchema",
    "PolymorphicAccessor",
    "CompiledEntity",
    "CompilerConfig",
]

logger.debug("entitygen.models loaded, %d public symbols.", len(__all__))
