# File: entitygen/parser.py
"""
entitygen - Schema Parser
===========================
Turns raw entity-schema documents into normalised ``ParsedEntity`` models.

Input shape (JSON or YAML)::

    {
      "name": "Comment",
      "description": "...",
      "graphql": true | false | ["create", "list", ...],
      "indexes": ["postId", ["authorId", "createdAt"]],
      "fields": {
        "postId": {
          "type": "string",
          "relation": {"entity": "Post", "type": "many-to-one"}
        }
      }
    }

Normalisation:
    - relation type spellings (``many-to-one``, ``many_to_one``,
      ``ManyToOne``) collapse to the four ``RelationType`` values;
    - JSON keys are mapped onto model attributes (``default`` ->
      ``default_value``, ``schema`` -> ``json_schema``, ...);
    - ``required`` defaults to ``True``.

Every structural problem raises ``SchemaError`` naming the entity and,
where there is one, the field.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from entitygen.errors import SchemaError
from entitygen.models import (
    ALL_OPERATIONS,
    ArrayOptions,
    EntityField,
    FieldKind,
    ObjectSchema,
    ParsedEntity,
    RelationshipSpec,
    RelationType,
)
from entitygen.utils import IDENTIFIER_RE, PASCAL_CASE_RE

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.parser")

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# Keyed by the spelling with case, '-' and '_' removed.
_RELATION_TYPE_ALIASES: Dict[str, RelationType] = {
    "manytoone": RelationType.MANY_TO_ONE,
    "onetomany": RelationType.ONE_TO_MANY,
    "manytomany": RelationType.MANY_TO_MANY,
    "onetoone": RelationType.ONE_TO_ONE,
}

_FIELD_KINDS: Tuple[str, ...] = tuple(k.value for k in FieldKind)

# JSON key -> EntityField attribute, for keys copied through unchanged.
_PASSTHROUGH_KEYS: Dict[str, str] = {
    "array": "array",
    "unique": "unique",
    "description": "description",
    "default": "default_value",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "min": "min",
    "max": "max",
    "enum": "enum",
    "key": "key",
}

_ARRAY_OPTION_KEYS: Dict[str, str] = {
    "minLength": "min_length",
    "maxLength": "max_length",
    "itemMinLength": "item_min_length",
    "itemMaxLength": "item_max_length",
    "itemMin": "item_min",
    "itemMax": "item_max",
    "uniqueItems": "unique_items",
}

SCHEMA_FILE_SUFFIXES: Tuple[str, ...] = (".json", ".yaml", ".yml")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_relation_type(
    raw: Any,
    *,
    entity: Optional[str] = None,
    field: Optional[str] = None,
) -> RelationType:
    """
    Map any accepted spelling of a relation kind onto ``RelationType``.

    Raises:
        SchemaError: If *raw* is not one of the four known kinds.
    """
    if isinstance(raw, str):
        compact: str = raw.replace("-", "").replace("_", "").lower()
        found: Optional[RelationType] = _RELATION_TYPE_ALIASES.get(compact)
        if found is not None:
            return found
    raise SchemaError(
        f"invalid relation type {raw!r}; must be one of: "
        "many-to-one, one-to-many, many-to-many, one-to-one",
        entity=entity,
        field=field,
    )


def _check_graphql_shape(
    value: Any,
    *,
    entity: str,
    field: Optional[str] = None,
) -> Union[bool, List[str]]:
    if isinstance(value, bool):
        return value
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise SchemaError(
        "'graphql' must be a boolean or a list of strings",
        entity=entity,
        field=field,
    )


def _wrap_validation_error(
    exc: PydanticValidationError,
    *,
    entity: str,
    field: Optional[str] = None,
) -> SchemaError:
    details: List[str] = []
    for err in exc.errors():
        loc: str = ".".join(str(p) for p in err.get("loc", ()))
        details.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return SchemaError("; ".join(details), entity=entity, field=field)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class SchemaParser:
    """
    Stateless parser for entity-schema documents.

    Usage::

        parser = SchemaParser()
        entity = parser.parse_text(Path("Post.json").read_text())
        entity = parser.parse_file(Path("schemas/Post.yaml"))
    """

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def parse_text(self, text: str, source: Optional[str] = None) -> ParsedEntity:
        """Parse JSON text into a ``ParsedEntity``."""
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SchemaError(
                f"malformed JSON{f' in {source}' if source else ''}: {exc}"
            ) from exc
        return self.parse_mapping(data, source=source)

    def parse_file(self, path: Path) -> ParsedEntity:
        """Load a JSON / YAML schema file and parse it."""
        data: Dict[str, Any] = load_schema_file(path)
        return self.parse_mapping(data, source=str(path))

    def parse_mapping(
        self,
        data: Any,
        source: Optional[str] = None,
    ) -> ParsedEntity:
        """Parse an already-decoded schema document."""
        if not isinstance(data, Mapping):
            raise SchemaError(
                f"schema must be an object at top level, got {type(data).__name__}"
            )

        name: Any = data.get("name")
        if not isinstance(name, str) or not name:
            raise SchemaError("missing required key 'name' (a non-empty string)")
        if not PASCAL_CASE_RE.match(name):
            raise SchemaError(
                "entity name must be PascalCase (e.g. 'User', 'BlogPost')",
                entity=name,
            )

        raw_fields: Any = data.get("fields")
        if not isinstance(raw_fields, Mapping):
            raise SchemaError("'fields' is required and must be an object", entity=name)

        entity_kwargs: Dict[str, Any] = {"name": name, "source_file": source}

        if "graphql" in data and data["graphql"] is not None:
            policy: Union[bool, List[str]] = _check_graphql_shape(
                data["graphql"], entity=name
            )
            if isinstance(policy, list):
                invalid: List[str] = [op for op in policy if op not in ALL_OPERATIONS]
                if invalid:
                    raise SchemaError(
                        f"entity graphql list has invalid operations: "
                        f"{', '.join(invalid)}. Allowed: {', '.join(ALL_OPERATIONS)}",
                        entity=name,
                    )
            entity_kwargs["graphql"] = policy

        if data.get("description") is not None:
            entity_kwargs["description"] = str(data["description"])

        entity_kwargs["indexes"] = self._parse_indexes(data.get("indexes"), name)
        entity_kwargs["fields"] = [
            self._parse_field(name, field_name, field_spec)
            for field_name, field_spec in raw_fields.items()
        ]

        try:
            entity: ParsedEntity = ParsedEntity(**entity_kwargs)
        except PydanticValidationError as exc:
            raise _wrap_validation_error(exc, entity=name) from exc

        logger.debug(
            "Parsed entity %s: %d field(s) from %s.",
            entity.name,
            len(entity.fields),
            source or "<text>",
        )
        return entity

    # -----------------------------------------------------------------
    # Internal: fields
    # -----------------------------------------------------------------

    def _parse_field(
        self,
        entity_name: str,
        field_name: Any,
        spec: Any,
    ) -> EntityField:
        if not isinstance(field_name, str) or not IDENTIFIER_RE.match(field_name):
            raise SchemaError(
                f"field name {field_name!r} must be a valid identifier (camelCase)",
                entity=entity_name,
            )
        if not isinstance(spec, Mapping):
            raise SchemaError(
                "field definition must be an object",
                entity=entity_name,
                field=field_name,
            )

        kwargs: Dict[str, Any] = {
            "name": field_name,
            "required": spec.get("required", True),
        }

        kind: Any = spec.get("type")
        if kind is not None:
            if kind not in _FIELD_KINDS:
                raise SchemaError(
                    f"unknown field type {kind!r}; allowed: {', '.join(_FIELD_KINDS)}",
                    entity=entity_name,
                    field=field_name,
                )
            kwargs["type"] = kind

        for json_key, attr in _PASSTHROUGH_KEYS.items():
            if json_key in spec and spec[json_key] is not None:
                kwargs[attr] = spec[json_key]

        if kind == FieldKind.ENUM.value:
            values: Any = spec.get("enum")
            if not isinstance(values, list) or not values:
                raise SchemaError(
                    "enum field needs a non-empty 'enum' list",
                    entity=entity_name,
                    field=field_name,
                )

        if "key" in kwargs and (
            not isinstance(kwargs["key"], str) or not IDENTIFIER_RE.match(kwargs["key"])
        ):
            raise SchemaError(
                f"key {kwargs['key']!r} must be a valid identifier",
                entity=entity_name,
                field=field_name,
            )

        if spec.get("graphql") is not None:
            kwargs["graphql"] = _check_graphql_shape(
                spec["graphql"], entity=entity_name, field=field_name
            )

        if spec.get("arrayOptions") is not None:
            kwargs["array_options"] = self._parse_array_options(
                spec["arrayOptions"], entity_name, field_name
            )

        if spec.get("itemSchema") is not None:
            kwargs["item_schema"] = self._parse_object_schema(
                spec["itemSchema"], entity_name, field_name, "itemSchema"
            )
        if spec.get("schema") is not None:
            kwargs["json_schema"] = self._parse_object_schema(
                spec["schema"], entity_name, field_name, "schema"
            )

        relation: Any = spec.get("relation")
        if relation is not None:
            kwargs["relationship"] = self._parse_relation(
                relation, entity_name, field_name, kwargs.get("key")
            )
        elif kind == FieldKind.RELATION.value:
            raise SchemaError(
                "field has type 'relation' but no 'relation' configuration",
                entity=entity_name,
                field=field_name,
            )

        try:
            return EntityField(**kwargs)
        except PydanticValidationError as exc:
            raise _wrap_validation_error(exc, entity=entity_name, field=field_name) from exc

    def _parse_relation(
        self,
        relation: Any,
        entity_name: str,
        field_name: str,
        field_key: Optional[str],
    ) -> RelationshipSpec:
        if not isinstance(relation, Mapping):
            raise SchemaError(
                "'relation' must be an object", entity=entity_name, field=field_name
            )
        target: Any = relation.get("entity")
        if not isinstance(target, str) or not target or "type" not in relation:
            raise SchemaError(
                "relation must specify both 'entity' and 'type'",
                entity=entity_name,
                field=field_name,
            )

        cascade: Any = relation.get("cascade")
        if isinstance(cascade, str):
            cascade = [cascade]
        elif cascade is not None and not (
            isinstance(cascade, list) and all(isinstance(c, str) for c in cascade)
        ):
            raise SchemaError(
                "relation 'cascade' must be a list of operation names",
                entity=entity_name,
                field=field_name,
            )

        try:
            return RelationshipSpec(
                target_entity=target,
                type=normalize_relation_type(
                    relation["type"], entity=entity_name, field=field_name
                ),
                cascade=cascade or None,
                on_delete=relation.get("onDelete"),
                on_update=relation.get("onUpdate"),
                eager=bool(relation.get("eager", False)),
                join_column=relation.get("joinColumn"),
                key=relation.get("key") or field_key,
            )
        except PydanticValidationError as exc:
            raise _wrap_validation_error(exc, entity=entity_name, field=field_name) from exc

    def _parse_array_options(
        self,
        raw: Any,
        entity_name: str,
        field_name: str,
    ) -> ArrayOptions:
        if not isinstance(raw, Mapping):
            raise SchemaError(
                "'arrayOptions' must be an object", entity=entity_name, field=field_name
            )
        kwargs: Dict[str, Any] = {
            attr: raw[json_key]
            for json_key, attr in _ARRAY_OPTION_KEYS.items()
            if raw.get(json_key) is not None
        }
        try:
            return ArrayOptions(**kwargs)
        except PydanticValidationError as exc:
            raise _wrap_validation_error(exc, entity=entity_name, field=field_name) from exc

    def _parse_object_schema(
        self,
        raw: Any,
        entity_name: str,
        field_name: str,
        key: str,
    ) -> ObjectSchema:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("properties", {}), Mapping):
            raise SchemaError(
                f"'{key}' must be an object with a 'properties' object",
                entity=entity_name,
                field=field_name,
            )
        try:
            return ObjectSchema.model_validate(dict(raw))
        except PydanticValidationError as exc:
            raise _wrap_validation_error(exc, entity=entity_name, field=field_name) from exc

    # -----------------------------------------------------------------
    # Internal: indexes
    # -----------------------------------------------------------------

    @staticmethod
    def _parse_indexes(raw: Any, entity_name: str) -> List[Union[str, List[str]]]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise SchemaError("'indexes' must be a list", entity=entity_name)
        indexes: List[Union[str, List[str]]] = []
        for item in raw:
            if isinstance(item, str):
                indexes.append(item)
            elif (
                isinstance(item, list)
                and item
                and all(isinstance(col, str) for col in item)
            ):
                indexes.append(list(item))
            else:
                raise SchemaError(
                    f"index entry {item!r} must be a column name or a list of names",
                    entity=entity_name,
                )
        return indexes


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------

_DEFAULT_PARSER: SchemaParser = SchemaParser()


def parse(json_text: str, source: Optional[str] = None) -> ParsedEntity:
    """Parse one entity schema from JSON text."""
    return _DEFAULT_PARSER.parse_text(json_text, source=source)


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SchemaError(f"schema file {path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise SchemaError(f"cannot read schema file {path}: {exc}") from exc


def _load_json_file(path: Path) -> Dict[str, Any]:
    text: str = _read_text(path)
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"malformed JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaError(
            f"expected a JSON object at top level of {path}, got {type(data).__name__}"
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    text: str = _read_text(path)
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SchemaError(f"malformed YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaError(
            f"expected a YAML mapping at top level of {path}, got {type(data).__name__}"
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema document, dispatching on the file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        SchemaError: If the file can't be read or decoded.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    if not path.is_file():
        raise SchemaError(f"schema path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except SchemaError:
        return _load_yaml_file(path)


def discover_schema_files(path: Path) -> List[Path]:
    """Expand *path* into schema files: a file as-is, a directory by suffix."""
    if path.is_dir():
        found: List[Path] = sorted(
            p for p in path.iterdir()
            if p.is_file() and p.suffix.lower() in SCHEMA_FILE_SUFFIXES
        )
        logger.debug("Discovered %d schema file(s) in %s.", len(found), path)
        return found
    return [path]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SCHEMA_FILE_SUFFIXES",
    "SchemaParser",
    "normalize_relation_type",
    "parse",
    "load_schema_file",
    "discover_schema_files",
]

logger.debug("entitygen.parser loaded, %d public symbols.", len(__all__))
