# File: entitygen/validators.py
"""
entitygen - Cross-Entity Validators
=====================================
Pydantic models and the parser catch structural problems inside a single
schema.  This module adds the **semantic checks** that need the compiled
tree or the whole run: migration-unsafe columns, dangling relation
targets, duplicate enum values, index columns, and entity name clashes.

Every check is a pure function returning a ``ValidationResult``; nothing
here raises.

Usage::

    from entitygen.validators import validate_entities
    result = validate_entities(parsed, compiled)
    if not result.is_valid:
        print(result.format_report())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from entitygen.models import CompiledEntity, FieldKind, ParsedEntity

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


ERROR: str = "error"
WARNING: str = "warning"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One finding of a check; ``context`` names the entity (and field)."""

    level: str
    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Errors and warnings collected over one or more checks."""

    __slots__ = ("_issues",)

    def __init__(self) -> None:
        self._issues: List[ValidationIssue] = []

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._issues.append(ValidationIssue(ERROR, code, message, dict(context or {})))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._issues.append(ValidationIssue(WARNING, code, message, dict(context or {})))

    def merge(self, other: "ValidationResult") -> None:
        self._issues.extend(other._issues)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self._issues if i.level == ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self._issues if i.level == WARNING]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def codes(self) -> List[str]:
        return [i.code for i in self._issues]

    def summary(self) -> str:
        return f"Validation: {self.error_count} error(s), {self.warning_count} warning(s)."

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are no errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._issues)

    def format_report(self) -> str:
        lines: List[str] = [self.summary(), ""]
        for issue in self._issues:
            prefix: str = "ERROR" if issue.level == ERROR else "WARN "
            lines.append(f"  {prefix} [{issue.code}] {issue.message}")
            for key, value in issue.context.items():
                lines.append(f"         {key}: {value}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_required_defaults(entity: ParsedEntity) -> ValidationResult:
    """
    Warn about NOT NULL fields without a default value.

    Adding such a column to a populated table fails the migration.  One
    warning per entity, listing every offending field.  Relation fields are
    skipped; their columns are managed by the relation.
    """
    result: ValidationResult = ValidationResult()
    offenders: List[str] = [
        fld.name
        for fld in entity.sorted_fields()
        if fld.required
        and fld.default_value is None
        and fld.type != FieldKind.RELATION
        and fld.relationship is None
    ]
    if offenders:
        plural: str = "" if len(offenders) == 1 else "s"
        result.add_warning(
            "NOT_NULL_WITHOUT_DEFAULT",
            f"Entity '{entity.name}' has {len(offenders)} NOT NULL "
            f"field{plural} without defaults: {', '.join(offenders)}. "
            "Consider adding default values or making them nullable.",
            {"entity": entity.name, "fields": offenders},
        )
    return result


def validate_relation_targets(entities: Sequence[ParsedEntity]) -> ValidationResult:
    """Warn when a relation points at an entity absent from this run."""
    result: ValidationResult = ValidationResult()
    if len(entities) < 2:
        return result

    known: Set[str] = {e.name for e in entities}
    for entity in entities:
        for fld in entity.sorted_fields():
            if fld.relationship is None:
                continue
            target: str = fld.relationship.target_entity
            if target not in known:
                result.add_warning(
                    "UNKNOWN_RELATION_TARGET",
                    f"'{entity.name}.{fld.name}' targets '{target}', "
                    "which is not part of this run.",
                    {"entity": entity.name, "field": fld.name, "target": target},
                )
    return result


def validate_enum_values(entity: ParsedEntity) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for fld in entity.sorted_fields():
        if not fld.enum:
            continue
        seen: Set[str] = set()
        dupes: List[str] = []
        for value in fld.enum:
            if value in seen and value not in dupes:
                dupes.append(value)
            seen.add(value)
        if dupes:
            result.add_error(
                "DUPLICATE_ENUM_VALUE",
                f"Enum field '{entity.name}.{fld.name}' repeats "
                f"value(s): {', '.join(dupes)}.",
                {"entity": entity.name, "field": fld.name},
            )
    return result


def validate_indexes(compiled: CompiledEntity) -> ValidationResult:
    """Every indexed name must be a generated column."""
    result: ValidationResult = ValidationResult()
    columns: Set[str] = set(compiled.column_names())
    for index in compiled.indexes:
        missing: List[str] = [c for c in index if c not in columns]
        if missing:
            result.add_error(
                "INDEX_UNKNOWN_COLUMN",
                f"Index ({', '.join(index)}) on '{compiled.name}' references "
                f"unknown column(s): {', '.join(missing)}.",
                {"entity": compiled.name, "index": list(index)},
            )
    return result


def validate_name_collisions(compiled: CompiledEntity) -> ValidationResult:
    """Warn when a relation property shares its name with a column."""
    result: ValidationResult = ValidationResult()
    columns: Set[str] = set(compiled.column_names())
    for rel in compiled.relations:
        if rel.name in columns:
            result.add_warning(
                "RELATION_COLUMN_NAME_CLASH",
                f"Relation '{compiled.name}.{rel.name}' has the same name as "
                "a column; set 'key' on the field to rename the foreign key.",
                {"entity": compiled.name, "field": rel.name},
            )
    return result


def validate_entity_names(entities: Sequence[ParsedEntity]) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    seen: Dict[str, Optional[str]] = {}
    for entity in entities:
        if entity.name in seen:
            result.add_error(
                "DUPLICATE_ENTITY_NAME",
                f"Entity '{entity.name}' is defined more than once.",
                {
                    "entity": entity.name,
                    "first": seen[entity.name],
                    "second": entity.source_file,
                },
            )
            continue
        seen[entity.name] = entity.source_file
    return result


# ---------------------------------------------------------------------------
# Aggregate entry point
# ---------------------------------------------------------------------------


def validate_entity(
    entity: ParsedEntity,
    compiled: Optional[CompiledEntity] = None,
) -> ValidationResult:
    """Single-entity checks; compiled-tree checks run when *compiled* is given."""
    result: ValidationResult = ValidationResult()
    result.merge(validate_required_defaults(entity))
    result.merge(validate_enum_values(entity))
    if compiled is not None:
        result.merge(validate_indexes(compiled))
        result.merge(validate_name_collisions(compiled))
    return result


def validate_entities(
    entities: Sequence[ParsedEntity],
    compiled: Optional[Sequence[CompiledEntity]] = None,
) -> ValidationResult:
    """
    Run every check over one run's entities.

    *compiled* may cover a subset of *entities*; matching is by name.
    """
    logger.info("Validating %d entity schema(s).", len(entities))

    by_name: Dict[str, CompiledEntity] = {c.name: c for c in (compiled or [])}
    result: ValidationResult = ValidationResult()
    result.merge(validate_entity_names(entities))
    result.merge(validate_relation_targets(entities))
    for entity in entities:
        result.merge(validate_entity(entity, by_name.get(entity.name)))

    if not result.is_valid:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_required_defaults",
    "validate_relation_targets",
    "validate_enum_values",
    "validate_indexes",
    "validate_name_collisions",
    "validate_entity_names",
    "validate_entity",
    "validate_entities",
]

logger.debug("entitygen.validators loaded, %d public symbols.", len(__all__))
