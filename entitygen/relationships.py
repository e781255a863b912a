# File: entitygen/relationships.py
"""
entitygen - Relationship Preparator
=====================================
Turns a relationship field into a ``RelationDescriptor``: the relation
property that lives on the entity class next to (or instead of) its
foreign-key column.

    eager   -> Direct return type, loaded with the owning row
    lazy    -> Deferred return type (``Promise<...>``)

The eager/lazy split is also exposed as a partition for the runtime loader.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from entitygen.errors import ProgrammerError
from entitygen.exposure import ExposureSet, resolve_exposure
from entitygen.models import (
    EntityField,
    HostReturnType,
    ParsedEntity,
    RelationDescriptor,
    RelationOptions,
    RelationshipSpec,
)

logger: logging.Logger = logging.getLogger("entitygen.relationships")

MARKER_OPTIONAL: str = "optional"
MARKER_VALIDATE_NESTED: str = "validate_nested"


def _require_relationship(field: EntityField) -> RelationshipSpec:
    if field.relationship is None:
        raise ProgrammerError(
            f"field '{field.name}' has no relationship; "
            "relationship preparation called on a plain field"
        )
    return field.relationship


def relation_options_for(rel: RelationshipSpec) -> RelationOptions:
    """Only declared options are carried; ``eager`` only when true."""
    return RelationOptions(
        eager=True if rel.eager else None,
        cascade=list(rel.cascade) if rel.cascade else None,
        on_delete=rel.on_delete or None,
        on_update=rel.on_update or None,
    )


def return_type_for(field: EntityField) -> HostReturnType:
    rel: RelationshipSpec = _require_relationship(field)
    return HostReturnType(
        mode="direct" if rel.eager else "deferred",
        target=rel.target_entity,
        many=rel.is_to_many,
        nullable=not rel.is_to_many and not field.required,
    )


def prepare_relationship(
    field: EntityField,
    entity_name: Optional[str] = None,
    policy: str = "warn",
) -> RelationDescriptor:
    """
    Build the relation descriptor for *field*.

    Raises:
        ProgrammerError: *field* carries no relationship.  Never caught by
            the pipeline.
    """
    rel: RelationshipSpec = _require_relationship(field)
    exposure: ExposureSet = resolve_exposure(field, policy, entity_name or "")

    join_column: Optional[str] = None
    if rel.owns_join_column:
        join_column = rel.join_column or field.foreign_key_name

    markers: List[str] = []
    if not field.required:
        markers.append(MARKER_OPTIONAL)
    markers.append(MARKER_VALIDATE_NESTED)

    return RelationDescriptor(
        name=field.name,
        target_entity=rel.target_entity,
        relation_type=rel.type,
        graphql_field=exposure.relation,
        options=relation_options_for(rel),
        join_column=join_column,
        return_type=return_type_for(field),
        required=field.required,
        markers=markers,
        description=field.description or f"{field.name} ({rel.target_entity})",
    )


def prepare_relationships(
    entity: ParsedEntity,
    policy: str = "warn",
) -> List[RelationDescriptor]:
    """Relation properties of *entity*: fields exposing ``relation``, by name."""
    relations: List[RelationDescriptor] = []
    for fld in entity.sorted_fields():
        if fld.relationship is None:
            continue
        if not resolve_exposure(fld, policy, entity.name).relation:
            logger.debug(
                "%s.%s: relation property not exposed, skipped.",
                entity.name,
                fld.name,
            )
            continue
        relations.append(prepare_relationship(fld, entity.name, policy))
    return relations


def relation_targets(entity: ParsedEntity) -> List[str]:
    """Unique relation target names in field-name order (for imports)."""
    targets: List[str] = []
    for fld in entity.sorted_fields():
        if fld.relationship is None:
            continue
        target: str = fld.relationship.target_entity
        if target != entity.name and target not in targets:
            targets.append(target)
    return targets


def eager_partition(
    relations: List[RelationDescriptor],
) -> Tuple[List[str], List[str]]:
    """Split relation names into ``(eager, lazy)`` for the runtime loader."""
    eager: List[str] = [r.name for r in relations if r.eager]
    lazy: List[str] = [r.name for r in relations if not r.eager]
    return eager, lazy


__all__: List[str] = [
    "MARKER_OPTIONAL",
    "MARKER_VALIDATE_NESTED",
    "relation_options_for",
    "return_type_for",
    "prepare_relationship",
    "prepare_relationships",
    "relation_targets",
    "eager_partition",
]

logger.debug("entitygen.relationships loaded, %d public symbols.", len(__all__))
