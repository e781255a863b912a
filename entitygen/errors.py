# File: entitygen/errors.py
"""
entitygen - Error Taxonomy
============================

    SchemaError      malformed schema input; aborts the entity.
    StrategyError    no registered strategy for a field kind.
    ProgrammerError  relationship-only resolution on a plain field.

``SchemaError`` and ``StrategyError`` stop at the entity boundary in a
multi-entity run.  ``ProgrammerError`` is an ``AssertionError`` and is
never caught by the pipeline.
"""

from __future__ import annotations

import logging
from typing import List, Optional

logger: logging.Logger = logging.getLogger("entitygen.errors")


class EntitygenError(Exception):
    """Base class for user-facing compiler errors."""

    def __init__(
        self,
        message: str,
        *,
        entity: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.entity: Optional[str] = entity
        self.field: Optional[str] = field
        super().__init__(self.__str__())

    def __str__(self) -> str:
        location: List[str] = []
        if self.entity:
            location.append(f"entity '{self.entity}'")
        if self.field:
            location.append(f"field '{self.field}'")
        if location:
            return f"{', '.join(location)}: {self.message}"
        return self.message


class SchemaError(EntitygenError):
    """Malformed schema text or a missing / invalid required key."""


class StrategyError(EntitygenError):
    """A field kind has no registered type or field strategy."""


class TemplateNotFoundError(EntitygenError, KeyError):
    """Requested template name is not known to the renderer."""

    def __str__(self) -> str:
        return EntitygenError.__str__(self)


class ProgrammerError(AssertionError):
    """Internal misuse, e.g. relationship resolution on a plain field."""


__all__: List[str] = [
    "EntitygenError",
    "SchemaError",
    "StrategyError",
    "TemplateNotFoundError",
    "ProgrammerError",
]

logger.debug("entitygen.errors loaded, %d public symbols.", len(__all__))
