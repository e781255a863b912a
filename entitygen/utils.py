# File: entitygen/utils.py
"""
entitygen - Utility Functions & Helpers
=========================================
String transformation, naming, file I/O and timing helpers used throughout
the compilation pipeline.

- Naming helpers are decorated with ``@lru_cache(maxsize=None)``; the same
  field names are converted many times per entity (enum names, interface
  names, schema constant names, FK names).
- File writes use write-to-temp + rename so a crash never leaves a
  half-written base file behind.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")

IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[a-zA-Z][a-zA-Z0-9]*$")
PASCAL_CASE_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")

# Words that end in "s" but are already singular.
SINGULAR_WORDS_ENDING_IN_S: FrozenSet[str] = frozenset({
    "status",
    "class",
    "process",
    "address",
    "witness",
    "success",
    "progress",
})

# "-es" plurals only drop both letters after a sibilant ("boxes", "matches").
_SIBILANT_ES_SUFFIXES: Tuple[str, ...] = ("sses", "xes", "zes", "ches", "shes")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("LLMModel")
        'llm_model'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def upper_first(name: str) -> str:
    """
    Upper-case the first character and keep the rest untouched.

    Field names are already camelCase, so ``upper_first("itemTags")`` gives
    ``ItemTags`` without re-normalising interior capitals.
    """
    if not name:
        return ""
    return name[0].upper() + name[1:]


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation, used for table names.

    Examples:
        >>> to_plural("Category")
        'Categories'
        >>> to_plural("Address")
        'Addresses'
    """
    if not name:
        return ""

    lower: str = name.lower()

    irregulars: Dict[str, str] = {
        "person": "people",
        "child": "children",
        "datum": "data",
        "index": "indices",
    }
    if lower in irregulars:
        plural: str = irregulars[lower]
        if name[0].isupper():
            return plural[0].upper() + plural[1:]
        return plural

    if lower.endswith(("sh", "ch", "x", "z", "s")):
        return name + "es"
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


@functools.lru_cache(maxsize=None)
def singularize(name: str) -> str:
    """
    Singularise a field name for derived type names.

    Examples:
        >>> singularize("status")
        'status'
        >>> singularize("comments")
        'comment'
        >>> singularize("categories")
        'category'
        >>> singularize("statuses")
        'status'
    """
    if not name:
        return ""
    if name.lower() in SINGULAR_WORDS_ENDING_IN_S:
        return name
    if name.endswith("es") and name[:-2].lower() in SINGULAR_WORDS_ENDING_IN_S:
        return name[:-2]

    if name.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if name.endswith(_SIBILANT_ES_SUFFIXES):
        return name[:-2]
    if name.endswith("s") and not name.endswith("ss"):
        return name[:-1]
    return name


# ---------------------------------------------------------------------------
# Derived artifact names
# ---------------------------------------------------------------------------


def table_name_for(entity_name: str) -> str:
    """``BlogPost`` -> ``blog_posts``."""
    return to_snake_case(to_plural(entity_name))


def enum_name_for(entity_name: str, field_name: str) -> str:
    """``Post`` + ``statuses`` -> ``PostStatus``."""
    return entity_name + upper_first(singularize(field_name))


def item_interface_name_for(entity_name: str, field_name: str) -> str:
    """``Post`` + ``attachments`` -> ``PostAttachmentType``."""
    return f"{entity_name}{upper_first(singularize(field_name))}Type"


def schema_const_name_for(entity_name: str, field_name: str) -> str:
    """``Post`` + ``tags`` -> ``PostTagsSchema``."""
    return f"{entity_name}{upper_first(field_name)}Schema"


def foreign_key_name_for(field_name: str, key: Optional[str] = None) -> str:
    """
    Resolve the foreign-key property name for a relationship field.

    An explicit *key* wins; a name already ending in ``Id`` is used as-is;
    otherwise ``Id`` is appended.
    """
    if key:
        return key
    if field_name.endswith("Id"):
        return field_name
    return f"{field_name}Id"


_STRING_ESCAPES: Dict[int, str] = str.maketrans({
    "\\": "\\\\",
    "'": "\\'",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
})


def quote(value: str) -> str:
    """Wrap in single quotes; the result is a valid one-line TS string literal."""
    escaped: str = value.translate(_STRING_ESCAPES)
    return f"'{escaped}'"


def format_literal(value: object) -> str:
    """Render a Python value as a TypeScript literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_literal(v) for v in value) + "]"
    if isinstance(value, dict):
        inner: str = ", ".join(
            f"{k}: {format_literal(v)}" for k, v in value.items()
        )
        return "{ " + inner + " }" if inner else "{}"
    return quote(str(value))


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def atomic_write(path: Path, content: str) -> int:
    """
    Write *content* to *path* via a temporary file in the same directory.

    Returns the number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded: bytes = content.encode("utf-8")

    fd: int
    tmp_path: str
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, str(path))
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("compile Post") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "IDENTIFIER_RE",
    "PASCAL_CASE_RE",
    "SINGULAR_WORDS_ENDING_IN_S",
    "to_snake_case",
    "upper_first",
    "to_plural",
    "singularize",
    "table_name_for",
    "enum_name_for",
    "item_interface_name_for",
    "schema_const_name_for",
    "foreign_key_name_for",
    "quote",
    "format_literal",
    "atomic_write",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("entitygen.utils loaded, %d public symbols.", len(__all__))
