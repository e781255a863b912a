"""
tests/conftest.py
Shared fixtures for the entitygen test suite.

Schema fixtures are plain dicts; each test gets a fresh copy it can mutate.
No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import json
import pathlib
from typing import Any, Dict

import pytest
import yaml

from entitygen.models import CompilerConfig, ParsedEntity
from entitygen.parser import SchemaParser


# ---------------------------------------------------------------------------
# Raw schema data
# ---------------------------------------------------------------------------

_POST_SCHEMA: Dict[str, Any] = {
    "name": "Post",
    "description": "A blog post",
    "graphql": ["create", "list", "single"],
    "indexes": ["title", ["title", "status"]],
    "fields": {
        "title": {"type": "string", "minLength": 3, "maxLength": 200},
        "body": {"type": "text", "required": False},
        "status": {
            "type": "enum",
            "enum": ["draft", "published", "in-review"],
            "default": "draft",
        },
        "tags": {
            "type": "string",
            "array": True,
            "required": False,
            "arrayOptions": {"maxLength": 10, "itemMaxLength": 30, "uniqueItems": True},
        },
        "attachments": {
            "type": "json",
            "array": True,
            "required": False,
            "itemSchema": {
                "type": "object",
                "properties": {
                    "url": {"type": "string"},
                    "size": {"type": "number"},
                },
                "required": ["url"],
            },
        },
        "settings": {
            "type": "json",
            "required": False,
            "schema": {
                "type": "object",
                "properties": {
                    "theme": {"type": "string"},
                    "layout": {
                        "type": "object",
                        "properties": {"columns": {"type": "number"}},
                    },
                },
                "required": ["theme"],
            },
        },
        "owner": {"type": "polymorphic", "required": False},
        "author": {
            "type": "relation",
            "relation": {"entity": "User", "type": "many-to-one", "eager": True},
        },
        "comments": {
            "type": "relation",
            "required": False,
            "relation": {"entity": "Comment", "type": "one-to-many", "cascade": ["insert"]},
        },
    },
}

_COMMENT_SCHEMA: Dict[str, Any] = {
    "name": "Comment",
    "fields": {
        "content": {"type": "text"},
        "postId": {
            "type": "string",
            "required": True,
            "relation": {
                "entity": "Post",
                "type": "many-to-one",
                "cascade": ["insert", "update"],
                "onDelete": "CASCADE",
            },
        },
    },
}


@pytest.fixture()
def post_schema_dict() -> Dict[str, Any]:
    """A Post exercising every field kind."""
    return copy.deepcopy(_POST_SCHEMA)


@pytest.fixture()
def comment_schema_dict() -> Dict[str, Any]:
    """Comment with a ManyToOne ``postId`` relation (FK name equals field name)."""
    return copy.deepcopy(_COMMENT_SCHEMA)


@pytest.fixture()
def minimal_schema_dict() -> Dict[str, Any]:
    """Smallest valid schema: one entity, one field."""
    return {"name": "Tag", "fields": {"label": {"type": "string", "default": ""}}}


@pytest.fixture()
def item_schema_dict() -> Dict[str, Any]:
    """JSON array field with an itemSchema of ``{a: string, b: number}``, ``a`` required."""
    return {
        "name": "Thing",
        "fields": {
            "items": {
                "type": "json",
                "array": True,
                "itemSchema": {
                    "type": "object",
                    "properties": {
                        "a": {"type": "string"},
                        "b": {"type": "number"},
                    },
                    "required": ["a"],
                },
            }
        },
    }


# ---------------------------------------------------------------------------
# Parsed entities
# ---------------------------------------------------------------------------


@pytest.fixture()
def parser() -> SchemaParser:
    return SchemaParser()


@pytest.fixture()
def post_entity(parser: SchemaParser, post_schema_dict: Dict[str, Any]) -> ParsedEntity:
    return parser.parse_mapping(post_schema_dict)


@pytest.fixture()
def comment_entity(parser: SchemaParser, comment_schema_dict: Dict[str, Any]) -> ParsedEntity:
    return parser.parse_mapping(comment_schema_dict)


@pytest.fixture()
def default_config() -> CompilerConfig:
    return CompilerConfig()


# ---------------------------------------------------------------------------
# Schema files on disk
# ---------------------------------------------------------------------------


@pytest.fixture()
def schema_dir(
    tmp_path: pathlib.Path,
    post_schema_dict: Dict[str, Any],
    comment_schema_dict: Dict[str, Any],
) -> pathlib.Path:
    """Directory holding Post.yaml and Comment.json."""
    directory = tmp_path / "schemas"
    directory.mkdir()
    with open(directory / "Post.yaml", "w", encoding="utf-8") as fh:
        yaml.dump(post_schema_dict, fh, default_flow_style=False, sort_keys=False)
    with open(directory / "Comment.json", "w", encoding="utf-8") as fh:
        json.dump(comment_schema_dict, fh, indent=2)
    # Not a schema; discovery must ignore it.
    (directory / "notes.txt").write_text("ignore me", encoding="utf-8")
    return directory


@pytest.fixture()
def comment_json_path(tmp_path: pathlib.Path, comment_schema_dict: Dict[str, Any]) -> pathlib.Path:
    path = tmp_path / "Comment.json"
    path.write_text(json.dumps(comment_schema_dict), encoding="utf-8")
    return path


@pytest.fixture()
def broken_json_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """Schema whose relation type is not one of the four known kinds."""
    path = tmp_path / "Broken.json"
    path.write_text(
        json.dumps({
            "name": "Broken",
            "fields": {
                "parent": {"relation": {"entity": "Post", "type": "sideways"}},
            },
        }),
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# Output directory fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Provide a clean output directory inside tmp_path."""
    out = tmp_path / "generated_output"
    out.mkdir(parents=True, exist_ok=True)
    return out
