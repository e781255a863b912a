# File: entitygen/__init__.py
"""
entitygen - Entity Schema Compiler
====================================

Compiles declarative entity schemas (JSON/YAML) into TypeScript entity
classes: TypeORM columns and relations, type-graphql fields,
class-validator constraints and Zod schemas for structured JSON columns.

Architecture overview::

    +--------------+     +----------------+     +-------------------+
    | CLI / Entry  |---->| SchemaCompiler |---->| TemplateGenerator |
    |   (cli.py)   |     | (generator.py) |     |  (templates.py)   |
    +--------------+     +-------+--------+     +-------------------+
                                 |
          +----------+-----------+-----------+------------+
          v          v           v           v            v
      +--------+ +--------+ +-----------+ +----------+ +-----------+
      | parser | | types  | |preparators| |validators| | exporters |
      +--------+ +--------+ +-----------+ +----------+ +-----------+

Usage::

    # As a library
    from entitygen import compile_entity
    compiled = compile_entity(Path("Post.json").read_text())
    compiled.to_tree()

    # From the command line
    python -m entitygen --schema schemas/ --output ./app --verbose

Public API:
    - SchemaCompiler     Multi-entity orchestrator
    - EntityCompiler     Resolve phase for one entity
    - CompilerConfig     Settings model
    - TemplateGenerator  Renderer for base / extension files
    - EntityExporter     File-system writer
    - validate_entities  Cross-entity validation entry point
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from entitygen.errors import (
    EntitygenError,
    ProgrammerError,
    SchemaError,
    StrategyError,
    TemplateNotFoundError,
)
from entitygen.models import (
    ColumnDescriptor,
    CompiledEntity,
    CompilerConfig,
    EntityField,
    EnumDescriptor,
    FieldKind,
    ParsedEntity,
    RelationDescriptor,
    RelationType,
)
from entitygen.parser import SchemaParser, parse
from entitygen.types import TypeStrategyRegistry, default_type_registry
from entitygen.preparators import FieldPreparatorRegistry
from entitygen.validators import ValidationResult, validate_entities
from entitygen.templates import TemplateGenerator
from entitygen.exporters import EntityExporter, ExportResult
from entitygen.generator import (
    EntityCompiler,
    GenerationReport,
    SchemaCompiler,
    compile_entity,
)
from entitygen.utils import Timer

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestration
    "SchemaCompiler",
    "EntityCompiler",
    "GenerationReport",
    "compile_entity",
    # Errors
    "EntitygenError",
    "SchemaError",
    "StrategyError",
    "TemplateNotFoundError",
    "ProgrammerError",
    # Models
    "FieldKind",
    "RelationType",
    "EntityField",
    "ParsedEntity",
    "ColumnDescriptor",
    "RelationDescriptor",
    "EnumDescriptor",
    "CompiledEntity",
    "CompilerConfig",
    # Phases
    "SchemaParser",
    "parse",
    "TypeStrategyRegistry",
    "default_type_registry",
    "FieldPreparatorRegistry",
    "ValidationResult",
    "validate_entities",
    "TemplateGenerator",
    "EntityExporter",
    "ExportResult",
    # Utilities
    "Timer",
]
