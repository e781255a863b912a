# File: entitygen/generator.py
"""
entitygen - Compilation Pipeline (Orchestrator)
=================================================

Connects every phase together:

    Schema Input -> Parse -> Resolve -> Validate -> Render -> Export

``EntityCompiler`` is the pure resolve phase for one entity.
``SchemaCompiler`` runs a whole batch of schema files and backs the CLI.

Workflow::

    1. Discover schema files (JSON / YAML).
    2. Parse each into a ``ParsedEntity`` (parser.py).
    3. Compile each into a ``CompiledEntity``: columns, relations, enums,
       nested interfaces / schemas, polymorphic accessors, operations.
    4. Run cross-entity validation (validators.py).
    5. Render base + extension files (templates.py).
    6. Hand off to ``EntityExporter`` (exporters.py).
    7. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - ``SchemaError`` / ``StrategyError`` abort the failing entity only;
      the report names the entity and field.  Sibling entities complete.
    - ``ProgrammerError`` is never caught.
    - Validation errors drop the affected entities from rendering.
    - Export errors are recorded per file.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Union

from entitygen.errors import EntitygenError, SchemaError, StrategyError
from entitygen.exporters import EntityExporter, ExportResult, FileRecord, RenderedEntity
from entitygen.exposure import resolve_operations
from entitygen.models import (
    SCHEMA_ARRAY_KINDS,
    ColumnDescriptor,
    CompiledEntity,
    CompilerConfig,
    EntityField,
    EnumDescriptor,
    FieldKind,
    NestedInterface,
    NestedSchema,
    ParsedEntity,
    PolymorphicAccessor,
)
from entitygen.parser import SchemaParser, discover_schema_files
from entitygen.preparators import (
    FieldPreparatorRegistry,
    accessor_method_name,
    prepare_entity_columns,
)
from entitygen.relationships import prepare_relationships, relation_targets
from entitygen.schemas import (
    deep_json_schema_for,
    interface_definition_for,
    nested_schema_for,
    scalar_array_schema_for,
)
from entitygen.templates import (
    BASE_TEMPLATE,
    EXTENSION_TEMPLATE,
    TemplateGenerator,
    TemplateRenderer,
    build_template_data,
)
from entitygen.types import TypeStrategyRegistry, default_type_registry
from entitygen.utils import Timer, enum_name_for, table_name_for
from entitygen.validators import ValidationResult, validate_entities

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.generator")

SchemaSource = Union[Path, str, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# EntityCompiler: the resolve phase
# ---------------------------------------------------------------------------


class EntityCompiler:
    """
    Pure resolve phase: ``ParsedEntity`` in, ``CompiledEntity`` out.

    Usage::

        compiler = EntityCompiler(CompilerConfig(field_error_policy="raise"))
        compiled = compiler.compile(entity)
        compiled.to_tree()

    Fields are always taken in name order, so identical input yields an
    identical tree.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        *,
        types: Optional[TypeStrategyRegistry] = None,
        preparators: Optional[FieldPreparatorRegistry] = None,
    ) -> None:
        self._config: CompilerConfig = config or CompilerConfig()
        self._types: TypeStrategyRegistry = types if types is not None else default_type_registry()
        self._preparators: FieldPreparatorRegistry = (
            preparators if preparators is not None else FieldPreparatorRegistry()
        )

    @property
    def config(self) -> CompilerConfig:
        return self._config

    def compile(self, entity: ParsedEntity) -> CompiledEntity:
        """
        Resolve *entity* into its render-ready tree.

        Raises:
            SchemaError: Malformed input, e.g. two fields producing one column.
            StrategyError: A field kind has no strategy and the field error
                policy is ``raise``.
        """
        with Timer(f"compile {entity.name}"):
            columns: List[ColumnDescriptor] = prepare_entity_columns(
                entity, self._config, self._preparators, self._types
            )
            interfaces, schemas = self._nested_definitions(entity, columns)

            compiled: CompiledEntity = CompiledEntity(
                name=entity.name,
                table_name=table_name_for(entity.name),
                description=entity.description,
                columns=columns,
                relations=prepare_relationships(
                    entity, self._config.unknown_exposure_policy
                ),
                enums=self._enums(entity),
                nested_interfaces=interfaces,
                nested_schemas=schemas,
                polymorphic_accessors=self._accessors(entity),
                operations=list(resolve_operations(entity)),
                relation_targets=relation_targets(entity),
                indexes=[[idx] if isinstance(idx, str) else list(idx) for idx in entity.indexes],
                warnings=[
                    f"field '{c.origin_field}' degraded to a generic string column"
                    for c in columns
                    if c.kind == "fallback"
                ],
            )

        logger.info(
            "Compiled %s: %d column(s), %d relation(s), %d enum(s).",
            compiled.name,
            len(compiled.columns),
            len(compiled.relations),
            len(compiled.enums),
        )
        return compiled

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    @staticmethod
    def _enums(entity: ParsedEntity) -> List[EnumDescriptor]:
        enums: List[EnumDescriptor] = []
        for fld in entity.sorted_fields():
            if fld.type != FieldKind.ENUM or fld.relationship is not None:
                continue
            if not fld.enum:
                logger.warning("%s.%s: enum field without values, skipped.", entity.name, fld.name)
                continue
            enums.append(EnumDescriptor(
                name=enum_name_for(entity.name, fld.name),
                values=list(fld.enum),
                array=fld.array,
                description=fld.description,
            ))
        return enums

    @staticmethod
    def _nested_definitions(
        entity: ParsedEntity,
        columns: List[ColumnDescriptor],
    ) -> "tuple[List[NestedInterface], List[NestedSchema]]":
        interfaces: List[NestedInterface] = []
        schemas: List[NestedSchema] = []
        for col in columns:
            if not col.schema_name:
                continue
            fld: Optional[EntityField] = entity.get_field(col.origin_field)
            if fld is None:
                continue
            if fld.item_schema is not None:
                interfaces.append(interface_definition_for(entity.name, fld.name, fld.item_schema))
                schemas.append(nested_schema_for(entity.name, fld.name, fld.item_schema))
            elif fld.json_schema is not None:
                interfaces.append(interface_definition_for(entity.name, fld.name, fld.json_schema))
                schemas.append(deep_json_schema_for(entity.name, fld.name, fld.json_schema))
            elif fld.array and fld.kind in SCHEMA_ARRAY_KINDS:
                schemas.append(
                    scalar_array_schema_for(entity.name, fld.name, fld.kind, fld.array_options)
                )
        return interfaces, schemas

    @staticmethod
    def _accessors(entity: ParsedEntity) -> List[PolymorphicAccessor]:
        return [
            PolymorphicAccessor(
                field_name=fld.name,
                method_name=accessor_method_name(fld.name),
                id_column=f"{fld.name}Id",
                type_column=f"{fld.name}Type",
                required=fld.required,
            )
            for fld in entity.sorted_fields()
            if fld.is_polymorphic
        ]


def compile_entity(json_text: str, config: Optional[CompilerConfig] = None) -> CompiledEntity:
    """Parse and compile one entity schema given as JSON text."""
    entity: ParsedEntity = SchemaParser().parse_text(json_text)
    return EntityCompiler(config).compile(entity)


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EntityFailure:
    """One entity that aborted parsing or compilation."""

    source: str
    entity: Optional[str]
    field: Optional[str]
    error_type: str
    message: str

    def __str__(self) -> str:
        where: str = self.entity or self.source
        detail: str = f"{where}.{self.field}" if self.field else where
        return f"{detail}: {self.message} [{self.error_type}]"


@dataclass(frozen=False, slots=True)
class CompileBatch:
    """Outcome of compiling several schema sources independently."""

    parsed: List[ParsedEntity] = field(default_factory=list)
    compiled: List[CompiledEntity] = field(default_factory=list)
    failures: List[EntityFailure] = field(default_factory=list)

    @property
    def failed_entities(self) -> List[str]:
        return [f.entity or f.source for f in self.failures]


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``SchemaCompiler.generate_from_paths()``.

    Contains timing information, per-entity outcomes, validation results,
    and any errors encountered.
    """

    success: bool = False
    output_directory: str = ""
    dry_run: bool = False

    total_sources: int = 0
    total_files: int = 0
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    generated_entities: List[str] = field(default_factory=list)
    skipped_entities: List[str] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)

    compiled: List[CompiledEntity] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        lines.append("=" * 60)
        lines.append("  entitygen - Generation Report")
        lines.append("=" * 60)
        lines.append(f"  Status:           {status}{' (dry run)' if self.dry_run else ''}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Schema sources:   {self.total_sources}")
        lines.append(f"  Entities:         {len(self.generated_entities)} generated")
        lines.append(f"  Files:            {self.total_files}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append("-" * 60)

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "+" if step.success else "x"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: List[tuple] = [
            ("Input Errors", self.input_errors, "x"),
            ("Validation Errors", self.validation_errors, "x"),
            ("Validation Warnings", self.validation_warnings, "!"),
            ("Generation Errors", self.generation_errors, "x"),
            ("Export Errors", self.export_errors, "x"),
            ("Skipped Entities", self.skipped_entities, "-"),
        ]
        for title, items, icon in sections:
            if not items:
                continue
            lines.append("-" * 60)
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# SchemaCompiler: multi-entity orchestrator
# ---------------------------------------------------------------------------


class SchemaCompiler:
    """
    Multi-entity pipeline orchestrator.

    Usage::

        compiler = SchemaCompiler(CompilerConfig(output_dir="./app"))
        report = compiler.generate_from_paths([Path("schemas/")])
        print(report.summary())

    Reusable: create once, run many times.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        *,
        renderer: Optional[TemplateRenderer] = None,
        entity_compiler: Optional[EntityCompiler] = None,
        parser: Optional[SchemaParser] = None,
    ) -> None:
        self._config: CompilerConfig = config or CompilerConfig()
        self._renderer: TemplateRenderer = renderer or TemplateGenerator()
        self._entity_compiler: EntityCompiler = entity_compiler or EntityCompiler(self._config)
        self._parser: SchemaParser = parser or SchemaParser()
        logger.debug(
            "SchemaCompiler initialised: exposure=%s, field_errors=%s, output=%s.",
            self._config.unknown_exposure_policy,
            self._config.field_error_policy,
            self._config.output_dir,
        )

    # -----------------------------------------------------------------
    # Public: compile only
    # -----------------------------------------------------------------

    def compile_sources(self, sources: Sequence[SchemaSource]) -> CompileBatch:
        """
        Parse and compile every source independently.

        A source is a ``Path`` to a schema file, JSON text, or an already
        decoded mapping.  ``SchemaError`` / ``StrategyError`` abort only
        the entity they occur in.
        """
        batch: CompileBatch = CompileBatch()
        for index, source in enumerate(sources):
            label: str = self._label(source, index)
            entity: Optional[ParsedEntity] = None
            try:
                entity = self._parse(source, label)
                compiled: CompiledEntity = self._entity_compiler.compile(entity)
            except (SchemaError, StrategyError) as exc:
                failure: EntityFailure = EntityFailure(
                    source=label,
                    entity=exc.entity or (entity.name if entity is not None else None),
                    field=exc.field,
                    error_type=type(exc).__name__,
                    message=exc.message,
                )
                batch.failures.append(failure)
                logger.error("Entity aborted: %s", failure)
                continue
            batch.parsed.append(entity)
            batch.compiled.append(compiled)
        return batch

    # -----------------------------------------------------------------
    # Public: full pipeline
    # -----------------------------------------------------------------

    def generate_from_paths(
        self,
        paths: Sequence[Path],
        output_dir: Optional[Path] = None,
        *,
        validate_only: bool = False,
    ) -> GenerationReport:
        """
        Full pipeline: discover -> compile -> validate -> render -> export.

        Args:
            paths: Schema files and / or directories of schema files.
            output_dir: Overrides ``config.output_dir``.
            validate_only: Stop after validation; nothing is rendered.
        """
        out: Path = Path(output_dir) if output_dir is not None else Path(self._config.output_dir)
        report: GenerationReport = GenerationReport(
            output_directory=str(out.resolve()),
            dry_run=self._config.dry_run,
        )
        pipeline_start: float = time.perf_counter()

        # --- Step: Discover ---
        files: List[Path] = self._step_discover(paths, report)
        if not files:
            return self._finalise_report(report, pipeline_start)

        # --- Step: Compile ---
        batch: CompileBatch = self._step_compile(files, report)

        # --- Step: Validate ---
        invalid: Set[str] = self._step_validate(batch, report)
        renderable: List[CompiledEntity] = [
            c for c in batch.compiled if c.name not in invalid
        ]
        report.skipped_entities.extend(sorted(invalid))
        report.compiled = list(batch.compiled)

        if validate_only:
            logger.info("Validate-only run: rendering skipped.")
            return self._finalise_report(report, pipeline_start)

        # --- Step: Render ---
        rendered: List[RenderedEntity] = self._step_render(renderable, report)

        # --- Step: Export ---
        if rendered:
            self._step_export(rendered, out, report)

        return self._finalise_report(report, pipeline_start)

    def render_entity(self, compiled: CompiledEntity) -> RenderedEntity:
        """Render the base and extension files of one compiled entity."""
        data: Dict[str, Any] = build_template_data(compiled, self._config)
        return RenderedEntity(
            name=compiled.name,
            base=self._renderer.render(BASE_TEMPLATE, data),
            extension=self._renderer.render(EXTENSION_TEMPLATE, data),
        )

    # -----------------------------------------------------------------
    # Pipeline steps
    # -----------------------------------------------------------------

    def _step_discover(self, paths: Sequence[Path], report: GenerationReport) -> List[Path]:
        files: List[Path] = []
        with Timer("discover") as t:
            for path in paths:
                path = Path(path)
                if not path.exists():
                    report.input_errors.append(f"Schema path not found: {path}")
                    logger.error("Schema path not found: %s", path)
                    continue
                files.extend(discover_schema_files(path))
        if not files and not report.input_errors:
            report.input_errors.append("No schema files found.")
        report.total_sources = len(files)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Discover Schemas",
            success=not report.input_errors,
            elapsed_seconds=t.elapsed,
            detail=f"{len(files)} file(s)",
        ))
        return files

    def _step_compile(self, files: List[Path], report: GenerationReport) -> CompileBatch:
        with Timer("compile") as t:
            batch: CompileBatch = self.compile_sources(files)
        report.generation_errors.extend(str(f) for f in batch.failures)
        for compiled in batch.compiled:
            report.validation_warnings.extend(
                f"{compiled.name}: {w}" for w in compiled.warnings
            )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Parse & Compile",
            success=not batch.failures,
            elapsed_seconds=t.elapsed,
            detail=f"{len(batch.compiled)} compiled, {len(batch.failures)} failed",
        ))
        return batch

    def _step_validate(self, batch: CompileBatch, report: GenerationReport) -> Set[str]:
        with Timer("validation") as t:
            result: ValidationResult = validate_entities(batch.parsed, batch.compiled)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)
        for warning in result.warnings:
            logger.warning("%s", warning)

        invalid: Set[str] = {
            e.context["entity"] for e in result.errors if e.context.get("entity")
        }
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=f"{result.error_count} error(s), {result.warning_count} warning(s)",
        ))
        return invalid

    def _step_render(
        self,
        renderable: List[CompiledEntity],
        report: GenerationReport,
    ) -> List[RenderedEntity]:
        rendered: List[RenderedEntity] = []
        with Timer("render") as t:
            for compiled in renderable:
                try:
                    rendered.append(self.render_entity(compiled))
                except EntitygenError as exc:
                    report.generation_errors.append(f"{compiled.name}: {exc}")
                    logger.error("Rendering %s failed: %s", compiled.name, exc)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Render",
            success=len(rendered) == len(renderable),
            elapsed_seconds=t.elapsed,
            detail=f"{len(rendered)} entit{'y' if len(rendered) == 1 else 'ies'}",
        ))
        return rendered

    def _step_export(
        self,
        rendered: List[RenderedEntity],
        out: Path,
        report: GenerationReport,
    ) -> None:
        exporter: EntityExporter = EntityExporter(
            out,
            base_dir=self._config.base_dir,
            extension_dir=self._config.extension_dir,
            force=self._config.force,
            dry_run=self._config.dry_run,
        )
        result: ExportResult = exporter.export(rendered)

        report.files.extend(result.files)
        report.total_files = len(result.files)
        report.export_errors.extend(result.errors)
        touched: Set[str] = {f.entity for f in result.files}
        report.generated_entities.extend(r.name for r in rendered if r.name in touched)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Export",
            success=result.success,
            elapsed_seconds=result.elapsed_seconds,
            detail=result.summary(),
        ))

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _parse(self, source: SchemaSource, label: str) -> ParsedEntity:
        if isinstance(source, Path):
            return self._parser.parse_file(source)
        if isinstance(source, str):
            return self._parser.parse_text(source, source=label)
        return self._parser.parse_mapping(source, source=label)

    @staticmethod
    def _label(source: SchemaSource, index: int) -> str:
        if isinstance(source, Path):
            return str(source)
        if isinstance(source, Mapping) and isinstance(source.get("name"), str):
            return f"<{source['name']}>"
        return f"<source #{index}>"

    @staticmethod
    def _finalise_report(report: GenerationReport, started: float) -> GenerationReport:
        report.total_elapsed_seconds = time.perf_counter() - started
        report.success = not (
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SchemaSource",
    "EntityCompiler",
    "compile_entity",
    "EntityFailure",
    "CompileBatch",
    "GenerationStepMetric",
    "GenerationReport",
    "SchemaCompiler",
]

logger.debug("entitygen.generator loaded, %d public symbols.", len(__all__))
