# File: entitygen/exporters.py
"""
entitygen - Entity Exporter (File-System Manager)
===================================================

Responsible for:
    1. Writing base files (``<base_dir>/<Name>Base.ts``) on every run,
       atomically (write-to-temp then rename).
    2. Writing extension stubs (``<extension_dir>/<Name>.ts``) exactly once.
       An existing stub is user code and is skipped unless ``force`` is set.
    3. Recording every file touched, with size, line count and checksum.

A failed write is recorded and the remaining files are still attempted;
each individual file is atomic, so partial output is safe to rerun over.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from entitygen.utils import Timer, atomic_write, count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entitygen.exporters")

ACTION_WRITTEN: str = "written"
ACTION_CREATED: str = "created"
ACTION_SKIPPED: str = "skipped"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RenderedEntity:
    """Rendered file contents for one entity."""

    name: str
    base: str
    extension: str


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported (or skipped) file."""

    entity: str
    relative_path: str
    absolute_path: str
    action: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``EntityExporter.export()``."""

    success: bool
    files: Tuple[FileRecord, ...]
    errors: Tuple[str, ...]
    dry_run: bool = False
    elapsed_seconds: float = 0.0

    def by_action(self, action: str) -> List[FileRecord]:
        return [f for f in self.files if f.action == action]

    def summary(self) -> str:
        return (
            f"{len(self.by_action(ACTION_WRITTEN))} written, "
            f"{len(self.by_action(ACTION_CREATED))} created, "
            f"{len(self.by_action(ACTION_SKIPPED))} skipped, "
            f"{len(self.errors)} error(s)"
            + (" (dry run)" if self.dry_run else "")
        )


# ---------------------------------------------------------------------------
# EntityExporter
# ---------------------------------------------------------------------------


class EntityExporter:
    """
    Writes rendered entities under an output root.

    Usage::

        exporter = EntityExporter(Path("./app"), force=False)
        result = exporter.export([RenderedEntity("Post", base, ext)])
        print(result.summary())

    Not thread-safe.  Use one exporter per output directory.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        base_dir: str = "main/db/entities/__generated__",
        extension_dir: str = "main/db/entities",
        force: bool = False,
        dry_run: bool = False,
    ) -> None:
        self._output_dir: Path = Path(output_dir).resolve()
        self._base_dir: str = base_dir
        self._extension_dir: str = extension_dir
        self._force: bool = force
        self._dry_run: bool = dry_run

        self._errors: List[str] = []
        self._records: List[FileRecord] = []

        logger.debug(
            "EntityExporter initialised: output_dir=%s, force=%s, dry_run=%s.",
            self._output_dir,
            self._force,
            self._dry_run,
        )

    # -----------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------

    def base_path(self, entity_name: str) -> str:
        return f"{self._base_dir}/{entity_name}Base.ts"

    def extension_path(self, entity_name: str) -> str:
        return f"{self._extension_dir}/{entity_name}.ts"

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, entities: Sequence[RenderedEntity]) -> ExportResult:
        """Write base and extension files for every entity in *entities*."""
        self._errors = []
        self._records = []

        with Timer("export") as timer:
            for entity in entities:
                self.export_entity(entity)

        result: ExportResult = ExportResult(
            success=not self._errors,
            files=tuple(self._records),
            errors=tuple(self._errors),
            dry_run=self._dry_run,
            elapsed_seconds=timer.elapsed,
        )
        if result.success:
            logger.info("Export completed: %s in %.3fs.", result.summary(), timer.elapsed)
        else:
            logger.error("Export completed with errors: %s.", result.summary())
        return result

    def export_entity(self, entity: RenderedEntity) -> List[FileRecord]:
        """Write one entity's files; returns the records produced."""
        produced: List[FileRecord] = []

        base: Optional[FileRecord] = self._write(
            entity.name, self.base_path(entity.name), entity.base, ACTION_WRITTEN
        )
        if base is not None:
            produced.append(base)

        ext_rel: str = self.extension_path(entity.name)
        ext_abs: Path = self._output_dir / ext_rel
        if ext_abs.exists() and not self._force:
            logger.info("Extension %s exists, skipped (use force to overwrite).", ext_rel)
            produced.append(self._record(entity.name, ext_rel, entity.extension, ACTION_SKIPPED))
        else:
            action: str = ACTION_WRITTEN if ext_abs.exists() else ACTION_CREATED
            ext: Optional[FileRecord] = self._write(entity.name, ext_rel, entity.extension, action)
            if ext is not None:
                produced.append(ext)

        self._records.extend(produced)
        return produced

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _record(self, entity: str, rel_path: str, content: str, action: str) -> FileRecord:
        return FileRecord(
            entity=entity,
            relative_path=rel_path,
            absolute_path=str(self._output_dir / rel_path),
            action=action,
            size_bytes=len(content.encode("utf-8")),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )

    def _write(
        self,
        entity: str,
        rel_path: str,
        content: str,
        action: str,
    ) -> Optional[FileRecord]:
        if self._dry_run:
            logger.info("[dry run] would write %s", rel_path)
            return self._record(entity, rel_path, content, action)
        try:
            atomic_write(self._output_dir / rel_path, content)
        except OSError as exc:
            error_msg: str = f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
            self._errors.append(error_msg)
            logger.error(error_msg)
            return None
        logger.debug("%s %s", action.capitalize(), rel_path)
        return self._record(entity, rel_path, content, action)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ACTION_WRITTEN",
    "ACTION_CREATED",
    "ACTION_SKIPPED",
    "RenderedEntity",
    "FileRecord",
    "ExportResult",
    "EntityExporter",
]

logger.debug("entitygen.exporters loaded, %d public symbols.", len(__all__))
