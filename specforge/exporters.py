# File: specforge/exporters.py
"""
SpecForge - Artifact Exporter (File-System Manager)
====================================================

Responsible for:
    1. Creating the output directory safely.
    2. Writing rendered artifact files atomically (write-to-temp then rename).
    3. Producing ``manifest.json`` with SHA-256 checksums.

Re-running on the same directory with the same input rewrites identical
files.  If a write fails mid-batch, files already written stay in place;
each individual file is atomic.  Nothing is retried.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from specforge.utils import Timer, count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.exporters")

MANIFEST_NAME: str = "manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every exported file with its checksum; serialisable to JSON."""

    title: str = ""
    generator_version: str = ""
    dialect: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "generator_version": self.generator_version,
            "dialect": self.dialect,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``ArtifactExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# ArtifactExporter class
# ---------------------------------------------------------------------------


class ArtifactExporter:
    """
    Writes rendered artifact files under one output directory.

    Usage::

        exporter = ArtifactExporter(Path("./generated"), title="Widgets API")
        result = exporter.export(ArtifactRenderer(compiled).render_all())
        print(result.manifest.to_json())

    Not thread-safe.  Use one exporter per output directory.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        title: str = "",
        dialect: str = "",
        atomic_writes: bool = True,
        generate_manifest: bool = True,
    ) -> None:
        self._output_dir: Path = output_dir.resolve()
        self._title: str = title
        self._dialect: str = dialect
        self._atomic_writes: bool = atomic_writes
        self._generate_manifest: bool = generate_manifest

        self._errors: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ArtifactExporter initialised: output_dir=%s, atomic=%s.",
            self._output_dir,
            self._atomic_writes,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, files: Dict[str, str]) -> ExportResult:
        """
        Write every ``relative_path → content`` entry of *files*.

        Returns:
            ExportResult with success flag, manifest and error details.
        """
        self._errors = []
        self._file_records = []

        with Timer("export") as timer:
            try:
                self._output_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                self._errors.append(
                    f"Failed to create directory {self._output_dir}: {exc}"
                )
            else:
                self._write_files(files)
                if self._generate_manifest and not self._errors:
                    self._write_manifest_file()

        manifest: ExportManifest = self._build_manifest()
        success: bool = not self._errors

        if success:
            logger.info(
                "Export completed: %d files, %d bytes, %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            for error in self._errors:
                logger.error(error)

        return ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            elapsed_seconds=timer.elapsed,
        )

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _write_files(self, files: Dict[str, str]) -> None:
        for rel_path, content in files.items():
            target: Path = self._output_dir / rel_path
            try:
                self._file_records.append(
                    self._write_single_file(target, content, rel_path)
                )
            except OSError as exc:
                self._errors.append(
                    f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
                )

    def _write_single_file(self, full_path: Path, content: str, rel_path: str) -> FileRecord:
        full_path.parent.mkdir(parents=True, exist_ok=True)

        encoded: bytes = content.encode("utf-8")
        if self._atomic_writes:
            self._atomic_write(full_path, encoded)
        else:
            full_path.write_bytes(encoded)

        record: FileRecord = FileRecord(
            relative_path=rel_path,
            size_bytes=len(encoded),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )
        logger.debug(
            "Wrote file: %s (%d bytes, %d lines).",
            rel_path,
            record.size_bytes,
            record.line_count,
        )
        return record

    @staticmethod
    def _atomic_write(target_path: Path, data: bytes) -> None:
        """
        Write data to *target_path* through a temp file in the same
        directory, then ``os.replace`` it into place.
        """
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target_path.parent),
            prefix=f".{target_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, str(target_path))
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        import specforge

        return ExportManifest(
            title=self._title,
            generator_version=specforge.__version__,
            dialect=self._dialect,
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        manifest_path: Path = self._output_dir / MANIFEST_NAME
        try:
            self._write_single_file(manifest_path, self._build_manifest().to_json(), MANIFEST_NAME)
        except OSError as exc:
            self._errors.append(f"Could not write manifest: {exc}")


__all__: List[str] = [
    "MANIFEST_NAME",
    "ArtifactExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
]

logger.debug("specforge.exporters loaded.")
