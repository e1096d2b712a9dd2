"""
tests/test_exporters.py
Unit tests for specforge.exporters (ArtifactExporter).

All I/O happens under pytest's tmp_path.
"""

from __future__ import annotations

import json
import pathlib
from typing import Dict

import specforge
from specforge.exporters import MANIFEST_NAME, ArtifactExporter
from specforge.utils import sha256_hex

_FILES: Dict[str, str] = {
    "schema.sql": "CREATE TABLE IF NOT EXISTS a (\n  x TEXT\n);\n",
    "routers/a.py": "VALUE = 1\n",
    "validation.json": "{}\n",
}


class TestArtifactExporter:
    def test_writes_files(self, output_dir: pathlib.Path) -> None:
        result = ArtifactExporter(output_dir, title="T", dialect="sqlite").export(_FILES)
        assert result.success, result.errors
        for rel_path, content in _FILES.items():
            assert (output_dir / rel_path).read_text(encoding="utf-8") == content

    def test_manifest(self, output_dir: pathlib.Path) -> None:
        result = ArtifactExporter(output_dir, title="T", dialect="sqlite").export(_FILES)
        manifest = json.loads((output_dir / MANIFEST_NAME).read_text(encoding="utf-8"))
        assert manifest["title"] == "T"
        assert manifest["dialect"] == "sqlite"
        assert manifest["generator_version"] == specforge.__version__
        assert manifest["total_files"] == 3
        assert manifest == result.manifest.to_dict()

        records = {r["relative_path"]: r for r in manifest["files"]}
        assert set(records) == set(_FILES)
        assert records["schema.sql"]["sha256"] == sha256_hex(_FILES["schema.sql"])
        assert records["schema.sql"]["line_count"] == 3
        assert records["routers/a.py"]["size_bytes"] == len(b"VALUE = 1\n")

    def test_no_manifest(self, output_dir: pathlib.Path) -> None:
        ArtifactExporter(output_dir, generate_manifest=False).export(_FILES)
        assert not (output_dir / MANIFEST_NAME).exists()

    def test_non_atomic_writes(self, output_dir: pathlib.Path) -> None:
        result = ArtifactExporter(output_dir, atomic_writes=False).export(_FILES)
        assert result.success
        assert (output_dir / "routers" / "a.py").exists()

    def test_rerun_is_idempotent(self, output_dir: pathlib.Path) -> None:
        exporter = ArtifactExporter(output_dir, title="T")
        first = exporter.export(_FILES)
        second = exporter.export(_FILES)
        assert first.manifest.to_dict() == second.manifest.to_dict()
        leftovers = [p for p in output_dir.rglob("*.tmp")]
        assert leftovers == []

    def test_unwritable_target_reported(self, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        result = ArtifactExporter(blocker).export(_FILES)
        assert not result.success
        assert result.errors
        assert result.manifest.total_files == 0
