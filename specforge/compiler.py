# File: specforge/compiler.py
"""
SpecForge - Compilation Pipeline (Orchestrator)
================================================

Connects every stage of one run:

    Load → Extract → Diagnostics → {Schema, Validation, Routes} → Assembly

``compile_specification`` is the plain functional entry point: it returns a
``CompilationResult`` or raises the first fatal ``CompilerError``.

``SpecCompiler`` wraps the same stages for the CLI.  Each stage is timed
into a ``CompilationReport``; a fatal error stops the pipeline and is
recorded on the report instead of propagating.

The three compilers share nothing but the frozen ``CompilationContext`` and
run one after the other in a fixed order, so the output is a pure function
of the input document and the config.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from specforge.assembly import assemble
from specforge.errors import CompilerError
from specforge.extractor import load_spec_file, parse_specification
from specforge.models import (
    CompilationContext,
    CompilationResult,
    CompilerConfig,
    RouteArtifact,
    SchemaArtifact,
    Specification,
    ValidationConfig,
)
from specforge.routes import compile_routes
from specforge.rules import derive_validation_configs
from specforge.schema_compiler import (
    JunctionPredicate,
    compile_schemas,
    is_junction_schema,
)
from specforge.utils import Timer
from specforge.validators import ValidationResult, validate_specification

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.compiler")

SpecSource = Union[Mapping[str, Any], Specification]


# ---------------------------------------------------------------------------
# Compilation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class CompilationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class CompilationReport:
    """Outcome of ``SpecCompiler.compile()`` / ``compile_file()``."""

    success: bool = False
    title: str = ""
    source: str = ""
    dialect: str = ""
    router_style: str = ""

    total_elapsed_seconds: float = 0.0

    step_metrics: List[CompilationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    diagnostics_errors: List[str] = field(default_factory=list)
    diagnostics_warnings: List[str] = field(default_factory=list)
    compile_errors: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    diagnostics: Optional[ValidationResult] = None
    error: Optional[Exception] = None
    result: Optional[CompilationResult] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  SpecForge — Compilation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Specification:    {self.title or '(untitled)'}")
        if self.source:
            lines.append(f"  Source:           {self.source}")
        lines.append(f"  Dialect:          {self.dialect}")
        lines.append(f"  Router style:     {self.router_style}")

        if self.result is not None:
            schema: Optional[SchemaArtifact] = self.result.schema_artifact
            lines.append(
                f"  Tables:           {len(schema.tables) if schema else 0}"
            )
            lines.append(
                f"  Migrations:       {len(schema.migrations) if schema else 0}"
            )
            lines.append(f"  Validation cfgs:  {len(self.result.validation)}")
            lines.append(f"  Resources:        {len(self.result.routes)}")

        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        for title, items, mark in (
            ("Input Errors", self.input_errors, "✗"),
            ("Diagnostics Errors", self.diagnostics_errors, "✗"),
            ("Diagnostics Warnings", self.diagnostics_warnings, "⚠"),
            ("Compilation Errors", self.compile_errors, "✗"),
            ("Registration Conflicts", self.conflicts, "⚠"),
        ):
            if items:
                lines.append(f"{'─'*60}")
                lines.append(f"  {title} ({len(items)}):")
                for item in items:
                    lines.append(f"    {mark} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Functional entry point
# ---------------------------------------------------------------------------


def build_context(
    source: SpecSource,
    config: Optional[CompilerConfig] = None,
) -> CompilationContext:
    spec: Specification = (
        source if isinstance(source, Specification) else parse_specification(source)
    )
    return CompilationContext(specification=spec, config=config or CompilerConfig())


def should_compile_schema(context: CompilationContext) -> bool:
    """``compile_schema=None`` means: only when ``components.schemas`` exists."""
    if context.config.compile_schema is None:
        return context.specification.schemas is not None
    return context.config.compile_schema


def compile_specification(
    source: SpecSource,
    config: Optional[CompilerConfig] = None,
    *,
    junction_predicate: JunctionPredicate = is_junction_schema,
) -> CompilationResult:
    """
    Compile *source* into its three artifacts.

    Raises:
        MalformedSpecificationError / UnresolvableReferenceError: on the
            first fatal problem.
    """
    context: CompilationContext = build_context(source, config)
    schema_artifact: Optional[SchemaArtifact] = None
    if should_compile_schema(context):
        schema_artifact = compile_schemas(context, junction_predicate)
    validation: Dict[str, ValidationConfig] = derive_validation_configs(context)
    routes: List[RouteArtifact] = compile_routes(context)
    return assemble(context, schema_artifact, validation, routes)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class SpecCompiler:
    """
    Pipeline orchestrator used by the CLI.

    Usage::

        compiler = SpecCompiler(CompilerConfig(dialect="postgres"))
        report = compiler.compile_file(Path("openapi.yaml"))
        print(report.summary())

    The compiler holds no per-run state and can be reused.
    """

    def __init__(
        self,
        config: Optional[CompilerConfig] = None,
        *,
        junction_predicate: JunctionPredicate = is_junction_schema,
    ) -> None:
        self._config: CompilerConfig = config or CompilerConfig()
        self._junction_predicate: JunctionPredicate = junction_predicate
        logger.debug(
            "SpecCompiler initialised: dialect=%s, router_style=%s, strict=%s.",
            self._config.dialect,
            self._config.router_style,
            self._config.strict,
        )

    @property
    def config(self) -> CompilerConfig:
        return self._config

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def compile_file(self, path: Path) -> CompilationReport:
        """Load *path* and run the full pipeline."""
        report: CompilationReport = self._new_report()
        report.source = str(path)
        start: float = time.perf_counter()

        with Timer("load") as t:
            try:
                raw: Dict[str, Any] = load_spec_file(path)
            except (FileNotFoundError, CompilerError) as exc:
                raw = {}
                report.error = exc
                report.input_errors.append(str(exc))

        report.step_metrics.append(CompilationStepMetric(
            step_name="Load Specification",
            success=not report.input_errors,
            elapsed_seconds=t.elapsed,
            detail=path.name if not report.input_errors else "failed",
        ))
        if report.input_errors:
            logger.error("Failed to load %s: %s", path, report.input_errors[0])
            return self._finalise_report(report, time.perf_counter() - start)

        return self._run_pipeline(raw, report, start)

    def compile(self, source: SpecSource) -> CompilationReport:
        """Run the full pipeline on an in-memory document or Specification."""
        return self._run_pipeline(source, self._new_report(), time.perf_counter())

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _new_report(self) -> CompilationReport:
        return CompilationReport(
            dialect=self._config.dialect,
            router_style=str(self._config.router_style),
        )

    def _run_pipeline(
        self,
        source: SpecSource,
        report: CompilationReport,
        start: float,
    ) -> CompilationReport:
        context: Optional[CompilationContext] = self._step(
            report, "Extract Specification", lambda: build_context(source, self._config),
            lambda ctx: f"{ctx.specification.operation_count} operations",
        )
        if context is None:
            return self._finalise_report(report, time.perf_counter() - start)
        report.title = context.specification.title

        if not self._step_diagnostics(context, report):
            return self._finalise_report(report, time.perf_counter() - start)

        schema_artifact: Optional[SchemaArtifact] = None
        if should_compile_schema(context):
            schema_artifact = self._step(
                report, "Relational Schema",
                lambda: compile_schemas(context, self._junction_predicate),
                lambda a: f"{len(a.tables)} tables, {len(a.migrations)} migrations",
            )
            if schema_artifact is None:
                return self._finalise_report(report, time.perf_counter() - start)
        else:
            report.step_metrics.append(CompilationStepMetric(
                step_name="Relational Schema", detail="skipped",
            ))

        validation: Optional[Dict[str, ValidationConfig]] = self._step(
            report, "Validation Configs",
            lambda: derive_validation_configs(context),
            lambda v: f"{len(v)} operations",
        )
        routes: Optional[List[RouteArtifact]] = self._step(
            report, "Routes",
            lambda: compile_routes(context),
            lambda r: f"{len(r)} resources",
        )
        if validation is None or routes is None:
            return self._finalise_report(report, time.perf_counter() - start)

        result: Optional[CompilationResult] = self._step(
            report, "Assembly",
            lambda: assemble(context, schema_artifact, validation, routes),
            lambda r: f"{len(r.conflicts)} conflicts",
        )
        if result is not None:
            report.result = result
            report.conflicts.extend(c["message"] for c in result.conflicts)

        return self._finalise_report(report, time.perf_counter() - start)

    def _step(self, report: CompilationReport, name: str, action: Any, describe: Any) -> Any:
        """Run one timed stage; a ``CompilerError`` ends the run."""
        with Timer(name) as t:
            try:
                value: Any = action()
            except CompilerError as exc:
                value = None
                report.error = exc
                report.compile_errors.append(f"[{exc.code}] {exc.message}")

        ok: bool = value is not None
        report.step_metrics.append(CompilationStepMetric(
            step_name=name,
            success=ok,
            elapsed_seconds=t.elapsed,
            detail=describe(value) if ok else report.compile_errors[-1],
        ))
        if ok:
            logger.info("%s finished in %.3fs.", name, t.elapsed)
        else:
            logger.error("%s failed: %s", name, report.compile_errors[-1])
        return value

    def _step_diagnostics(
        self,
        context: CompilationContext,
        report: CompilationReport,
    ) -> bool:
        """Returns False when the run must stop."""
        with Timer("diagnostics") as t:
            result: ValidationResult = validate_specification(
                context.specification, self._config
            )

        report.diagnostics = result
        report.diagnostics_errors.extend(str(e) for e in result.errors)
        report.diagnostics_warnings.extend(str(w) for w in result.warnings)

        report.step_metrics.append(CompilationStepMetric(
            step_name="Diagnostics",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=result.summary(),
        ))

        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)

        if result.has_errors and self._config.strict:
            return False
        if result.has_warnings and self._config.fail_on_warnings:
            return False
        return True

    def _finalise_report(
        self,
        report: CompilationReport,
        total_elapsed: float,
    ) -> CompilationReport:
        report.total_elapsed_seconds = total_elapsed
        blocked_by_diagnostics: bool = bool(report.diagnostics_errors) and self._config.strict
        blocked_by_warnings: bool = (
            bool(report.diagnostics_warnings) and self._config.fail_on_warnings
        )
        report.success = (
            report.result is not None
            and not report.input_errors
            and not report.compile_errors
            and not blocked_by_diagnostics
            and not blocked_by_warnings
        )
        return report


def compile_file(path: Path, config: Optional[CompilerConfig] = None) -> CompilationReport:
    """Shortcut for ``SpecCompiler(config).compile_file(path)``."""
    return SpecCompiler(config).compile_file(path)


__all__: List[str] = [
    "CompilationStepMetric",
    "CompilationReport",
    "build_context",
    "should_compile_schema",
    "compile_specification",
    "SpecCompiler",
    "compile_file",
]

logger.debug("specforge.compiler loaded.")
