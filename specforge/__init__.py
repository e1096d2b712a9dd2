# File: specforge/__init__.py
"""
SpecForge — OpenAPI to SQL / Routes / Validation Compiler
==========================================================

Compiles one OpenAPI 3.x document into three mutually consistent artifacts:
relational DDL with junction migrations, per-resource route registrations
wired to auth / validation / middleware lookups, and per-operation request
validation configs.

Architecture overview::

    ┌──────────────┐     ┌──────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ SpecCompiler │────▶│    extractor     │
    │   (cli.py)   │     │ (compiler.py)│     │ (Specification)  │
    └──────────────┘     └──────┬───────┘     └──────────────────┘
                                │
            ┌──────────────┬────┴─────────┬──────────────┐
            ▼              ▼              ▼              ▼
     ┌───────────────┐ ┌─────────┐ ┌─────────────┐ ┌──────────┐
     │schema_compiler│ │  rules  │ │   routes    │ │validators│
     └───────┬───────┘ └────┬────┘ └──────┬──────┘ └──────────┘
            └──────────────┼─────────────┘
                           ▼
                    ┌─────────────┐     ┌───────────┐     ┌───────────┐
                    │  assembly   │────▶│ templates │────▶│ exporters │
                    └─────────────┘     └───────────┘     └───────────┘

Usage::

    # As a library
    from specforge import CompilerConfig, compile_specification
    result = compile_specification(raw_openapi, CompilerConfig(dialect="postgres"))
    print(result.schema_artifact.ddl)

    # From the command line
    python -m specforge --spec openapi.yaml --output ./generated -v
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from specforge.errors import (
    CompilerError,
    MalformedSpecificationError,
    RegistrationConflictError,
    UnresolvableReferenceError,
)
from specforge.models import (
    CompilationContext,
    CompilationResult,
    CompilerConfig,
    RouterStyle,
    SchemaArtifact,
    Specification,
    ValidationConfig,
    RouteArtifact,
)
from specforge.extractor import load_spec_file, parse_specification
from specforge.schema_compiler import compile_schemas, is_junction_schema
from specforge.rules import derive_validation_config, derive_validation_configs
from specforge.routes import compile_routes, translate_path
from specforge.assembly import assemble
from specforge.validators import ValidationResult, validate_specification
from specforge.compiler import (
    CompilationReport,
    SpecCompiler,
    compile_file,
    compile_specification,
)
from specforge.templates import ArtifactRenderer
from specforge.exporters import ArtifactExporter, ExportManifest, ExportResult
from specforge.utils import Timer, canonical_name

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Errors
    "CompilerError",
    "MalformedSpecificationError",
    "UnresolvableReferenceError",
    "RegistrationConflictError",
    # Models
    "CompilationContext",
    "CompilationResult",
    "CompilerConfig",
    "RouterStyle",
    "SchemaArtifact",
    "Specification",
    "ValidationConfig",
    "RouteArtifact",
    # Stages
    "load_spec_file",
    "parse_specification",
    "compile_schemas",
    "is_junction_schema",
    "derive_validation_config",
    "derive_validation_configs",
    "compile_routes",
    "translate_path",
    "assemble",
    "validate_specification",
    "ValidationResult",
    # Orchestrator
    "SpecCompiler",
    "CompilationReport",
    "compile_specification",
    "compile_file",
    # Output
    "ArtifactRenderer",
    "ArtifactExporter",
    "ExportManifest",
    "ExportResult",
    # Utilities
    "Timer",
    "canonical_name",
]
