# File: specforge/validators.py
"""
SpecForge - Specification Diagnostics
======================================
A **pure-function diagnostics pipeline** run on the extracted
``Specification`` before any artifact is compiled.

The extractor and the pydantic models already reject structurally broken
input.  This module adds the semantic findings that do not stop extraction:
dangling schema references, unknown security schemes, undeclared path
parameters, an unsupported dialect and similar.

Usage:
    from specforge.validators import validate_specification
    result = validate_specification(spec, config)
    if result.has_errors:
        print(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from specforge.dialects import SUPPORTED_DIALECTS, is_supported_dialect
from specforge.models import CompilerConfig, ParameterLocation, Specification
from specforge.routes import path_parameters
from specforge.utils import SQL_RESERVED_WORDS, canonical_name, ref_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight diagnostic descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Diagnostics: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def validate_schema_references(spec: Specification) -> ValidationResult:
    """
    Every ``$ref`` / ``items.$ref`` inside ``components.schemas`` must name
    a declared schema.  The assembly step fails on the same condition; this
    check reports all of them at once instead of the first.
    """
    result: ValidationResult = ValidationResult()
    schemas = spec.schemas or {}
    known: Set[str] = set(schemas)

    for name, schema in schemas.items():
        for prop_name, prop in schema.properties.items():
            ref: Optional[str] = prop.ref
            if ref is None and prop.items is not None:
                ref = prop.items.ref
            if ref is None:
                continue
            target: str = ref_name(ref)
            if target not in known:
                result.add_error(
                    "UNRESOLVED_SCHEMA_REF",
                    f"{name}.{prop_name} references '{target}', which is not "
                    f"in components.schemas.",
                    {"schema": name, "property": prop_name, "target": target},
                )
    return result


def validate_security_requirements(spec: Specification) -> ValidationResult:
    """Security requirements should name a declared security scheme."""
    result: ValidationResult = ValidationResult()
    declared: Set[str] = set(spec.security_schemes)

    def _check(requirements: Optional[List[Dict[str, List[str]]]], where: str) -> None:
        for requirement in requirements or []:
            for scheme in requirement:
                if scheme not in declared:
                    result.add_warning(
                        "UNKNOWN_SECURITY_SCHEME",
                        f"{where} requires security scheme '{scheme}', which "
                        f"is not in components.securitySchemes.",
                        {"location": where, "scheme": scheme},
                    )

    _check(spec.security, "<root>")
    for _, operation in spec.iter_operations():
        _check(operation.security, operation.operation_id)
    return result


def validate_path_parameters(spec: Specification) -> ValidationResult:
    """``{x}`` in a URL template should have a matching ``in: path`` parameter."""
    result: ValidationResult = ValidationResult()
    for item, operation in spec.iter_operations():
        declared: Set[str] = {
            p.name for p in operation.parameters
            if p.location == ParameterLocation.PATH.value
        }
        for name in path_parameters(item.path):
            if name not in declared:
                result.add_warning(
                    "UNDECLARED_PATH_PARAMETER",
                    f"{operation.operation_id}: path parameter '{name}' of "
                    f"'{item.path}' is not declared; it will not be validated.",
                    {"operation_id": operation.operation_id, "parameter": name},
                )
    return result


def validate_responses(spec: Specification) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for _, operation in spec.iter_operations():
        if not operation.responses:
            result.add_info(
                "NO_RESPONSES",
                f"{operation.operation_id} declares no responses; its stub "
                f"answers 204.",
                {"operation_id": operation.operation_id},
            )
    return result


def validate_table_names(spec: Specification) -> ValidationResult:
    """Distinct schemas must not collapse onto one table name."""
    result: ValidationResult = ValidationResult()
    seen: Dict[str, str] = {}
    for name, schema in (spec.schemas or {}).items():
        if not schema.is_object:
            continue
        table: str = canonical_name(name)
        if not table:
            result.add_error(
                "EMPTY_TABLE_NAME",
                f"Schema '{name}' has no usable table name.",
                {"schema": name},
            )
            continue
        if table in seen:
            result.add_error(
                "DUPLICATE_TABLE_NAME",
                f"Schemas '{seen[table]}' and '{name}' both compile to table "
                f"'{table}'.",
                {"schema": name, "table": table},
            )
        seen[table] = name
        if table in SQL_RESERVED_WORDS:
            result.add_info(
                "RESERVED_TABLE_NAME",
                f"Table '{table}' is a SQL reserved word and will be quoted.",
                {"schema": name, "table": table},
            )
    return result


def validate_junction_tables(spec: Specification) -> ValidationResult:
    """
    Two array-of-``$ref`` properties that map to the same
    ``<owner>_<target>`` junction table share its rows; the second
    ``CREATE TABLE IF NOT EXISTS`` is a no-op.
    """
    result: ValidationResult = ValidationResult()
    seen: Dict[str, str] = {}
    for name, schema in (spec.schemas or {}).items():
        if not schema.is_object:
            continue
        owner: str = canonical_name(name)
        for prop_name, prop in schema.properties.items():
            if not prop.is_array_of_ref:
                continue
            junction: str = f"{owner}_{canonical_name(ref_name(prop.items.ref))}"  # type: ignore[union-attr]
            where: str = f"{name}.{prop_name}"
            if junction in seen:
                result.add_warning(
                    "JUNCTION_TABLE_COLLISION",
                    f"{where} and {seen[junction]} both relate through junction "
                    f"table '{junction}'; their rows cannot be told apart.",
                    {"property": where, "other": seen[junction], "table": junction},
                )
                continue
            seen[junction] = where
    return result


def validate_config(config: CompilerConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if not is_supported_dialect(config.dialect):
        result.add_warning(
            "UNSUPPORTED_DIALECT",
            f"Dialect '{config.dialect}' is not one of "
            f"{', '.join(SUPPORTED_DIALECTS)}; columns fall back to TEXT.",
            {"dialect": config.dialect},
        )
    return result


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

SpecCheck = Callable[[Specification], ValidationResult]


def validate_specification(
    spec: Specification,
    config: Optional[CompilerConfig] = None,
) -> ValidationResult:
    """
    **Master diagnostics entry point**, called by ``SpecCompiler`` before
    compiling anything.
    """
    result: ValidationResult = ValidationResult()

    checks: List[SpecCheck] = [
        validate_schema_references,
        validate_security_requirements,
        validate_path_parameters,
        validate_responses,
        validate_table_names,
        validate_junction_tables,
    ]
    for check in checks:
        logger.debug("Running check: %s", check.__name__)
        result.merge(check(spec))

    result.merge(validate_config(config or CompilerConfig()))

    if result.has_errors:
        logger.error("Diagnostics FAILED. %s", result.summary())
    else:
        logger.info("Diagnostics passed. %s", result.summary())
    return result


__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_schema_references",
    "validate_security_requirements",
    "validate_path_parameters",
    "validate_responses",
    "validate_table_names",
    "validate_junction_tables",
    "validate_config",
    "validate_specification",
]

logger.debug("specforge.validators loaded — %d public symbols.", len(__all__))
