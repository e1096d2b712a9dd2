# File: specforge/extractor.py
"""
SpecForge - Spec Model Extractor
=================================
Turns a raw OpenAPI document (already parsed into Python data, or loaded
from a YAML/JSON file here) into the immutable ``Specification`` model that
every compiler stage consumes.

Normalisation rules:
    - Only ``get``/``post``/``put``/``delete``/``patch`` become operations;
      every other key under a path item (``parameters``, ``summary``,
      ``servers``, vendor keys, ...) is ignored.
    - ``x-middleware`` becomes a list of names: missing → ``[]``, a scalar
      → one element, ``{name: ...}`` entries → their ``name``.
    - ``x-service`` accepts a plain string or ``{name: ...}``.
    - Response status keys are strings (YAML reads ``200:`` as an int).
    - Parameter ``$ref``s into ``components.parameters`` are resolved.

Fails fast on a missing ``paths`` object or a duplicated ``operationId``.
A missing ``components.schemas`` is tolerated here.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from specforge.errors import MalformedSpecificationError, UnresolvableReferenceError
from specforge.models import (
    HttpMethod,
    Operation,
    Parameter,
    PathItem,
    SchemaDefinition,
    Specification,
)
from specforge.utils import ensure_list, ref_name, to_camel_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.extractor")

_ALLOWED_METHODS: Tuple[str, ...] = tuple(m.value for m in HttpMethod)


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise MalformedSpecificationError(
            f"Invalid JSON in {path}: {exc}", {"file": str(path)}
        ) from exc
    return _require_mapping(data, path)


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise MalformedSpecificationError(
            f"Invalid YAML in {path}: {exc}", {"file": str(path)}
        ) from exc
    return _require_mapping(data, path)


def _require_mapping(data: Any, path: Path) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise MalformedSpecificationError(
            f"Expected a mapping at the top level of {path}, "
            f"got {type(data).__name__}.",
            {"file": str(path)},
        )
    return data


def load_spec_file(path: Path) -> Dict[str, Any]:
    """
    Load an OpenAPI document from disk.

    Dispatches on the file extension; unknown extensions are tried as JSON
    and then as YAML.  Any read or parse failure aborts the run.

    Raises:
        FileNotFoundError: If the file does not exist.
        MalformedSpecificationError: If the content cannot be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Specification file not found: {path}")
    if not path.is_file():
        raise MalformedSpecificationError(
            f"Specification path is not a file: {path}", {"file": str(path)}
        )

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s'; trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except MalformedSpecificationError:
        return _load_yaml_file(path)


# ---------------------------------------------------------------------------
# Vendor extension helpers
# ---------------------------------------------------------------------------


def normalize_middleware(value: Any, where: str) -> List[str]:
    """Normalise an ``x-middleware`` value into an ordered list of names."""
    names: List[str] = []
    for entry in ensure_list(value):
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, Mapping) and entry.get("name"):
            names.append(str(entry["name"]))
        else:
            raise MalformedSpecificationError(
                f"Unusable x-middleware entry {entry!r} at {where}; "
                f"expected a name or a mapping with 'name'.",
                {"location": where},
            )
    return names


def _service_name(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        name: Any = value.get("name")
        return str(name) if name else None
    if value:
        return str(value)
    return None


def _security_requirements(value: Any, where: str) -> Optional[List[Dict[str, List[str]]]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise MalformedSpecificationError(
            f"'security' at {where} must be a list of requirement objects.",
            {"location": where},
        )
    requirements: List[Dict[str, List[str]]] = []
    for requirement in value:
        if not isinstance(requirement, Mapping):
            raise MalformedSpecificationError(
                f"Security requirement {requirement!r} at {where} is not a mapping.",
                {"location": where},
            )
        requirements.append(
            {str(name): list(scopes or []) for name, scopes in requirement.items()}
        )
    return requirements


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


def _resolve_parameter(
    raw: Mapping[str, Any],
    shared: Mapping[str, Any],
    operation_id: str,
) -> Mapping[str, Any]:
    ref: Optional[str] = raw.get("$ref")
    if ref is None:
        return raw
    target: str = ref_name(ref)
    resolved: Any = shared.get(target)
    if not isinstance(resolved, Mapping):
        raise UnresolvableReferenceError(
            operation_id, target, {"kind": "parameter", "ref": ref}
        )
    return resolved


def _parse_parameters(
    raw_params: Any,
    shared: Mapping[str, Any],
    operation_id: str,
) -> List[Parameter]:
    result: List[Parameter] = []
    for raw in raw_params or []:
        param: Mapping[str, Any] = _resolve_parameter(raw, shared, operation_id)
        try:
            result.append(
                Parameter(
                    name=param["name"],
                    location=param.get("in", "query"),
                    required=bool(param.get("required", False)),
                    json_schema=dict(param.get("schema") or {"type": "string"}),
                    description=param.get("description") or "",
                )
            )
        except (KeyError, PydanticValidationError) as exc:
            raise MalformedSpecificationError(
                f"Invalid parameter {dict(param)!r} on operation "
                f"'{operation_id}': {exc}",
                {"operation_id": operation_id},
            ) from exc
    return result


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


def parse_schemas(raw_schemas: Any) -> Optional[Dict[str, SchemaDefinition]]:
    """Parse ``components.schemas`` preserving declared order."""
    if raw_schemas is None:
        return None
    if not isinstance(raw_schemas, Mapping):
        raise MalformedSpecificationError(
            "'components.schemas' must be a mapping of name → schema.",
            {"location": "components.schemas"},
        )

    schemas: Dict[str, SchemaDefinition] = {}
    for name, raw in raw_schemas.items():
        try:
            schemas[str(name)] = SchemaDefinition.model_validate(raw or {})
        except PydanticValidationError as exc:
            raise MalformedSpecificationError(
                f"Schema '{name}' is not a valid schema object: {exc}",
                {"schema": str(name)},
            ) from exc
    return schemas


# ---------------------------------------------------------------------------
# Paths & operations
# ---------------------------------------------------------------------------


def _parse_operation(
    path: str,
    method: str,
    raw: Any,
    shared_params: Mapping[str, Any],
) -> Operation:
    where: str = f"{method.upper()} {path}"
    if not isinstance(raw, Mapping):
        raise MalformedSpecificationError(
            f"Operation {where} must be a mapping.", {"location": where}
        )

    operation_id: str = raw.get("operationId") or to_camel_case(f"{method} {path}")
    if not raw.get("operationId"):
        logger.info("No operationId on %s; using '%s'.", where, operation_id)

    responses: Dict[str, Any] = {
        str(code): response for code, response in (raw.get("responses") or {}).items()
    }

    try:
        return Operation(
            method=method,
            operation_id=operation_id,
            summary=raw.get("summary") or "",
            parameters=_parse_parameters(raw.get("parameters"), shared_params, operation_id),
            request_body=raw.get("requestBody"),
            responses=responses,
            security=_security_requirements(raw.get("security"), where),
            service=_service_name(raw.get("x-service")),
            middleware=normalize_middleware(raw.get("x-middleware"), where),
        )
    except PydanticValidationError as exc:
        raise MalformedSpecificationError(
            f"Operation {where} is invalid: {exc}",
            {"location": where, "operation_id": operation_id},
        ) from exc


def parse_specification(raw: Mapping[str, Any]) -> Specification:
    """
    Build the ``Specification`` for one run.

    Raises:
        MalformedSpecificationError: missing/invalid ``paths`` or a
            duplicated ``operationId``.
        UnresolvableReferenceError: a parameter ``$ref`` names nothing.
    """
    if not isinstance(raw, Mapping):
        raise MalformedSpecificationError(
            "Specification must be a mapping.", {"location": "<root>"}
        )

    raw_paths: Any = raw.get("paths")
    if raw_paths is None:
        raise MalformedSpecificationError(
            "Specification has no 'paths' object.", {"location": "paths"}
        )
    if not isinstance(raw_paths, Mapping):
        raise MalformedSpecificationError(
            "'paths' must be a mapping of URL template → path item.",
            {"location": "paths"},
        )

    components: Mapping[str, Any] = raw.get("components") or {}
    shared_params: Mapping[str, Any] = components.get("parameters") or {}

    seen_ids: Dict[str, str] = {}
    path_items: List[PathItem] = []

    for path, raw_item in raw_paths.items():
        if not isinstance(raw_item, Mapping):
            raise MalformedSpecificationError(
                f"Path item '{path}' must be a mapping.", {"path": path}
            )

        operations: List[Operation] = []
        for key, raw_op in raw_item.items():
            if key not in _ALLOWED_METHODS:
                continue
            operation: Operation = _parse_operation(path, key, raw_op, shared_params)

            location: str = f"{key.upper()} {path}"
            if operation.operation_id in seen_ids:
                raise MalformedSpecificationError(
                    f"Duplicate operationId '{operation.operation_id}' "
                    f"({seen_ids[operation.operation_id]} and {location}).",
                    {
                        "operation_id": operation.operation_id,
                        "first": seen_ids[operation.operation_id],
                        "second": location,
                    },
                )
            seen_ids[operation.operation_id] = location
            operations.append(operation)

        path_items.append(
            PathItem(
                path=str(path),
                operations=operations,
                service=_service_name(raw_item.get("x-service")),
                middleware=normalize_middleware(raw_item.get("x-middleware"), str(path)),
            )
        )

    info: Mapping[str, Any] = raw.get("info") or {}
    spec: Specification = Specification(
        title=str(info.get("title") or ""),
        version=str(info.get("version") or ""),
        paths=path_items,
        schemas=parse_schemas(components.get("schemas")),
        security_schemes=dict(components.get("securitySchemes") or {}),
        security=_security_requirements(raw.get("security"), "<root>"),
    )

    logger.info(
        "Extracted %d paths, %d operations, %d schemas.",
        len(spec.paths),
        spec.operation_count,
        len(spec.schemas or {}),
    )
    return spec


def extract_operations(spec: Specification) -> List[Tuple[PathItem, Operation]]:
    """Flat, ordered (PathItem, Operation) list."""
    return spec.iter_operations()


__all__: List[str] = [
    "load_spec_file",
    "parse_specification",
    "parse_schemas",
    "normalize_middleware",
    "extract_operations",
]

logger.debug("specforge.extractor loaded.")
