# File: specforge/rules.py
"""
SpecForge - Validation Config Deriver
======================================
Builds the per-operation request contract handed to the runtime validator
registry.  Nothing here validates data.

Each ``ValidationConfig`` holds four schemas:

    path / query / headers  ``{type: object, properties: {...}, required: [...]}``
                            built from that location's parameters; always
                            present, empty when nothing contributes.
    body                    the ``application/json`` request-body schema,
                            verbatim, or ``None``.

Header names are lower-cased.  Cookie parameters are not part of the
contract.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from specforge.models import (
    CompilationContext,
    Operation,
    ParameterLocation,
    ValidationConfig,
)

logger: logging.Logger = logging.getLogger("specforge.rules")

_BUCKETS: Dict[str, str] = {
    ParameterLocation.PATH.value: "path",
    ParameterLocation.QUERY.value: "query",
    ParameterLocation.HEADER.value: "headers",
}


def _object_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


def request_body_schema(operation: Operation) -> Optional[Dict[str, Any]]:
    """The ``application/json`` schema of the request body, if declared."""
    if not operation.request_body:
        return None
    content: Dict[str, Any] = operation.request_body.get("content") or {}
    media: Dict[str, Any] = content.get("application/json") or {}
    schema: Any = media.get("schema")
    return copy.deepcopy(schema) if schema else None


def derive_validation_config(operation: Operation) -> ValidationConfig:
    buckets: Dict[str, Dict[str, Any]] = {
        "path": _object_schema(),
        "query": _object_schema(),
        "headers": _object_schema(),
    }

    for param in operation.parameters:
        bucket_name: Optional[str] = _BUCKETS.get(param.location)
        if bucket_name is None:
            logger.debug(
                "%s: %s parameter '%s' not validated.",
                operation.operation_id, param.location, param.name,
            )
            continue

        name: str = param.name.lower() if bucket_name == "headers" else param.name
        bucket: Dict[str, Any] = buckets[bucket_name]
        bucket["properties"][name] = copy.deepcopy(param.json_schema)
        if param.required and name not in bucket["required"]:
            bucket["required"].append(name)

    return ValidationConfig(
        path=buckets["path"],
        query=buckets["query"],
        headers=buckets["headers"],
        body=request_body_schema(operation),
    )


def derive_validation_configs(context: CompilationContext) -> Dict[str, ValidationConfig]:
    """operationId → ValidationConfig, in source order."""
    configs: Dict[str, ValidationConfig] = {}
    for _, operation in context.specification.iter_operations():
        configs[operation.operation_id] = derive_validation_config(operation)
    logger.info("Derived %d validation configs.", len(configs))
    return configs


__all__: List[str] = [
    "request_body_schema",
    "derive_validation_config",
    "derive_validation_configs",
]

logger.debug("specforge.rules loaded.")
