# File: specforge/routes.py
"""
SpecForge - Route & Middleware Compiler
========================================
Groups operations into resources and emits one ``RouteRegistration`` per
operation, in source order.

A registration never binds a handler.  It carries *lookup expressions* into
the runtime registries, always in this precedence:

    1. ``options.security.get("<operationId>")``     (auth)
    2. ``options.validation.get("<operationId>")``   (validation)
    3. ``options.middleware.get("<name>")``          (PathItem names, then
                                                      Operation names)

Resources are the canonical name of the first static URL segment, computed
with the same function that names tables.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Union

from specforge.models import (
    CompilationContext,
    LookupKind,
    MiddlewareLookup,
    Operation,
    PathItem,
    ResponseStub,
    RouteArtifact,
    RouteRegistration,
    RouterStyle,
    Specification,
)
from specforge.utils import canonical_name, to_camel_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.routes")

_PATH_PARAM_RE: re.Pattern[str] = re.compile(r"\{([^}]+)\}")

_PARAM_SYNTAX: Dict[str, str] = {
    RouterStyle.EXPRESS.value: r":\1",
    RouterStyle.FLASK.value: r"<\1>",
    RouterStyle.FASTAPI.value: r"{\1}",
}

ROOT_RESOURCE: str = "root"
_SUCCESS_CODES = ("200", "201")


# ---------------------------------------------------------------------------
# Path handling
# ---------------------------------------------------------------------------


def translate_path(template: str, style: Union[RouterStyle, str] = RouterStyle.EXPRESS) -> str:
    """
    Rewrite every ``{x}`` token into the router's parameter syntax.

    Examples:
        >>> translate_path("/widgets/{id}", "express")
        '/widgets/:id'
        >>> translate_path("/widgets/{id}", "flask")
        '/widgets/<id>'
    """
    key: str = style.value if isinstance(style, RouterStyle) else str(style).lower()
    replacement: Optional[str] = _PARAM_SYNTAX.get(key)
    if replacement is None:
        raise ValueError(
            f"Unknown router style '{style}'. "
            f"Choose from: {', '.join(_PARAM_SYNTAX)}"
        )
    return _PATH_PARAM_RE.sub(replacement, template)


def path_parameters(template: str) -> List[str]:
    """Names of the ``{x}`` tokens in a URL template, in order."""
    return _PATH_PARAM_RE.findall(template)


def resource_for(template: str) -> str:
    """Canonical name of the first static segment, ``root`` when none."""
    for segment in template.split("/"):
        if not segment or _PATH_PARAM_RE.search(segment):
            continue
        name: str = canonical_name(segment)
        if name:
            return name
    return ROOT_RESOURCE


def default_service(resource: str) -> str:
    return f"{to_camel_case(resource)}Service"


# ---------------------------------------------------------------------------
# Per-operation resolution
# ---------------------------------------------------------------------------


def resolve_response_stub(operation: Operation) -> ResponseStub:
    """
    Stub answered by the generated handler.

    The first of ``200`` / ``201`` that has ``application/json`` content
    decides: a non-null ``example`` wins, else the first ``examples`` entry's
    ``value``.  Anything else yields a 204 no-content stub.
    """
    for code in _SUCCESS_CODES:
        response: Any = operation.responses.get(code)
        if not isinstance(response, Mapping):
            continue
        media: Any = (response.get("content") or {}).get("application/json")
        if not isinstance(media, Mapping):
            continue

        if media.get("example") is not None:
            return ResponseStub(
                status_code=int(code), example=media["example"], no_content=False
            )
        examples: Any = media.get("examples")
        if isinstance(examples, Mapping) and examples:
            first: Any = next(iter(examples.values()))
            if isinstance(first, Mapping) and first.get("value") is not None:
                return ResponseStub(
                    status_code=int(code), example=first["value"], no_content=False
                )
        break

    return ResponseStub()


def resolve_service(item: PathItem, operation: Operation, resource: str) -> str:
    return operation.service or item.service or default_service(resource)


def resolve_security(spec: Specification, operation: Operation) -> List[Dict[str, List[str]]]:
    if operation.security is not None:
        return list(operation.security)
    return list(spec.security or [])


def build_lookups(operation_id: str, middleware: List[str]) -> List[MiddlewareLookup]:
    """Auth, validation, then each middleware name; never reordered."""
    key: str = json.dumps(operation_id)
    lookups: List[MiddlewareLookup] = [
        MiddlewareLookup(
            kind=LookupKind.AUTH,
            key=operation_id,
            expression=f"options.security.get({key})",
        ),
        MiddlewareLookup(
            kind=LookupKind.VALIDATION,
            key=operation_id,
            expression=f"options.validation.get({key})",
        ),
    ]
    for name in middleware:
        lookups.append(
            MiddlewareLookup(
                kind=LookupKind.MIDDLEWARE,
                key=name,
                expression=f"options.middleware.get({json.dumps(name)})",
            )
        )
    return lookups


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


def compile_routes(context: CompilationContext) -> List[RouteArtifact]:
    """One RouteArtifact per resource, resources in first-appearance order."""
    spec: Specification = context.specification
    style: str = context.router_style
    grouped: Dict[str, List[RouteRegistration]] = {}

    for item, operation in spec.iter_operations():
        resource: str = resource_for(item.path)
        middleware: List[str] = [*item.middleware, *operation.middleware]

        registration: RouteRegistration = RouteRegistration(
            method=operation.method,
            path=item.path,
            router_path=translate_path(item.path, style),
            operation_id=operation.operation_id,
            service=resolve_service(item, operation, resource),
            security=resolve_security(spec, operation),
            middleware=middleware,
            lookups=build_lookups(operation.operation_id, middleware),
            response=resolve_response_stub(operation),
        )
        grouped.setdefault(resource, []).append(registration)
        logger.debug(
            "%s %s → %s (%s)",
            operation.method.upper(),
            item.path,
            registration.router_path,
            resource,
        )

    artifacts: List[RouteArtifact] = [
        RouteArtifact(
            resource=resource,
            service=default_service(resource),
            registrations=registrations,
        )
        for resource, registrations in grouped.items()
    ]
    logger.info(
        "Compiled %d registrations into %d resources (%s style).",
        sum(len(a.registrations) for a in artifacts),
        len(artifacts),
        style,
    )
    return artifacts


__all__: List[str] = [
    "ROOT_RESOURCE",
    "translate_path",
    "path_parameters",
    "resource_for",
    "default_service",
    "resolve_response_stub",
    "resolve_service",
    "resolve_security",
    "build_lookups",
    "compile_routes",
]

logger.debug("specforge.routes loaded.")
