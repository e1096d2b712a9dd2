# File: specforge/templates.py
"""
SpecForge - Artifact Renderer
==============================
Turns a ``CompilationResult`` into file contents, keyed by relative path:

    schema.sql                    DDL of every emitted table
    migrations/NNNN_<name>.sql    one file per junction migration, in order
    validation.json               operationId → {path, query, headers, body}
    routes.json                   every RouteArtifact, serialised
    routers/<resource>.py         one FastAPI router module per resource
    routers/__init__.py           re-exports every ``build_router``

Generated router modules never import a handler.  Each route's
``dependencies`` evaluate the emitted lookup expressions against an
``options`` object supplied at run time (``options.security``,
``options.validation``, ``options.middleware``).

All string assembly uses ``List[str]`` + ``"\\n".join()``.  Output contains
no timestamps, so rendering is deterministic.
"""

from __future__ import annotations

import json
import keyword
import logging
import pprint
from typing import Any, Dict, List, Optional

from specforge.models import (
    CompilationResult,
    RouteArtifact,
    RouteRegistration,
    RouterStyle,
)
from specforge.routes import translate_path
from specforge.utils import count_lines, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.templates")

_INDENT: str = "    "
_DOUBLE_INDENT: str = _INDENT * 2
_TRIPLE_INDENT: str = _INDENT * 3


def python_identifier(name: str, prefix: str = "r") -> str:
    """Make *name* usable as a Python module / function name."""
    ident: str = to_snake_case(name) or prefix
    if not ident.isidentifier() or keyword.iskeyword(ident):
        ident = f"{prefix}_{ident}"
    return ident


class ArtifactRenderer:
    """
    Stateless renderer for one ``CompilationResult``.

    Usage::

        files = ArtifactRenderer(result, title="Widgets API").render_all()
    """

    def __init__(self, result: CompilationResult, title: str = "") -> None:
        self._result: CompilationResult = result
        self._title: str = title or "untitled specification"

    # ===================================================================
    # 1. Relational schema
    # ===================================================================

    def render_schema_sql(self) -> Optional[str]:
        artifact = self._result.schema_artifact
        if artifact is None:
            return None
        lines: List[str] = [
            f"-- Generated by SpecForge from {self._title}",
            f"-- Dialect: {artifact.dialect}",
            "",
            artifact.ddl,
        ]
        return "\n".join(lines) + "\n"

    def render_migrations(self) -> Dict[str, str]:
        """``migrations/0001_add_order_relations.sql`` → SQL, in order."""
        artifact = self._result.schema_artifact
        files: Dict[str, str] = {}
        if artifact is None:
            return files
        for index, migration in enumerate(artifact.migrations, start=1):
            lines: List[str] = [
                f"-- Migration {index:04d}: {migration.name}",
                f"-- {migration.source_schema}.{migration.property_name} → "
                f"{migration.target_schema}",
                "",
                migration.sql,
            ]
            files[f"migrations/{index:04d}_{migration.name}.sql"] = "\n".join(lines) + "\n"
        return files

    # ===================================================================
    # 2. Validation configs
    # ===================================================================

    def render_validation_json(self) -> str:
        payload: Dict[str, Any] = {
            operation_id: config.to_dict()
            for operation_id, config in self._result.validation.items()
        }
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    # ===================================================================
    # 3. Routes
    # ===================================================================

    def render_routes_json(self) -> str:
        payload: List[Dict[str, Any]] = [
            artifact.model_dump(mode="json") for artifact in self._result.routes
        ]
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    def render_router_module(self, artifact: RouteArtifact) -> str:
        """A FastAPI module exposing ``build_router(options)``."""
        lines: List[str] = []
        lines.append('"""')
        lines.append(
            f"FastAPI router for the '{artifact.resource}' resource "
            f"(service: {artifact.service})."
        )
        lines.append("Auto-generated by SpecForge.")
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append("from typing import Any, Callable, List, Optional")
        lines.append("")
        lines.append("from fastapi import APIRouter, Depends, Request, Response")
        lines.append("")
        lines.append("")
        lines.append(
            "def _depends(handler: Optional[Callable[..., Any]]) -> List[Any]:"
        )
        lines.append(f'{_INDENT}"""Missing registry entries are skipped at run time."""')
        lines.append(f"{_INDENT}return [Depends(handler)] if handler is not None else []")
        lines.append("")
        lines.append("")
        lines.append("def build_router(options: Any) -> APIRouter:")
        lines.append(
            f'{_INDENT}"""Register every {artifact.resource} route against '
            f'*options* registries."""'
        )
        lines.append(
            f"{_INDENT}router = APIRouter(tags=[{json.dumps(artifact.resource)}])"
        )

        for registration in artifact.registrations:
            lines.append("")
            lines.extend(self._render_route(registration))

        lines.append("")
        lines.append(f"{_INDENT}return router")
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug(
            "Rendered router for '%s': %d lines.",
            artifact.resource,
            count_lines(content),
        )
        return content

    def _render_route(self, registration: RouteRegistration) -> List[str]:
        stub = registration.response
        fastapi_path: str = translate_path(registration.path, RouterStyle.FASTAPI)
        handler: str = python_identifier(registration.operation_id, prefix="op")

        lines: List[str] = []
        lines.append(f"{_INDENT}@router.{registration.method}(")
        lines.append(f"{_DOUBLE_INDENT}{json.dumps(fastapi_path)},")
        lines.append(
            f"{_DOUBLE_INDENT}operation_id={json.dumps(registration.operation_id)},"
        )
        lines.append(f"{_DOUBLE_INDENT}status_code={stub.status_code},")
        lines.append(f"{_DOUBLE_INDENT}dependencies=[")
        for lookup in registration.lookups:
            lines.append(f"{_TRIPLE_INDENT}*_depends({lookup.expression}),")
        lines.append(f"{_DOUBLE_INDENT}],")
        lines.append(f"{_INDENT})")
        lines.append(f"{_INDENT}async def {handler}(request: Request) -> Any:")
        lines.append(
            f'{_DOUBLE_INDENT}"""{registration.method.upper()} '
            f'{_docstring_safe(registration.path)} '
            f'(service: {_docstring_safe(registration.service)})."""'
        )
        if stub.no_content:
            lines.append(f"{_DOUBLE_INDENT}return Response(status_code=204)")
        else:
            example: str = pprint.pformat(stub.example, sort_dicts=False)
            lines.append(f"{_DOUBLE_INDENT}return {example}")
        return lines

    def render_routers_init(self) -> str:
        lines: List[str] = ['"""', "Generated routers.", "Auto-generated by SpecForge.", '"""', ""]
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append("from typing import Any, List")
        lines.append("")
        names: List[str] = []
        for artifact in self._result.routes:
            module: str = python_identifier(artifact.resource)
            lines.append(f"from .{module} import build_router as build_{module}_router")
            names.append(f"build_{module}_router")
        lines.append("")
        lines.append("")
        lines.append("def build_routers(options: Any) -> List[Any]:")
        lines.append(f'{_INDENT}"""Every resource router, in source order."""')
        calls: str = ", ".join(f"{name}(options)" for name in names)
        lines.append(f"{_INDENT}return [{calls}]")
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # Aggregate
    # ===================================================================

    def render_all(self) -> Dict[str, str]:
        """relative path → content for every artifact file."""
        files: Dict[str, str] = {}

        schema_sql: Optional[str] = self.render_schema_sql()
        if schema_sql is not None:
            files["schema.sql"] = schema_sql
        files.update(self.render_migrations())

        files["validation.json"] = self.render_validation_json()
        files["routes.json"] = self.render_routes_json()

        for artifact in self._result.routes:
            module: str = python_identifier(artifact.resource)
            files[f"routers/{module}.py"] = self.render_router_module(artifact)
        files["routers/__init__.py"] = self.render_routers_init()

        logger.info(
            "Rendered %d files, ~%d lines.",
            len(files),
            sum(count_lines(content) for content in files.values()),
        )
        return files


def _docstring_safe(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


__all__: List[str] = [
    "ArtifactRenderer",
    "python_identifier",
]

logger.debug("specforge.templates loaded.")
