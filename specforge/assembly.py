# File: specforge/assembly.py
"""
SpecForge - Artifact Assembly
==============================
Merges the three compiler outputs into one ``CompilationResult`` after
cross-checking them:

    - every table a foreign key or junction migration references is
      emitted with an ``_id`` column (``UnresolvableReferenceError``
      otherwise, naming owner and target);
    - table names and resource names come from ``canonical_name``;
    - validation configs and security requirements are registered per
      operationId in first-wins registries; duplicates are recorded as
      conflicts and logged, never raised.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from specforge.errors import CompilerError, UnresolvableReferenceError
from specforge.models import (
    CompilationContext,
    CompilationResult,
    RouteArtifact,
    SchemaArtifact,
    ValidationConfig,
)
from specforge.registry import ProviderRegistry
from specforge.routes import resource_for
from specforge.utils import canonical_name

logger: logging.Logger = logging.getLogger("specforge.assembly")


# ---------------------------------------------------------------------------
# Cross-artifact checks
# ---------------------------------------------------------------------------


def check_references(schema_artifact: SchemaArtifact) -> None:
    """
    Every table named by a ``REFERENCES`` clause must be emitted and keyed
    by ``_id``.  Junction tables have no ``_id`` and never qualify.
    """
    keyed: Set[str] = {
        t.name for t in schema_artifact.tables if t.sql and "_id" in t.column_names
    }

    for table in schema_artifact.tables:
        for fk in table.foreign_keys:
            if fk.referenced_table not in keyed:
                raise UnresolvableReferenceError(
                    f"{fk.source_schema}.{fk.column}",
                    fk.target_schema,
                    {"schema": fk.source_schema, "property": fk.column},
                )

    for migration in schema_artifact.migrations:
        targets: List[Tuple[str, str]] = [
            (migration.referenced_table, migration.target_schema)
        ]
        if migration.owner_keyed:
            targets.insert(0, (migration.owner_table, migration.source_schema))
        for table_name, target in targets:
            if table_name not in keyed:
                raise UnresolvableReferenceError(
                    f"{migration.source_schema}.{migration.property_name}",
                    target,
                    {
                        "schema": migration.source_schema,
                        "property": migration.property_name,
                        "migration": migration.name,
                    },
                )


def check_naming(
    schema_artifact: Optional[SchemaArtifact],
    routes: List[RouteArtifact],
) -> None:
    """Tables and resources must both be spelled by ``canonical_name``."""
    if schema_artifact is not None:
        for table in schema_artifact.tables:
            if table.name != canonical_name(table.schema_name):
                raise CompilerError(
                    f"Table '{table.name}' is not the canonical name of "
                    f"schema '{table.schema_name}'.",
                    {"schema": table.schema_name, "table": table.name},
                )

    tables: Set[str] = (
        {t.name for t in schema_artifact.tables} if schema_artifact else set()
    )
    for artifact in routes:
        for registration in artifact.registrations:
            expected: str = resource_for(registration.path)
            if artifact.resource != expected:
                raise CompilerError(
                    f"Route '{registration.path}' grouped under "
                    f"'{artifact.resource}', expected '{expected}'.",
                    {"operation_id": registration.operation_id},
                )
        if artifact.resource in tables:
            logger.debug("Resource '%s' maps to table of the same name.", artifact.resource)


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def assemble(
    context: CompilationContext,
    schema_artifact: Optional[SchemaArtifact],
    validation: Dict[str, ValidationConfig],
    routes: List[RouteArtifact],
) -> CompilationResult:
    """
    Combine the artifacts of one run.

    Raises:
        UnresolvableReferenceError: a relation targets a missing table.
    """
    if schema_artifact is not None:
        check_references(schema_artifact)
    check_naming(schema_artifact, routes)

    validators: ProviderRegistry[ValidationConfig] = ProviderRegistry("validation")
    for operation_id, config in validation.items():
        validators.register(operation_id, config)

    security: ProviderRegistry[List[Dict[str, List[str]]]] = ProviderRegistry("security")
    for artifact in routes:
        for registration in artifact.registrations:
            security.register(registration.operation_id, registration.security)
            if registration.operation_id not in validators:
                logger.warning(
                    "Operation '%s' has a route but no validation config.",
                    registration.operation_id,
                )

    conflicts = [c.to_dict() for c in validators.conflicts + security.conflicts]

    result: CompilationResult = CompilationResult(
        schema_artifact=schema_artifact,
        validation=validators.as_dict(),
        routes=routes,
        security=security.as_dict(),
        conflicts=conflicts,
    )
    logger.info(
        "Assembled %r for '%s' (%d conflicts).",
        result,
        context.specification.title or "untitled",
        len(conflicts),
    )
    return result


__all__: List[str] = ["check_references", "check_naming", "assemble"]

logger.debug("specforge.assembly loaded.")
