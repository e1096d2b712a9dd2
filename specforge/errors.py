# File: specforge/errors.py
"""
SpecForge - Compiler Errors
============================
Exception types raised by the compilation pipeline.

Every fatal error is a ``ValueError`` subclass carrying a ``context`` dict
with enough information (operationId, schema name, property name, path) to
locate the offending fragment of the source specification.

Unsupported column types are deliberately *not* represented here: they
degrade to the dialect's text type (see ``specforge.dialects``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

logger: logging.Logger = logging.getLogger("specforge.errors")


class CompilerError(ValueError):
    """Base class for every fatal compilation error."""

    code: str = "COMPILER_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class MalformedSpecificationError(CompilerError):
    """
    The specification cannot be compiled as given.

    Raised for a missing ``paths`` object, a missing ``components.schemas``
    when schema compilation was requested, or a duplicated ``operationId``.
    """

    code = "MALFORMED_SPECIFICATION"


class UnresolvableReferenceError(CompilerError):
    """A reference names a component that is undefined or has no ``_id`` key."""

    code = "UNRESOLVABLE_REFERENCE"

    def __init__(
        self,
        owner: str,
        target: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        ctx: Dict[str, Any] = {"owner": owner, "target": target}
        ctx.update(context or {})
        super().__init__(
            f"'{owner}' references '{target}', which does not resolve to a "
            f"table keyed by _id.",
            ctx,
        )
        self.owner: str = owner
        self.target: str = target


class RegistrationConflictError(CompilerError):
    """
    A second registration for an already-registered key.

    Never raised by the assembly step: conflicts are recorded on the
    result and the later registration is dropped.
    """

    code = "REGISTRATION_CONFLICT"

    def __init__(self, registry: str, key: str) -> None:
        super().__init__(
            f"Duplicate {registry} registration for '{key}'; "
            f"keeping the first one.",
            {"registry": registry, "key": key},
        )
        self.registry: str = registry
        self.key: str = key


__all__: List[str] = [
    "CompilerError",
    "MalformedSpecificationError",
    "UnresolvableReferenceError",
    "RegistrationConflictError",
]

logger.debug("specforge.errors loaded.")
