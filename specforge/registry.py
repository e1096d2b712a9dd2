# File: specforge/registry.py
"""
SpecForge - Provider Registry
==============================
First-wins registry used by the assembly step for validation configs and
security requirements, both keyed by operationId.

A second registration for a key is rejected and recorded as a
``RegistrationConflictError``; it is never raised.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from specforge.errors import RegistrationConflictError

logger: logging.Logger = logging.getLogger("specforge.registry")

T = TypeVar("T")


class ProviderRegistry(Generic[T]):
    """Ordered name → value table that keeps the first registration."""

    __slots__ = ("name", "_entries", "_conflicts")

    def __init__(self, name: str) -> None:
        self.name: str = name
        self._entries: Dict[str, T] = {}
        self._conflicts: List[RegistrationConflictError] = []

    def register(self, key: str, value: T) -> bool:
        """Register *value* under *key*; ``False`` when rejected."""
        if key in self._entries:
            conflict = RegistrationConflictError(self.name, key)
            self._conflicts.append(conflict)
            logger.warning("%s", conflict.message)
            return False
        self._entries[key] = value
        return True

    def get(self, key: str) -> Optional[T]:
        return self._entries.get(key)

    def items(self) -> Iterator[Tuple[str, T]]:
        return iter(self._entries.items())

    def as_dict(self) -> Dict[str, T]:
        return dict(self._entries)

    @property
    def conflicts(self) -> List[RegistrationConflictError]:
        return list(self._conflicts)

    def __contains__(self, key: Any) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"<ProviderRegistry {self.name}: {len(self._entries)} entries, "
            f"{len(self._conflicts)} conflicts>"
        )


__all__: List[str] = ["ProviderRegistry"]

logger.debug("specforge.registry loaded.")
