# File: specforge/utils.py
"""
SpecForge - Utility Functions & Helpers
=========================================
String canonicalization, reference parsing, SQL literal quoting and a small
profiling timer shared by every stage of the compiler.

Naming contract:
    Table names (schema compiler) and resource names (route compiler) are
    both produced by ``canonical_name``.  Nothing else in the package may
    derive either name, which keeps the schema and route artifacts agreeing
    on how ``OrderLine`` / ``order-lines`` / ``orderLines`` are spelled.

All string-conversion functions are ``lru_cache``-decorated: the same names
are converted many times during a single compilation run.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import re
import time
from typing import Any, FrozenSet, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)

# SQL words that must be quoted when used as a table or column name
SQL_RESERVED_WORDS: FrozenSet[str] = frozenset(
    {
        "select", "insert", "update", "delete", "drop", "create", "alter",
        "table", "column", "index", "from", "where", "join", "inner",
        "outer", "left", "right", "on", "and", "or", "not", "null",
        "true", "false", "in", "between", "like", "is", "as", "order",
        "by", "group", "having", "limit", "offset", "union", "all",
        "distinct", "case", "when", "then", "else", "end", "exists",
        "primary", "foreign", "key", "references", "constraint", "check",
        "default", "unique", "cascade", "set", "values", "into",
        "grant", "revoke", "begin", "commit", "rollback", "transaction",
        "user", "role", "schema", "database", "trigger", "procedure",
        "function", "view", "sequence", "with", "recursive",
    }
)


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("OrderLine")
        'order_line'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("order-lines")
        'order_lines'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """Split any casing style into a tuple of lowercase words."""
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

    Examples:
        >>> to_pascal_case("order_line")
        'OrderLine'
    """
    if not name:
        return ""
    return "".join(word.capitalize() for word in _extract_words(name))


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("order_lines")
        'orderLines'
        >>> to_camel_case("get /widgets/{id}")
        'getWidgetsId'
    """
    words: Tuple[str, ...] = _extract_words(name) if name else ()
    if not words:
        return ""
    return words[0] + "".join(w.capitalize() for w in words[1:])


@functools.lru_cache(maxsize=None)
def canonical_name(name: str) -> str:
    """
    The single canonicalization rule for table and resource names.

    Both ``schema_compiler`` and ``routes`` call this; see module docstring.
    """
    return to_snake_case(name)


# ---------------------------------------------------------------------------
# Specification helpers
# ---------------------------------------------------------------------------


def ref_name(ref: str) -> str:
    """
    Return the component name a ``$ref`` points at.

    ``#/components/schemas/OrderLine`` → ``OrderLine``.  Only the name is
    read; the referenced definition is never loaded.
    """
    return ref.rstrip("/").split("/")[-1]


def ensure_list(value: Any) -> List[Any]:
    """
    Normalize a vendor-extension value to a list.

    Missing / empty → ``[]``; a list or tuple is copied; anything else is
    wrapped in a single-element list.
    """
    if isinstance(value, (list, tuple)):
        return list(value)
    if value:
        return [value]
    return []


# ---------------------------------------------------------------------------
# SQL literal helpers
# ---------------------------------------------------------------------------


def sql_quote(value: str) -> str:
    """Quote *value* as a SQL string literal, doubling single quotes."""
    return "'" + value.replace("'", "''") + "'"


def to_json_text(value: Any) -> str:
    """Compact, order-preserving JSON serialization used inside SQL text."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def quote_identifier(name: str, quote_char: str = '"') -> str:
    """Quote *name* when it collides with a SQL reserved word."""
    if name.lower() in SQL_RESERVED_WORDS:
        return f"{quote_char}{name}{quote_char}"
    return name


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling compilation steps.

    Usage:
        with Timer("compile schemas") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "SQL_RESERVED_WORDS",
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "canonical_name",
    "ref_name",
    "ensure_list",
    "sql_quote",
    "to_json_text",
    "quote_identifier",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("specforge.utils loaded.")
