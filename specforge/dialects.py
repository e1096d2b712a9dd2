# File: specforge/dialects.py
"""
SpecForge - SQL Dialect Profiles
=================================
Everything the relational schema compiler needs to know about a target
database: the (JSON type, format) → SQL type table, the key/text types, the
generated ``_id`` / ``created_at`` column definitions, boolean literal style
and identifier quoting.

Supported dialects: ``sqlite`` (default), ``postgres`` (alias
``postgresql``) and ``mysql``.  Any other identifier falls back to an
all-text profile: property columns become ``TEXT`` and the standard columns
use the SQLite definitions.  Unrecognised JSON types or formats degrade to
the dialect's text type.  Neither case raises.

Numeric mapping: ``number`` maps to an unbounded type on every dialect
(``REAL`` / ``NUMERIC`` / ``DOUBLE``).  No scale or precision is imposed;
``format: float`` / ``format: double`` narrow it where the dialect has a
matching type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from specforge.utils import quote_identifier, sql_quote, to_json_text

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.dialects")

# ---------------------------------------------------------------------------
# Type table: json type → dialect → format → SQL type ("" = no format)
# ---------------------------------------------------------------------------

_TYPE_TABLE: Dict[str, Dict[str, Dict[str, str]]] = {
    "string": {
        "sqlite": {"": "TEXT"},
        "postgres": {
            "": "TEXT",
            "date-time": "TIMESTAMP",
            "date": "DATE",
            "time": "TIME",
            "uuid": "UUID",
        },
        "mysql": {
            "": "TEXT",
            "date-time": "DATETIME",
            "date": "DATE",
            "time": "TIME",
            "uuid": "CHAR(36)",
        },
    },
    "number": {
        "sqlite": {"": "REAL"},
        "postgres": {"": "NUMERIC", "float": "REAL", "double": "DOUBLE PRECISION"},
        "mysql": {"": "DOUBLE", "float": "FLOAT", "double": "DOUBLE"},
    },
    "integer": {
        "sqlite": {"": "INTEGER"},
        "postgres": {"": "INTEGER", "int32": "INTEGER", "int64": "BIGINT"},
        "mysql": {"": "INT", "int32": "INT", "int64": "BIGINT"},
    },
    "boolean": {
        "sqlite": {"": "INTEGER(1)"},
        "postgres": {"": "BOOLEAN"},
        "mysql": {"": "BOOLEAN"},
    },
    "array": {
        "sqlite": {"": "TEXT"},
        "postgres": {"": "JSONB"},
        "mysql": {"": "JSON"},
    },
    "object": {
        "sqlite": {"": "TEXT"},
        "postgres": {"": "JSONB"},
        "mysql": {"": "JSON"},
    },
}

_SQLITE_UUID_EXPR: str = (
    "lower(hex(randomblob(4))) || '-' || lower(hex(randomblob(2))) || '-4' || "
    "substr(lower(hex(randomblob(2))),2) || '-' || "
    "substr('89ab', abs(random()) % 4 + 1, 1) || "
    "substr(lower(hex(randomblob(2))),2) || '-' || lower(hex(randomblob(6)))"
)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DialectProfile:
    """Static description of one SQL dialect."""

    name: str
    key_type: str
    text_type: str
    native_boolean: bool
    quote_char: str
    id_default: str
    created_at_type: str
    created_at_default: str
    supported: bool = True
    aliases: List[str] = field(default_factory=list)

    @property
    def id_column(self) -> str:
        return f"_id {self.key_type} PRIMARY KEY DEFAULT {self.id_default}"

    @property
    def created_at_column(self) -> str:
        return (
            f"created_at {self.created_at_type} NOT NULL "
            f"DEFAULT {self.created_at_default}"
        )

    def quote(self, identifier: str) -> str:
        """Quote *identifier* if it is a reserved word."""
        return quote_identifier(identifier, self.quote_char)


_PROFILES: Dict[str, DialectProfile] = {
    "sqlite": DialectProfile(
        name="sqlite",
        key_type="TEXT",
        text_type="TEXT",
        native_boolean=False,
        quote_char='"',
        id_default=f"({_SQLITE_UUID_EXPR})",
        created_at_type="TEXT",
        created_at_default="(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))",
    ),
    "postgres": DialectProfile(
        name="postgres",
        key_type="TEXT",
        text_type="TEXT",
        native_boolean=True,
        quote_char='"',
        id_default="gen_random_uuid()::text",
        created_at_type="TIMESTAMPTZ",
        created_at_default="now()",
        aliases=["postgresql"],
    ),
    "mysql": DialectProfile(
        name="mysql",
        key_type="VARCHAR(36)",
        text_type="TEXT",
        native_boolean=True,
        quote_char="`",
        id_default="(UUID())",
        created_at_type="DATETIME(3)",
        created_at_default="CURRENT_TIMESTAMP(3)",
    ),
}

_ALIASES: Dict[str, str] = {
    alias: profile.name for profile in _PROFILES.values() for alias in profile.aliases
}

SUPPORTED_DIALECTS: List[str] = list(_PROFILES)


def is_supported_dialect(dialect: str) -> bool:
    key: str = dialect.strip().lower()
    return key in _PROFILES or key in _ALIASES


def get_profile(dialect: str) -> DialectProfile:
    """
    Return the profile for *dialect*.

    Unknown dialects get an all-text profile named after the request, with
    SQLite standard columns, and a WARNING is logged.
    """
    key: str = dialect.strip().lower()
    key = _ALIASES.get(key, key)
    profile: Optional[DialectProfile] = _PROFILES.get(key)
    if profile is not None:
        return profile

    logger.warning(
        "Unsupported SQL dialect '%s'; every property column falls back to TEXT.",
        dialect,
    )
    base: DialectProfile = _PROFILES["sqlite"]
    return DialectProfile(
        name=key,
        key_type=base.key_type,
        text_type=base.text_type,
        native_boolean=False,
        quote_char=base.quote_char,
        id_default=base.id_default,
        created_at_type=base.created_at_type,
        created_at_default=base.created_at_default,
        supported=False,
    )


# ---------------------------------------------------------------------------
# Type mapping & literals
# ---------------------------------------------------------------------------


def sql_type(json_type: Optional[str], profile: DialectProfile, fmt: Optional[str] = None) -> str:
    """
    Map a JSON type (+ optional format) to the profile's SQL type.

    Unknown types, formats and dialects all resolve to the text type.
    """
    if not profile.supported:
        return profile.text_type

    by_dialect: Optional[Dict[str, Dict[str, str]]] = _TYPE_TABLE.get(json_type or "")
    if by_dialect is None:
        logger.debug(
            "No SQL mapping for JSON type %r on %s; using %s.",
            json_type, profile.name, profile.text_type,
        )
        return profile.text_type

    by_format: Dict[str, str] = by_dialect[profile.name]
    return by_format.get(fmt or "", by_format[""])


def format_default(value: Any, profile: DialectProfile) -> str:
    """Render a declared ``default`` as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        if profile.native_boolean:
            return "TRUE" if value else "FALSE"
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, dict)):
        return sql_quote(to_json_text(value))
    return sql_quote(str(value))


def format_example(value: Any) -> str:
    """Render an ``example`` value as a quoted text literal."""
    if isinstance(value, bool):
        return sql_quote("true" if value else "false")
    if isinstance(value, (list, dict)):
        return sql_quote(to_json_text(value))
    if value is None:
        return "NULL"
    return sql_quote(str(value))


__all__: List[str] = [
    "DialectProfile",
    "SUPPORTED_DIALECTS",
    "is_supported_dialect",
    "get_profile",
    "sql_type",
    "format_default",
    "format_example",
]

logger.debug("specforge.dialects loaded.")
