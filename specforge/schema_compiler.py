# File: specforge/schema_compiler.py
"""
SpecForge - Relational Schema Compiler
=======================================
Compiles ``components.schemas`` into ``CREATE TABLE`` DDL, one junction
migration per array-of-``$ref`` property, and optional example ``INSERT``
rows.

Per object schema, in declared order:

1. **Junction detection** through a single replaceable predicate
   (``is_junction_schema`` by default).  Junction tables do not get the
   standard columns.
2. **Standard columns** ``_id`` and ``created_at`` come first on every other
   table; properties with those names are skipped.
3. **Properties**:
     - ``$ref``            → key-typed column + ``FOREIGN KEY``
     - array of ``$ref``   → no column; a ``Migration`` creating
                             ``<owner>_<target>``
     - anything else       → typed column (``specforge.dialects``) with
                             ``NOT NULL`` / ``DEFAULT`` / enum ``CHECK``
   A ``description`` is written as a ``--`` comment above its column.
4. **Example row** from ``example`` / ``items.example`` values.

The compiler never follows a ``$ref`` into the referenced schema; only the
reference's name is read.  Output is byte-identical for identical input.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from specforge.dialects import (
    DialectProfile,
    format_default,
    format_example,
    get_profile,
    sql_type,
)
from specforge.errors import MalformedSpecificationError
from specforge.models import (
    Column,
    CompilationContext,
    ForeignKey,
    Migration,
    SchemaArtifact,
    SchemaDefinition,
    Table,
)
from specforge.utils import canonical_name, ref_name, sql_quote

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.schema_compiler")

RESERVED_COLUMNS: Tuple[str, str] = ("_id", "created_at")
EXAMPLE_HEADER: str = "-- EXAMPLE FROM OpenAPI SPECIFICATION"

JunctionPredicate = Callable[[str, SchemaDefinition], bool]


# ---------------------------------------------------------------------------
# Junction detection
# ---------------------------------------------------------------------------


def looks_like_junction(name: str, schema: SchemaDefinition) -> bool:
    """Naming heuristic: ``_`` in the name and an array-of-``$ref`` property."""
    return "_" in name and any(
        prop.is_array_of_ref for prop in schema.properties.values()
    )


def is_junction_schema(name: str, schema: SchemaDefinition) -> bool:
    """Default predicate: an explicit ``x-junction`` wins over the heuristic."""
    if schema.x_junction is not None:
        return schema.x_junction
    return looks_like_junction(name, schema)


# ---------------------------------------------------------------------------
# Column helpers
# ---------------------------------------------------------------------------


def _standard_columns(profile: DialectProfile) -> List[Column]:
    return [
        Column(
            name="_id",
            sql_type=profile.key_type,
            not_null=True,
            primary_key=True,
            default_sql=profile.id_default,
            definition=profile.id_column,
        ),
        Column(
            name="created_at",
            sql_type=profile.created_at_type,
            not_null=True,
            default_sql=profile.created_at_default,
            definition=profile.created_at_column,
        ),
    ]


def _comment(prop: SchemaDefinition) -> Optional[str]:
    if not prop.description:
        return None
    return " ".join(prop.description.split())


def _enum_check(column_sql: str, prop: SchemaDefinition) -> Optional[str]:
    if not prop.enum or not all(isinstance(v, str) for v in prop.enum):
        return None
    values: str = ",".join(sql_quote(v) for v in prop.enum)
    return f"CHECK ({column_sql} IN ({values}))"


def _value_column(
    prop_name: str,
    prop: SchemaDefinition,
    required: bool,
    profile: DialectProfile,
) -> Column:
    column_sql: str = profile.quote(prop_name)
    col_type: str = sql_type(prop.primary_type, profile, prop.format)
    parts: List[str] = [column_sql, col_type]

    if required:
        parts.append("NOT NULL")

    default_sql: Optional[str] = None
    if prop.has_default:
        default_sql = format_default(prop.default, profile)
        parts.append(f"DEFAULT {default_sql}")

    check: Optional[str] = _enum_check(column_sql, prop)
    if check:
        parts.append(check)

    return Column(
        name=prop_name,
        sql_type=col_type,
        not_null=required,
        default_sql=default_sql,
        check=check,
        comment=_comment(prop),
        definition=" ".join(parts),
    )


def _reference_column(
    prop_name: str,
    prop: SchemaDefinition,
    required: bool,
    profile: DialectProfile,
) -> Column:
    parts: List[str] = [profile.quote(prop_name), profile.key_type]
    if required:
        parts.append("NOT NULL")
    return Column(
        name=prop_name,
        sql_type=profile.key_type,
        not_null=required,
        comment=_comment(prop),
        definition=" ".join(parts),
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_create_table(
    table_name: str,
    columns: List[Column],
    foreign_keys: List[ForeignKey],
    profile: DialectProfile,
) -> str:
    """Render ``CREATE TABLE IF NOT EXISTS`` for one table."""
    entries: List[str] = []
    for column in columns:
        if column.comment:
            entries.append(f"  -- {column.comment}\n  {column.definition}")
        else:
            entries.append(f"  {column.definition}")
    for fk in foreign_keys:
        entries.append(
            f"  FOREIGN KEY ({profile.quote(fk.column)}) REFERENCES "
            f"{profile.quote(fk.referenced_table)}({fk.referenced_column})"
        )
    body: str = ",\n".join(entries)
    return f"CREATE TABLE IF NOT EXISTS {profile.quote(table_name)} (\n{body}\n);"


def render_example_row(
    table_name: str,
    schema: SchemaDefinition,
    columns: List[Column],
    profile: DialectProfile,
) -> Optional[str]:
    """``INSERT`` built from the examples of properties that became columns."""
    emitted: List[str] = [c.name for c in columns]
    names: List[str] = []
    values: List[str] = []

    for prop_name, prop in schema.properties.items():
        if prop_name in RESERVED_COLUMNS or prop_name not in emitted:
            continue
        if prop.has_example:
            example = prop.example
        elif prop.items is not None and prop.items.has_example:
            example = prop.items.example
        else:
            continue
        names.append(profile.quote(prop_name))
        values.append(format_example(example))

    if not names:
        return None
    return (
        f"INSERT INTO {profile.quote(table_name)} ({', '.join(names)})\n"
        f"  VALUES ({', '.join(values)});"
    )


def render_junction_migration(
    owner_table: str,
    target_table: str,
    junction_table: str,
    profile: DialectProfile,
    owner_keyed: bool = True,
) -> Tuple[str, str, str]:
    """
    Return ``(sql, owner_column, target_column)`` for a junction table.

    A junction owner has no ``_id`` column, so with ``owner_keyed=False``
    the owner column is a plain NOT NULL key without ``REFERENCES``.
    """
    owner_col: str = f"{owner_table}_id"
    target_col: str = f"{target_table}_id"
    if owner_col == target_col:
        target_col = f"related_{target_table}_id"

    owner_ref: str = (
        f" REFERENCES {profile.quote(owner_table)}(_id)" if owner_keyed else " NOT NULL"
    )
    sql: str = (
        f"CREATE TABLE IF NOT EXISTS {profile.quote(junction_table)} (\n"
        f"  {owner_col} {profile.key_type}{owner_ref},\n"
        f"  {target_col} {profile.key_type} REFERENCES {profile.quote(target_table)}(_id),\n"
        f"  {profile.created_at_column},\n"
        f"  PRIMARY KEY ({owner_col}, {target_col})\n"
        f");"
    )
    return sql, owner_col, target_col


# ---------------------------------------------------------------------------
# Per-schema compilation
# ---------------------------------------------------------------------------


def compile_table(
    name: str,
    schema: SchemaDefinition,
    profile: DialectProfile,
    junction: bool = False,
) -> Tuple[Table, List[Migration]]:
    """Compile one object schema into its Table and relation Migrations."""
    table_name: str = canonical_name(name)
    columns: List[Column] = [] if junction else _standard_columns(profile)
    foreign_keys: List[ForeignKey] = []
    migrations: List[Migration] = []

    for prop_name, prop in schema.properties.items():
        if not junction and prop_name in RESERVED_COLUMNS:
            logger.debug("%s.%s shadows a standard column; skipped.", name, prop_name)
            continue

        required: bool = prop.required is True or schema.requires(prop_name)

        if prop.ref is not None:
            target: str = ref_name(prop.ref)
            columns.append(_reference_column(prop_name, prop, required, profile))
            foreign_keys.append(
                ForeignKey(
                    column=prop_name,
                    referenced_table=canonical_name(target),
                    source_schema=name,
                    target_schema=target,
                )
            )
        elif prop.is_array_of_ref:
            target = ref_name(prop.items.ref)  # type: ignore[union-attr]
            target_table: str = canonical_name(target)
            junction_table: str = f"{table_name}_{target_table}"
            sql, _, _ = render_junction_migration(
                table_name, target_table, junction_table, profile,
                owner_keyed=not junction,
            )
            migrations.append(
                Migration(
                    name=f"add_{table_name}_relations",
                    owner_table=table_name,
                    owner_keyed=not junction,
                    referenced_table=target_table,
                    junction_table=junction_table,
                    property_name=prop_name,
                    source_schema=name,
                    target_schema=target,
                    sql=sql,
                )
            )
        else:
            columns.append(_value_column(prop_name, prop, required, profile))

    sql_text: str = ""
    example_sql: Optional[str] = None
    if columns:
        sql_text = render_create_table(table_name, columns, foreign_keys, profile)
        example_sql = render_example_row(table_name, schema, columns, profile)
        if example_sql:
            sql_text = f"{sql_text}\n\n{EXAMPLE_HEADER}\n{example_sql}"
    else:
        logger.debug("Junction schema %s has no columns; no CREATE TABLE.", name)

    table: Table = Table(
        name=table_name,
        schema_name=name,
        columns=columns,
        foreign_keys=foreign_keys,
        junction=junction,
        example_sql=example_sql,
        sql=sql_text,
    )
    logger.debug("Compiled %r with %d migration(s).", table, len(migrations))
    return table, migrations


def compile_schemas(
    context: CompilationContext,
    junction_predicate: JunctionPredicate = is_junction_schema,
) -> SchemaArtifact:
    """
    Compile every object schema of the context's Specification.

    Raises:
        MalformedSpecificationError: ``components.schemas`` is absent.
    """
    schemas = context.specification.schemas
    if schemas is None:
        raise MalformedSpecificationError(
            "Schema compilation requested but the specification has no "
            "'components.schemas'.",
            {"location": "components.schemas"},
        )

    profile: DialectProfile = get_profile(context.dialect)
    tables: List[Table] = []
    migrations: List[Migration] = []

    for name, schema in schemas.items():
        if not schema.is_object:
            logger.debug("Schema %s is not an object; no table.", name)
            continue
        table, relations = compile_table(
            name, schema, profile, junction=junction_predicate(name, schema)
        )
        tables.append(table)
        migrations.extend(relations)

    logger.info(
        "Compiled %d tables and %d migrations for dialect '%s'.",
        len(tables),
        len(migrations),
        profile.name,
    )
    return SchemaArtifact(dialect=profile.name, tables=tables, migrations=migrations)


__all__: List[str] = [
    "RESERVED_COLUMNS",
    "EXAMPLE_HEADER",
    "JunctionPredicate",
    "looks_like_junction",
    "is_junction_schema",
    "render_create_table",
    "render_example_row",
    "render_junction_migration",
    "compile_table",
    "compile_schemas",
]

logger.debug("specforge.schema_compiler loaded.")
