"""
tests/test_schema_compiler.py
Unit tests for specforge.schema_compiler and specforge.dialects.

Tests cover:
- Standard columns, property columns, NOT NULL / DEFAULT / CHECK rendering
- Foreign keys and junction migrations for array-of-$ref properties
- Junction detection (heuristic, x-junction override, custom predicate)
- Example INSERT blocks
- Dialect type mapping and the unknown-dialect TEXT fallback
- Generated SQLite DDL applied to a real database through SQLAlchemy
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable, Dict

import pytest

from specforge.compiler import compile_specification
from specforge.dialects import (
    format_default,
    format_example,
    get_profile,
    is_supported_dialect,
    sql_type,
)
from specforge.errors import MalformedSpecificationError
from specforge.models import CompilationContext, SchemaArtifact, SchemaDefinition
from specforge.schema_compiler import (
    EXAMPLE_HEADER,
    compile_schemas,
    compile_table,
    is_junction_schema,
    looks_like_junction,
    render_junction_migration,
)

ContextFactory = Callable[..., CompilationContext]


@pytest.fixture()
def sqlite_artifact(context: CompilationContext) -> SchemaArtifact:
    return compile_schemas(context)


def _definitions(artifact: SchemaArtifact, table: str) -> Dict[str, str]:
    compiled = artifact.get_table(table)
    assert compiled is not None, f"table {table} not compiled"
    return {c.name: c.definition for c in compiled.columns}


# ===========================================================================
# Tables & columns
# ===========================================================================


class TestTables:
    def test_object_schemas_become_tables(self, sqlite_artifact: SchemaArtifact) -> None:
        assert [t.name for t in sqlite_artifact.tables] == [
            "customer",
            "order",
            "order_line",
        ]
        assert sqlite_artifact.dialect == "sqlite"

    def test_standard_columns_first(self, sqlite_artifact: SchemaArtifact) -> None:
        for table in sqlite_artifact.tables:
            assert table.column_names[:2] == ["_id", "created_at"]

    def test_shadowing_property_skipped(self, sqlite_artifact: SchemaArtifact) -> None:
        customer = sqlite_artifact.get_table("customer")
        assert customer is not None
        assert customer.column_names == ["_id", "created_at", "email", "name", "vip"]

    def test_required_from_parent_list(self, sqlite_artifact: SchemaArtifact) -> None:
        assert _definitions(sqlite_artifact, "customer")["email"] == "email TEXT NOT NULL"

    def test_required_property_boolean(self, sqlite_artifact: SchemaArtifact) -> None:
        assert _definitions(sqlite_artifact, "order_line")["sku"] == "sku TEXT NOT NULL"

    def test_defaults(self, sqlite_artifact: SchemaArtifact) -> None:
        assert _definitions(sqlite_artifact, "customer")["vip"] == "vip INTEGER(1) DEFAULT 0"
        assert (
            _definitions(sqlite_artifact, "order_line")["quantity"]
            == "quantity INTEGER DEFAULT 1"
        )

    def test_enum_check(self, sqlite_artifact: SchemaArtifact) -> None:
        assert _definitions(sqlite_artifact, "order")["status"] == (
            "status TEXT DEFAULT 'pending' "
            "CHECK (status IN ('pending','paid','shipped'))"
        )

    def test_non_string_enum_has_no_check(self) -> None:
        schema = SchemaDefinition.model_validate(
            {"type": "object", "properties": {"level": {"type": "integer", "enum": [1, 2]}}}
        )
        table, _ = compile_table("Level", schema, get_profile("sqlite"))
        assert "CHECK" not in table.sql

    def test_explicit_null_default(self) -> None:
        schema = SchemaDefinition.model_validate(
            {"type": "object", "properties": {"note": {"type": "string", "default": None}}}
        )
        table, _ = compile_table("Memo", schema, get_profile("sqlite"))
        assert table.columns[-1].definition == "note TEXT DEFAULT NULL"

    def test_description_comment_flattened(self, sqlite_artifact: SchemaArtifact) -> None:
        customer = sqlite_artifact.get_table("customer")
        assert customer is not None
        assert "  -- Login e-mail address\n  email TEXT NOT NULL," in customer.sql

    def test_reserved_table_name_quoted(self, sqlite_artifact: SchemaArtifact) -> None:
        order = sqlite_artifact.get_table("order")
        assert order is not None
        assert order.sql.startswith('CREATE TABLE IF NOT EXISTS "order" (\n')

    def test_non_object_schema_skipped(self, sqlite_artifact: SchemaArtifact) -> None:
        assert sqlite_artifact.get_table("status") is None


# ===========================================================================
# References & migrations
# ===========================================================================


class TestRelations:
    def test_ref_property_becomes_foreign_key(self, sqlite_artifact: SchemaArtifact) -> None:
        order = sqlite_artifact.get_table("order")
        assert order is not None
        assert _definitions(sqlite_artifact, "order")["customer"] == "customer TEXT"
        assert [(fk.column, fk.referenced_table) for fk in order.foreign_keys] == [
            ("customer", "customer")
        ]
        assert "  FOREIGN KEY (customer) REFERENCES customer(_id)\n);" in order.sql

    def test_array_of_ref_becomes_migration(self, sqlite_artifact: SchemaArtifact) -> None:
        order = sqlite_artifact.get_table("order")
        assert order is not None
        assert "items" not in order.column_names

        assert len(sqlite_artifact.migrations) == 1
        migration = sqlite_artifact.migrations[0]
        assert migration.name == "add_order_relations"
        assert migration.junction_table == "order_order_line"
        assert migration.owner_table == "order"
        assert migration.referenced_table == "order_line"
        assert migration.property_name == "items"

    def test_migration_sql(self, sqlite_artifact: SchemaArtifact) -> None:
        sql = sqlite_artifact.migrations[0].sql
        assert sql.startswith("CREATE TABLE IF NOT EXISTS order_order_line (\n")
        assert '  order_id TEXT REFERENCES "order"(_id),\n' in sql
        assert "  order_line_id TEXT REFERENCES order_line(_id),\n" in sql
        assert "  PRIMARY KEY (order_id, order_line_id)\n);" in sql
        assert "created_at TEXT NOT NULL" in sql

    def test_order_line_scenario(
        self,
        make_spec: Callable[..., Dict[str, Any]],
        make_context: ContextFactory,
        order_schemas: Dict[str, Any],
    ) -> None:
        artifact = compile_schemas(make_context(make_spec(schemas=order_schemas)))
        assert [m.junction_table for m in artifact.migrations] == ["order_order_line"]
        assert "PRIMARY KEY (order_id, order_line_id)" in artifact.migrations[0].sql
        assert "items" not in artifact.ddl

    def test_self_reference_target_column(self) -> None:
        sql, owner_col, target_col = render_junction_migration(
            "node", "node", "node_node", get_profile("sqlite")
        )
        assert owner_col == "node_id"
        assert target_col == "related_node_id"
        assert "PRIMARY KEY (node_id, related_node_id)" in sql

    def test_one_migration_per_array_property(
        self,
        make_spec: Callable[..., Dict[str, Any]],
        make_context: ContextFactory,
        order_schemas: Dict[str, Any],
    ) -> None:
        order_schemas["Order"]["properties"]["notes"] = {
            "type": "array",
            "items": {"$ref": "#/components/schemas/Note"},
        }
        order_schemas["Note"] = {"type": "object", "properties": {"text": {"type": "string"}}}
        artifact = compile_schemas(make_context(make_spec(schemas=order_schemas)))
        assert [(m.property_name, m.junction_table) for m in artifact.migrations] == [
            ("items", "order_order_line"),
            ("notes", "order_note"),
        ]
        assert {m.name for m in artifact.migrations} == {"add_order_relations"}
        assert all(m.owner_keyed for m in artifact.migrations)


# ===========================================================================
# Junction detection
# ===========================================================================


class TestJunctionDetection:
    _ARRAY_OF_REF: Dict[str, Any] = {
        "type": "array",
        "items": {"$ref": "#/components/schemas/Tag"},
    }

    def test_heuristic(self) -> None:
        schema = SchemaDefinition.model_validate(
            {"type": "object", "properties": {"tags": self._ARRAY_OF_REF}}
        )
        assert looks_like_junction("post_tag", schema)
        assert not looks_like_junction("PostTag", schema)

    def test_explicit_marker_wins(self) -> None:
        marked = SchemaDefinition.model_validate(
            {"type": "object", "x-junction": True, "properties": {}}
        )
        unmarked = SchemaDefinition.model_validate(
            {"type": "object", "x-junction": False, "properties": {"tags": self._ARRAY_OF_REF}}
        )
        assert is_junction_schema("Membership", marked)
        assert not is_junction_schema("post_tag", unmarked)

    def test_junction_table_has_no_standard_columns(self) -> None:
        schema = SchemaDefinition.model_validate(
            {
                "type": "object",
                "properties": {"note": {"type": "string"}, "tags": self._ARRAY_OF_REF},
            }
        )
        table, migrations = compile_table(
            "post_tag", schema, get_profile("sqlite"), junction=True
        )
        assert table.junction is True
        assert table.column_names == ["note"]
        assert len(migrations) == 1

    def test_junction_without_columns_emits_no_table(self) -> None:
        schema = SchemaDefinition.model_validate(
            {"type": "object", "properties": {"tags": self._ARRAY_OF_REF}}
        )
        table, migrations = compile_table(
            "post_tag", schema, get_profile("sqlite"), junction=True
        )
        assert table.sql == ""
        assert migrations[0].junction_table == "post_tag_tag"
        assert migrations[0].owner_keyed is False
        assert "  post_tag_id TEXT NOT NULL,\n" in migrations[0].sql
        assert "REFERENCES post_tag" not in migrations[0].sql
        assert "  tag_id TEXT REFERENCES tag(_id),\n" in migrations[0].sql

    def test_custom_predicate(self, context: CompilationContext) -> None:
        artifact = compile_schemas(context, junction_predicate=lambda name, _: name == "Order")
        order = artifact.get_table("order")
        assert order is not None
        assert order.junction is True
        assert order.column_names[0] == "customer"


# ===========================================================================
# Example rows
# ===========================================================================


class TestExampleRows:
    def test_example_block_appended(self, sqlite_artifact: SchemaArtifact) -> None:
        order = sqlite_artifact.get_table("order")
        assert order is not None
        assert order.example_sql == (
            'INSERT INTO "order" (status, total, metadata)\n'
            "  VALUES ('paid', '12.5', '{\"gift\":true}');"
        )
        assert order.sql.endswith(f"\n\n{EXAMPLE_HEADER}\n{order.example_sql}")

    def test_quotes_escaped(self, sqlite_artifact: SchemaArtifact) -> None:
        customer = sqlite_artifact.get_table("customer")
        assert customer is not None
        assert customer.example_sql == (
            "INSERT INTO customer (email, name)\n"
            "  VALUES ('ada@example.com', 'Ada O''Neil');"
        )

    def test_items_example_used(self, sqlite_artifact: SchemaArtifact) -> None:
        line = sqlite_artifact.get_table("order_line")
        assert line is not None
        assert line.example_sql == (
            "INSERT INTO order_line (sku, quantity, tags)\n"
            "  VALUES ('SKU-1', '2', 'fragile');"
        )

    def test_no_examples_no_block(
        self,
        make_spec: Callable[..., Dict[str, Any]],
        make_context: ContextFactory,
        order_schemas: Dict[str, Any],
    ) -> None:
        artifact = compile_schemas(make_context(make_spec(schemas=order_schemas)))
        assert EXAMPLE_HEADER not in artifact.ddl
        assert all(t.example_sql is None for t in artifact.tables)

    def test_format_example(self) -> None:
        assert format_example(True) == "'true'"
        assert format_example([1, "a"]) == "'[1,\"a\"]'"
        assert format_example(None) == "NULL"
        assert format_example(3) == "'3'"


# ===========================================================================
# Dialects
# ===========================================================================


class TestDialects:
    def test_postgres_types(
        self, spec_dict: Dict[str, Any], make_context: ContextFactory
    ) -> None:
        artifact = compile_schemas(make_context(spec_dict, dialect="postgres"))
        assert artifact.dialect == "postgres"
        assert _definitions(artifact, "customer")["vip"] == "vip BOOLEAN DEFAULT FALSE"
        order = _definitions(artifact, "order")
        assert order["total"] == "total NUMERIC"
        assert order["placed_at"] == "placed_at TIMESTAMP"
        assert order["metadata"] == "metadata JSONB"
        assert _definitions(artifact, "order_line")["quantity"] == "quantity BIGINT DEFAULT 1"
        assert order["_id"] == "_id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text"
        assert order["created_at"] == "created_at TIMESTAMPTZ NOT NULL DEFAULT now()"

    def test_postgresql_alias(self) -> None:
        assert get_profile("PostgreSQL").name == "postgres"
        assert is_supported_dialect("postgresql")

    def test_mysql_quoting(self, spec_dict: Dict[str, Any], make_context: ContextFactory) -> None:
        artifact = compile_schemas(make_context(spec_dict, dialect="mysql"))
        order = artifact.get_table("order")
        assert order is not None
        assert order.sql.startswith("CREATE TABLE IF NOT EXISTS `order` (")
        assert _definitions(artifact, "order")["customer"] == "customer VARCHAR(36)"
        assert "order_id VARCHAR(36) REFERENCES `order`(_id)" in artifact.migrations[0].sql

    def test_unknown_dialect_falls_back_to_text(
        self, spec_dict: Dict[str, Any], make_context: ContextFactory
    ) -> None:
        artifact = compile_schemas(make_context(spec_dict, dialect="oracle"))
        assert artifact.dialect == "oracle"
        for table in artifact.tables:
            for column in table.columns:
                if column.name not in ("_id", "created_at"):
                    assert column.sql_type == "TEXT", column
        assert not is_supported_dialect("oracle")

    @pytest.mark.parametrize(
        "json_type, fmt, dialect, expected",
        [
            ("string", "uuid", "postgres", "UUID"),
            ("string", "uuid", "mysql", "CHAR(36)"),
            ("string", "date-time", "sqlite", "TEXT"),
            ("number", "double", "postgres", "DOUBLE PRECISION"),
            ("number", None, "mysql", "DOUBLE"),
            ("integer", None, "mysql", "INT"),
            ("string", "email", "postgres", "TEXT"),
            ("binary", None, "postgres", "TEXT"),
            (None, None, "sqlite", "TEXT"),
        ],
    )
    def test_type_table(
        self, json_type: Any, fmt: Any, dialect: str, expected: str
    ) -> None:
        assert sql_type(json_type, get_profile(dialect), fmt) == expected

    def test_format_default(self) -> None:
        sqlite = get_profile("sqlite")
        postgres = get_profile("postgres")
        assert format_default("it's", sqlite) == "'it''s'"
        assert format_default(True, sqlite) == "1"
        assert format_default(False, postgres) == "FALSE"
        assert format_default(None, sqlite) == "NULL"
        assert format_default(1.5, sqlite) == "1.5"
        assert format_default({"a": [1]}, sqlite) == "'{\"a\":[1]}'"


# ===========================================================================
# Errors & determinism
# ===========================================================================


class TestCompileSchemas:
    def test_missing_schemas_raises(
        self, make_spec: Callable[..., Dict[str, Any]], make_context: ContextFactory
    ) -> None:
        with pytest.raises(MalformedSpecificationError):
            compile_schemas(make_context(make_spec()))

    def test_deterministic(self, context: CompilationContext) -> None:
        first = compile_schemas(context)
        second = compile_schemas(context)
        assert first.ddl == second.ddl
        assert first == second


# ===========================================================================
# Generated DDL applies on SQLite
# ===========================================================================


class TestSqliteExecution:
    def test_ddl_and_migrations_apply(
        self, sqlite_artifact: SchemaArtifact, tmp_path: pathlib.Path
    ) -> None:
        sqlalchemy = pytest.importorskip("sqlalchemy")

        engine = sqlalchemy.create_engine(f"sqlite:///{tmp_path / 'shop.db'}")
        raw = engine.raw_connection()
        try:
            raw.driver_connection.executescript(sqlite_artifact.ddl)
            for migration in sqlite_artifact.migrations:
                raw.driver_connection.executescript(migration.sql)
            raw.commit()
        finally:
            raw.close()

        inspector = sqlalchemy.inspect(engine)
        assert set(inspector.get_table_names()) == {
            "customer",
            "order",
            "order_line",
            "order_order_line",
        }
        columns = [c["name"] for c in inspector.get_columns("order")]
        assert columns[:2] == ["_id", "created_at"]
        assert "items" not in columns
        pk = inspector.get_pk_constraint("order_order_line")
        assert pk["constrained_columns"] == ["order_id", "order_line_id"]

        with engine.connect() as conn:
            row = conn.execute(
                sqlalchemy.text('SELECT _id, created_at, status FROM "order"')
            ).one()
        assert len(row[0]) == 36
        assert row[1]
        assert row[2] == "paid"
        engine.dispose()

    def test_junction_owner_migration_applies_with_foreign_keys(
        self, make_spec: Callable[..., Dict[str, Any]], tmp_path: pathlib.Path
    ) -> None:
        sqlalchemy = pytest.importorskip("sqlalchemy")
        result = compile_specification(
            make_spec(
                schemas={
                    "Tag": {"type": "object", "properties": {"label": {"type": "string"}}},
                    "post_tag": {
                        "type": "object",
                        "properties": {
                            "tags": {
                                "type": "array",
                                "items": {"$ref": "#/components/schemas/Tag"},
                            }
                        },
                    },
                }
            )
        )
        artifact = result.schema_artifact
        assert artifact is not None
        assert [m.junction_table for m in artifact.migrations] == ["post_tag_tag"]

        engine = sqlalchemy.create_engine(f"sqlite:///{tmp_path / 'tags.db'}")
        raw = engine.raw_connection()
        try:
            conn = raw.driver_connection
            conn.execute("PRAGMA foreign_keys = ON")
            conn.executescript(artifact.ddl)
            for migration in artifact.migrations:
                conn.executescript(migration.sql)
            conn.execute("INSERT INTO tag (_id, label) VALUES ('t1', 'news')")
            conn.execute("INSERT INTO post_tag_tag (post_tag_id, tag_id) VALUES ('p1', 't1')")
            raw.commit()
        finally:
            raw.close()

        with engine.connect() as conn:
            rows = conn.execute(
                sqlalchemy.text("SELECT post_tag_id, tag_id FROM post_tag_tag")
            ).all()
        assert [tuple(r) for r in rows] == [("p1", "t1")]
        engine.dispose()
