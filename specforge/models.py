# File: specforge/models.py
"""
SpecForge - Core Data Models
=============================
Pydantic V2 models for every entity that flows through the compiler:

    Source side   : Specification → PathItem → Operation → Parameter,
                    SchemaDefinition
    Output side   : Table / Column / ForeignKey / Migration → SchemaArtifact
                    ValidationConfig
                    RouteRegistration / MiddlewareLookup → RouteArtifact
    Run state     : CompilerConfig, CompilationContext, CompilationResult

All models share a *frozen* configuration.  A compilation run never mutates
its input or another stage's output; stages build new instances instead.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("specforge.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class HttpMethod(str, Enum):
    """HTTP methods compiled into operations (fixed allow-list)."""

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"


class ParameterLocation(str, Enum):
    """OpenAPI ``in`` values."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class RouterStyle(str, Enum):
    """Parameter syntax of the target HTTP router."""

    EXPRESS = "express"  # /widgets/:id
    FLASK = "flask"  # /widgets/<id>
    FASTAPI = "fastapi"  # /widgets/{id}


class LookupKind(str, Enum):
    """Registries a route consults, in their fixed precedence order."""

    AUTH = "auth"
    VALIDATION = "validation"
    MIDDLEWARE = "middleware"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)

# JSON-Schema nodes carry many keywords the compiler does not read
_SCHEMA_NODE_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="ignore",
)


# ---------------------------------------------------------------------------
# Source-side models
# ---------------------------------------------------------------------------


class SchemaDefinition(BaseModel):
    """
    A JSON-Schema-like node from ``components.schemas`` (or nested in one).

    ``$ref`` is only ever read for its name; the compiler does not follow
    references into the target's properties, so cyclic schemas are fine.
    """

    model_config = _SCHEMA_NODE_CONFIG

    type: Union[str, List[str], None] = Field(
        default=None, description="JSON type (OpenAPI 3.1 allows a list)."
    )
    properties: Dict[str, "SchemaDefinition"] = Field(
        default_factory=dict, description="Object properties, declared order."
    )
    items: Optional["SchemaDefinition"] = Field(
        default=None, description="Array item schema."
    )
    ref: Optional[str] = Field(
        default=None, alias="$ref", description="Reference to a named schema."
    )
    format: Optional[str] = None
    enum: Optional[List[Any]] = None
    default: Any = None
    example: Any = None
    description: Optional[str] = None
    required: Union[bool, List[str], None] = Field(
        default=None,
        description=(
            "Property-level boolean, or the object-level list of required "
            "property names."
        ),
    )
    x_junction: Optional[bool] = Field(
        default=None,
        alias="x-junction",
        description="Explicit junction-table marker.",
    )

    @property
    def primary_type(self) -> Optional[str]:
        """The JSON type, ignoring a ``"null"`` member of a type list."""
        if isinstance(self.type, list):
            for candidate in self.type:
                if candidate != "null":
                    return candidate
            return None
        return self.type

    @property
    def is_object(self) -> bool:
        return self.primary_type == "object"

    @property
    def is_array_of_ref(self) -> bool:
        return (
            self.primary_type == "array"
            and self.items is not None
            and self.items.ref is not None
        )

    @property
    def has_default(self) -> bool:
        """True when ``default`` was declared, even as ``null``."""
        return "default" in self.model_fields_set

    @property
    def has_example(self) -> bool:
        return "example" in self.model_fields_set

    def requires(self, property_name: str) -> bool:
        """Whether *property_name* is listed in this object's ``required``."""
        return isinstance(self.required, list) and property_name in self.required


class Parameter(BaseModel):
    """One operation parameter."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    location: ParameterLocation = Field(..., alias="in")
    required: bool = False
    json_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "string"},
        alias="schema",
        description="Parameter schema; defaults to a plain string.",
    )
    description: str = ""


class Operation(BaseModel):
    """One HTTP method on a PathItem."""

    model_config = _SHARED_CONFIG

    method: HttpMethod
    operation_id: str = Field(..., min_length=1)
    summary: str = ""
    parameters: List[Parameter] = Field(default_factory=list)
    request_body: Optional[Dict[str, Any]] = None
    responses: Dict[str, Any] = Field(default_factory=dict)
    security: Optional[List[Dict[str, List[str]]]] = Field(
        default=None,
        description="None inherits the document-level requirements; [] disables auth.",
    )
    service: Optional[str] = Field(default=None, description="x-service hint.")
    middleware: List[str] = Field(
        default_factory=list, description="Operation x-middleware names."
    )

    def __repr__(self) -> str:
        return f"<Operation {self.method.upper()} {self.operation_id}>"


class PathItem(BaseModel):
    """A URL template and its operations."""

    model_config = _SHARED_CONFIG

    path: str = Field(..., min_length=1)
    operations: List[Operation] = Field(default_factory=list)
    service: Optional[str] = None
    middleware: List[str] = Field(
        default_factory=list,
        description="x-middleware names inherited by every operation.",
    )


class Specification(BaseModel):
    """
    The root document for one compilation run.

    ``schemas`` is ``None`` when ``components.schemas`` is absent; that is
    only an error once the relational schema compiler is asked to run.
    """

    model_config = _SHARED_CONFIG

    title: str = ""
    version: str = ""
    paths: List[PathItem] = Field(default_factory=list)
    schemas: Optional[Dict[str, SchemaDefinition]] = None
    security_schemes: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    security: Optional[List[Dict[str, List[str]]]] = None

    def iter_operations(self) -> List[Tuple[PathItem, Operation]]:
        """All operations in declared order, paired with their PathItem."""
        return [(item, op) for item in self.paths for op in item.operations]

    @computed_field  # type: ignore[misc]
    @property
    def operation_count(self) -> int:
        return sum(len(item.operations) for item in self.paths)

    def __repr__(self) -> str:
        return (
            f"<Specification {self.title!r} {len(self.paths)} paths, "
            f"{self.operation_count} operations, "
            f"{len(self.schemas or {})} schemas>"
        )


# ---------------------------------------------------------------------------
# Relational schema artifact
# ---------------------------------------------------------------------------


class Column(BaseModel):
    """A compiled column; ``definition`` is its rendered DDL line."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    sql_type: str = Field(..., min_length=1)
    not_null: bool = False
    primary_key: bool = False
    default_sql: Optional[str] = None
    check: Optional[str] = None
    comment: Optional[str] = None
    definition: str = Field(..., min_length=1)


class ForeignKey(BaseModel):
    """``FOREIGN KEY (column) REFERENCES referenced_table(referenced_column)``."""

    model_config = _SHARED_CONFIG

    column: str
    referenced_table: str
    referenced_column: str = "_id"
    source_schema: str = Field(..., description="Schema that owns the reference.")
    target_schema: str = Field(..., description="Referenced schema name, as written.")


class Table(BaseModel):
    """Compiled output of one object-typed SchemaDefinition."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="snake_case table name.")
    schema_name: str = Field(..., min_length=1, description="Source schema name.")
    columns: List[Column] = Field(default_factory=list)
    foreign_keys: List[ForeignKey] = Field(default_factory=list)
    junction: bool = False
    example_sql: Optional[str] = None
    sql: str = Field(default="", description="Rendered DDL, empty when not emitted.")

    @computed_field  # type: ignore[misc]
    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def __repr__(self) -> str:
        return (
            f"<Table {self.name} ({len(self.columns)} cols, "
            f"{len(self.foreign_keys)} FKs{', junction' if self.junction else ''})>"
        )


class Migration(BaseModel):
    """CREATE TABLE for one array-of-$ref relation."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1)
    owner_table: str
    owner_keyed: bool = Field(
        default=True, description="Owner column carries REFERENCES owner(_id)."
    )
    referenced_table: str
    junction_table: str
    property_name: str
    source_schema: str
    target_schema: str
    sql: str


class SchemaArtifact(BaseModel):
    """Output 1: DDL text plus ordered migrations."""

    model_config = _SHARED_CONFIG

    dialect: str
    tables: List[Table] = Field(default_factory=list)
    migrations: List[Migration] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def ddl(self) -> str:
        return "\n\n".join(t.sql for t in self.tables if t.sql)

    def get_table(self, name: str) -> Optional[Table]:
        for table in self.tables:
            if table.name == name:
                return table
        return None


# ---------------------------------------------------------------------------
# Validation artifact
# ---------------------------------------------------------------------------


def _empty_object_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}, "required": []}


class ValidationConfig(BaseModel):
    """Output 2: the four request schemas for one operationId."""

    model_config = _SHARED_CONFIG

    path: Dict[str, Any] = Field(default_factory=_empty_object_schema)
    query: Dict[str, Any] = Field(default_factory=_empty_object_schema)
    headers: Dict[str, Any] = Field(default_factory=_empty_object_schema)
    body: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "query": self.query,
            "headers": self.headers,
            "body": self.body,
        }


# ---------------------------------------------------------------------------
# Route artifact
# ---------------------------------------------------------------------------


class MiddlewareLookup(BaseModel):
    """A reference into a runtime registry, never the handler itself."""

    model_config = _SHARED_CONFIG

    kind: LookupKind
    key: str = Field(..., min_length=1)
    expression: str = Field(..., min_length=1)


class ResponseStub(BaseModel):
    """What the generated handler answers before it is implemented."""

    model_config = _SHARED_CONFIG

    status_code: int = 204
    example: Any = None
    no_content: bool = True


class RouteRegistration(BaseModel):
    """One method registration inside a resource."""

    model_config = _SHARED_CONFIG

    method: HttpMethod
    path: str = Field(..., description="Source URL template.")
    router_path: str = Field(..., description="Template in router-native syntax.")
    operation_id: str
    service: str
    security: List[Dict[str, List[str]]] = Field(default_factory=list)
    middleware: List[str] = Field(default_factory=list)
    lookups: List[MiddlewareLookup] = Field(default_factory=list)
    response: ResponseStub = Field(default_factory=ResponseStub)

    @computed_field  # type: ignore[misc]
    @property
    def security_schemes(self) -> List[str]:
        names: List[str] = []
        for requirement in self.security:
            for scheme in requirement:
                if scheme not in names:
                    names.append(scheme)
        return names


class RouteArtifact(BaseModel):
    """Output 3: every registration for one resource, in source order."""

    model_config = _SHARED_CONFIG

    resource: str = Field(..., min_length=1)
    service: str
    registrations: List[RouteRegistration] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Run configuration, context and result
# ---------------------------------------------------------------------------


class CompilerConfig(BaseModel):
    """
    Settings for one compilation run.

    ``compile_schema``: ``None`` compiles the relational schema only when
    ``components.schemas`` exists; ``True`` requires it; ``False`` skips it.
    """

    model_config = _SHARED_CONFIG

    dialect: str = Field(default="sqlite", min_length=1)
    router_style: RouterStyle = Field(default=RouterStyle.EXPRESS, validate_default=True)
    compile_schema: Optional[bool] = None
    strict: bool = Field(
        default=True, description="Abort when diagnostics report errors."
    )
    fail_on_warnings: bool = False

    @field_validator("dialect")
    @classmethod
    def _normalize_dialect(cls, v: str) -> str:
        return v.strip().lower()


class CompilationContext(BaseModel):
    """
    Immutable value threaded through every stage of one run.

    Replaces any shared, mutable "current workflow" state: each stage reads
    the context and returns new values.
    """

    model_config = _SHARED_CONFIG

    specification: Specification
    config: CompilerConfig = Field(default_factory=CompilerConfig)

    @property
    def dialect(self) -> str:
        return self.config.dialect

    @property
    def router_style(self) -> str:
        return self.config.router_style


class CompilationResult(BaseModel):
    """The three artifact sets handed to the rendering / export layer."""

    model_config = _SHARED_CONFIG

    schema_artifact: Optional[SchemaArtifact] = None
    validation: Dict[str, ValidationConfig] = Field(default_factory=dict)
    routes: List[RouteArtifact] = Field(default_factory=list)
    security: Dict[str, List[Dict[str, List[str]]]] = Field(
        default_factory=dict,
        description="Registered security requirements per operationId.",
    )
    conflicts: List[Dict[str, Any]] = Field(default_factory=list)

    def find_registration(self, operation_id: str) -> Optional[RouteRegistration]:
        for artifact in self.routes:
            for registration in artifact.registrations:
                if registration.operation_id == operation_id:
                    return registration
        return None

    def __repr__(self) -> str:
        tables: int = len(self.schema_artifact.tables) if self.schema_artifact else 0
        return (
            f"<CompilationResult {tables} tables, "
            f"{len(self.validation)} validation configs, "
            f"{len(self.routes)} resources>"
        )


SchemaDefinition.model_rebuild()

__all__: List[str] = [
    "HttpMethod",
    "ParameterLocation",
    "RouterStyle",
    "LookupKind",
    "SchemaDefinition",
    "Parameter",
    "Operation",
    "PathItem",
    "Specification",
    "Column",
    "ForeignKey",
    "Table",
    "Migration",
    "SchemaArtifact",
    "ValidationConfig",
    "MiddlewareLookup",
    "ResponseStub",
    "RouteRegistration",
    "RouteArtifact",
    "CompilerConfig",
    "CompilationContext",
    "CompilationResult",
]

logger.debug("specforge.models loaded — %d public symbols.", len(__all__))
