"""
tests/test_assembly.py
Unit tests for specforge.assembly and specforge.registry.

Tests cover:
- Cross-artifact reference checks (foreign keys, junction targets)
- Canonical naming checks
- First-wins registries and recorded conflicts
"""

from __future__ import annotations

from typing import Any, Callable, Dict

import pytest

from specforge.assembly import assemble, check_naming, check_references
from specforge.errors import (
    CompilerError,
    RegistrationConflictError,
    UnresolvableReferenceError,
)
from specforge.models import CompilationContext, RouteArtifact, Table
from specforge.registry import ProviderRegistry
from specforge.routes import compile_routes
from specforge.rules import derive_validation_configs
from specforge.schema_compiler import compile_schemas

ContextFactory = Callable[..., CompilationContext]

_TAGGING_SCHEMAS: Dict[str, Any] = {
    "Tag": {"type": "object", "properties": {"label": {"type": "string"}}},
    "post_tag": {
        "type": "object",
        "properties": {
            "tags": {"type": "array", "items": {"$ref": "#/components/schemas/Tag"}}
        },
    },
}


def _assemble(context: CompilationContext):
    return assemble(
        context,
        compile_schemas(context),
        derive_validation_configs(context),
        compile_routes(context),
    )


# ===========================================================================
# ProviderRegistry
# ===========================================================================


class TestProviderRegistry:
    def test_first_registration_wins(self) -> None:
        registry: ProviderRegistry[str] = ProviderRegistry("validation")
        assert registry.register("op", "first") is True
        assert registry.register("op", "second") is False
        assert registry.get("op") == "first"
        assert len(registry) == 1
        assert "op" in registry

    def test_conflicts_recorded(self) -> None:
        registry: ProviderRegistry[int] = ProviderRegistry("security")
        registry.register("op", 1)
        registry.register("op", 2)
        conflicts = registry.conflicts
        assert len(conflicts) == 1
        assert isinstance(conflicts[0], RegistrationConflictError)
        assert conflicts[0].context == {"registry": "security", "key": "op"}

    def test_order_preserved(self) -> None:
        registry: ProviderRegistry[int] = ProviderRegistry("validation")
        for key in ("b", "a", "c"):
            registry.register(key, 0)
        assert [k for k, _ in registry.items()] == ["b", "a", "c"]
        assert list(registry.as_dict()) == ["b", "a", "c"]


# ===========================================================================
# Reference checks
# ===========================================================================


class TestCheckReferences:
    def test_reference_document_resolves(self, context: CompilationContext) -> None:
        check_references(compile_schemas(context))

    def test_unknown_foreign_key_target(
        self, make_spec: Callable[..., Dict[str, Any]], make_context: ContextFactory
    ) -> None:
        raw = make_spec(
            schemas={
                "Invoice": {
                    "type": "object",
                    "properties": {"payer": {"$ref": "#/components/schemas/Payer"}},
                }
            }
        )
        with pytest.raises(UnresolvableReferenceError) as exc_info:
            check_references(compile_schemas(make_context(raw)))
        err = exc_info.value
        assert err.owner == "Invoice.payer"
        assert err.target == "Payer"

    def test_unknown_junction_target(
        self,
        make_spec: Callable[..., Dict[str, Any]],
        make_context: ContextFactory,
        order_schemas: Dict[str, Any],
    ) -> None:
        del order_schemas["OrderLine"]
        context = make_context(make_spec(schemas=order_schemas))
        with pytest.raises(UnresolvableReferenceError) as exc_info:
            _assemble(context)
        assert exc_info.value.owner == "Order.items"
        assert exc_info.value.context["migration"] == "add_order_relations"

    def test_target_without_table_is_unresolved(
        self, make_spec: Callable[..., Dict[str, Any]], make_context: ContextFactory
    ) -> None:
        raw = make_spec(
            schemas={
                "Invoice": {
                    "type": "object",
                    "properties": {"state": {"$ref": "#/components/schemas/State"}},
                },
                "State": {"type": "string", "enum": ["open"]},
            }
        )
        with pytest.raises(UnresolvableReferenceError):
            check_references(compile_schemas(make_context(raw)))

    def test_junction_owner_resolves(
        self, make_spec: Callable[..., Dict[str, Any]], make_context: ContextFactory
    ) -> None:
        artifact = compile_schemas(make_context(make_spec(schemas=_TAGGING_SCHEMAS)))
        post_tag = artifact.get_table("post_tag")
        assert post_tag is not None and post_tag.sql == ""
        check_references(artifact)

    def test_keyed_owner_without_id_column(
        self, make_spec: Callable[..., Dict[str, Any]], make_context: ContextFactory
    ) -> None:
        artifact = compile_schemas(make_context(make_spec(schemas=_TAGGING_SCHEMAS)))
        keyed = artifact.migrations[0].model_copy(update={"owner_keyed": True})
        broken = artifact.model_copy(update={"migrations": [keyed]})
        with pytest.raises(UnresolvableReferenceError) as exc_info:
            check_references(broken)
        assert exc_info.value.owner == "post_tag.tags"
        assert exc_info.value.target == "post_tag"

    def test_junction_table_is_not_a_target(
        self,
        make_spec: Callable[..., Dict[str, Any]],
        make_context: ContextFactory,
        order_schemas: Dict[str, Any],
    ) -> None:
        artifact = compile_schemas(
            make_context(make_spec(schemas=order_schemas)),
            junction_predicate=lambda name, _: name == "OrderLine",
        )
        with pytest.raises(UnresolvableReferenceError) as exc_info:
            check_references(artifact)
        assert exc_info.value.owner == "Order.items"
        assert exc_info.value.target == "OrderLine"


class TestCheckNaming:
    def test_non_canonical_table_rejected(self, context: CompilationContext) -> None:
        artifact = compile_schemas(context)
        bad = Table(name="Customers", schema_name="Customer")
        broken = artifact.model_copy(update={"tables": [bad]})
        with pytest.raises(CompilerError):
            check_naming(broken, [])

    def test_misgrouped_route_rejected(self, context: CompilationContext) -> None:
        routes = compile_routes(context)
        moved = RouteArtifact(
            resource="widgets",
            service="widgetsService",
            registrations=routes[0].registrations,
        )
        with pytest.raises(CompilerError):
            check_naming(None, [moved])


# ===========================================================================
# assemble
# ===========================================================================


class TestAssemble:
    def test_reference_document(self, context: CompilationContext) -> None:
        result = _assemble(context)
        assert result.schema_artifact is not None
        assert list(result.validation) == list(derive_validation_configs(context))
        assert result.security["listOrders"] == [{"api_key": []}]
        assert result.security["createOrder"] == []
        assert result.conflicts == []
        registration = result.find_registration("getWidget")
        assert registration is not None
        assert registration.router_path == "/widgets/:id"
        assert result.find_registration("missing") is None

    def test_without_schema(self, context: CompilationContext) -> None:
        result = assemble(
            context,
            None,
            derive_validation_configs(context),
            compile_routes(context),
        )
        assert result.schema_artifact is None
        assert len(result.routes) == 3

    def test_duplicate_registration_recorded(self, context: CompilationContext) -> None:
        routes = compile_routes(context)
        result = assemble(
            context,
            compile_schemas(context),
            derive_validation_configs(context),
            routes + routes[-1:],
        )
        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict["code"] == "REGISTRATION_CONFLICT"
        assert conflict["context"] == {"registry": "security", "key": "getHealth"}
        assert result.security["getHealth"] == []
