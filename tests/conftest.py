"""
tests/conftest.py
Shared fixtures for the specforge test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Callable, Dict, Optional

import pytest
import yaml

from specforge.extractor import parse_specification
from specforge.models import CompilationContext, CompilerConfig, Specification


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SPEC_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "openapi_example.yaml"


# ---------------------------------------------------------------------------
# Reference document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_spec_dict() -> Dict[str, Any]:
    """Load openapi_example.yaml once per session."""
    assert SPEC_EXAMPLE_PATH.exists(), (
        f"Reference document not found at {SPEC_EXAMPLE_PATH}. "
        "Make sure openapi_example.yaml is in the project root."
    )
    with open(SPEC_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def spec_dict(raw_spec_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_spec_dict)


@pytest.fixture()
def spec_yaml_path(spec_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "openapi.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(spec_dict, fh, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return path


@pytest.fixture()
def specification(spec_dict: Dict[str, Any]) -> Specification:
    return parse_specification(spec_dict)


@pytest.fixture()
def context(specification: Specification) -> CompilationContext:
    """sqlite / express context over the reference document."""
    return CompilationContext(specification=specification, config=CompilerConfig())


@pytest.fixture()
def make_context() -> Callable[..., CompilationContext]:
    """Build a context from a raw document plus config overrides."""

    def _make(raw: Dict[str, Any], **config: Any) -> CompilationContext:
        return CompilationContext(
            specification=parse_specification(raw),
            config=CompilerConfig(**config),
        )

    return _make


# ---------------------------------------------------------------------------
# Minimal document builders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_spec() -> Callable[..., Dict[str, Any]]:
    """
    Return a builder for small raw documents.

    ``make_spec(paths=..., schemas=...)``; ``schemas=None`` omits
    ``components.schemas`` entirely.
    """

    def _make(
        paths: Optional[Dict[str, Any]] = None,
        schemas: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        raw: Dict[str, Any] = {
            "openapi": "3.0.3",
            "info": {"title": "Test API", "version": "0.1.0"},
            "paths": paths if paths is not None else {},
        }
        components: Dict[str, Any] = dict(extra.pop("components", {}))
        if schemas is not None:
            components["schemas"] = schemas
        if components:
            raw["components"] = components
        raw.update(extra)
        return raw

    return _make


@pytest.fixture()
def order_schemas() -> Dict[str, Any]:
    """``Order.items`` is an array of ``$ref: OrderLine``."""
    return {
        "Order": {
            "type": "object",
            "properties": {
                "status": {"type": "string"},
                "items": {
                    "type": "array",
                    "items": {"$ref": "#/components/schemas/OrderLine"},
                },
            },
        },
        "OrderLine": {
            "type": "object",
            "properties": {"sku": {"type": "string"}},
        },
    }


# ---------------------------------------------------------------------------
# Output directory fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    out = tmp_path / "generated"
    return out
