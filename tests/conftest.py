"""Shared test fixtures for apinav.

Provides reusable fixtures for loading spec fixtures, building normalized
specs and runtime artifact directories, and managing output state.  These are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest

from apinav.models import NormalizedSpec
from apinav.output import reset_output

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams, the
    cached references go stale once the test ends.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def navigator_raw() -> dict[str, Any]:
    """Raw OpenAPI 3.0 pet store document."""
    with open(FIXTURES_DIR / "navigator_3.0.json") as f:
        return json.load(f)


@pytest.fixture
def swagger_raw() -> dict[str, Any]:
    """Raw Swagger 2.0 document."""
    with open(FIXTURES_DIR / "swagger_2.0.json") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Normalized spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def navigator_spec(navigator_raw: dict[str, Any]) -> NormalizedSpec:
    """Normalized pet store spec."""
    from apinav.parser.normalizer import normalize_document

    return normalize_document(navigator_raw, "navigator_3.0.json")


@pytest.fixture
def customized_spec(navigator_spec: NormalizedSpec) -> NormalizedSpec:
    """Pet store spec after the default customization pass."""
    from apinav.customize import customize_spec

    return customize_spec(navigator_spec)


@pytest.fixture
def artifacts_dir(customized_spec: NormalizedSpec, tmp_path: Path) -> Path:
    """Directory holding the pet store runtime artifacts, two operations per chunk."""
    from apinav.runtime.artifacts import build_runtime_artifacts
    from apinav.runtime.proxy import build_dev_proxy_table
    from apinav.runtime.writer import write_runtime_artifacts

    out_dir = tmp_path / "runtime"
    artifacts = build_runtime_artifacts(customized_spec, chunk_size=2)
    write_runtime_artifacts(artifacts, out_dir, build_dev_proxy_table(customized_spec))
    return out_dir


@pytest.fixture
def make_document() -> Callable[..., dict[str, Any]]:
    """Factory for small OpenAPI 3.0 documents.

    ``make_document(paths={...}, tags=[...], components={...})`` returns a
    document with a fixed ``info`` block and the given sections.
    """

    def _make(**sections: Any) -> dict[str, Any]:
        document: dict[str, Any] = {
            "openapi": "3.0.3",
            "info": {"title": "Test API", "version": "1.0.0"},
            "paths": {},
        }
        document.update(sections)
        return document

    return _make


@pytest.fixture
def spec_file(tmp_path: Path) -> Path:
    """Copy of the pet store document in tmp_path."""
    path = tmp_path / "openapi.json"
    path.write_text((FIXTURES_DIR / "navigator_3.0.json").read_text(encoding="utf-8"))
    return path
