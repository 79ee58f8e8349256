"""Tests for apinav.parser.loader."""

from __future__ import annotations

import json
import textwrap
import time
from pathlib import Path
from typing import Callable

import httpx
import pytest

from apinav.exceptions import SourceFetchError, SpecParseError
from apinav.models import FileSource, UrlSource
from apinav.parser.loader import (
    _parse_content,
    load_document,
    resolve_spec_source,
    source_label,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

SPEC_URL = "https://example.com/openapi.json"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# resolve_spec_source
# ---------------------------------------------------------------------------


class TestResolveSpecSource:
    """Strings are routed to file or URL sources by scheme."""

    @pytest.mark.parametrize(
        "value", ["https://example.com/spec.json", "http://localhost:8080/spec", "HTTPS://EXAMPLE.COM/x"]
    )
    def test_urls(self, value: str) -> None:
        source = resolve_spec_source(value)
        assert isinstance(source, UrlSource)
        assert source.url == value

    @pytest.mark.parametrize("value", ["openapi.yaml", "./specs/api.json", "ftp://example.com/spec"])
    def test_files(self, value: str) -> None:
        source = resolve_spec_source(value)
        assert isinstance(source, FileSource)
        assert source.path == value

    def test_carries_headers_and_limits(self) -> None:
        source = resolve_spec_source(
            SPEC_URL, headers={"Authorization": "Bearer s3cret"}, max_bytes=10, timeout_ms=500
        )
        assert source.headers == {"Authorization": "Bearer s3cret"}
        assert source.max_bytes == 10
        assert source.timeout_ms == 500
        assert "s3cret" not in repr(source)

    def test_source_label(self) -> None:
        assert source_label(FileSource(path="a.yaml")) == "a.yaml"
        assert source_label(UrlSource(url=SPEC_URL)) == SPEC_URL


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestLoadFromFile:
    """Reading local JSON and YAML documents."""

    def test_json_file(self) -> None:
        result = load_document(FileSource(path=str(FIXTURES_DIR / "navigator_3.0.json")))
        assert result["info"]["title"] == "Navigator Pets"

    def test_yaml_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "spec.yaml"
        yaml_file.write_text(
            textwrap.dedent("""\
                openapi: "3.0.3"
                info:
                  title: YAML Test
                  version: "1.0.0"
                paths: {}
            """),
            encoding="utf-8",
        )
        result = load_document(FileSource(path=str(yaml_file)))
        assert result["info"]["title"] == "YAML Test"

    def test_yaml_without_extension(self, tmp_path: Path) -> None:
        spec_file = tmp_path / "openapi"
        spec_file.write_text("openapi: 3.1.0\npaths: {}\n", encoding="utf-8")
        assert load_document(FileSource(path=str(spec_file)))["openapi"] == "3.1.0"

    def test_missing_file(self, tmp_path: Path) -> None:
        missing = tmp_path / "nope.json"
        with pytest.raises(SourceFetchError, match="file not found") as exc_info:
            load_document(FileSource(path=str(missing)))
        assert str(missing) in str(exc_info.value)
        assert exc_info.value.exit_code == 6

    def test_invalid_json_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        with pytest.raises(SpecParseError, match="invalid JSON") as exc_info:
            load_document(FileSource(path=str(bad)))
        assert exc_info.value.exit_code == 7

    def test_non_object_document(self, tmp_path: Path) -> None:
        listing = tmp_path / "list.json"
        listing.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
        with pytest.raises(SpecParseError, match="expected an object"):
            load_document(FileSource(path=str(listing)))


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


class TestLoadFromUrl:
    """Fetching remote documents through an injected httpx client."""

    def test_json_response(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"openapi": "3.0.3", "info": {"title": "Remote"}})

        source = UrlSource(url=SPEC_URL, headers={"X-Token": "abc"})
        result = load_document(source, client=_client(handler))
        assert result["info"]["title"] == "Remote"
        assert seen[0].headers["X-Token"] == "abc"

    def test_yaml_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                text="openapi: 3.0.0\ninfo:\n  title: YAML Remote\n",
                headers={"content-type": "application/x-yaml"},
            )

        result = load_document(UrlSource(url=SPEC_URL), client=_client(handler))
        assert result["info"]["title"] == "YAML Remote"

    def test_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        with pytest.raises(SourceFetchError, match="HTTP 404") as exc_info:
            load_document(UrlSource(url=SPEC_URL), client=_client(handler))
        assert SPEC_URL in str(exc_info.value)

    def test_headers_never_in_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401)

        source = UrlSource(url=SPEC_URL, headers={"Authorization": "Bearer top-secret"})
        with pytest.raises(SourceFetchError) as exc_info:
            load_document(source, client=_client(handler))
        assert "top-secret" not in str(exc_info.value)
        assert "HTTP 401" in str(exc_info.value)

    def test_declared_length_over_limit(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"x" * 100)

        source = UrlSource(url=SPEC_URL, max_bytes=10)
        with pytest.raises(SourceFetchError, match="exceeds limit of 10 bytes"):
            load_document(source, client=_client(handler))

    def test_streamed_body_over_limit(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=iter([b"{" * 8, b"{" * 8]))

        source = UrlSource(url=SPEC_URL, max_bytes=10)
        with pytest.raises(SourceFetchError, match="exceeded limit of 10 bytes"):
            load_document(source, client=_client(handler))

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        source = UrlSource(url=SPEC_URL, timeout_ms=250)
        with pytest.raises(SourceFetchError, match="timed out after 250 ms"):
            load_document(source, client=_client(handler))

    def test_read_timeout_narrowed_to_remaining_time(self) -> None:
        seen: dict[str, float] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            def body():
                seen["read"] = request.extensions["timeout"]["read"]
                yield b'{"openapi": "3.0.3"}'

            time.sleep(0.05)
            return httpx.Response(200, content=body())

        source = UrlSource(url=SPEC_URL, timeout_ms=250)
        assert load_document(source, client=_client(handler)) == {"openapi": "3.0.3"}
        assert 0 < seen["read"] < 0.25

    def test_slow_body_hits_deadline(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            def body():
                yield b"{"
                time.sleep(0.15)
                yield b"}"

            return httpx.Response(200, content=body())

        source = UrlSource(url=SPEC_URL, timeout_ms=100)
        with pytest.raises(SourceFetchError, match="timed out after 100 ms"):
            load_document(source, client=_client(handler))

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(SourceFetchError, match="Connection refused"):
            load_document(UrlSource(url=SPEC_URL), client=_client(handler))

    def test_invalid_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, text="{broken", headers={"content-type": "application/json"}
            )

        with pytest.raises(SpecParseError, match="invalid JSON"):
            load_document(UrlSource(url=SPEC_URL), client=_client(handler))


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    """Content parsing with format detection."""

    def test_parses_json(self) -> None:
        assert _parse_content('{"key": "value"}', "x") == {"key": "value"}

    def test_parses_yaml(self) -> None:
        assert _parse_content("key: value\nnested:\n  a: 1", "x") == {
            "key": "value",
            "nested": {"a": 1},
        }

    def test_yaml_hint_skips_json(self) -> None:
        assert _parse_content("key: value", "x", hint="yaml") == {"key": "value"}

    def test_empty_content(self) -> None:
        with pytest.raises(SpecParseError, match="document is empty"):
            _parse_content("   \n", "x")

    def test_invalid_content(self) -> None:
        with pytest.raises(SpecParseError, match="invalid YAML"):
            _parse_content("}{not valid at all][", "x")

    def test_null_yaml(self) -> None:
        with pytest.raises(SpecParseError, match="got empty document"):
            _parse_content("---\n", "x", hint="yaml")

    def test_scalar(self) -> None:
        with pytest.raises(SpecParseError, match="got str"):
            _parse_content('"just a string"', "x")
