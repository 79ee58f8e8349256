"""Load OpenAPI documents from a local file or a remote URL.

This module handles all I/O for fetching raw OpenAPI documents and converting
them into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection.

The public functions are:

* :func:`resolve_spec_source` -- Turn a configured string into a
  :class:`~apinav.models.FileSource` or :class:`~apinav.models.UrlSource`.
* :func:`load_document` -- Read or fetch a source and parse it.
* :func:`source_label` -- The path or URL used in messages.

Remote fetches are bounded: the whole download (connect, headers, and body)
must finish within ``timeout_ms``, and the body may not exceed ``max_bytes``.
Exceeding either limit is terminal and raises
:class:`~apinav.exceptions.SourceFetchError`.  Request headers are sent but
never logged and never included in error messages.

After loading, the raw dict should be passed to
:func:`~apinav.parser.normalizer.normalize_document`.
"""

from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Iterator, Optional, Union

import httpx
import yaml

from apinav.exceptions import SourceFetchError, SpecParseError
from apinav.models import DEFAULT_MAX_BYTES, DEFAULT_TIMEOUT_MS, FileSource, UrlSource

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def resolve_spec_source(
    value: str,
    headers: Optional[dict[str, str]] = None,
    max_bytes: Optional[int] = DEFAULT_MAX_BYTES,
    timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS,
) -> Union[FileSource, UrlSource]:
    """Choose a source kind for a configured path or URL.

    Strings starting with ``http://`` or ``https://`` (any case) become a
    :class:`~apinav.models.UrlSource` carrying *headers* and the limits;
    everything else is a :class:`~apinav.models.FileSource`.
    """
    value = value.strip()
    if _URL_PATTERN.match(value):
        return UrlSource(
            url=value, headers=dict(headers or {}), max_bytes=max_bytes, timeout_ms=timeout_ms
        )
    return FileSource(path=value)


def source_label(source: Union[FileSource, UrlSource]) -> str:
    """Return the path or URL of *source*."""
    return source.url if isinstance(source, UrlSource) else source.path


def load_document(
    source: Union[FileSource, UrlSource], client: Optional[httpx.Client] = None
) -> dict[str, Any]:
    """Load and parse an OpenAPI document.

    Args:
        source: Where to read the document from.
        client: Optional :class:`httpx.Client` for URL sources.  Tests pass
            one built on :class:`httpx.MockTransport`.  When omitted a
            short-lived client is created per call.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SourceFetchError: If the file cannot be read or the URL cannot be
            fetched within its limits.
        SpecParseError: If the content is not a JSON or YAML object.
    """
    if isinstance(source, UrlSource):
        content, hint = _load_from_url(source, client)
    else:
        content, hint = _load_from_file(source.path)
    return _parse_content(content, source_label(source), hint=hint)


def _load_from_file(path: str) -> tuple[str, str]:
    """Read a local file.  The extension is used as a format hint."""
    file_path = Path(path)
    if not file_path.is_file():
        raise SourceFetchError(path, "file not found")

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceFetchError(path, str(exc)) from exc

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    logger.debug("Read %d characters from %s", len(content), path)
    return content, hint


def _load_from_url(source: UrlSource, client: Optional[httpx.Client]) -> tuple[str, str]:
    """Stream a remote document, enforcing the byte ceiling and total deadline."""
    url = source.url
    timeout = source.timeout_ms / 1000 if source.timeout_ms else None
    deadline = time.monotonic() + timeout if timeout else None
    owns_client = client is None
    if client is None:
        client = httpx.Client(follow_redirects=True, timeout=timeout)

    logger.debug("Fetching %s", url)
    try:
        with client.stream("GET", url, headers=source.headers, timeout=timeout) as response:
            if not response.is_success:
                raise SourceFetchError(
                    url, f"HTTP {response.status_code} {response.reason_phrase}".strip()
                )

            limit = source.max_bytes
            declared = response.headers.get("content-length")
            if limit and declared and declared.isdigit() and int(declared) > limit:
                raise SourceFetchError(
                    url, f"response size {declared} bytes exceeds limit of {limit} bytes"
                )

            received = bytearray()
            for chunk in _iter_body(response, deadline, url, source.timeout_ms):
                received.extend(chunk)
                if limit and len(received) > limit:
                    raise SourceFetchError(
                        url, f"response exceeded limit of {limit} bytes"
                    )

            encoding = response.encoding or "utf-8"
            content_type = response.headers.get("content-type", "")
    except httpx.TimeoutException as exc:
        raise SourceFetchError(url, f"timed out after {source.timeout_ms} ms") from exc
    except httpx.RequestError as exc:
        raise SourceFetchError(url, str(exc) or type(exc).__name__) from exc
    finally:
        if owns_client:
            client.close()

    try:
        content = received.decode(encoding)
    except (LookupError, UnicodeDecodeError) as exc:
        raise SourceFetchError(url, f"undecodable response body: {exc}") from exc

    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    logger.debug("Fetched %d bytes from %s", len(received), url)
    return content, hint


def _iter_body(
    response: httpx.Response, deadline: Optional[float], url: str, timeout_ms: int
) -> Iterator[bytes]:
    """Yield body chunks without running past *deadline*.

    The transport takes the read timeout from the request's ``timeout``
    extension when the body starts streaming, so it is narrowed to the time
    left after the headers.  Between chunks the deadline is checked directly.
    """
    if deadline is not None:
        timeouts = dict(response.request.extensions.get("timeout") or {})
        timeouts["read"] = max(deadline - time.monotonic(), 0.001)
        response.request.extensions["timeout"] = timeouts

    for chunk in response.iter_bytes():
        yield chunk
        if deadline is not None and time.monotonic() > deadline:
            raise SourceFetchError(url, f"timed out after {timeout_ms} ms")


def _parse_content(content: str, label: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.

    Args:
        content: The raw string content.
        label: Source path or URL, used in error messages.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        SpecParseError: If the content cannot be parsed as either format or
            is not an object at the top level.
    """
    if not content.strip():
        raise SpecParseError(label, "document is empty")

    json_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise SpecParseError(label, f"invalid JSON: {exc}") from exc
        else:
            return _require_mapping(result, label)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        reason = f"invalid YAML: {exc}"
        if json_error:
            reason = f"not JSON ({json_error}) and {reason}"
        raise SpecParseError(label, reason) from exc
    return _require_mapping(result, label)


def _require_mapping(result: Any, label: str) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise SpecParseError(label, f"expected an object at the top level (got {kind})")
    return result
