"""Derive a development reverse-proxy table from declared server URLs.

Each distinct server (origin plus path) gets a stable local context path
such as ``/__openapi/api-example-com/v1`` that an HTTP layer can forward to
the real server.  Only the table is produced here; no requests are made.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from apinav.models import NormalizedSpec, ProxyEntry

logger = logging.getLogger(__name__)

PROXY_PREFIX = "__openapi"


def build_dev_proxy_table(spec: NormalizedSpec) -> list[ProxyEntry]:
    """Build one :class:`~apinav.models.ProxyEntry` per distinct server.

    Document-level servers are visited first, then each operation's servers
    in operation order.  Servers whose URL is not absolute (relative paths,
    templated hosts that do not parse) are skipped.
    """
    entries: list[ProxyEntry] = []
    seen: set[str] = set()

    def enqueue(server: Any) -> None:
        url = server.get("url") if isinstance(server, dict) else None
        parsed = parse_server_url(url)
        if parsed is None or parsed["normalized_url"] in seen:
            return
        seen.add(parsed["normalized_url"])
        entries.append(
            ProxyEntry(
                id=len(entries),
                original_url=parsed["original_url"],
                normalized_url=parsed["normalized_url"],
                target=parsed["origin"],
                context_path=build_context_path(parsed, len(entries)),
                rewrite_path=parsed["pathname"],
            )
        )

    for server in spec.servers:
        enqueue(server)
    for operation in spec.operations:
        for server in operation.servers or []:
            enqueue(server)

    logger.debug("Derived %d proxy entries", len(entries))
    return entries


def parse_server_url(url: Any) -> Optional[dict[str, Any]]:
    """Split an absolute server URL into origin and cleaned path.

    Returns ``None`` for anything that is not an absolute ``scheme://host``
    URL.
    """
    if not isinstance(url, str) or not url.strip():
        return None
    trimmed = url.strip()
    try:
        parts = urlsplit(trimmed)
        # Accessing .port validates it.
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None

    host = parts.netloc.rsplit("@", 1)[-1].lower()
    origin = f"{parts.scheme.lower()}://{host}"
    raw_path = parts.path or "/"
    clean_path = "" if raw_path == "/" else raw_path.rstrip("/")
    return {
        "original_url": trimmed,
        "origin": origin,
        "host": host,
        "pathname": clean_path or "/",
        "normalized_url": f"{origin}{clean_path}",
        "path_segments": [segment for segment in raw_path.split("/") if segment],
    }


def build_context_path(parsed: dict[str, Any], index: int) -> str:
    """Local mount point: ``/__openapi/<host>/<path segments>``, sanitized."""
    host_segment = re.sub(r"[^a-zA-Z0-9]", "-", parsed["host"])
    segments = [PROXY_PREFIX, host_segment or f"origin-{index}"]
    segments.extend(re.sub(r"[^a-zA-Z0-9]", "-", s) for s in parsed["path_segments"])
    return "/" + "/".join(s for s in segments if s)


def rewrite_proxy_path(entry: ProxyEntry, path: str) -> str:
    """Map a local request path under ``entry.context_path`` to the upstream path.

    Example::

        entry.context_path == "/__openapi/api-example-com/v1"
        entry.rewrite_path == "/v1"
        rewrite_proxy_path(entry, "/__openapi/api-example-com/v1/users")  # "/v1/users"
    """
    stripped = path[len(entry.context_path):] if path.startswith(entry.context_path) else path
    base = entry.rewrite_path if entry.rewrite_path and entry.rewrite_path != "/" else ""
    segments = []
    if base:
        segments.append(base.strip("/"))
    if stripped:
        segments.append(stripped.lstrip("/"))
    joined = "/".join(s for s in segments if s)
    return f"/{joined}" if joined else "/"
