"""Walk an OpenAPI document and build a :class:`~apinav.models.NormalizedSpec`.

This is the heart of the parser.  :func:`normalize_document` turns a raw
document (already adapted to the OpenAPI 3.x shape by
:mod:`apinav.parser.adapter`) into tags, operations and schemas with stable
slugs:

1. Every tag declared in the document's ``tags`` array is registered first,
   so declared order drives the default sort.
2. Each path item is walked; every key naming an HTTP method whose value is
   a mapping becomes a :class:`~apinav.models.NormalizedOperation`.
3. Parameters are merged path item first, operation second, keyed by
   ``name:in`` (the operation wins), each resolved through
   :class:`~apinav.parser.resolver.SchemaResolver`.
4. ``security`` and ``servers`` take the first non-empty value of operation,
   path item, and document.  They are never merged.
5. Operations without tags land in the fallback ``"Untagged"`` tag.
6. Examples and code samples are attached in a separate step once the
   operation and its slug exist.
7. Tags are sorted (declared order, then alphabetical, fallback last) and
   per-tag and spec-wide stats are computed.

All mutable state of one pass (slug factories, the tag registry) lives on a
:class:`_NormalizationPass` instance created per call, so independent specs
can be normalized concurrently.

Malformed items never abort the pass: a path item or operation that is not a
mapping is skipped, and an operation that fails to build is logged and
dropped while the rest of the document is processed.
"""

from __future__ import annotations

import logging
import math
import re
import secrets
import string
from typing import Any, Iterable, Optional

from apinav.models import (
    ExternalDocs,
    HTTPMethod,
    NormalizedOperation,
    NormalizedSpec,
    NormalizedTag,
    SpecStats,
    TagRef,
    TagStats,
)
from apinav.parser.adapter import adapt_document, detect_openapi_version
from apinav.parser.examples import (
    normalize_code_samples,
    normalize_request_body_examples,
    normalize_response_examples,
    pick_extensions,
)
from apinav.parser.resolver import SchemaResolver
from apinav.parser.schemas import normalize_schemas
from apinav.parser.slugs import SlugFactory

logger = logging.getLogger(__name__)

FALLBACK_TAG_NAME = "Untagged"
FALLBACK_TAG_SLUG = "untagged"

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)


def normalize_document(document: dict[str, Any], source: str = "") -> NormalizedSpec:
    """Normalize a parsed OpenAPI document.

    Args:
        document: The raw document, as returned by
            :func:`~apinav.parser.loader.load_document`.  Swagger 2.0 input
            is adapted first; the argument itself is never mutated.
        source: File path or URL used for labelling only.

    Returns:
        A fully populated :class:`~apinav.models.NormalizedSpec`.  Running
        this twice on the same document yields identical slugs.

    Example::

        document = load_document(FileSource(path="openapi.yaml"))
        spec = normalize_document(document, "openapi.yaml")
        for tag in spec.tags:
            print(tag.slug, tag.stats.operations)
    """
    version = detect_openapi_version(document)
    adapted = adapt_document(document)
    return _NormalizationPass(adapted).run(source=source, openapi_version=version)


def synthesize_operation_id(method: str, path: str) -> str:
    """Build an operation id from method and path, e.g. ``get_users_id``."""
    fallback = f"{method}_{path}"
    fallback = re.sub(r"[{}]", "", fallback)
    fallback = fallback.replace("/", "_")
    fallback = re.sub(r"[^A-Za-z0-9_]+", "_", fallback)
    fallback = re.sub(r"_{2,}", "_", fallback).strip("_")
    if fallback:
        return fallback
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(6))
    return f"{method}_{suffix}"


def compute_tag_stats(operations: Iterable[NormalizedOperation]) -> TagStats:
    """Count operations, deprecated operations, and operations per method."""
    methods: dict[str, int] = {}
    total = 0
    deprecated = 0
    for operation in operations:
        total += 1
        methods[operation.method] = methods.get(operation.method, 0) + 1
        if operation.deprecated:
            deprecated += 1
    return TagStats(operations=total, deprecated=deprecated, methods=methods)


def compute_spec_stats(
    tags: list[NormalizedTag], operations: list[NormalizedOperation]
) -> SpecStats:
    """Spec-wide counts.  An operation is untagged when all its tags are the fallback."""
    return SpecStats(
        tags=len(tags),
        operations=len(operations),
        untagged_operations=sum(
            1 for op in operations if op.tags and all(ref.is_fallback for ref in op.tags)
        ),
        deprecated_operations=sum(1 for op in operations if op.deprecated),
    )


def tag_sort_key(tag: NormalizedTag) -> tuple[Any, ...]:
    """Sort key: declared order, fallback last, then name."""
    declared = tag.declared_index if tag.declared_index is not None else math.inf
    return (declared, tag.is_fallback, tag.name.casefold(), tag.name)


class _NormalizationPass:
    """State for normalizing one document.  Discarded after :meth:`run`."""

    def __init__(self, document: dict[str, Any]) -> None:
        self.document = document
        self.components = (
            document.get("components") if isinstance(document.get("components"), dict) else {}
        )
        self.resolver = SchemaResolver(self.components)
        self.tag_slugs = SlugFactory("tag")
        self.operation_slugs = SlugFactory("operation")
        self.schema_slugs = SlugFactory("schema")
        self.tags_by_name: dict[str, NormalizedTag] = {}
        self.operations: list[NormalizedOperation] = []

    def run(self, source: str, openapi_version: Optional[str]) -> NormalizedSpec:
        document = self.document
        default_security = _non_empty_list(document.get("security"))
        default_servers = _non_empty_list(document.get("servers"))

        declared_tags = document.get("tags") if isinstance(document.get("tags"), list) else []
        for index, declared in enumerate(declared_tags):
            if isinstance(declared, dict) and isinstance(declared.get("name"), str):
                tag = self.register_tag(declared["name"], declared)
                tag.declared_index = index

        paths = document.get("paths") if isinstance(document.get("paths"), dict) else {}
        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                logger.debug("Skipping malformed path item %r", path)
                continue
            for key, operation in path_item.items():
                method = str(key).lower()
                if method not in _HTTP_METHODS:
                    continue
                if not isinstance(operation, dict):
                    logger.debug("Skipping malformed operation %s %s", method.upper(), path)
                    continue
                try:
                    self.add_operation(
                        str(path), method, operation, path_item, default_security, default_servers
                    )
                except (TypeError, ValueError, AttributeError) as exc:
                    logger.warning(
                        "Skipping operation %s %s: %s", method.upper(), path, exc
                    )

        tags = sorted(self.tags_by_name.values(), key=tag_sort_key)
        for tag in tags:
            tag.stats = compute_tag_stats(tag.operations)

        info = document.get("info")
        servers = document.get("servers")
        return NormalizedSpec(
            source=source,
            openapi_version=openapi_version,
            document=document,
            info=info if isinstance(info, dict) else {},
            servers=servers if isinstance(servers, list) else [],
            components=self.components,
            tags=tags,
            operations=self.operations,
            stats=compute_spec_stats(tags, self.operations),
            schemas=normalize_schemas(self.components.get("schemas"), self.schema_slugs),
        )

    # ------------------------------------------------------------------ #
    # Tags
    # ------------------------------------------------------------------ #

    def register_tag(self, name: Any, meta: Optional[dict[str, Any]] = None) -> NormalizedTag:
        """Return the tag called *name*, creating it on first sight.

        Re-declarations only fill in ``description``, ``externalDocs`` and
        extensions that are still empty; nothing set earlier is overwritten.
        """
        meta = meta or {}
        tag_name = name.strip() if isinstance(name, str) and name.strip() else FALLBACK_TAG_NAME
        description = meta.get("description")
        description = description if isinstance(description, str) else None

        existing = self.tags_by_name.get(tag_name)
        if existing is not None:
            if not existing.description and description:
                existing.description = description
            if existing.external_docs is None:
                existing.external_docs = _build_external_docs(meta.get("externalDocs"))
            if not existing.extensions:
                existing.extensions = pick_extensions(meta)
            return existing

        is_fallback = tag_name == FALLBACK_TAG_NAME
        tag = NormalizedTag(
            name=tag_name,
            slug=self.tag_slugs(tag_name, FALLBACK_TAG_SLUG if is_fallback else tag_name),
            description=description,
            external_docs=_build_external_docs(meta.get("externalDocs")),
            is_fallback=is_fallback,
            extensions=pick_extensions(meta),
        )
        self.tags_by_name[tag_name] = tag
        return tag

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def add_operation(
        self,
        path: str,
        method: str,
        operation: dict[str, Any],
        path_item: dict[str, Any],
        default_security: Optional[list[Any]],
        default_servers: Optional[list[Any]],
    ) -> NormalizedOperation:
        operation_id = _operation_id(operation, method, path)
        slug = self.operation_slugs(operation_id, "operation")

        declared = operation.get("tags")
        tag_names = declared if isinstance(declared, list) and declared else [FALLBACK_TAG_NAME]
        tags: list[NormalizedTag] = []
        for tag_name in tag_names:
            tag = self.register_tag(tag_name)
            if all(existing is not tag for existing in tags):
                tags.append(tag)

        responses = operation.get("responses")
        request_body = operation.get("requestBody")
        normalized = NormalizedOperation(
            path=path,
            method=method,
            operation_id=operation_id,
            slug=slug,
            summary=_optional_str(operation.get("summary")),
            description=_optional_str(operation.get("description")),
            deprecated=bool(operation.get("deprecated")),
            tags=[TagRef(name=t.name, slug=t.slug, is_fallback=t.is_fallback) for t in tags],
            parameters=self.merge_parameters(
                path_item.get("parameters"), operation.get("parameters")
            ),
            request_body=request_body if isinstance(request_body, dict) else None,
            responses=(
                {str(status): value for status, value in responses.items()}
                if isinstance(responses, dict)
                else {}
            ),
            security=_first_non_empty(
                operation.get("security"), path_item.get("security"), default_security
            ),
            servers=_first_non_empty(
                operation.get("servers"), path_item.get("servers"), default_servers
            ),
            extensions=pick_extensions(operation),
        )
        _attach_examples(normalized, operation)

        self.operations.append(normalized)
        for tag in tags:
            tag.operations.append(normalized)
        return normalized

    def merge_parameters(self, path_params: Any, operation_params: Any) -> list[dict[str, Any]]:
        """Merge path-level and operation-level parameters by ``name:in``.

        A later parameter with the same key replaces the earlier one in
        place, so operation-level definitions override path-level ones while
        keeping first-seen order.  Unresolvable parameters are dropped.
        """
        merged: list[dict[str, Any]] = []
        index_by_key: dict[str, int] = {}
        for group in (path_params, operation_params):
            if not isinstance(group, list):
                continue
            for raw in group:
                resolved = self.resolver.resolve_parameter(raw)
                if resolved is None:
                    continue
                key = f"{resolved['name']}:{resolved['in']}"
                if key in index_by_key:
                    merged[index_by_key[key]] = resolved
                else:
                    index_by_key[key] = len(merged)
                    merged.append(resolved)
        return merged


def _attach_examples(normalized: NormalizedOperation, operation: dict[str, Any]) -> None:
    """Enrich an existing operation with examples and code samples."""
    normalized.code_sample_groups = normalize_code_samples(operation)
    normalized.request_body_examples = normalize_request_body_examples(operation.get("requestBody"))
    normalized.response_examples = normalize_response_examples(operation.get("responses"))


def _operation_id(operation: dict[str, Any], method: str, path: str) -> str:
    value = operation.get("operationId")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return synthesize_operation_id(method, path)


def _build_external_docs(value: Any) -> Optional[ExternalDocs]:
    if not isinstance(value, dict) or not isinstance(value.get("url"), str):
        return None
    description = value.get("description")
    return ExternalDocs(
        url=value["url"],
        description=description if isinstance(description, str) else None,
    )


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _non_empty_list(value: Any) -> Optional[list[Any]]:
    return value if isinstance(value, list) and value else None


def _first_non_empty(*candidates: Any) -> Optional[list[Any]]:
    for candidate in candidates:
        if isinstance(candidate, list) and candidate:
            return candidate
    return None
