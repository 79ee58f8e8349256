"""Partition a normalized spec into runtime artifacts.

:func:`build_runtime_artifacts` splits a (usually customized)
:class:`~apinav.models.NormalizedSpec` into units that a runtime can load
independently:

* a small :class:`~apinav.models.RuntimeManifest` whose size does not grow
  with the number of operations or schemas,
* per-tag digests and a flat operation index for listings and search,
* operation chunks holding at most ``chunk_size`` full operation payloads
  each, grouped by tag in tag order,
* one resolved :class:`~apinav.models.SchemaDefinition` per component schema,
* lookup tables from operation slug to chunk id and between tags and chunks.

An operation tagged with several tags appears in one chunk per tag.  The
operation-to-chunk lookup keeps the first chunk that claimed it, so
:func:`~apinav.runtime.loader.RuntimeLoader.get_operation_preferred_tag`
resolves to the first tag in sort order.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from apinav.models import (
    DEFAULT_CHUNK_SIZE,
    NormalizedOperation,
    NormalizedSpec,
    NormalizedTag,
    OperationChunk,
    OperationDigest,
    OperationIndexEntry,
    RuntimeArtifacts,
    RuntimeManifest,
    SchemaDefinition,
    SchemaListEntry,
    TagDigest,
)
from apinav.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

_CHUNK_PAYLOAD_FIELDS = {
    "path",
    "method",
    "operation_id",
    "slug",
    "summary",
    "description",
    "deprecated",
    "tags",
    "parameters",
    "request_body",
    "responses",
    "security",
    "servers",
    "code_sample_groups",
    "request_body_examples",
    "response_examples",
}


def build_runtime_artifacts(
    spec: NormalizedSpec, chunk_size: int = DEFAULT_CHUNK_SIZE
) -> RuntimeArtifacts:
    """Build every runtime unit for *spec*.

    Args:
        spec: The spec to partition.  Not modified.
        chunk_size: Maximum number of operations per chunk.

    Returns:
        The complete :class:`~apinav.models.RuntimeArtifacts`.

    Raises:
        ValueError: If *chunk_size* is less than 1.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")

    artifacts = RuntimeArtifacts(manifest=build_manifest(spec))

    for tag in spec.tags:
        if not tag.slug:
            logger.debug("Skipping tag %r without a slug", tag.name)
            continue

        tag_name = (tag.metadata.display_name if tag.metadata else None) or tag.name or tag.slug
        digests: list[OperationDigest] = []
        payloads: list[dict[str, Any]] = []
        for operation in tag.operations:
            digest = create_operation_digest(operation)
            if digest is not None:
                digests.append(digest)
                artifacts.operation_index.append(
                    OperationIndexEntry(
                        **digest.model_dump(), tag_slug=tag.slug, tag_name=tag_name
                    )
                )
            if operation.slug:
                payloads.append(operation_payload(operation))

        artifacts.tags.append(_tag_digest(tag, digests))

        for start in range(0, len(payloads), chunk_size):
            chunk_id = create_chunk_id(tag.slug, start // chunk_size)
            chunk = OperationChunk(
                id=chunk_id,
                tag_slug=tag.slug,
                file_name=build_chunk_file_name(chunk_id),
                operations={p["slug"]: p for p in payloads[start : start + chunk_size]},
            )
            for slug in chunk.operations:
                artifacts.operation_chunk_lookup.setdefault(slug, chunk_id)
            artifacts.chunks.append(chunk)
            artifacts.tag_chunk_map.setdefault(tag.slug, []).append(chunk_id)
            artifacts.chunk_tag_map[chunk_id] = tag.slug

    artifacts.schema_list, artifacts.schema_definitions = _build_schemas(spec)

    logger.debug(
        "Built %d chunks for %d operations across %d tags",
        len(artifacts.chunks),
        len(artifacts.operation_chunk_lookup),
        len(artifacts.tags),
    )
    return artifacts


def build_manifest(spec: NormalizedSpec) -> RuntimeManifest:
    """The always-resident summary: info, servers, stats, and security."""
    return RuntimeManifest(
        info=spec.info,
        servers=spec.servers,
        stats=spec.stats,
        document=build_runtime_document(spec.document),
    )


def build_runtime_document(document: Any) -> dict[str, Any]:
    """Keep only ``security`` and ``components.securitySchemes`` from *document*."""
    if not isinstance(document, dict):
        return {}
    result: dict[str, Any] = {}
    if isinstance(document.get("security"), list):
        result["security"] = document["security"]
    components = document.get("components")
    if isinstance(components, dict) and isinstance(components.get("securitySchemes"), dict):
        result["components"] = {"securitySchemes": components["securitySchemes"]}
    return result


def create_operation_digest(operation: NormalizedOperation) -> Optional[OperationDigest]:
    """Summarize *operation*, or ``None`` when it has neither a path nor a summary."""
    if not operation.slug:
        return None
    summary = operation.summary or ""
    if not operation.path and not summary:
        return None
    return OperationDigest(
        slug=operation.slug,
        method=operation.method.upper(),
        path=operation.path,
        summary=summary,
        deprecated=operation.deprecated,
    )


def operation_payload(operation: NormalizedOperation) -> dict[str, Any]:
    """Serialize the full operation record stored in a chunk.

    Unset optional fields are omitted and ``extensions`` is included only
    when the operation has any.
    """
    payload = operation.model_dump(mode="json", by_alias=True, include=_CHUNK_PAYLOAD_FIELDS)
    payload = {key: value for key, value in payload.items() if value is not None}
    if operation.extensions:
        payload["extensions"] = operation.extensions
    return payload


def create_chunk_id(tag_slug: str, index: int = 0) -> str:
    return f"tag:{tag_slug or 'untagged'}:chunk:{index}"


def build_chunk_file_name(chunk_id: str) -> str:
    """Filesystem-safe file name for a chunk, e.g. ``operations-tag-users-chunk-0.json``."""
    safe = re.sub(r"[^a-zA-Z0-9:_-]", "-", chunk_id)
    safe = re.sub(r":+", "-", safe)
    safe = re.sub(r"-+", "-", safe).strip("-")
    return f"operations-{safe or 'chunk'}.json"


def schema_key(name: str, slug: Optional[str]) -> str:
    """Storage key for a schema definition: its slug, else a sanitized lowercase name."""
    if slug:
        return slug
    key = re.sub(r"[^a-z0-9_-]+", "-", name.lower()).strip("-")
    return key or "schema"


def _tag_digest(tag: NormalizedTag, digests: list[OperationDigest]) -> TagDigest:
    return TagDigest(
        name=tag.name,
        slug=tag.slug,
        description=tag.description,
        external_docs=tag.external_docs,
        is_fallback=tag.is_fallback,
        stats=tag.stats,
        metadata=tag.metadata,
        extensions=tag.extensions,
        operations=digests,
    )


def _build_schemas(
    spec: NormalizedSpec,
) -> tuple[list[SchemaListEntry], list[SchemaDefinition]]:
    resolver = SchemaResolver(spec.components)
    entries: list[SchemaListEntry] = []
    definitions: list[SchemaDefinition] = []
    for schema in spec.schemas:
        if not schema.name:
            continue
        entries.append(SchemaListEntry(name=schema.name, slug=schema.slug))
        resolved = resolver.resolve_schema(schema.schema_)
        if resolved is None:
            logger.debug("Schema %s could not be resolved; storing it unresolved", schema.name)
            resolved = schema.schema_
        definitions.append(
            SchemaDefinition(
                key=schema_key(schema.name, schema.slug),
                name=schema.name,
                slug=schema.slug,
                schema_=resolved,
                description=schema.description,
                extensions=schema.extensions,
            )
        )
    entries.sort(key=lambda entry: entry.name)
    return entries, definitions
