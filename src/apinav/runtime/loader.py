"""Read runtime artifacts back, one unit at a time.

:class:`RuntimeLoader` is the read side of :mod:`apinav.runtime.writer`.  It
answers "give me this operation" or "give me this tag's operations" by
reading only the chunk files involved, so the cost of one lookup is bounded
by the chunk size rather than the size of the whole spec.

Every unit is parsed at most once per loader; chunks are memoized by chunk
id.  A missing or unparsable file is logged and treated as "not found".
Every public method returns a copy, so callers may mutate what they get.

Eviction
--------

With ``evict_after_read=True`` an operation is dropped from its memoized
chunk as soon as :meth:`RuntimeLoader.load_operation` returns it.  This keeps
resident memory flat during a single-pass build that renders each operation
once.  A second lookup of the same operation then returns ``None``, so leave
the flag off in anything that serves repeated reads.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from apinav.runtime.writer import (
    CHUNKS_DIR,
    MANIFEST_FILE,
    OPERATION_CHUNKS_FILE,
    OPERATION_INDEX_FILE,
    SCHEMA_LIST_FILE,
    SCHEMAS_DIR,
    TAG_CHUNKS_FILE,
    TAGS_FILE,
)

logger = logging.getLogger(__name__)


class RuntimeLoader:
    """Memoized access to a directory written by
    :func:`~apinav.runtime.writer.write_runtime_artifacts`.

    Args:
        directory: The artifact output directory.
        evict_after_read: Drop each operation from memory after it is first
            returned by :meth:`load_operation`.

    Example::

        loader = RuntimeLoader("dist/apinav")
        manifest = loader.load_manifest()
        operation = loader.load_operation("list-users", tag_slug="users")
    """

    def __init__(self, directory: str | Path, evict_after_read: bool = False) -> None:
        self.directory = Path(directory)
        self.evict_after_read = evict_after_read
        self._lock = threading.Lock()
        self._files: dict[str, Any] = {}
        self._chunks: dict[str, Optional[dict[str, Any]]] = {}

    # ------------------------------------------------------------------ #
    # Indexes
    # ------------------------------------------------------------------ #

    def load_manifest(self) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._load_index(MANIFEST_FILE, dict))

    def load_tags(self) -> Optional[list[dict[str, Any]]]:
        return copy.deepcopy(self._load_index(TAGS_FILE, list))

    def load_operation_index(self) -> Optional[list[dict[str, Any]]]:
        return copy.deepcopy(self._load_index(OPERATION_INDEX_FILE, list))

    def load_schemas(self) -> Optional[list[dict[str, Any]]]:
        return copy.deepcopy(self._load_index(SCHEMA_LIST_FILE, list))

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def load_operation(
        self, slug: str, tag_slug: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        """Return the full payload of operation *slug*.

        The chunks of *tag_slug* are searched first when given; otherwise
        (or when the operation is not there) the global operation-to-chunk
        lookup decides which chunk to read.
        """
        if not slug:
            return None

        if tag_slug:
            for chunk_id in self._tag_chunk_ids(tag_slug):
                operation = self._take(chunk_id, slug)
                if operation is not None:
                    return operation

        chunk_id = self._operation_lookup().get(slug)
        if not chunk_id:
            return None
        return self._take(chunk_id, slug)

    def load_tag_operations(self, tag_slug: str) -> Optional[dict[str, dict[str, Any]]]:
        """All operations of *tag_slug* keyed by slug, or ``None`` if none load."""
        combined: dict[str, dict[str, Any]] = {}
        found = False
        for chunk_id in self._tag_chunk_ids(tag_slug):
            operations = self._load_chunk(chunk_id)
            if operations is None:
                continue
            found = True
            with self._lock:
                combined.update(copy.deepcopy(operations))
        return combined if found else None

    def get_operation_preferred_tag(self, slug: str) -> Optional[str]:
        """Slug of the tag whose chunk first claimed operation *slug*."""
        chunk_id = self._operation_lookup().get(slug)
        if not chunk_id:
            return None
        chunk = self._tag_chunks().get("chunks", {}).get(chunk_id)
        return chunk.get("tag") if isinstance(chunk, dict) else None

    # ------------------------------------------------------------------ #
    # Schemas
    # ------------------------------------------------------------------ #

    def load_schema_definition(self, slug: str) -> Optional[dict[str, Any]]:
        """Return the resolved schema definition stored under *slug*."""
        if not slug or "/" in slug or "\\" in slug or slug.startswith("."):
            return None
        return copy.deepcopy(self._load_index(f"{SCHEMAS_DIR}/{slug}.json", dict))

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _take(self, chunk_id: str, slug: str) -> Optional[dict[str, Any]]:
        operations = self._load_chunk(chunk_id)
        if operations is None:
            return None
        if not self.evict_after_read:
            return copy.deepcopy(operations.get(slug))
        with self._lock:
            return operations.pop(slug, None)

    def _load_chunk(self, chunk_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            if chunk_id in self._chunks:
                return self._chunks[chunk_id]

        entry = self._tag_chunks().get("chunks", {}).get(chunk_id)
        file_name = entry.get("file") if isinstance(entry, dict) else None
        operations = None
        if isinstance(file_name, str) and file_name:
            operations = self._read_json(f"{CHUNKS_DIR}/{file_name}", dict)
        else:
            logger.debug("Unknown chunk %s", chunk_id)

        with self._lock:
            return self._chunks.setdefault(chunk_id, operations)

    def _tag_chunk_ids(self, tag_slug: str) -> list[str]:
        ids = self._tag_chunks().get("tags", {}).get(tag_slug)
        if isinstance(ids, str):
            return [ids]
        return [i for i in ids if isinstance(i, str)] if isinstance(ids, list) else []

    def _tag_chunks(self) -> dict[str, Any]:
        return self._load_index(TAG_CHUNKS_FILE, dict) or {}

    def _operation_lookup(self) -> dict[str, str]:
        return self._load_index(OPERATION_CHUNKS_FILE, dict) or {}

    def _load_index(self, name: str, expected: type) -> Any:
        with self._lock:
            if name in self._files:
                return self._files[name]
        value = self._read_json(name, expected)
        with self._lock:
            return self._files.setdefault(name, value)

    def _read_json(self, name: str, expected: type) -> Any:
        path = self.directory / name
        try:
            value = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("Runtime unit %s not found", path)
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Could not read runtime unit %s: %s", path, exc)
            return None
        if not isinstance(value, expected):
            logger.warning("Runtime unit %s has unexpected shape", path)
            return None
        return value
