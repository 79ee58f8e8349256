"""Write runtime artifacts to disk.

Layout under the output directory::

    manifest.json           RuntimeManifest
    tags.json               list[TagDigest]
    operations-index.json   list[OperationIndexEntry]
    schemas.json            list[SchemaListEntry]
    operation-chunks.json   {operationSlug: chunkId}
    tag-chunks.json         {"tags": {tagSlug: [chunkId]}, "chunks": {chunkId: {"tag", "file"}}}
    chunks/<file>           {operationSlug: operation payload}
    schemas/<key>.json      SchemaDefinition
    proxy.json              list[ProxyEntry]

Every file is written atomically (temp file, then ``os.replace``) by a
bounded :class:`~concurrent.futures.ThreadPoolExecutor` into a staging
directory.  The staged ``chunks`` and ``schemas`` directories then replace
the old ones whole, so units from a previous build never linger and a failed
build leaves the previous output as it was.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Optional

from apinav.exceptions import ArtifactWriteError
from apinav.models import DEFAULT_WRITE_CONCURRENCY, ProxyEntry, RuntimeArtifacts

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"
TAGS_FILE = "tags.json"
OPERATION_INDEX_FILE = "operations-index.json"
SCHEMA_LIST_FILE = "schemas.json"
OPERATION_CHUNKS_FILE = "operation-chunks.json"
TAG_CHUNKS_FILE = "tag-chunks.json"
PROXY_FILE = "proxy.json"
CHUNKS_DIR = "chunks"
SCHEMAS_DIR = "schemas"
STAGING_PREFIX = ".staging-"


def write_runtime_artifacts(
    artifacts: RuntimeArtifacts,
    out_dir: str | Path,
    proxy_table: Optional[list[ProxyEntry]] = None,
    max_workers: int = DEFAULT_WRITE_CONCURRENCY,
) -> list[Path]:
    """Write *artifacts* (and optionally a proxy table) under *out_dir*.

    Every file is first written into a staging directory inside *out_dir*.
    Only when all of them succeed are the ``chunks`` and ``schemas``
    directories swapped in and the index files moved over the old ones.

    Args:
        artifacts: Output of
            :func:`~apinav.runtime.artifacts.build_runtime_artifacts`.
        out_dir: Target directory, created if missing.
        proxy_table: Entries for ``proxy.json``.  An empty list is written
            when omitted.
        max_workers: Upper bound on concurrent file writes.

    Returns:
        Paths of all written files, in submission order.

    Raises:
        ArtifactWriteError: If any file cannot be written.  The previous
            contents of *out_dir* are left untouched.
    """
    root = Path(out_dir)
    try:
        root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=root))
        (staging / CHUNKS_DIR).mkdir()
        (staging / SCHEMAS_DIR).mkdir()
    except OSError as exc:
        raise ArtifactWriteError(str(root), str(exc)) from exc

    try:
        jobs = _plan_files(artifacts, staging, proxy_table or [])
        logger.info("Writing %d runtime files to %s", len(jobs), root)
        _write_all(jobs, max_workers)
        _swap_in(staging, root)
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    return [root / path.relative_to(staging) for path, _ in jobs]


def _write_all(jobs: list[tuple[Path, Any]], max_workers: int) -> None:
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [executor.submit(_write_json, path, data) for path, data in jobs]
        for future in as_completed(futures):
            future.result()


def _swap_in(staging: Path, root: Path) -> None:
    """Move staged unit directories, then index files, into *root*."""
    try:
        for sub in (CHUNKS_DIR, SCHEMAS_DIR):
            target = root / sub
            retired = staging / f"{sub}.old"
            if target.is_dir():
                os.replace(target, retired)
            try:
                os.replace(staging / sub, target)
            except OSError:
                if retired.is_dir():
                    os.replace(retired, target)
                raise
        for path in sorted(staging.iterdir()):
            if path.is_file():
                os.replace(path, root / path.name)
    except OSError as exc:
        raise ArtifactWriteError(str(root), str(exc)) from exc


def _plan_files(
    artifacts: RuntimeArtifacts, root: Path, proxy_table: list[ProxyEntry]
) -> list[tuple[Path, Any]]:
    def dump(value: Any) -> Any:
        return value.model_dump(mode="json", by_alias=True)

    jobs: list[tuple[Path, Any]] = [
        (root / MANIFEST_FILE, dump(artifacts.manifest)),
        (root / TAGS_FILE, [dump(tag) for tag in artifacts.tags]),
        (root / OPERATION_INDEX_FILE, [dump(entry) for entry in artifacts.operation_index]),
        (root / SCHEMA_LIST_FILE, [dump(entry) for entry in artifacts.schema_list]),
        (root / OPERATION_CHUNKS_FILE, artifacts.operation_chunk_lookup),
        (
            root / TAG_CHUNKS_FILE,
            {
                "tags": artifacts.tag_chunk_map,
                "chunks": {
                    chunk.id: {"tag": chunk.tag_slug, "file": chunk.file_name}
                    for chunk in artifacts.chunks
                },
            },
        ),
        (root / PROXY_FILE, [dump(entry) for entry in proxy_table]),
    ]
    for chunk in artifacts.chunks:
        jobs.append((root / CHUNKS_DIR / chunk.file_name, chunk.operations))
    for definition in artifacts.schema_definitions:
        jobs.append((root / SCHEMAS_DIR / f"{definition.key}.json", dump(definition)))
    return jobs


def _write_json(path: Path, data: Any) -> None:
    try:
        _atomic_write(path, json.dumps(data, ensure_ascii=False, default=str))
    except (OSError, TypeError, ValueError) as exc:
        raise ArtifactWriteError(str(path), str(exc)) from exc


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
