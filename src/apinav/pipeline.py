"""End-to-end pipeline: load, normalize, customize, check routes, chunk.

:func:`run_pipeline` is the single entry point used by the CLI and by any
host that embeds apinav.  Each call is an independent, full regeneration:
nothing is cached between calls, and a fetch or parse failure aborts the
whole run with no partial result.

Example::

    from apinav.models import FileSource
    from apinav.pipeline import run_pipeline

    result = run_pipeline(FileSource(path="openapi.yaml"))
    print(result.customized.stats.operations, len(result.artifacts.chunks))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import httpx
from pydantic import BaseModel, Field

from apinav.customize import customize_spec
from apinav.models import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESERVED_ROUTES,
    CustomizationConfig,
    FileSource,
    NavigatorConfig,
    NormalizedSpec,
    ProxyEntry,
    RuntimeArtifacts,
    UrlSource,
)
from apinav.parser.loader import load_document, source_label
from apinav.parser.normalizer import normalize_document
from apinav.routes import check_reserved_routes
from apinav.runtime.artifacts import build_runtime_artifacts
from apinav.runtime.proxy import build_dev_proxy_table
from apinav.runtime.writer import write_runtime_artifacts

logger = logging.getLogger(__name__)


class PipelineResult(BaseModel):
    """Everything one pipeline run produces."""

    normalized: NormalizedSpec
    customized: NormalizedSpec
    artifacts: RuntimeArtifacts
    proxy_table: list[ProxyEntry] = Field(default_factory=list)
    written: list[Path] = Field(default_factory=list)


def run_pipeline(
    source: Union[FileSource, UrlSource],
    customization: Optional[CustomizationConfig] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    reserved_routes: Iterable[str] = DEFAULT_RESERVED_ROUTES,
    client: Optional[httpx.Client] = None,
) -> PipelineResult:
    """Run every in-memory stage for *source*.

    Raises:
        SourceFetchError: The document could not be read or fetched.
        SpecParseError: The document is not a JSON/YAML object.
        RouteCollisionError: A tag or operation slug is a reserved route.
    """
    label = source_label(source)
    document = load_document(source, client=client)
    normalized = normalize_document(document, label)
    logger.info(
        "Normalized %s: %d operations in %d tags, %d schemas",
        label,
        normalized.stats.operations,
        normalized.stats.tags,
        len(normalized.schemas),
    )

    customized = customize_spec(normalized, customization)
    check_reserved_routes(customized, reserved_routes)

    return PipelineResult(
        normalized=normalized,
        customized=customized,
        artifacts=build_runtime_artifacts(customized, chunk_size),
        proxy_table=build_dev_proxy_table(customized),
    )


def build_from_config(
    config: NavigatorConfig,
    source: Union[FileSource, UrlSource],
    out_dir: Optional[Union[str, Path]] = None,
    client: Optional[httpx.Client] = None,
) -> PipelineResult:
    """Run the pipeline with *config* and write the artifacts when a directory is known.

    *out_dir* wins over ``config.output_dir``; with neither, nothing is
    written.
    """
    result = run_pipeline(
        source,
        customization=config.customization,
        chunk_size=config.chunk_size,
        reserved_routes=config.reserved_routes,
        client=client,
    )
    target = out_dir or config.output_dir
    if target:
        result.written = write_runtime_artifacts(
            result.artifacts,
            target,
            proxy_table=result.proxy_table,
            max_workers=config.write_concurrency,
        )
    return result
