"""Runtime artifacts -- chunk, write, and lazily read a normalized spec.

Sub-modules:

* :mod:`~apinav.runtime.artifacts` -- Builds the manifest, digests, chunks
  and schema definitions.
* :mod:`~apinav.runtime.writer` -- Writes them atomically to a directory.
* :mod:`~apinav.runtime.loader` -- :class:`RuntimeLoader`, memoized reads
  of single operations, tags and schemas.
* :mod:`~apinav.runtime.proxy` -- Dev reverse-proxy table from server URLs.
"""

from apinav.runtime.artifacts import build_runtime_artifacts
from apinav.runtime.loader import RuntimeLoader
from apinav.runtime.proxy import build_dev_proxy_table, rewrite_proxy_path
from apinav.runtime.writer import write_runtime_artifacts

__all__ = [
    "build_runtime_artifacts",
    "RuntimeLoader",
    "build_dev_proxy_table",
    "rewrite_proxy_path",
    "write_runtime_artifacts",
]
