"""apinav -- Normalize OpenAPI documents into chunked API-reference artifacts.

This package ingests an OpenAPI document (Swagger 2.0, OpenAPI 3.0 or 3.1;
local file or remote URL), builds a normalized model of its tags,
operations, schemas and examples with stable slugs, applies user
customization, and partitions the result into small runtime units that a
documentation site can load one operation or one tag at a time.

Typical workflow::

    apinav build --spec public/openapi.yaml --out dist/apinav
    apinav inspect tags

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    parser: Loading, Swagger 2.0 adaptation, and normalization.
    customize: Tag/operation filtering, overrides, and ordering.
    runtime: Chunked artifacts, their writer, and the runtime loader.
    pipeline: End-to-end orchestration.
    config: Configuration file loading and precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
