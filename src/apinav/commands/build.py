"""``apinav build`` -- generate runtime artifacts for a spec."""

from __future__ import annotations

from typing import Optional

import typer

from apinav.commands import config_from_context, run_with_config
from apinav.exit_codes import EXIT_INVALID_USAGE
from apinav.output import get_output


def build_command(
    ctx: typer.Context,
    spec: Optional[str] = typer.Option(
        None, "--spec", "-s", help="Path or URL of the OpenAPI document."
    ),
    out_dir: Optional[str] = typer.Option(
        None, "--out", "-o", help="Directory to write runtime artifacts to."
    ),
    chunk_size: Optional[int] = typer.Option(
        None, "--chunk-size", min=1, help="Maximum operations per chunk file."
    ),
) -> None:
    """Normalize, customize, and chunk a spec, then write the artifacts.

    Example::

        apinav build --spec public/openapi.yaml --out dist/apinav
        apinav --config apinav.yaml build
    """
    output = get_output()
    config = config_from_context(ctx, spec, out_dir, chunk_size)
    if not config.output_dir:
        output.error("No output directory. Pass --out or set output_dir in the config file.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    result = run_with_config(config, write=True)
    stats = result.customized.stats
    output.success(
        f"Wrote {len(result.written)} files to {config.output_dir} "
        f"({stats.operations} operations, {stats.tags} tags, "
        f"{len(result.artifacts.chunks)} chunks, "
        f"{len(result.artifacts.schema_definitions)} schemas)"
    )
