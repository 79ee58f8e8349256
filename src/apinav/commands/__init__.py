"""Built-in CLI sub-commands for apinav.

* :mod:`~apinav.commands.build` -- run the pipeline and write runtime
  artifacts.
* :mod:`~apinav.commands.inspect` -- read-only views of the customized
  spec: info, tags, operations, schemas, and the dev proxy table.

``build`` is a plain callback registered directly on the root app;
``inspect`` is a :class:`typer.Typer` sub-application.

Both report :class:`~apinav.exceptions.ApinavError` failures on stderr and
exit with the error's code.
"""

from __future__ import annotations

from typing import NoReturn, Optional

import typer

from apinav.config import resolve_config, spec_source_from_config
from apinav.exceptions import ApinavError
from apinav.models import NavigatorConfig
from apinav.output import get_output
from apinav.pipeline import PipelineResult, build_from_config


def config_from_context(
    ctx: typer.Context,
    spec: Optional[str] = None,
    out_dir: Optional[str] = None,
    chunk_size: Optional[int] = None,
) -> NavigatorConfig:
    """Resolve the effective configuration for this invocation."""
    obj = ctx.obj or {}
    try:
        return resolve_config(
            config_path=obj.get("config_path"),
            cli_spec=spec,
            cli_output_dir=out_dir,
            cli_chunk_size=chunk_size,
        )
    except ApinavError as exc:
        _exit_with(exc)


def run_with_config(config: NavigatorConfig, write: bool = False) -> PipelineResult:
    """Run the pipeline; write artifacts to ``config.output_dir`` when *write* is set."""
    try:
        return build_from_config(
            config,
            spec_source_from_config(config),
            out_dir=config.output_dir if write else None,
        )
    except ApinavError as exc:
        _exit_with(exc)


def _exit_with(exc: ApinavError) -> NoReturn:
    get_output().error(str(exc))
    raise typer.Exit(code=exc.exit_code) from None
