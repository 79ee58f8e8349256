"""Typer application and CLI entry point for apinav.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``build`` and ``inspect``).  The :func:`main` function
is the console-script entry point declared in ``pyproject.toml``.

See Also:
    :mod:`apinav.config`: Configuration file and precedence resolution.
    :mod:`apinav.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Optional

import typer

from apinav import __version__
from apinav.commands.build import build_command
from apinav.commands.inspect import inspect_app
from apinav.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="apinav",
    help="Normalize OpenAPI documents into chunked API-reference artifacts.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("build")(build_command)
app.add_typer(inspect_app, name="inspect", help="Inspect a spec as apinav sees it.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apinav {__version__}")
        raise typer.Exit()


_log_handler: Optional[logging.Handler] = None


def configure_logging(verbose: bool = False) -> None:
    """Send library log records to stderr: DEBUG with ``--verbose``, else WARNING."""
    global _log_handler
    package_logger = logging.getLogger("apinav")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if _log_handler is None:
        _log_handler = logging.StreamHandler(sys.stderr)
        _log_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(_log_handler)
    else:
        _log_handler.setStream(sys.stderr)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (default: ./apinav.yaml, .yml or .json)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~apinav.output.OutputManager` and
    logging from CLI flags, and stores shared options in ``ctx.obj``.
    """
    from apinav.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``apinav`` console script.

    Unhandled :class:`~apinav.exceptions.ApinavError` instances cause a
    clean exit with the error's ``exit_code`` and no traceback.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from apinav.exceptions import ApinavError
        from apinav.output import get_output

        if isinstance(exc, ApinavError):
            get_output().error(str(exc))
            sys.exit(exc.exit_code)
        logging.getLogger(__name__).debug("Unexpected error", exc_info=True)
        get_output().error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
