"""Typer application and CLI entry point for routeclient.

The root app carries the global output flags and two commands:

* ``routeclient inspect FILE`` -- list the endpoints a description derives.
* ``routeclient call FILE ENDPOINT`` -- invoke one of them.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Known :class:`~routeclient.exceptions.RouteClientError`
failures exit with their own code; anything else is written to a crash log
and exits with :data:`~routeclient.exit_codes.EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import signal
import sys
import tempfile
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer

from routeclient import __version__
from routeclient.commands.call import call_command
from routeclient.commands.inspect import inspect_command
from routeclient.exit_codes import EXIT_GENERIC_FAILURE
from routeclient.output import OutputFormat, OutputManager, set_output

app = typer.Typer(
    name="routeclient",
    help="Derive and call HTTP clients from declarative API descriptions.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"routeclient {__version__}")
        raise typer.Exit()


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
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Install the global :class:`~routeclient.output.OutputManager` from the flags."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


app.command("inspect")(inspect_command)
app.command("call")(call_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to a temp file and return its path."""
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = Path(tempfile.gettempdir()) / f"routeclient-crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``routeclient`` console script.

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
        from routeclient.exceptions import RouteClientError
        from routeclient.output import error

        if isinstance(exc, RouteClientError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
