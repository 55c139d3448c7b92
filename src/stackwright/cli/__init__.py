"""stackwright command line: ``plan``, ``deploy``, ``destroy``, ``validate``, ``unlock``."""

from __future__ import annotations

import logging
import os

import typer

from stackwright import __version__

app = typer.Typer(
    name="stackwright",
    help="Declarative deployments reconciled against a durable state record.",
    no_args_is_help=True,
    add_completion=False,
)

# Provider calls run on scheduler threads; the thread name tells them apart.
_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
_VERBOSITY = (logging.WARNING, logging.INFO, logging.DEBUG)
# SDK loggers stay at WARNING below -vvv: their DEBUG output is wire-level.
_SDK_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")


def log_level(verbose: int, env_value: str | None = None) -> int | None:
    """Level for the ``stackwright`` loggers, or ``None`` to leave logging unconfigured.

    A level name in ``STACKWRIGHT_LOG`` wins over ``-v`` flags; an unknown
    name falls back to INFO with a warning.
    """
    if env_value:
        level = logging.getLevelNamesMapping().get(env_value.strip().upper())
        if level is None:
            typer.echo(
                f"WARNING: invalid STACKWRIGHT_LOG level '{env_value}'; defaulting to INFO",
                err=True,
            )
            return logging.INFO
        return level
    if verbose <= 0:
        return None
    return _VERBOSITY[min(verbose, len(_VERBOSITY) - 1)]


def configure_logging(level: int, *, verbose: int = 0) -> None:
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, force=True)
    logging.getLogger("stackwright").setLevel(level)
    sdk_level = logging.DEBUG if verbose >= 3 else logging.WARNING
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"stackwright {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="-v run progress, -vv per-resource detail, -vvv adds AWS SDK logs.",
    ),
) -> None:
    _ = version
    level = log_level(verbose, os.environ.get("STACKWRIGHT_LOG"))
    if level is not None:
        configure_logging(level, verbose=verbose)


# Commands register on ``app`` at import time.
from stackwright.cli import commands as _commands  # noqa: E402, F401
