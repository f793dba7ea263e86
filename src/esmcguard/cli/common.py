"""Shared CLI plumbing: logging setup, settings, and error exits."""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler

from esmcguard.config import Settings

_stderr = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    """Route ``esmcguard`` log records to stderr through Rich.

    INFO and above when *verbose*, WARNING and above otherwise. Safe to
    call repeatedly; the handler is installed once.
    """
    logger = logging.getLogger("esmcguard")
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=_stderr, show_time=False, show_path=False)
        )


def load_settings(
    root: Path | None = None, verbose: bool | None = None, **overrides: object
) -> Settings:
    """Environment settings with command-line values taking precedence."""
    settings = Settings.from_env()
    changes: dict[str, object] = dict(overrides)
    if root is not None:
        changes["project_root"] = root
    if verbose is not None:
        changes["verbose"] = verbose or settings.verbose
    return dataclasses.replace(settings, **changes)


def fail(message: str, code: int = 1) -> NoReturn:
    """Print ``Error: <message>`` to stderr and exit with *code*."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(code)


root_option = click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="ESMC_PROJECT_ROOT",
    default=None,
    help="Project root containing .claude/ (default: search upward from cwd).",
)

verbose_option = click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Show warnings for degraded checks (or set ESMC_VERBOSE=1).",
)

format_option = click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
