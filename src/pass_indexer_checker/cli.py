"""Command-line interface for the indexer checker."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from pass_indexer_checker import __version__
from pass_indexer_checker.checker import IndexerChecker
from pass_indexer_checker.config import (
    DEFAULT_MAIL_PROPERTIES,
    DEFAULT_SYSTEM_PROPERTIES,
    CheckerConfig,
    MailConfig,
)
from pass_indexer_checker.exceptions import CheckerError
from pass_indexer_checker.index import IndexClient
from pass_indexer_checker.notify import EmailService
from pass_indexer_checker.repository import PassClient

logger = logging.getLogger(__name__)

console = Console(stderr=True)

PROG_NAME = "pass-indexer-checker"

CONTEXT_SETTINGS = {"help_option_names": ["-h", "-help", "--help"]}


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def install_cancel_handler(cancel: threading.Event) -> None:
    """Abandon polling when the process is asked to terminate."""

    def handler(signum: int, frame: Any) -> None:
        logger.warning("Received signal %d, cancelling", signum)
        cancel.set()

    signal.signal(signal.SIGTERM, handler)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.version_option(
    __version__,
    "-v",
    "-version",
    "--version",
    prog_name=PROG_NAME,
    message="%(version)s",
    help="Print version information and exit.",
)
@click.option(
    "-e",
    "--email",
    is_flag=True,
    help="Email the failure to the recipients in the mail properties file.",
)
@click.option(
    "--system-properties",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_SYSTEM_PROPERTIES,
    show_default=True,
    help="Repository and index settings; skipped if the file does not exist.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML, JSON or properties settings file; replaces --system-properties.",
)
@click.option(
    "--mail-properties",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_MAIL_PROPERTIES,
    show_default=True,
    help="Mail server settings, required with --email.",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    email: bool,
    system_properties: Path,
    config_file: Path | None,
    mail_properties: Path,
    debug: bool,
) -> None:
    """Check that the PASS index is configured and kept in sync with the repository."""
    configure_logging("DEBUG" if debug else "INFO")

    overrides: dict[str, Any] = {"log_level": "DEBUG"} if debug else {}
    try:
        if config_file is not None:
            config = CheckerConfig.from_file(config_file, **overrides)
        else:
            config = CheckerConfig.from_properties(system_properties, **overrides)
        logging.getLogger().setLevel(config.log_level)

        notifier = None
        if email:
            notifier = EmailService(MailConfig.from_properties(mail_properties))
    except CheckerError as e:
        logger.error("Could not load configuration: %s", e)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    cancel = threading.Event()
    install_cancel_handler(cancel)

    try:
        with PassClient(config) as repository, IndexClient(config) as index:
            IndexerChecker(config, repository, index, notifier, cancel=cancel).run()
    except CheckerError as e:
        # Already logged by the checker
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    console.print("[green]✓ Indexer check passed[/green]")


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Exits 0 on success, help or version, and 1 on a command-line error or a
    failed check.
    """
    try:
        code = cli.main(args=argv, prog_name=PROG_NAME, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        code = 1
    except click.Abort:
        console.print("Aborted!")
        code = 1

    sys.exit(code or 0)


if __name__ == "__main__":
    main()
