# src/meshup/bin/cli.py
import logging
import sys
from typing import Sequence

import typer
from rich.console import Console

from meshup.lib.config import SetupConfig, load_config
from meshup.lib.domain import (
    EXIT_FATAL,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_TERMINATED,
    SetupError,
)
from meshup.lib.orchestrator import Orchestrator
from meshup.lib.preflight import RunLock, check_platform, ensure_root, install_signal_handlers
from meshup.lib.prompts import ConsolePrompter
from meshup.lib.runner import CommandRunner

logger = logging.getLogger(__name__)

__version__ = "3.1.0"

app = typer.Typer(
    help="meshup - Tailscale remote network setup for Arch/Hyprland desktops",
    add_completion=False,
)


def build_orchestrator(config: SetupConfig, console: Console) -> Orchestrator:
    return Orchestrator(
        config,
        runner=CommandRunner(),
        prompter=ConsolePrompter(console),
        console=console,
    )


def report_fatal(exit_code: int, console: Console) -> None:
    """Single closing diagnostic for failed runs; interrupts are not failures"""
    if exit_code in (EXIT_OK, EXIT_INTERRUPTED, EXIT_TERMINATED):
        return
    console.print(f"\n[red]\\[FATAL][/red] Setup terminated with error code {exit_code}.")


def run_setup(config: SetupConfig, console: Console, argv: Sequence[str]) -> int:
    """
    Run preflight checks and all setup phases under the run lock.

    Returns:
        Process exit code
    """
    err_console = Console(stderr=True, no_color=not config.color)
    install_signal_handlers()
    try:
        ensure_root(argv)
        check_platform(config)
        with RunLock(config.lockfile):
            result = build_orchestrator(config, console).run()
    except SetupError as e:
        logger.error(f"{e}")
        report_fatal(e.exit_code, err_console)
        return e.exit_code
    except KeyboardInterrupt:
        console.print()
        logger.info("Interrupted by operator.")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Traceback:", exc_info=True)
        report_fatal(EXIT_FATAL, err_console)
        return EXIT_FATAL

    if result.cancelled:
        console.print("Cancelled.")
    elif result.is_complete:
        console.print("[green]\\[SUCCESS][/green] Tunnel execution completed successfully.")
    return EXIT_OK


@app.command()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="verbosity"),
    version: bool = typer.Option(False, "-V", "--version", help="show version"),
) -> None:
    """Configure Tailscale and system networking, then authenticate interactively"""
    log_fmt = r"%(asctime)-15s %(levelname)-7s %(message)s"
    if verbose:
        logging.basicConfig(
            format=log_fmt, level=logging.DEBUG, datefmt="%m-%d %H:%M:%S"
        )
    else:
        logging.basicConfig(
            format=log_fmt, level=logging.INFO, datefmt="%m-%d %H:%M:%S"
        )

    if version:
        typer.echo(f"meshup version: {__version__}")
        raise typer.Exit()

    config = load_config()
    console = Console(no_color=not config.color, highlight=False)
    exit_code = run_setup(config, console, sys.argv[1:])
    if exit_code != EXIT_OK:
        raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
