"""
qgate CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console

from qgate import __version__
from qgate.cli import review
from qgate.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_QUEUE = "See What Needs Review"
PANEL_ACTIONS = "Decide on Reviews"

app = typer.Typer(
    name="qgate",
    help="Quality gate for content production tasks",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"qgate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    store: Path | None = typer.Option(
        None,
        "--store",
        help="Path to the JSON store (default: .qgate/store.json)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """
    qgate - review queue, XP grading and PASS/REVISE decisions.

    Common Workflows:
        qgate queue                          # What is waiting, by urgency
        qgate summary --metric overdue       # Drill into one tile
        qgate grade t-42 --preset good       # Preview the XP award
        qgate pass rv-7 --as u-lead --adjust 20
        qgate revise rv-7 --as u-lead --reason "Audio levels need fixing"
    """
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    # Precedence: OS env > project .env > user .env
    load_layered_env()

    ctx.obj = {"debug": debug, "store": store}


app.command(name="queue", rich_help_panel=PANEL_QUEUE)(review.queue)
app.command(name="summary", rich_help_panel=PANEL_QUEUE)(review.summary)
app.command(name="grade", rich_help_panel=PANEL_QUEUE)(review.grade_task)
app.command(name="pass", rich_help_panel=PANEL_ACTIONS)(review.pass_cmd)
app.command(name="revise", rich_help_panel=PANEL_ACTIONS)(review.revise_cmd)


def cli_main() -> None:
    """Entry point for the console script."""
    app()


__all__ = ["app", "cli_main", "main"]
