"""Shared Typer app object, shared option types, and store/processor utilities."""

import logging
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.logging import RichHandler

from ..core.errors import FatigueTrackerError, UnknownUserError
from ..core.processor import WorkoutProcessor
from ..io.serializers import ValidationError
from ..io.state_store import StateStore, get_default_data_dir
from . import views

DEFAULT_USER = "default"

# Shared options used across all data commands
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User id (one state directory per user)"),
]
DataDirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--data-dir",
        "-D",
        help="Data directory (default: $FATIGUE_TRACKER_HOME or ~/.fatigue-tracker)",
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

app = typer.Typer(
    name="fatigue-tracker",
    help="Per-muscle fatigue, recovery and personal-record tracking for strength training.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug log output"),
    ] = False,
) -> None:
    """
    Muscle fatigue & recovery tracker.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=views.err_console, show_path=False)],
        force=True,
    )


def get_store(data_dir: Path | None) -> StateStore:
    """Get state store from path or default location."""
    return StateStore(data_dir if data_dir is not None else get_default_data_dir())


def get_processor(data_dir: Path | None) -> WorkoutProcessor:
    """Build a processor over the store, bundled catalog and merged config."""
    try:
        return WorkoutProcessor(get_store(data_dir))
    except (FatigueTrackerError, ValueError) as e:
        views.print_calculation_failed(f"Could not load engine configuration: {e}")
        raise typer.Exit(1)


def require_user(processor: WorkoutProcessor, user_id: str) -> None:
    """Exit with a 'no data yet' message if the user has not been initialized."""
    if not processor.store.exists(user_id):
        views.print_no_data(f"No data for user '{user_id}' yet.")
        views.print_info("Run 'fatigue-tracker init' first.")
        raise typer.Exit(1)


def fail(e: Exception) -> NoReturn:
    """Map an engine error to a CLI message and exit code 1."""
    if isinstance(e, UnknownUserError):
        views.print_no_data(str(e))
    else:
        views.print_calculation_failed(str(e))
    raise typer.Exit(1)


ENGINE_ERRORS = (FatigueTrackerError, ValidationError, ValueError, OSError)
