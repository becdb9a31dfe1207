"""Logging and console output using Rich.

Library modules only log through `get_logger(__name__)`. Handlers are
attached by the application (the CLI, a notebook) through `setup_logging`,
which configures the package logger and leaves the root logger alone.
The `print_*` helpers write user-facing output (status lines, matrices,
frame paths) to the shared console.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np
from numpy.typing import NDArray
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

PACKAGE_LOGGER = "iec_transform"

THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "red bold",
    "success": "green",
    "frame": "bold magenta",
    "debug": "dim",
})

console = Console(theme=THEME)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Attach a Rich handler (and optionally a file handler) to the package logger.

    Calling it again replaces the handlers installed by the previous call,
    so the level can be changed without duplicating output.

    Args:
        level: Logging level (e.g., logging.INFO, logging.DEBUG).
        log_file: Optional path to also log to a file.

    Returns:
        The package logger.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    rich_handler.setLevel(level)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        package_logger.addHandler(file_handler)

    # Font discovery floods DEBUG output when plotting
    logging.getLogger("matplotlib").setLevel(max(level, logging.WARNING))

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the package logger.

    Args:
        name: Logger name, typically __name__ of the calling module. Names
            outside the package are nested under it.

    Returns:
        Logger instance.
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def print_banner() -> None:
    """Print the toolkit banner."""
    from iec_transform import __version__

    console.print()
    console.print("[bold cyan]IEC 61217 Transform Kit[/bold cyan]", justify="center")
    console.print(f"[dim]Version {__version__}[/dim]", justify="center")
    console.print()


def print_success(message: str) -> None:
    console.print(f"[success][OK][/success] {message}")


def print_error(message: str) -> None:
    console.print(f"[error][ERROR][/error] {message}")


def print_warning(message: str) -> None:
    console.print(f"[warning][WARN][/warning] {message}")


def print_info(message: str) -> None:
    console.print(f"[info][INFO][/info] {message}")


def print_frame_path(frames: Iterable[str], label: str = "") -> None:
    """Print frame names joined by arrows, e.g. "Collimator -> Gantry"."""
    path = " -> ".join(f"[frame]{name}[/frame]" for name in frames)
    console.print(f"{label}{path}")


def print_matrix(matrix: NDArray[np.float64], title: Optional[str] = None, precision: int = 6) -> None:
    """Print a homogeneous matrix as a right-aligned table.

    Args:
        matrix: 2D array, typically 4x4.
        title: Optional table title, e.g. a transform name.
        precision: Decimal places per entry.
    """
    matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float64))

    table = Table(title=title, show_header=False, title_justify="left")
    for _ in range(matrix.shape[1]):
        table.add_column(justify="right", no_wrap=True)
    # Zero out values that would print as "-0.000000"
    cleaned = np.where(np.abs(matrix) < 0.5 * 10 ** -precision, 0.0, matrix)
    for row in cleaned:
        table.add_row(*(f"{value:.{precision}f}" for value in row))

    console.print(table)
