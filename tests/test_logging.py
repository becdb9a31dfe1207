"""Tests for logging setup and console helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pytest
from rich.text import Text

from iec_transform.common.logging import (
    PACKAGE_LOGGER,
    console,
    get_logger,
    print_frame_path,
    print_matrix,
    setup_logging,
)


def _plain(output: str) -> str:
    return Text.from_ansi(output).plain


@pytest.fixture
def package_logger():
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_root_logger_untouched(self, package_logger):
        """Only the package logger receives handlers."""
        root_handlers = list(logging.getLogger().handlers)
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger().handlers == root_handlers
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1

    def test_repeated_setup_replaces_handlers(self, package_logger):
        """Calling setup twice does not duplicate handlers."""
        setup_logging()
        setup_logging(level=logging.WARNING)
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.WARNING

    def test_log_file(self, package_logger, temp_output_dir: Path):
        """Records from package modules reach the log file."""
        log_file = temp_output_dir / "run.log"
        setup_logging(log_file=str(log_file))

        get_logger("iec_transform.geometry.composer").info("Composed RasToCollimatorTransform")

        text = log_file.read_text()
        assert "iec_transform.geometry.composer - INFO - Composed RasToCollimatorTransform" in text


class TestGetLogger:
    """Tests for get_logger naming."""

    def test_module_name_kept(self):
        assert get_logger("iec_transform.io.pose").name == "iec_transform.io.pose"

    def test_foreign_name_nested(self):
        """Loggers from outside the package are nested under it."""
        assert get_logger("notebook").name == "iec_transform.notebook"


class TestConsoleHelpers:
    """Tests for matrix and path printing."""

    def test_print_matrix(self):
        """Entries are fixed precision and negative zero is printed as zero."""
        with console.capture() as capture:
            print_matrix(np.array([[1.0, -1e-12], [-0.5, 2.0]]), title="Scaled", precision=3)
        out = _plain(capture.get())

        assert "Scaled" in out
        assert "1.000" in out
        assert "-0.500" in out
        assert "-0.000" not in out

    def test_print_vector(self):
        """A single point prints as one row."""
        with console.capture() as capture:
            print_matrix(np.array([1.0, 2.0, 3.0]))
        assert "3.000000" in _plain(capture.get())

    def test_print_frame_path(self):
        with console.capture() as capture:
            print_frame_path(["Collimator", "Gantry", "FixedReference"], label="Up: ")
        assert "Up: Collimator -> Gantry -> FixedReference" in _plain(capture.get())
