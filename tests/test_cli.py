"""Tests for CLI functionality."""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).parent.parent / "src"


def run_cli(*args: str) -> subprocess.CompletedProcess:
    """Run the CLI module in a subprocess."""
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_PATH), env.get("PYTHONPATH")]))
    env["MPLBACKEND"] = "Agg"
    env["COLUMNS"] = "200"
    return subprocess.run(
        [sys.executable, "-m", "iec_transform.cli", *args],
        capture_output=True,
        text=True,
        env=env,
    )


class TestCLIHelp:
    """Tests for CLI help output."""

    def test_main_help(self):
        """Test that --help works for main command."""
        result = run_cli("--help")

        assert result.returncode == 0
        assert "iec-transform" in result.stdout
        assert "frames" in result.stdout
        assert "transform" in result.stdout
        assert "plot" in result.stdout

    def test_transform_help(self):
        """Test that --help works for transform subcommand."""
        result = run_cli("transform", "--help")

        assert result.returncode == 0
        assert "--from" in result.stdout
        assert "--to" in result.stdout
        assert "--beam" in result.stdout
        assert "--point" in result.stdout

    def test_version(self):
        """Test that --version works."""
        result = run_cli("--version")

        assert result.returncode == 0
        assert "0.1.0" in result.stdout

    def test_no_command(self):
        """Without a command the help is printed."""
        result = run_cli()
        assert result.returncode == 0
        assert "usage" in result.stdout.lower()


class TestCLICommands:
    """Tests for CLI commands."""

    def test_frames(self):
        """frames lists every frame."""
        result = run_cli("frames")

        assert result.returncode == 0
        assert "TableTopEccentricRotation" in result.stdout
        assert "Focus" in result.stdout

    def test_edges(self, sample_pose_path):
        """edges lists the elementary transforms."""
        result = run_cli("edges", "--pose", str(sample_pose_path))

        assert result.returncode == 0
        assert "GantryToFixedReferenceTransform" in result.stdout

    def test_path(self):
        """path prints the frames up to the root."""
        result = run_cli("path", "WedgeFilter")

        assert result.returncode == 0
        assert "WedgeFilter -> Collimator -> Gantry -> FixedReference" in result.stdout
        assert "Depth: 3" in result.stdout

    def test_path_reserved_frame(self):
        """Unattached frames fail with an error."""
        result = run_cli("path", "Imager")

        assert result.returncode == 1
        assert "[ERROR]" in result.stdout

    def test_transform_export(self, sample_pose_path, temp_output_dir: Path):
        """transform prints the matrix and writes a report."""
        out = temp_output_dir / "ras_to_collimator.json"
        result = run_cli(
            "transform", "--from", "Ras", "--to", "Collimator",
            "--pose", str(sample_pose_path),
            "--point", "0", "0", "0",
            "--out", str(out),
        )

        assert result.returncode == 0, result.stdout + result.stderr
        assert "RasToCollimatorTransform" in result.stdout
        assert out.exists()

        with open(out) as f:
            data = json.load(f)
        assert data["path_from_root"] == ["FixedReference", "Gantry", "Collimator"]
        assert data["invert_destination_side"] is True
        assert data["pose"]["gantry"]["angle_deg"] == 90.0

    def test_transform_beam(self, temp_output_dir: Path):
        """--beam disables destination-side inversion."""
        out = temp_output_dir / "beam.yaml"
        result = run_cli("transform", "--from", "Ras", "--to", "Collimator", "--beam", "--out", str(out))

        assert result.returncode == 0
        assert "invert_destination_side: false" in out.read_text()

    def test_transform_unknown_frame(self):
        """Unknown frame names fail with an error."""
        result = run_cli("transform", "--from", "Couch", "--to", "Gantry")

        assert result.returncode == 1
        assert "Unknown coordinate frame" in result.stdout

    def test_missing_pose(self, temp_output_dir: Path):
        """A missing pose file fails with an error."""
        result = run_cli("edges", "--pose", str(temp_output_dir / "missing.yaml"))
        assert result.returncode == 1

    def test_plot(self, sample_pose_path, temp_output_dir: Path):
        """plot writes an image."""
        out = temp_output_dir / "frames.png"
        result = run_cli("plot", "--pose", str(sample_pose_path), "--out", str(out))

        assert result.returncode == 0, result.stdout + result.stderr
        assert out.exists()

    def test_log_file(self, sample_pose_path, temp_output_dir: Path):
        """--log-file also writes log records to a file."""
        log_file = temp_output_dir / "cli.log"
        result = run_cli("--log-file", str(log_file), "edges", "--pose", str(sample_pose_path))

        assert result.returncode == 0, result.stdout + result.stderr
        assert "Applied device pose" in log_file.read_text()

    def test_transform_bad_pose_document(self, temp_output_dir: Path):
        """A pose file that is not a mapping fails with an error."""
        pose = temp_output_dir / "pose.yaml"
        pose.write_text("- {gantry: 1}\n")
        result = run_cli("transform", "--from", "Ras", "--to", "Gantry", "--pose", str(pose))

        assert result.returncode == 1
        assert "mapping" in result.stdout
