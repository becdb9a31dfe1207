"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import numpy as np
from scipy.spatial.transform import Rotation

# Add src to path for development testing
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))


@pytest.fixture
def config_path() -> Path:
    """Path to the config directory."""
    return Path(__file__).parent.parent / "configs"


@pytest.fixture
def sample_pose_path(config_path: Path) -> Path:
    """Path to the example device pose."""
    return config_path / "example_pose.yaml"


@pytest.fixture
def sample_transform() -> np.ndarray:
    """Sample rigid 4x4 transformation matrix."""
    R = Rotation.from_euler('xyz', [12.0, -30.0, 47.0], degrees=True).as_matrix()
    t = np.array([15.0, -120.0, 42.5])

    T = np.eye(4, dtype=np.float64)
    T[:3, :3] = R
    T[:3, 3] = t
    return T


@pytest.fixture
def identity_transform() -> np.ndarray:
    """Identity 4x4 transformation matrix."""
    return np.eye(4, dtype=np.float64)


@pytest.fixture
def logic():
    """Transform logic with every parametric edge at its default."""
    from iec_transform.geometry.logic import IECTransformLogic
    return IECTransformLogic()


@pytest.fixture
def posed_logic():
    """Transform logic with a non-trivial value on every parametric edge."""
    from iec_transform.geometry.logic import IECTransformLogic

    logic = IECTransformLogic()
    logic.update_gantry_to_fixed_reference(37.0, 4.0)
    logic.update_collimator_to_gantry(15.0, 20.0)
    logic.update_wedge_filter_to_collimator(30.0, 5.0)
    logic.update_patient_support_rotation_to_fixed_reference(-12.0)
    logic.update_table_top_eccentric_rotation_to_patient_support_rotation(8.0, 300.0)
    logic.update_table_top_to_table_top_eccentric_rotation(10.0, -150.0, -40.0, 2.0, -1.5)
    logic.update_patient_to_table_top(5.0, 700.0, 120.0, 3.0, -2.0, 90.0)
    logic.update_patient_image_regular_grid_to_dicom(
        0.8, 0.9, 2.5, -200.0, -180.0, -60.0,
        row_direction_cosine=(0.0, 1.0, 0.0),
        column_direction_cosine=(0.0, 0.0, -1.0),
    )
    return logic


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir
