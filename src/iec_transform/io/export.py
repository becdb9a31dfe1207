"""Export of composite transform reports.

A transform report records a composed transform together with the frame
paths it was built from, so a downstream consumer can audit the result.
Reports are written as YAML or JSON depending on the file suffix.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import yaml

from iec_transform.common.frames import CoordinateFrame, get_frame_name, get_transform_name_between
from iec_transform.common.logging import get_logger
from iec_transform.geometry.logic import IECTransformLogic

logger = get_logger(__name__)

REPORT_VERSION = "1.0"


@dataclass
class TransformReport:
    """Composite transform with its provenance.

    Attributes:
        from_frame: Source frame name.
        to_frame: Destination frame name.
        name: Transform name, e.g. "RasToCollimatorTransform".
        path_to_root: Frame names from the source frame up to the root.
        path_from_root: Frame names from the root down to the destination.
        invert_destination_side: Whether destination-side edges were inverted.
        matrix: 4x4 transform as nested lists.
        pose: Optional device pose the transform was computed for.
    """

    from_frame: str
    to_frame: str
    name: str
    path_to_root: List[str]
    path_from_root: List[str]
    invert_destination_side: bool
    matrix: List[List[float]]
    pose: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "report_version": REPORT_VERSION,
            "generated_at": datetime.now().isoformat(),
            "from_frame": self.from_frame,
            "to_frame": self.to_frame,
            "name": self.name,
            "path_to_root": self.path_to_root,
            "path_from_root": self.path_from_root,
            "invert_destination_side": self.invert_destination_side,
            "matrix": self.matrix,
        }
        if self.pose is not None:
            data["pose"] = self.pose
        return data

    def to_matrix(self) -> np.ndarray:
        """Get the transform as a 4x4 numpy array."""
        return np.array(self.matrix, dtype=np.float64)


def build_transform_report(
    logic: IECTransformLogic,
    from_frame: CoordinateFrame,
    to_frame: CoordinateFrame,
    invert_destination_side: bool = True,
    pose: Optional[Dict[str, Any]] = None,
) -> TransformReport:
    """Compose a transform and record the paths it was built from.

    Raises:
        HierarchyError: If the transform cannot be composed.
    """
    matrix = logic.get_transform_between(from_frame, to_frame, invert_destination_side)
    up, down = logic.composer.get_path_between(from_frame, to_frame)

    return TransformReport(
        from_frame=get_frame_name(from_frame),
        to_frame=get_frame_name(to_frame),
        name=get_transform_name_between(from_frame, to_frame),
        path_to_root=[get_frame_name(f) for f in up],
        path_from_root=[get_frame_name(f) for f in down],
        invert_destination_side=invert_destination_side,
        matrix=matrix.tolist(),
        pose=pose,
    )


def export_transform_report(
    report: TransformReport,
    output_path: Path | str,
) -> Path:
    """Write a transform report to YAML (.yaml / .yml) or JSON (anything else).

    Args:
        report: Report to export.
        output_path: Path to write the file.

    Returns:
        Path to the written file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        if output_path.suffix.lower() in (".yaml", ".yml"):
            yaml.dump(report.to_dict(), f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(report.to_dict(), f, indent=2)

    logger.info(f"Exported {report.name} to {output_path}")
    return output_path


def load_transform_report(input_path: Path | str) -> TransformReport:
    """Load a transform report written by export_transform_report.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If required fields are missing.
    """
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Report file not found: {input_path}")

    with open(input_path, "r") as f:
        if input_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f) or {}
        else:
            data = json.load(f)

    required = ["from_frame", "to_frame", "name", "path_to_root", "path_from_root", "matrix"]
    missing = [key for key in required if key not in data]
    if missing:
        raise ValueError(f"Invalid transform report, missing fields: {missing}")

    return TransformReport(
        from_frame=data["from_frame"],
        to_frame=data["to_frame"],
        name=data["name"],
        path_to_root=data["path_to_root"],
        path_from_root=data["path_from_root"],
        invert_destination_side=data.get("invert_destination_side", True),
        matrix=data["matrix"],
        pose=data.get("pose"),
    )
