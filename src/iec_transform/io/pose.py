"""Device pose loading.

A device pose file holds the kinematic parameters of every parametric edge
of the IEC 61217 hierarchy. Expected file format:

```yaml
gantry:
  angle_deg: 90.0
  pitch_deg: 0.0
collimator:
  angle_deg: 15.0
  bz: 0.0
wedge_filter:
  angle_deg: 0.0
  wz: 0.0
patient_support:
  angle_deg: 10.0
table_top_eccentric:
  angle_deg: 0.0
  ey: 0.0
table_top:
  tx: 0.0
  ty: 0.0
  tz: 0.0
  pitch_deg: 0.0
  roll_deg: 0.0
patient:
  px: 0.0
  py: 0.0
  pz: 0.0
  psi_deg: 0.0
  phi_deg: 0.0
  theta_deg: 0.0
image_grid:            # optional
  column_spacing: 1.0
  row_spacing: 1.0
  slice_distance: 1.0
  origin: [0.0, 0.0, 0.0]
  row_direction_cosine: [1.0, 0.0, 0.0]
  column_direction_cosine: [0.0, 1.0, 0.0]
```

Missing sections and keys take their defaults (zero angles and offsets).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from iec_transform.common.errors import InvalidParameterError
from iec_transform.common.logging import get_logger
from iec_transform.geometry.logic import IECTransformLogic

logger = get_logger(__name__)


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise InvalidParameterError(f"Pose section '{key}' must be a mapping, got {type(value).__name__}")
    return value


@dataclass
class GantryPose:
    """Gantry rotation about Y and optional pitch about X (degrees)."""

    angle_deg: float = 0.0
    pitch_deg: float = 0.0


@dataclass
class CollimatorPose:
    """Collimator rotation about Z (degrees) and Z displacement bz."""

    angle_deg: float = 0.0
    bz: float = 0.0


@dataclass
class WedgeFilterPose:
    angle_deg: float = 0.0
    wz: float = 0.0


@dataclass
class PatientSupportPose:
    angle_deg: float = 0.0


@dataclass
class TableTopEccentricPose:
    angle_deg: float = 0.0
    ey: float = 0.0


@dataclass
class TableTopPose:
    """Table top displacement and pitch / roll angles (degrees)."""

    tx: float = 0.0
    ty: float = 0.0
    tz: float = 0.0
    pitch_deg: float = 0.0
    roll_deg: float = 0.0


@dataclass
class PatientPose:
    """Patient displacement on the table top and psi / phi / theta angles (degrees)."""

    px: float = 0.0
    py: float = 0.0
    pz: float = 0.0
    psi_deg: float = 0.0
    phi_deg: float = 0.0
    theta_deg: float = 0.0


@dataclass
class ImageGridGeometry:
    """Geometry of a DICOM image series.

    Attributes:
        column_spacing: Distance between adjacent pixel columns.
        row_spacing: Distance between adjacent pixel rows.
        slice_distance: Distance between consecutive slices.
        origin: Position of the first voxel in DICOM LPS.
        row_direction_cosine: Row direction of Image Orientation (Patient).
        column_direction_cosine: Column direction of Image Orientation (Patient).
    """

    column_spacing: float = 1.0
    row_spacing: float = 1.0
    slice_distance: float = 1.0
    origin: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    row_direction_cosine: List[float] = field(default_factory=lambda: [1.0, 0.0, 0.0])
    column_direction_cosine: List[float] = field(default_factory=lambda: [0.0, 1.0, 0.0])


@dataclass
class DevicePose:
    """Kinematic parameters of a treatment machine and patient setup.

    Attributes:
        gantry: Gantry angles.
        collimator: Collimator angle and displacement.
        wedge_filter: Wedge filter angle and displacement.
        patient_support: Patient support rotation.
        table_top_eccentric: Table top eccentric rotation and displacement.
        table_top: Table top displacement and angles.
        patient: Patient position on the table top.
        image_grid: Optional image series geometry.
    """

    gantry: GantryPose = field(default_factory=GantryPose)
    collimator: CollimatorPose = field(default_factory=CollimatorPose)
    wedge_filter: WedgeFilterPose = field(default_factory=WedgeFilterPose)
    patient_support: PatientSupportPose = field(default_factory=PatientSupportPose)
    table_top_eccentric: TableTopEccentricPose = field(default_factory=TableTopEccentricPose)
    table_top: TableTopPose = field(default_factory=TableTopPose)
    patient: PatientPose = field(default_factory=PatientPose)
    image_grid: Optional[ImageGridGeometry] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DevicePose":
        """Create from dictionary.

        Raises:
            InvalidParameterError: On unknown keys or malformed sections.
        """
        if not isinstance(data, dict):
            raise InvalidParameterError(f"Pose must be a mapping of sections, got {type(data).__name__}")

        sections = {
            "gantry": GantryPose,
            "collimator": CollimatorPose,
            "wedge_filter": WedgeFilterPose,
            "patient_support": PatientSupportPose,
            "table_top_eccentric": TableTopEccentricPose,
            "table_top": TableTopPose,
            "patient": PatientPose,
        }

        unknown = set(data) - set(sections) - {"image_grid"}
        if unknown:
            raise InvalidParameterError(f"Unknown pose sections: {sorted(unknown)}")

        kwargs: Dict[str, Any] = {}
        for key, section_cls in sections.items():
            try:
                kwargs[key] = section_cls(**_section(data, key))
            except TypeError as e:
                raise InvalidParameterError(f"Invalid pose section '{key}': {e}") from e

        if data.get("image_grid") is not None:
            try:
                kwargs["image_grid"] = ImageGridGeometry(**_section(data, "image_grid"))
            except TypeError as e:
                raise InvalidParameterError(f"Invalid pose section 'image_grid': {e}") from e

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "DevicePose":
        """Load from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Pose file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        if self.image_grid is None:
            data.pop("image_grid")
        return data

    def apply_to(self, logic: IECTransformLogic) -> None:
        """Update every parametric elementary transform of `logic`.

        The pose is first applied to a scratch logic sharing the same
        hierarchy, so an invalid value raises before `logic` is modified.

        Raises:
            InvalidParameterError: If any parameter is invalid.
        """
        self._update(IECTransformLogic(logic.hierarchy))
        self._update(logic)

        logger.info(
            f"Applied device pose: gantry {self.gantry.angle_deg} deg, "
            f"collimator {self.collimator.angle_deg} deg, "
            f"patient support {self.patient_support.angle_deg} deg"
        )

    def _update(self, logic: IECTransformLogic) -> None:
        logic.update_gantry_to_fixed_reference(self.gantry.angle_deg, self.gantry.pitch_deg)
        logic.update_collimator_to_gantry(self.collimator.angle_deg, self.collimator.bz)
        logic.update_wedge_filter_to_collimator(self.wedge_filter.angle_deg, self.wedge_filter.wz)
        logic.update_patient_support_rotation_to_fixed_reference(self.patient_support.angle_deg)
        logic.update_table_top_eccentric_rotation_to_patient_support_rotation(
            self.table_top_eccentric.angle_deg, self.table_top_eccentric.ey
        )
        logic.update_table_top_to_table_top_eccentric_rotation(
            self.table_top.tx, self.table_top.ty, self.table_top.tz,
            self.table_top.pitch_deg, self.table_top.roll_deg,
        )
        logic.update_patient_to_table_top(
            self.patient.px, self.patient.py, self.patient.pz,
            self.patient.psi_deg, self.patient.phi_deg, self.patient.theta_deg,
        )

        if self.image_grid is not None:
            grid = self.image_grid
            if not isinstance(grid.origin, (list, tuple)) or len(grid.origin) != 3:
                raise InvalidParameterError(f"Image grid origin must have 3 values, got {grid.origin}")
            logic.update_patient_image_regular_grid_to_dicom(
                grid.column_spacing, grid.row_spacing, grid.slice_distance,
                *grid.origin,
                row_direction_cosine=grid.row_direction_cosine,
                column_direction_cosine=grid.column_direction_cosine,
            )


def load_pose_yaml(path: Path | str) -> DevicePose:
    """Load a device pose from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        InvalidParameterError: If the file content is invalid.
    """
    return DevicePose.from_yaml(path)


def save_pose_yaml(pose: DevicePose, output_path: Path | str) -> Path:
    """Write a device pose to a YAML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.dump(pose.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved device pose to {output_path}")
    return output_path
