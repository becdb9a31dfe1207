"""Coordinate frame definitions and conventions.

This module defines the coordinate frames of an external-beam radiotherapy
delivery device as described by IEC 61217, plus the non-IEC helper frames
used to relate the IEC patient frame to DICOM and RAS image space.

Frame Naming Convention:
    Every frame has a display name (e.g. "Gantry"). The elementary transform
    of a hierarchy edge is named "<Child>To<Parent>Transform" and maps points
    from the child frame into the parent frame.

    Example: GantryToFixedReferenceTransform maps points from the gantry
    frame into the fixed reference frame.

Standard Frames (IEC 61217 letter in brackets):
    - FixedReference (f): room frame, origin at the isocenter
    - Gantry (g), Collimator / beam limiting device (b), WedgeFilter (w)
    - LeftImagingPanel, RightImagingPanel, FlatPanel: X-ray image receptors (r)
    - PatientSupportRotation, PatientSupport (s), TableTopEccentricRotation (e)
    - TableTop (t), Patient (p)
    - DICOM, PatientImageRegularGrid, RAS: not part of IEC 61217
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Any

from iec_transform.common.errors import HierarchyError, InvalidParameterError


class CoordinateFrame(IntEnum):
    """Coordinate frame identifiers.

    Values are stable and contiguous so they can index arrays.
    """

    RAS = 0
    FIXED_REFERENCE = 1
    GANTRY = 2
    COLLIMATOR = 3
    LEFT_IMAGING_PANEL = 4
    RIGHT_IMAGING_PANEL = 5
    PATIENT_SUPPORT_ROTATION = 6
    PATIENT_SUPPORT = 7
    TABLE_TOP_ECCENTRIC_ROTATION = 8
    TABLE_TOP = 9
    FLAT_PANEL = 10
    WEDGE_FILTER = 11
    PATIENT = 12
    DICOM = 13
    PATIENT_IMAGE_REGULAR_GRID = 14
    IMAGER = 15
    FOCUS = 16

    def __str__(self) -> str:
        return get_frame_name(self)


FRAME_NAMES: Dict[CoordinateFrame, str] = {
    CoordinateFrame.RAS: "Ras",
    CoordinateFrame.FIXED_REFERENCE: "FixedReference",
    CoordinateFrame.GANTRY: "Gantry",
    CoordinateFrame.COLLIMATOR: "Collimator",
    CoordinateFrame.LEFT_IMAGING_PANEL: "LeftImagingPanel",
    CoordinateFrame.RIGHT_IMAGING_PANEL: "RightImagingPanel",
    CoordinateFrame.PATIENT_SUPPORT_ROTATION: "PatientSupportRotation",
    CoordinateFrame.PATIENT_SUPPORT: "PatientSupport",
    CoordinateFrame.TABLE_TOP_ECCENTRIC_ROTATION: "TableTopEccentricRotation",
    CoordinateFrame.TABLE_TOP: "TableTop",
    CoordinateFrame.FLAT_PANEL: "FlatPanel",
    CoordinateFrame.WEDGE_FILTER: "WedgeFilter",
    CoordinateFrame.PATIENT: "Patient",
    CoordinateFrame.DICOM: "DICOM",
    CoordinateFrame.PATIENT_IMAGE_REGULAR_GRID: "PatientImageRegularGrid",
    CoordinateFrame.IMAGER: "Imager",
    CoordinateFrame.FOCUS: "Focus",
}

_FRAMES_BY_NAME: Dict[str, CoordinateFrame] = {}
for _frame, _name in FRAME_NAMES.items():
    _FRAMES_BY_NAME[_name.lower()] = _frame
    _FRAMES_BY_NAME[_frame.name.lower()] = _frame


@dataclass(frozen=True)
class FrameConvention:
    """Describes the coordinate convention for a frame.

    Attributes:
        name: Frame display name.
        description: Human-readable description.
        x_axis: Description of X axis direction.
        y_axis: Description of Y axis direction.
        z_axis: Description of Z axis direction.
        notes: Additional notes about the frame.
    """

    name: str
    description: str
    x_axis: str
    y_axis: str
    z_axis: str
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "description": self.description,
            "axes": {
                "x": self.x_axis,
                "y": self.y_axis,
                "z": self.z_axis,
            },
            "notes": self.notes,
        }


_BEAM_AXES = dict(
    x_axis="Follows the fixed reference X axis at zero angles",
    y_axis="Follows the fixed reference Y axis at zero angles",
    z_axis="Towards the radiation source",
)

_SUPPORT_AXES = dict(
    x_axis="Follows the fixed reference X axis at zero angles",
    y_axis="Follows the fixed reference Y axis at zero angles",
    z_axis="Up",
)

FRAME_CONVENTIONS: Dict[CoordinateFrame, FrameConvention] = {
    CoordinateFrame.FIXED_REFERENCE: FrameConvention(
        name="FixedReference",
        description="IEC fixed reference system (f), attached to the treatment room",
        x_axis="Right, seen from the foot of the table facing the gantry",
        y_axis="Towards the gantry, along the gantry rotation axis",
        z_axis="Up",
        notes="Origin at the isocenter. Root of the frame hierarchy.",
    ),
    CoordinateFrame.GANTRY: FrameConvention(
        name="Gantry",
        description="IEC gantry system (g), rotates with the gantry",
        notes="Rotation about Y of f, optional DICOM pitch about X of f.",
        **_BEAM_AXES,
    ),
    CoordinateFrame.COLLIMATOR: FrameConvention(
        name="Collimator",
        description="IEC beam limiting device or delineator system (b)",
        notes="Rotation about Z of g, displaced by bz along Z.",
        **_BEAM_AXES,
    ),
    CoordinateFrame.WEDGE_FILTER: FrameConvention(
        name="WedgeFilter",
        description="IEC wedge filter system (w)",
        notes="Rotation about Z of b, displaced by wz along Z.",
        **_BEAM_AXES,
    ),
    CoordinateFrame.LEFT_IMAGING_PANEL: FrameConvention(
        name="LeftImagingPanel",
        description="Left X-ray image receptor (r), fixed to the gantry",
        **_BEAM_AXES,
    ),
    CoordinateFrame.RIGHT_IMAGING_PANEL: FrameConvention(
        name="RightImagingPanel",
        description="Right X-ray image receptor (r), fixed to the gantry",
        **_BEAM_AXES,
    ),
    CoordinateFrame.FLAT_PANEL: FrameConvention(
        name="FlatPanel",
        description="Flat panel X-ray image receptor (r), fixed to the gantry",
        **_BEAM_AXES,
    ),
    CoordinateFrame.PATIENT_SUPPORT_ROTATION: FrameConvention(
        name="PatientSupportRotation",
        description="Rotation component of the patient support",
        notes="Not part of IEC 61217. Rotation about Z of f.",
        **_SUPPORT_AXES,
    ),
    CoordinateFrame.PATIENT_SUPPORT: FrameConvention(
        name="PatientSupport",
        description="IEC patient support system (s)",
        **_SUPPORT_AXES,
    ),
    CoordinateFrame.TABLE_TOP_ECCENTRIC_ROTATION: FrameConvention(
        name="TableTopEccentricRotation",
        description="IEC table top eccentric rotation system (e)",
        notes="Displaced by ey along Y, then rotated about Z.",
        **_SUPPORT_AXES,
    ),
    CoordinateFrame.TABLE_TOP: FrameConvention(
        name="TableTop",
        description="IEC table top system (t)",
        notes="Displaced by (tx, ty, tz), then pitch about X and roll about Y.",
        **_SUPPORT_AXES,
    ),
    CoordinateFrame.PATIENT: FrameConvention(
        name="Patient",
        description="IEC patient system (p), LSA",
        x_axis="Patient left",
        y_axis="Superior",
        z_axis="Anterior",
    ),
    CoordinateFrame.DICOM: FrameConvention(
        name="DICOM",
        description="DICOM patient system, LPS",
        x_axis="Patient left",
        y_axis="Posterior",
        z_axis="Superior",
        notes="Not part of IEC 61217.",
    ),
    CoordinateFrame.PATIENT_IMAGE_REGULAR_GRID: FrameConvention(
        name="PatientImageRegularGrid",
        description="Regular voxel grid of a DICOM image series",
        x_axis="Column index (along the row direction cosine)",
        y_axis="Row index (along the column direction cosine)",
        z_axis="Slice index",
        notes="Not part of IEC 61217. Units are voxel indices.",
    ),
    CoordinateFrame.RAS: FrameConvention(
        name="Ras",
        description="Patient system in RAS (3D Slicer) orientation",
        x_axis="Patient right",
        y_axis="Anterior",
        z_axis="Superior",
        notes="Not part of IEC 61217.",
    ),
    CoordinateFrame.IMAGER: FrameConvention(
        name="Imager",
        description="IEC imager system (i), reserved",
        x_axis="Undefined",
        y_axis="Undefined",
        z_axis="Undefined",
        notes="Not attached to the hierarchy.",
    ),
    CoordinateFrame.FOCUS: FrameConvention(
        name="Focus",
        description="IEC focus system (o), reserved",
        x_axis="Undefined",
        y_axis="Undefined",
        z_axis="Undefined",
        notes="Not attached to the hierarchy.",
    ),
}


def get_frame_name(frame: CoordinateFrame) -> str:
    """Get the display name of a frame.

    Args:
        frame: Frame identifier.

    Returns:
        Display name, e.g. "TableTop".

    Raises:
        HierarchyError: If the frame has no registered name.
    """
    try:
        return FRAME_NAMES[frame]
    except KeyError:
        raise HierarchyError(f"No name registered for frame {frame!r}") from None


def frame_from_name(name: str) -> CoordinateFrame:
    """Look up a frame by display name or enum member name.

    The lookup is case-insensitive, so "TableTop", "tabletop" and
    "TABLE_TOP" all resolve to CoordinateFrame.TABLE_TOP.

    Args:
        name: Frame name.

    Returns:
        Frame identifier.

    Raises:
        InvalidParameterError: If no frame has that name.
    """
    try:
        return _FRAMES_BY_NAME[name.strip().lower()]
    except KeyError:
        raise InvalidParameterError(f"Unknown coordinate frame: {name!r}") from None


def get_frame_convention(frame: CoordinateFrame) -> FrameConvention:
    """Get the coordinate convention for a frame.

    Args:
        frame: Frame identifier.

    Returns:
        FrameConvention describing the coordinate system.
    """
    return FRAME_CONVENTIONS[frame]


def get_transform_name_between(from_frame: CoordinateFrame, to_frame: CoordinateFrame) -> str:
    """Name of the transform from one frame to another.

    Used for diagnostics only, never for structural decisions.
    """
    return f"{get_frame_name(from_frame)}To{get_frame_name(to_frame)}Transform"


def describe_transform(from_frame: CoordinateFrame, to_frame: CoordinateFrame) -> str:
    """Generate a human-readable description of a transform.

    Args:
        from_frame: Source frame.
        to_frame: Target frame.

    Returns:
        Description string.
    """
    return (
        f"{get_transform_name_between(from_frame, to_frame)}: "
        f"Transforms points from {get_frame_name(from_frame)} frame "
        f"to {get_frame_name(to_frame)} frame"
    )
