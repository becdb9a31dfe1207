"""Elementary transforms of the IEC 61217 hierarchy.

One mutable 4x4 matrix per hierarchy edge, describing the child frame in
its parent frame (p_parent = M @ p_child). Parametric edges are rebuilt
wholesale by the update_* methods from their kinematic parameters; the
order of the elementary translations/rotations of each edge follows the
physical kinematic chain of the joint and is reproduced exactly:

    Gantry -> FixedReference:        Rx(pitch) Ry(gantry angle)
    Collimator -> Gantry:            T(0, 0, bz) Rz(collimator angle)
    WedgeFilter -> Collimator:       T(0, 0, wz) Rz(wedge angle)
    PatientSupportRotation -> Fixed: Rz(patient support angle)
    TableTopEccentricRotation -> PatientSupportRotation:
                                     T(0, ey, 0) Rz(eccentric angle)
    TableTop -> TableTopEccentricRotation:
                                     T(tx, ty, tz) Rx(pitch) Ry(roll)
    Patient -> TableTop:             T(px, py, pz) Rx(psi) Ry(phi) Rz(theta)

The DICOM -> Patient and Ras -> Patient edges are constant. The
PatientImageRegularGrid -> DICOM edge is built from the image geometry.
All other edges (imaging panels, flat panel, patient support) stay identity.

See IEC 61217:2011 sections 3.4 - 3.11.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterator, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from iec_transform.common.errors import HierarchyError, InvalidParameterError
from iec_transform.common.frames import CoordinateFrame, get_transform_name_between
from iec_transform.common.logging import get_logger
from iec_transform.common.transforms import (
    compose,
    compose_all,
    from_row_major,
    identity,
    make_transform,
    rotation_x,
    rotation_y,
    rotation_z,
    translation,
)
from iec_transform.geometry.hierarchy import FrameHierarchy

logger = get_logger(__name__)

F = CoordinateFrame
Edge = Tuple[CoordinateFrame, CoordinateFrame]

# DICOM patient (LPS) expressed in IEC patient (LSA): the DICOM axes are the
# IEC patient axes turned +90 deg about X (posterior is -Z, superior is +Y).
DICOM_TO_PATIENT: NDArray[np.float64] = from_row_major([
    1, 0, 0, 0,
    0, 0, 1, 0,
    0, -1, 0, 0,
    0, 0, 0, 1,
])

# LPS -> RAS axis flip (negate X and Y), its own inverse.
LPS_TO_RAS: NDArray[np.float64] = np.diag([-1.0, -1.0, 1.0, 1.0])

# Ras expressed in IEC patient (LSA)
RAS_TO_PATIENT: NDArray[np.float64] = compose(DICOM_TO_PATIENT, LPS_TO_RAS)

DIRECTION_COSINE_TOLERANCE = 1e-6

# edge (child, parent) -> name of the update method
PARAMETRIC_EDGES: Dict[Edge, str] = {
    (F.GANTRY, F.FIXED_REFERENCE): "update_gantry_to_fixed_reference",
    (F.COLLIMATOR, F.GANTRY): "update_collimator_to_gantry",
    (F.WEDGE_FILTER, F.COLLIMATOR): "update_wedge_filter_to_collimator",
    (F.PATIENT_SUPPORT_ROTATION, F.FIXED_REFERENCE): "update_patient_support_rotation_to_fixed_reference",
    (F.TABLE_TOP_ECCENTRIC_ROTATION, F.PATIENT_SUPPORT_ROTATION):
        "update_table_top_eccentric_rotation_to_patient_support_rotation",
    (F.TABLE_TOP, F.TABLE_TOP_ECCENTRIC_ROTATION): "update_table_top_to_table_top_eccentric_rotation",
    (F.PATIENT, F.TABLE_TOP): "update_patient_to_table_top",
    (F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM): "update_patient_image_regular_grid_to_dicom",
}


def _require_finite(**values: float) -> None:
    for key, value in values.items():
        try:
            ok = math.isfinite(value)
        except TypeError:
            raise InvalidParameterError(f"{key} must be a number, got {value!r}") from None
        if not ok:
            raise InvalidParameterError(f"{key} must be finite, got {value!r}")


def build_image_grid_transform(
    column_pixel_spacing: float,
    row_pixel_spacing: float,
    slice_distance: float,
    origin: Sequence[float] = (0.0, 0.0, 0.0),
    row_direction_cosine: Sequence[float] = (1.0, 0.0, 0.0),
    column_direction_cosine: Sequence[float] = (0.0, 1.0, 0.0),
) -> NDArray[np.float64]:
    """Build the voxel grid -> DICOM patient (LPS) matrix of an image series.

    Columns of the result are the row direction scaled by the column spacing,
    the column direction scaled by the row spacing, the slice direction
    (row x column) scaled by the slice distance, and the image origin.

    See https://nipy.org/nibabel/dicom/dicom_orientation.html

    Args:
        column_pixel_spacing: Distance between adjacent pixel columns.
        row_pixel_spacing: Distance between adjacent pixel rows.
        slice_distance: Distance between consecutive slices.
        origin: (sx, sy, sz) position of the first voxel in LPS.
        row_direction_cosine: Row direction of Image Orientation (Patient).
        column_direction_cosine: Column direction of Image Orientation (Patient).

    Returns:
        4x4 affine matrix.

    Raises:
        InvalidParameterError: If a spacing is not positive, an input is not
            finite, or the direction cosines are not linearly independent.
    """
    _require_finite(
        column_pixel_spacing=column_pixel_spacing,
        row_pixel_spacing=row_pixel_spacing,
        slice_distance=slice_distance,
    )
    for key, value in (
        ("column_pixel_spacing", column_pixel_spacing),
        ("row_pixel_spacing", row_pixel_spacing),
        ("slice_distance", slice_distance),
    ):
        if value <= 0:
            raise InvalidParameterError(f"{key} must be positive, got {value}")

    vectors = []
    for key, value in (
        ("origin", origin),
        ("row_direction_cosine", row_direction_cosine),
        ("column_direction_cosine", column_direction_cosine),
    ):
        v = np.asarray(value, dtype=np.float64).flatten()
        if v.shape != (3,) or not np.all(np.isfinite(v)):
            raise InvalidParameterError(f"{key} must be 3 finite values, got {value!r}")
        vectors.append(v)
    origin_v, row_dir, col_dir = vectors

    slice_dir = np.cross(row_dir, col_dir)
    if np.linalg.norm(slice_dir) < DIRECTION_COSINE_TOLERANCE:
        raise InvalidParameterError(
            f"Direction cosines {row_dir.tolist()} and {col_dir.tolist()} are not linearly independent"
        )

    axes = np.column_stack([
        row_dir * column_pixel_spacing,
        col_dir * row_pixel_spacing,
        slice_dir * slice_distance,
    ])
    return make_transform(axes, origin_v)


class ElementaryTransformStore:
    """Owns one elementary transform per edge of a frame hierarchy.

    Each edge also carries a version counter that is bumped whenever its
    matrix changes, so derived (concatenated) transforms can detect
    staleness.

    Args:
        hierarchy: Frame hierarchy whose edges get a transform.
    """

    def __init__(self, hierarchy: FrameHierarchy):
        self.hierarchy = hierarchy
        self._matrices: Dict[Edge, NDArray[np.float64]] = {}
        self._versions: Dict[Edge, int] = {}

        for parent, child in hierarchy.edges():
            self._matrices[(child, parent)] = identity()
            self._versions[(child, parent)] = 0

        # Transforms that are not identity by default
        if (F.DICOM, F.PATIENT) in self._matrices:
            self._set(F.DICOM, F.PATIENT, DICOM_TO_PATIENT)
        if (F.RAS, F.PATIENT) in self._matrices:
            self._set(F.RAS, F.PATIENT, RAS_TO_PATIENT)

    def __contains__(self, edge: object) -> bool:
        return edge in self._matrices

    def __iter__(self) -> Iterator[Edge]:
        return iter(self._matrices)

    def get(self, child: CoordinateFrame, parent: CoordinateFrame) -> NDArray[np.float64]:
        """Copy of the elementary transform child -> parent.

        Raises:
            HierarchyError: If no transform exists for the edge.
        """
        try:
            return self._matrices[(child, parent)].copy()
        except KeyError:
            raise HierarchyError(
                f"Elementary transform not found: {get_transform_name_between(child, parent)}"
            ) from None

    def version(self, child: CoordinateFrame, parent: CoordinateFrame) -> int:
        """Number of times the edge matrix has been replaced."""
        try:
            return self._versions[(child, parent)]
        except KeyError:
            raise HierarchyError(
                f"Elementary transform not found: {get_transform_name_between(child, parent)}"
            ) from None

    def _set(self, child: CoordinateFrame, parent: CoordinateFrame, matrix: NDArray[np.float64]) -> None:
        edge = (child, parent)
        if edge not in self._matrices:
            raise HierarchyError(
                f"Elementary transform not found: {get_transform_name_between(child, parent)}"
            )
        self._matrices[edge] = np.array(matrix, dtype=np.float64)
        self._versions[edge] += 1
        logger.debug(f"Updated {get_transform_name_between(child, parent)} (version {self._versions[edge]})")

    def update_gantry_to_fixed_reference(self, gantry_angle_deg: float, gantry_pitch_angle_deg: float = 0.0) -> None:
        """Update GantryToFixedReference from the gantry rotation about Y.

        The pitch about X is a DICOM addition to IEC 61217; it is applied
        before the gantry rotation, as for the table top.

        Args:
            gantry_angle_deg: Gantry rotation about Y (counter-clockwise).
            gantry_pitch_angle_deg: Gantry pitch about X (counter-clockwise).
        """
        _require_finite(gantry_angle_deg=gantry_angle_deg, gantry_pitch_angle_deg=gantry_pitch_angle_deg)
        self._set(F.GANTRY, F.FIXED_REFERENCE, compose_all(
            rotation_x(gantry_pitch_angle_deg),
            rotation_y(gantry_angle_deg),
        ))

    def update_collimator_to_gantry(self, collimator_angle_deg: float, bz: float = 0.0) -> None:
        """Update CollimatorToGantry from the collimator rotation about Z and displacement bz."""
        _require_finite(collimator_angle_deg=collimator_angle_deg, bz=bz)
        self._set(F.COLLIMATOR, F.GANTRY, compose_all(
            translation(0.0, 0.0, bz),
            rotation_z(collimator_angle_deg),
        ))

    def update_wedge_filter_to_collimator(self, wedge_filter_angle_deg: float, wz: float = 0.0) -> None:
        """Update WedgeFilterToCollimator from the wedge rotation about Z and displacement wz."""
        _require_finite(wedge_filter_angle_deg=wedge_filter_angle_deg, wz=wz)
        self._set(F.WEDGE_FILTER, F.COLLIMATOR, compose_all(
            translation(0.0, 0.0, wz),
            rotation_z(wedge_filter_angle_deg),
        ))

    def update_patient_support_rotation_to_fixed_reference(self, patient_support_angle_deg: float) -> None:
        _require_finite(patient_support_angle_deg=patient_support_angle_deg)
        self._set(F.PATIENT_SUPPORT_ROTATION, F.FIXED_REFERENCE, rotation_z(patient_support_angle_deg))

    def update_table_top_eccentric_rotation_to_patient_support_rotation(
        self,
        eccentric_angle_deg: float,
        ey: float = 0.0,
    ) -> None:
        """Displace the eccentric frame by ey along Y, then rotate it about Z."""
        _require_finite(eccentric_angle_deg=eccentric_angle_deg, ey=ey)
        self._set(F.TABLE_TOP_ECCENTRIC_ROTATION, F.PATIENT_SUPPORT_ROTATION, compose_all(
            translation(0.0, ey, 0.0),
            rotation_z(eccentric_angle_deg),
        ))

    def update_table_top_to_table_top_eccentric_rotation(
        self,
        tx: float,
        ty: float,
        tz: float,
        table_top_pitch_angle_deg: float = 0.0,
        table_top_roll_angle_deg: float = 0.0,
    ) -> None:
        """Update TableTopToTableTopEccentricRotation.

        The table top origin is displaced by (tx, ty, tz), then pitched about
        X and rolled about Y.
        """
        _require_finite(
            tx=tx, ty=ty, tz=tz,
            table_top_pitch_angle_deg=table_top_pitch_angle_deg,
            table_top_roll_angle_deg=table_top_roll_angle_deg,
        )
        self._set(F.TABLE_TOP, F.TABLE_TOP_ECCENTRIC_ROTATION, compose_all(
            translation(tx, ty, tz),
            rotation_x(table_top_pitch_angle_deg),
            rotation_y(table_top_roll_angle_deg),
        ))

    def update_patient_to_table_top(
        self,
        px: float,
        py: float,
        pz: float,
        patient_psi_angle_deg: float = 0.0,
        patient_phi_angle_deg: float = 0.0,
        patient_theta_angle_deg: float = 0.0,
    ) -> None:
        """Update PatientToTableTop.

        The patient origin is displaced by (px, py, pz), followed by psi
        about X, phi about Y and theta about Z.
        """
        _require_finite(
            px=px, py=py, pz=pz,
            patient_psi_angle_deg=patient_psi_angle_deg,
            patient_phi_angle_deg=patient_phi_angle_deg,
            patient_theta_angle_deg=patient_theta_angle_deg,
        )
        self._set(F.PATIENT, F.TABLE_TOP, compose_all(
            translation(px, py, pz),
            rotation_x(patient_psi_angle_deg),
            rotation_y(patient_phi_angle_deg),
            rotation_z(patient_theta_angle_deg),
        ))

    def update_patient_image_regular_grid_to_dicom(
        self,
        column_pixel_spacing: float,
        row_pixel_spacing: float,
        slice_distance: float,
        sx: float,
        sy: float,
        sz: float,
        row_direction_cosine: Sequence[float] = (1.0, 0.0, 0.0),
        column_direction_cosine: Sequence[float] = (0.0, 1.0, 0.0),
    ) -> None:
        """Update PatientImageRegularGridToDICOM from the image geometry.

        The default orientation has the column index increasing from patient
        right to left, the row index from anterior to posterior and the
        slice index from inferior to superior (DICOM LPS).

        Raises:
            InvalidParameterError: See build_image_grid_transform.
        """
        _require_finite(sx=sx, sy=sy, sz=sz)
        self._set(F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM, build_image_grid_transform(
            column_pixel_spacing,
            row_pixel_spacing,
            slice_distance,
            origin=(sx, sy, sz),
            row_direction_cosine=row_direction_cosine,
            column_direction_cosine=column_direction_cosine,
        ))

    def update_edge(self, child: CoordinateFrame, parent: CoordinateFrame, **parameters: Any) -> None:
        """Update a parametric edge by (child, parent) with keyword parameters.

        Example:
            >>> store.update_edge(CoordinateFrame.GANTRY, CoordinateFrame.FIXED_REFERENCE,
            ...                   gantry_angle_deg=90.0)

        Raises:
            InvalidParameterError: If the edge has no kinematic parameters or
                the parameters do not match its update method.
            HierarchyError: If the edge is not part of the hierarchy.
        """
        edge = (CoordinateFrame(child), CoordinateFrame(parent))
        if edge not in self._matrices:
            raise HierarchyError(f"Elementary transform not found: {get_transform_name_between(*edge)}")

        method_name = PARAMETRIC_EDGES.get(edge)
        if method_name is None:
            raise InvalidParameterError(
                f"{get_transform_name_between(*edge)} is fixed and has no kinematic parameters"
            )

        try:
            getattr(self, method_name)(**parameters)
        except TypeError as e:
            raise InvalidParameterError(
                f"Invalid parameters for {get_transform_name_between(*edge)}: {e}"
            ) from e
