"""IEC 61217 transform logic.

The IEC 61217 standard describes coordinate systems and a transform
hierarchy for the objects taking part in an external beam radiation therapy
delivery. IECTransformLogic gives the transform from any of these frames to
any other, given the current device geometry (gantry angle, collimator
angle, table top position, ...).

Usage:
    from iec_transform.geometry import IECTransformLogic
    from iec_transform.common.frames import CoordinateFrame

    logic = IECTransformLogic()
    logic.update_gantry_to_fixed_reference(90.0)
    logic.update_collimator_to_gantry(15.0)

    T = logic.get_transform_between(CoordinateFrame.RAS, CoordinateFrame.COLLIMATOR)

The topology is fixed at construction. Updates and lookups are synchronous
and unsynchronized: callers sharing an instance across threads must guard it
externally.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from iec_transform.common.chain import ChainedTransform
from iec_transform.common.frames import CoordinateFrame, get_transform_name_between
from iec_transform.common.logging import get_logger
from iec_transform.geometry.composer import TransformComposer
from iec_transform.geometry.elementary import PARAMETRIC_EDGES, ElementaryTransformStore
from iec_transform.geometry.hierarchy import FrameHierarchy

logger = get_logger(__name__)


class IECTransformLogic:
    """Frame hierarchy, elementary transforms and composer in one object.

    Args:
        hierarchy: Frame hierarchy. Defaults to the IEC 61217 hierarchy.
    """

    def __init__(self, hierarchy: Optional[FrameHierarchy] = None):
        self.hierarchy = hierarchy if hierarchy is not None else FrameHierarchy()
        self.elementary = ElementaryTransformStore(self.hierarchy)
        self.composer = TransformComposer(self.hierarchy, self.elementary)

    # Elementary transform updates

    def update_gantry_to_fixed_reference(self, gantry_angle_deg: float, gantry_pitch_angle_deg: float = 0.0) -> None:
        self.elementary.update_gantry_to_fixed_reference(gantry_angle_deg, gantry_pitch_angle_deg)

    def update_collimator_to_gantry(self, collimator_angle_deg: float, bz: float = 0.0) -> None:
        self.elementary.update_collimator_to_gantry(collimator_angle_deg, bz)

    def update_wedge_filter_to_collimator(self, wedge_filter_angle_deg: float, wz: float = 0.0) -> None:
        self.elementary.update_wedge_filter_to_collimator(wedge_filter_angle_deg, wz)

    def update_patient_support_rotation_to_fixed_reference(self, patient_support_angle_deg: float) -> None:
        self.elementary.update_patient_support_rotation_to_fixed_reference(patient_support_angle_deg)

    def update_table_top_eccentric_rotation_to_patient_support_rotation(
        self, eccentric_angle_deg: float, ey: float = 0.0
    ) -> None:
        self.elementary.update_table_top_eccentric_rotation_to_patient_support_rotation(eccentric_angle_deg, ey)

    def update_table_top_to_table_top_eccentric_rotation(
        self,
        tx: float,
        ty: float,
        tz: float,
        table_top_pitch_angle_deg: float = 0.0,
        table_top_roll_angle_deg: float = 0.0,
    ) -> None:
        self.elementary.update_table_top_to_table_top_eccentric_rotation(
            tx, ty, tz, table_top_pitch_angle_deg, table_top_roll_angle_deg
        )

    def update_patient_to_table_top(
        self,
        px: float,
        py: float,
        pz: float,
        patient_psi_angle_deg: float = 0.0,
        patient_phi_angle_deg: float = 0.0,
        patient_theta_angle_deg: float = 0.0,
    ) -> None:
        self.elementary.update_patient_to_table_top(
            px, py, pz, patient_psi_angle_deg, patient_phi_angle_deg, patient_theta_angle_deg
        )

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
        self.elementary.update_patient_image_regular_grid_to_dicom(
            column_pixel_spacing, row_pixel_spacing, slice_distance, sx, sy, sz,
            row_direction_cosine=row_direction_cosine,
            column_direction_cosine=column_direction_cosine,
        )

    def update_edge(self, child: CoordinateFrame, parent: CoordinateFrame, **parameters: Any) -> None:
        """Update any parametric edge by (child, parent). See ElementaryTransformStore.update_edge."""
        self.elementary.update_edge(child, parent, **parameters)

    # Queries

    def get_transform_between(
        self,
        from_frame: CoordinateFrame,
        to_frame: CoordinateFrame,
        invert_destination_side: bool = True,
    ) -> NDArray[np.float64]:
        """Get the 4x4 transform mapping points from one frame to another.

        Args:
            from_frame: Source frame.
            to_frame: Destination frame.
            invert_destination_side: False skips inverting the root ->
                destination edges (legacy beam-model behaviour, e.g. for
                Ras -> Patient -> TableTop -> Eccentric -> PatientSupport ->
                FixedReference -> Gantry -> Collimator).

        Returns:
            4x4 transformation matrix.

        Raises:
            HierarchyError: If either frame cannot be resolved to the root
                or an elementary transform along the paths is missing.
        """
        return self.composer.get_transform_between(from_frame, to_frame, invert_destination_side)

    def compose_into(
        self,
        output: ChainedTransform,
        from_frame: CoordinateFrame,
        to_frame: CoordinateFrame,
        invert_destination_side: bool = True,
    ) -> ChainedTransform:
        """Like get_transform_between, but fill a caller-owned ChainedTransform."""
        return self.composer.compose_into(output, from_frame, to_frame, invert_destination_side)

    def get_elementary_transform(self, child: CoordinateFrame, parent: CoordinateFrame) -> NDArray[np.float64]:
        """Copy of the elementary transform of one hierarchy edge."""
        return self.elementary.get(child, parent)

    def get_concatenated_transform(self, frame: CoordinateFrame) -> NDArray[np.float64]:
        """Frame -> FixedReference transform."""
        return self.composer.get_concatenated_transform(frame)

    def get_path_to_root(self, frame: CoordinateFrame) -> List[CoordinateFrame]:
        return self.hierarchy.path_to_root(frame)

    def get_path_from_root(self, frame: CoordinateFrame) -> List[CoordinateFrame]:
        return self.hierarchy.path_from_root(frame)

    def get_edge_name(self, child: CoordinateFrame, parent: CoordinateFrame) -> str:
        """Diagnostic name of an edge, e.g. "CollimatorToGantryTransform"."""
        return get_transform_name_between(child, parent)

    def list_frame_edges(self) -> List[Tuple[CoordinateFrame, CoordinateFrame]]:
        """Ordered (parent, child) pairs of the hierarchy."""
        return self.hierarchy.edges()

    def summary(self) -> List[Dict[str, Any]]:
        """Elementary and concatenated transform of every edge.

        Returns:
            One dictionary per edge with the keys "name", "parent", "child",
            "parametric", "version", "elementary" and "concatenated"
            (nested lists).
        """
        rows = []
        for parent, child in self.list_frame_edges():
            rows.append({
                "name": self.get_edge_name(child, parent),
                "parent": parent,
                "child": child,
                "parametric": (child, parent) in PARAMETRIC_EDGES,
                "version": self.elementary.version(child, parent),
                "elementary": self.elementary.get(child, parent).tolist(),
                "concatenated": self.get_concatenated_transform(child).tolist(),
            })
        return rows
