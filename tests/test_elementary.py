"""Tests for elementary transforms and their update routines."""

from __future__ import annotations

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_almost_equal

from iec_transform.common.errors import HierarchyError, InvalidParameterError
from iec_transform.common.frames import CoordinateFrame as F
from iec_transform.common.transforms import apply_transform, rotation_x, rotation_y, rotation_z, translation
from iec_transform.geometry.elementary import (
    DICOM_TO_PATIENT,
    PARAMETRIC_EDGES,
    RAS_TO_PATIENT,
    ElementaryTransformStore,
    build_image_grid_transform,
)
from iec_transform.geometry.hierarchy import FrameHierarchy


@pytest.fixture
def store() -> ElementaryTransformStore:
    return ElementaryTransformStore(FrameHierarchy())


class TestDefaults:
    """Tests for the initial edge matrices."""

    def test_one_transform_per_edge(self, store):
        """Every hierarchy edge owns a matrix."""
        edges = {(child, parent) for parent, child in FrameHierarchy().edges()}
        assert set(store) == edges

    def test_parametric_edges_start_at_identity(self, store):
        """Parametric and motionless edges start at identity."""
        for child, parent in PARAMETRIC_EDGES:
            assert_array_almost_equal(store.get(child, parent), np.eye(4))
        assert_array_almost_equal(store.get(F.FLAT_PANEL, F.GANTRY), np.eye(4))
        assert_array_almost_equal(store.get(F.PATIENT_SUPPORT, F.PATIENT_SUPPORT_ROTATION), np.eye(4))

    def test_dicom_to_patient(self, store):
        """DICOM (LPS) axes are the IEC patient (LSA) axes turned +90 deg about X."""
        expected = np.array([
            [1, 0, 0, 0],
            [0, 0, 1, 0],
            [0, -1, 0, 0],
            [0, 0, 0, 1],
        ], dtype=np.float64)
        assert_array_almost_equal(store.get(F.DICOM, F.PATIENT), expected)
        assert_array_almost_equal(DICOM_TO_PATIENT, rotation_x(-90))

    def test_ras_to_patient(self, store):
        """RAS is DICOM with X and Y flipped."""
        M = store.get(F.RAS, F.PATIENT)
        assert_array_almost_equal(M, RAS_TO_PATIENT)
        # Patient right (RAS +X) is IEC patient -X
        assert_array_almost_equal(apply_transform(M, [1, 0, 0])[0], [-1, 0, 0])
        # Anterior (RAS +Y) is IEC patient +Z
        assert_array_almost_equal(apply_transform(M, [0, 1, 0])[0], [0, 0, 1])
        # Superior (RAS +Z) is IEC patient +Y
        assert_array_almost_equal(apply_transform(M, [0, 0, 1])[0], [0, 1, 0])

    def test_get_returns_copy(self, store):
        """Mutating a returned matrix does not change the store."""
        M = store.get(F.GANTRY, F.FIXED_REFERENCE)
        M[0, 3] = 100.0
        assert store.get(F.GANTRY, F.FIXED_REFERENCE)[0, 3] == 0.0

    def test_missing_edge(self, store):
        """Unknown edges name the missing transform."""
        with pytest.raises(HierarchyError, match="CollimatorToFixedReferenceTransform"):
            store.get(F.COLLIMATOR, F.FIXED_REFERENCE)


class TestUpdates:
    """Tests for the kinematic update routines."""

    def test_gantry_90(self, store):
        """A 90 deg gantry rotation about Y maps gantry +Z onto fixed +X."""
        store.update_gantry_to_fixed_reference(90.0, 0.0)
        point = apply_transform(store.get(F.GANTRY, F.FIXED_REFERENCE), [0, 0, 1])[0]
        assert_allclose(point, [1.0, 0.0, 0.0], atol=1e-9)

    def test_gantry_pitch_order(self, store):
        """Pitch about X is applied before the gantry rotation about Y."""
        store.update_gantry_to_fixed_reference(30.0, 10.0)
        assert_allclose(
            store.get(F.GANTRY, F.FIXED_REFERENCE),
            rotation_x(10.0) @ rotation_y(30.0),
            atol=1e-12,
        )

    def test_collimator(self, store):
        """Collimator displacement along Z, then rotation about Z."""
        store.update_collimator_to_gantry(90.0, 50.0)
        M = store.get(F.COLLIMATOR, F.GANTRY)
        assert_allclose(M, translation(0, 0, 50) @ rotation_z(90), atol=1e-12)
        assert_allclose(apply_transform(M, [1, 0, 0])[0], [0, 1, 50], atol=1e-9)

    def test_wedge_filter(self, store):
        """Wedge displacement along Z, then rotation about Z."""
        store.update_wedge_filter_to_collimator(45.0, -12.0)
        assert_allclose(
            store.get(F.WEDGE_FILTER, F.COLLIMATOR),
            translation(0, 0, -12) @ rotation_z(45),
            atol=1e-12,
        )

    def test_patient_support(self, store):
        """Patient support rotation about Z."""
        store.update_patient_support_rotation_to_fixed_reference(-20.0)
        assert_allclose(
            store.get(F.PATIENT_SUPPORT_ROTATION, F.FIXED_REFERENCE),
            rotation_z(-20.0),
            atol=1e-12,
        )

    def test_eccentric(self, store):
        """Eccentric displacement along Y, then rotation about Z."""
        store.update_table_top_eccentric_rotation_to_patient_support_rotation(15.0, 250.0)
        assert_allclose(
            store.get(F.TABLE_TOP_ECCENTRIC_ROTATION, F.PATIENT_SUPPORT_ROTATION),
            translation(0, 250, 0) @ rotation_z(15),
            atol=1e-12,
        )

    def test_table_top(self, store):
        """Table top displacement, then pitch about X, then roll about Y."""
        store.update_table_top_to_table_top_eccentric_rotation(1.0, 2.0, 3.0, 5.0, -7.0)
        assert_allclose(
            store.get(F.TABLE_TOP, F.TABLE_TOP_ECCENTRIC_ROTATION),
            translation(1, 2, 3) @ rotation_x(5) @ rotation_y(-7),
            atol=1e-12,
        )

    def test_patient(self, store):
        """Patient displacement, then psi about X, phi about Y, theta about Z."""
        store.update_patient_to_table_top(4.0, 5.0, 6.0, 10.0, 20.0, 30.0)
        assert_allclose(
            store.get(F.PATIENT, F.TABLE_TOP),
            translation(4, 5, 6) @ rotation_x(10) @ rotation_y(20) @ rotation_z(30),
            atol=1e-12,
        )

    def test_update_replaces_previous_value(self, store):
        """Each update rebuilds the edge from identity."""
        store.update_collimator_to_gantry(30.0, 10.0)
        store.update_collimator_to_gantry(0.0)
        assert_allclose(store.get(F.COLLIMATOR, F.GANTRY), np.eye(4), atol=1e-12)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "90"])
    def test_non_finite_angle(self, store, value):
        """Angles must be finite numbers."""
        with pytest.raises(InvalidParameterError):
            store.update_gantry_to_fixed_reference(value)


class TestImageGrid:
    """Tests for the image grid -> DICOM transform."""

    def test_identity_geometry(self, store):
        """Unit spacing, zero origin and axis-aligned cosines give identity."""
        store.update_patient_image_regular_grid_to_dicom(
            1.0, 1.0, 1.0, 0.0, 0.0, 0.0,
            row_direction_cosine=(1, 0, 0),
            column_direction_cosine=(0, 1, 0),
        )
        assert_array_almost_equal(store.get(F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM), np.eye(4))

    def test_columns(self):
        """Columns hold scaled direction cosines and the origin."""
        M = build_image_grid_transform(
            0.5, 0.8, 3.0,
            origin=(-100, -120, 40),
            row_direction_cosine=(0, 1, 0),
            column_direction_cosine=(0, 0, -1),
        )
        assert_allclose(M[:3, 0], [0, 0.5, 0])
        assert_allclose(M[:3, 1], [0, 0, -0.8])
        assert_allclose(M[:3, 2], [-3.0, 0, 0])
        assert_allclose(M[:3, 3], [-100, -120, 40])
        assert_allclose(M[3], [0, 0, 0, 1])

    def test_voxel_to_lps(self):
        """Voxel (column, row, slice) indices map to LPS positions."""
        M = build_image_grid_transform(0.5, 0.5, 2.0, origin=(10, 20, 30))
        assert_allclose(apply_transform(M, [2, 4, 3])[0], [11, 22, 36])

    def test_degenerate_cosines(self, store):
        """Parallel direction cosines are rejected."""
        with pytest.raises(InvalidParameterError):
            store.update_patient_image_regular_grid_to_dicom(
                1.0, 1.0, 1.0, 0.0, 0.0, 0.0,
                row_direction_cosine=(1, 0, 0),
                column_direction_cosine=(1, 0, 0),
            )

    def test_rejected_update_keeps_previous_value(self, store):
        """A failed update leaves the edge untouched."""
        before = store.get(F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM)
        version = store.version(F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM)
        with pytest.raises(InvalidParameterError):
            store.update_patient_image_regular_grid_to_dicom(1.0, 1.0, 1.0, 0, 0, 0, column_direction_cosine=(0, 0, 0))
        assert_array_almost_equal(store.get(F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM), before)
        assert store.version(F.PATIENT_IMAGE_REGULAR_GRID, F.DICOM) == version

    @pytest.mark.parametrize("spacing", [(0.0, 1.0, 1.0), (1.0, -1.0, 1.0), (1.0, 1.0, 0.0)])
    def test_non_positive_spacing(self, spacing):
        """Spacings must be positive."""
        with pytest.raises(InvalidParameterError):
            build_image_grid_transform(*spacing)

    def test_bad_vector_length(self):
        """Direction cosines must have 3 components."""
        with pytest.raises(InvalidParameterError):
            build_image_grid_transform(1.0, 1.0, 1.0, row_direction_cosine=(1, 0))


class TestUpdateEdge:
    """Tests for update dispatch by edge identifier."""

    def test_dispatch(self, store):
        """update_edge forwards keyword parameters to the edge's routine."""
        store.update_edge(F.GANTRY, F.FIXED_REFERENCE, gantry_angle_deg=90.0)
        assert_allclose(store.get(F.GANTRY, F.FIXED_REFERENCE), rotation_y(90), atol=1e-12)

    def test_every_parametric_edge_has_a_routine(self, store):
        """Each parametric edge maps to an existing method."""
        for method_name in PARAMETRIC_EDGES.values():
            assert callable(getattr(store, method_name))

    def test_fixed_edge(self, store):
        """Edges without kinematics cannot be updated."""
        with pytest.raises(InvalidParameterError):
            store.update_edge(F.DICOM, F.PATIENT, angle=1.0)
        with pytest.raises(InvalidParameterError):
            store.update_edge(F.FLAT_PANEL, F.GANTRY)

    def test_unknown_edge(self, store):
        """Pairs that are not hierarchy edges are configuration errors."""
        with pytest.raises(HierarchyError):
            store.update_edge(F.COLLIMATOR, F.FIXED_REFERENCE, collimator_angle_deg=1.0)

    def test_bad_parameters(self, store):
        """Unknown or missing parameters are invalid."""
        with pytest.raises(InvalidParameterError):
            store.update_edge(F.COLLIMATOR, F.GANTRY, angle=1.0)
        with pytest.raises(InvalidParameterError):
            store.update_edge(F.TABLE_TOP, F.TABLE_TOP_ECCENTRIC_ROTATION, tx=1.0)


class TestVersions:
    """Tests for edge version counters."""

    def test_fixed_edges_set_once(self, store):
        """Constant edges are written once at construction."""
        assert store.version(F.DICOM, F.PATIENT) == 1
        assert store.version(F.RAS, F.PATIENT) == 1
        assert store.version(F.GANTRY, F.FIXED_REFERENCE) == 0

    def test_update_bumps_version(self, store):
        """Every update bumps only its own edge."""
        store.update_collimator_to_gantry(10.0)
        store.update_collimator_to_gantry(20.0)
        assert store.version(F.COLLIMATOR, F.GANTRY) == 2
        assert store.version(F.WEDGE_FILTER, F.COLLIMATOR) == 0
