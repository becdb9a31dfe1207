"""Tests for the IEC 61217 frame hierarchy."""

from __future__ import annotations

import pytest

from iec_transform.common.errors import HierarchyError
from iec_transform.common.frames import CoordinateFrame as F
from iec_transform.geometry.hierarchy import IEC_61217_HIERARCHY, FrameHierarchy, path_edges


class TestTopology:
    """Tests for the static tree."""

    def test_root(self):
        """FixedReference is the root and has no parent."""
        hierarchy = FrameHierarchy()
        assert hierarchy.root == F.FIXED_REFERENCE
        assert hierarchy.parent(F.FIXED_REFERENCE) is None

    def test_edge_count(self):
        """The default hierarchy has 14 edges."""
        assert len(FrameHierarchy().edges()) == 14

    def test_children_order(self):
        """Children keep their declaration order."""
        hierarchy = FrameHierarchy()
        assert hierarchy.children(F.GANTRY) == (
            F.COLLIMATOR, F.LEFT_IMAGING_PANEL, F.RIGHT_IMAGING_PANEL, F.FLAT_PANEL,
        )
        assert hierarchy.children(F.PATIENT) == (F.DICOM, F.RAS)
        assert hierarchy.children(F.WEDGE_FILTER) == ()

    def test_every_child_has_one_parent(self):
        """Each attached non-root frame appears under exactly one parent."""
        seen = [child for kids in IEC_61217_HIERARCHY.values() for child in kids]
        assert len(seen) == len(set(seen))

    def test_reserved_frames_not_attached(self):
        """Imager and Focus are declared but not part of the tree."""
        hierarchy = FrameHierarchy()
        assert F.IMAGER not in hierarchy
        assert F.FOCUS not in hierarchy
        assert len(hierarchy.frames()) == 15

    def test_frames_breadth_first(self):
        """frames() starts at the root and lists parents before children."""
        frames = FrameHierarchy().frames()
        assert frames[0] == F.FIXED_REFERENCE
        assert frames.index(F.PATIENT) < frames.index(F.RAS)
        assert frames.index(F.DICOM) < frames.index(F.PATIENT_IMAGE_REGULAR_GRID)

    def test_hierarchy_is_read_only(self):
        """The default adjacency cannot be modified."""
        with pytest.raises(TypeError):
            IEC_61217_HIERARCHY[F.IMAGER] = (F.FOCUS,)


class TestPaths:
    """Tests for path resolution."""

    def test_path_to_root(self):
        """The Ras path climbs through the patient support chain."""
        path = FrameHierarchy().path_to_root(F.RAS)
        assert path == [
            F.RAS, F.PATIENT, F.TABLE_TOP, F.TABLE_TOP_ECCENTRIC_ROTATION,
            F.PATIENT_SUPPORT_ROTATION, F.FIXED_REFERENCE,
        ]

    def test_path_from_root(self):
        """path_from_root is the reversed path to the root."""
        assert FrameHierarchy().path_from_root(F.COLLIMATOR) == [
            F.FIXED_REFERENCE, F.GANTRY, F.COLLIMATOR,
        ]

    def test_root_path(self):
        """The root path holds only the root."""
        assert FrameHierarchy().path_to_root(F.FIXED_REFERENCE) == [F.FIXED_REFERENCE]

    @pytest.mark.parametrize("frame, depth", [
        (F.FIXED_REFERENCE, 0),
        (F.GANTRY, 1),
        (F.WEDGE_FILTER, 3),
        (F.PATIENT_SUPPORT, 2),
        (F.PATIENT_IMAGE_REGULAR_GRID, 6),
    ])
    def test_depth(self, frame, depth):
        """Depth counts edges up to the root."""
        assert FrameHierarchy().depth(frame) == depth

    def test_every_path_ends_at_root(self):
        """Every attached frame resolves to FixedReference."""
        hierarchy = FrameHierarchy()
        for frame in hierarchy.frames():
            assert hierarchy.path_to_root(frame)[-1] == F.FIXED_REFERENCE

    def test_reserved_frame_path(self):
        """Frames outside the tree cannot be resolved."""
        with pytest.raises(HierarchyError):
            FrameHierarchy().path_to_root(F.IMAGER)

    @pytest.mark.parametrize("frame", [99, -1])
    def test_unknown_frame_id(self, frame):
        """Integer ids outside the enumeration raise HierarchyError."""
        with pytest.raises(HierarchyError, match="Unknown frame identifier"):
            FrameHierarchy().path_to_root(frame)

    def test_path_edges(self):
        """path_edges pairs consecutive frames."""
        assert path_edges([F.COLLIMATOR, F.GANTRY, F.FIXED_REFERENCE]) == [
            (F.COLLIMATOR, F.GANTRY), (F.GANTRY, F.FIXED_REFERENCE),
        ]
        assert path_edges([F.FIXED_REFERENCE]) == []


class TestBrokenHierarchy:
    """Tests for invalid adjacency tables."""

    def test_missing_link(self):
        """Removing TableTop -> Patient detaches the patient branch."""
        adjacency = dict(IEC_61217_HIERARCHY)
        del adjacency[F.TABLE_TOP]
        hierarchy = FrameHierarchy(adjacency)

        with pytest.raises(HierarchyError):
            hierarchy.path_to_root(F.RAS)
        assert hierarchy.path_to_root(F.TABLE_TOP)[-1] == F.FIXED_REFERENCE

    def test_two_parents(self):
        """A frame listed under two parents is rejected."""
        adjacency = dict(IEC_61217_HIERARCHY)
        adjacency[F.COLLIMATOR] = (F.WEDGE_FILTER, F.FLAT_PANEL)
        with pytest.raises(HierarchyError):
            FrameHierarchy(adjacency)

    def test_root_as_child(self):
        """The root cannot have a parent."""
        adjacency = dict(IEC_61217_HIERARCHY)
        adjacency[F.WEDGE_FILTER] = (F.FIXED_REFERENCE,)
        with pytest.raises(HierarchyError):
            FrameHierarchy(adjacency)

    def test_cycle(self):
        """A cycle detached from the root is detected."""
        hierarchy = FrameHierarchy({
            F.FIXED_REFERENCE: (F.GANTRY,),
            F.IMAGER: (F.FOCUS,),
            F.FOCUS: (F.IMAGER,),
        })
        with pytest.raises(HierarchyError):
            hierarchy.path_to_root(F.FOCUS)
