"""IEC 61217 coordinate frame hierarchy.

The hierarchy is a tree rooted at the fixed reference frame. Each edge
(parent, child) carries one elementary transform mapping child coordinates
into parent coordinates.

                   -------------------(f)---------------------
                   |                                         |
        ---------(g)---------------                        (s*)
        |        |       |        |                      |      |
       (b)     (rl)    (rr)     (fp)                    (s)    (e)
        |                                                       |
       (w)                                                     (t)
                                                                |
                                                               (p)
                                                            |       |
                                                          (dp)    (ras)
                                                            |
                                                          (pi)

    f: FixedReference, g: Gantry, b: Collimator, w: WedgeFilter,
    rl/rr: Left/RightImagingPanel, fp: FlatPanel,
    s*: PatientSupportRotation, s: PatientSupport,
    e: TableTopEccentricRotation, t: TableTop, p: Patient,
    dp: DICOM, pi: PatientImageRegularGrid, ras: Ras
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from iec_transform.common.errors import HierarchyError
from iec_transform.common.frames import CoordinateFrame, get_frame_name
from iec_transform.common.logging import get_logger

logger = get_logger(__name__)

F = CoordinateFrame

# key - parent, value - children (ordered)
IEC_61217_HIERARCHY: Mapping[CoordinateFrame, Tuple[CoordinateFrame, ...]] = MappingProxyType({
    F.FIXED_REFERENCE: (F.GANTRY, F.PATIENT_SUPPORT_ROTATION),
    F.GANTRY: (F.COLLIMATOR, F.LEFT_IMAGING_PANEL, F.RIGHT_IMAGING_PANEL, F.FLAT_PANEL),
    F.COLLIMATOR: (F.WEDGE_FILTER,),
    F.PATIENT_SUPPORT_ROTATION: (F.PATIENT_SUPPORT, F.TABLE_TOP_ECCENTRIC_ROTATION),
    F.TABLE_TOP_ECCENTRIC_ROTATION: (F.TABLE_TOP,),
    F.TABLE_TOP: (F.PATIENT,),
    F.PATIENT: (F.DICOM, F.RAS),
    F.DICOM: (F.PATIENT_IMAGE_REGULAR_GRID,),
})


class FrameHierarchy:
    """Static parent -> children tree of coordinate frames.

    The topology is fixed at construction. A child -> parent map is built
    once so that path resolution is O(depth).

    Args:
        adjacency: Mapping parent -> ordered children. Defaults to the
            IEC 61217 hierarchy.
        root: Root frame of the tree.

    Raises:
        HierarchyError: If a frame is listed under more than one parent.
    """

    def __init__(
        self,
        adjacency: Optional[Mapping[CoordinateFrame, Iterable[CoordinateFrame]]] = None,
        root: CoordinateFrame = CoordinateFrame.FIXED_REFERENCE,
    ):
        if adjacency is None:
            adjacency = IEC_61217_HIERARCHY

        self._root = CoordinateFrame(root)
        children: Dict[CoordinateFrame, Tuple[CoordinateFrame, ...]] = {}
        parents: Dict[CoordinateFrame, CoordinateFrame] = {}

        for parent, kids in adjacency.items():
            parent = CoordinateFrame(parent)
            kids = tuple(CoordinateFrame(k) for k in kids)
            children[parent] = kids
            for child in kids:
                if child in parents:
                    raise HierarchyError(
                        f"Frame {get_frame_name(child)} has two parents: "
                        f"{get_frame_name(parents[child])} and {get_frame_name(parent)}"
                    )
                if child == self._root:
                    raise HierarchyError(f"Root frame {get_frame_name(child)} cannot have a parent")
                parents[child] = parent

        self._children = MappingProxyType(children)
        self._parents = MappingProxyType(parents)

    @property
    def root(self) -> CoordinateFrame:
        return self._root

    def children(self, frame: CoordinateFrame) -> Tuple[CoordinateFrame, ...]:
        """Ordered children of a frame (empty for leaves)."""
        return self._children.get(frame, ())

    def parent(self, frame: CoordinateFrame) -> Optional[CoordinateFrame]:
        """Immediate parent of a frame, or None for the root and unattached frames."""
        return self._parents.get(frame)

    def __contains__(self, frame: object) -> bool:
        return frame == self._root or frame in self._parents

    def frames(self) -> List[CoordinateFrame]:
        """All frames attached to the tree, root first, in breadth-first order."""
        ordered = [self._root]
        for frame in ordered:
            ordered.extend(self.children(frame))
        return ordered

    def edges(self) -> List[Tuple[CoordinateFrame, CoordinateFrame]]:
        """All (parent, child) edges in adjacency declaration order."""
        return [(parent, child) for parent, kids in self._children.items() for child in kids]

    def path_to_root(self, frame: CoordinateFrame) -> List[CoordinateFrame]:
        """Frames from `frame` up to the root, both inclusive.

        Args:
            frame: Starting frame.

        Returns:
            Ordered path, e.g. [Collimator, Gantry, FixedReference].

        Raises:
            HierarchyError: If a non-root frame on the way has no parent
                or the walk does not terminate.
        """
        try:
            frame = CoordinateFrame(frame)
        except ValueError:
            raise HierarchyError(f"Unknown frame identifier {frame!r}") from None
        path = [frame]
        while frame != self._root:
            parent = self._parents.get(frame)
            if parent is None:
                raise HierarchyError(
                    f"No parent found for frame {get_frame_name(frame)} "
                    f"while resolving path to {get_frame_name(self._root)}"
                )
            logger.debug(f"Path step {get_frame_name(frame)} -> {get_frame_name(parent)}")
            frame = parent
            path.append(frame)
            if len(path) > len(CoordinateFrame):
                raise HierarchyError(f"Cycle detected in hierarchy at frame {get_frame_name(frame)}")
        return path

    def path_from_root(self, frame: CoordinateFrame) -> List[CoordinateFrame]:
        """Frames from the root down to `frame`, both inclusive."""
        return list(reversed(self.path_to_root(frame)))

    def depth(self, frame: CoordinateFrame) -> int:
        """Number of edges between `frame` and the root."""
        return len(self.path_to_root(frame)) - 1


def path_edges(path: Sequence[CoordinateFrame]) -> List[Tuple[CoordinateFrame, CoordinateFrame]]:
    """Consecutive (a, b) pairs along a path, skipping a == b."""
    return [(a, b) for a, b in zip(path[:-1], path[1:]) if a != b]
