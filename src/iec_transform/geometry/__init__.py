"""IEC 61217 frame hierarchy, elementary transforms and composition."""

from iec_transform.geometry.hierarchy import (
    IEC_61217_HIERARCHY,
    FrameHierarchy,
)
from iec_transform.geometry.elementary import (
    DICOM_TO_PATIENT,
    RAS_TO_PATIENT,
    PARAMETRIC_EDGES,
    ElementaryTransformStore,
    build_image_grid_transform,
)
from iec_transform.geometry.composer import TransformComposer
from iec_transform.geometry.logic import IECTransformLogic

__all__ = [
    # Hierarchy
    "IEC_61217_HIERARCHY",
    "FrameHierarchy",
    # Elementary transforms
    "DICOM_TO_PATIENT",
    "RAS_TO_PATIENT",
    "PARAMETRIC_EDGES",
    "ElementaryTransformStore",
    "build_image_grid_transform",
    # Composition
    "TransformComposer",
    "IECTransformLogic",
]
