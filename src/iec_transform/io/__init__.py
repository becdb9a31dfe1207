"""IO utilities for the IEC transform toolkit."""

from iec_transform.io.pose import (
    DevicePose,
    GantryPose,
    CollimatorPose,
    WedgeFilterPose,
    PatientSupportPose,
    TableTopEccentricPose,
    TableTopPose,
    PatientPose,
    ImageGridGeometry,
    load_pose_yaml,
    save_pose_yaml,
)
from iec_transform.io.export import (
    TransformReport,
    build_transform_report,
    export_transform_report,
    load_transform_report,
)

__all__ = [
    # Pose
    "DevicePose",
    "GantryPose",
    "CollimatorPose",
    "WedgeFilterPose",
    "PatientSupportPose",
    "TableTopEccentricPose",
    "TableTopPose",
    "PatientPose",
    "ImageGridGeometry",
    "load_pose_yaml",
    "save_pose_yaml",
    # Export
    "TransformReport",
    "build_transform_report",
    "export_transform_report",
    "load_transform_report",
]
