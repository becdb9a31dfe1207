"""IEC 61217 Transform Kit.

Coordinate frame hierarchy of an external-beam radiotherapy delivery device
and composite transforms between any two of its frames.
"""

__version__ = "0.1.0"
__author__ = "IEC Transform Kit Team"

from iec_transform.common.frames import CoordinateFrame
from iec_transform.geometry.logic import IECTransformLogic

__all__ = [
    "__version__",
    "CoordinateFrame",
    "IECTransformLogic",
]
