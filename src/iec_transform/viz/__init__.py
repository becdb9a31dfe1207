"""Frame hierarchy visualization module.

Usage:
    from iec_transform.viz import plot_frames_3d

    fig = plot_frames_3d(logic, output_path=Path("frames.png"))
"""

from iec_transform.viz.frames_3d import plot_frames_3d

__all__ = [
    "plot_frames_3d",
]
