"""3D frame hierarchy visualization.

This module draws the axis triads of the hierarchy frames in fixed
reference coordinates, with a line from every child origin to its parent
origin.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D

from iec_transform.common.frames import CoordinateFrame, get_frame_name
from iec_transform.common.transforms import decompose_transform
from iec_transform.geometry.logic import IECTransformLogic


def _draw_frame_triad(
    ax: Axes3D,
    T: NDArray[np.float64],
    scale: float = 100.0,
    label: Optional[str] = None,
) -> None:
    """Draw the X (red), Y (green) and Z (blue) axes of a frame.

    Args:
        ax: 3D axes to draw on.
        T: 4x4 frame -> fixed reference transform.
        scale: Axis length.
        label: Optional text placed at the origin.
    """
    axes, origin = decompose_transform(T)
    # Normalize so voxel-scaled frames draw with the same length
    for column, color in zip(range(3), ("red", "green", "blue")):
        axis = axes[:, column]
        norm = np.linalg.norm(axis)
        if norm > 0:
            axis = axis / norm * scale
        ax.quiver(origin[0], origin[1], origin[2], axis[0], axis[1], axis[2],
                  color=color, arrow_length_ratio=0.2)

    if label:
        ax.text(origin[0], origin[1], origin[2] + scale * 0.15, label, fontsize=7)


def plot_frames_3d(
    logic: IECTransformLogic,
    frames: Optional[Iterable[CoordinateFrame]] = None,
    output_path: Optional[Path] = None,
    scale: float = 100.0,
    figsize: Tuple[float, float] = (10, 8),
    title: str = "IEC 61217 Frame Hierarchy",
) -> plt.Figure:
    """Plot the frames of the hierarchy in fixed reference coordinates.

    Args:
        logic: Transform logic holding the current device geometry.
        frames: Frames to draw; defaults to every frame of the hierarchy.
        output_path: Optional path to save figure.
        scale: Axis length of each triad (same unit as the translations).
        figsize: Figure size.
        title: Plot title.

    Returns:
        Matplotlib figure.
    """
    fig = plt.figure(figsize=figsize)
    ax = fig.add_subplot(111, projection='3d')

    if frames is None:
        frames = logic.hierarchy.frames()
    frames = list(frames)

    origins = {}
    for frame in frames:
        T = logic.get_concatenated_transform(frame)
        origins[frame] = decompose_transform(T)[1]
        _draw_frame_triad(ax, T, scale=scale, label=get_frame_name(frame))

    for frame in frames:
        parent = logic.hierarchy.parent(frame)
        if parent is None:
            continue
        child_origin = origins[frame]
        parent_origin = origins.get(parent)
        if parent_origin is None:
            parent_origin = decompose_transform(logic.get_concatenated_transform(parent))[1]
        ax.plot3D([parent_origin[0], child_origin[0]],
                  [parent_origin[1], child_origin[1]],
                  [parent_origin[2], child_origin[2]],
                  color='gray', linewidth=1, linestyle='--')

    # Set equal aspect ratio
    all_pts = np.array(list(origins.values()) or [np.zeros(3)])
    max_range = np.ptp(all_pts, axis=0).max() / 2.0 + scale
    mid = all_pts.mean(axis=0)

    ax.set_xlim(mid[0] - max_range, mid[0] + max_range)
    ax.set_ylim(mid[1] - max_range, mid[1] + max_range)
    ax.set_zlim(mid[2] - max_range, mid[2] + max_range)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')
    ax.set_title(f"{title}\n(World = FixedReference frame)")

    plt.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=150, bbox_inches='tight')

    return fig
