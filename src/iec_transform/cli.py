"""Command-line interface for the IEC 61217 Transform Kit.

This module provides the main CLI entrypoint with subcommands for:
- frames: List coordinate frames and their conventions
- edges: List hierarchy edges with their elementary transforms
- path: Show the path from a frame up to the fixed reference
- transform: Compute the transform between two frames
- plot: Render the frame hierarchy in 3D
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
import logging

import numpy as np
from rich.table import Table

from iec_transform import __version__
from iec_transform.common.logging import (
    setup_logging,
    get_logger,
    print_banner,
    print_success,
    print_error,
    print_warning,
    print_info,
    print_frame_path,
    print_matrix,
    console,
)

logger = get_logger(__name__)


def main() -> int:
    """Main CLI entrypoint."""
    parser = create_parser()
    args = parser.parse_args()

    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    setup_logging(level=log_level, log_file=getattr(args, "log_file", None))

    if hasattr(args, "func"):
        try:
            return args.func(args)
        except Exception as e:
            print_error(f"Error: {e}")
            if getattr(args, "verbose", False):
                console.print_exception()
            return 1
    else:
        parser.print_help()
        return 0


def _add_pose_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--pose",
        type=Path,
        default=None,
        help="Path to a device pose YAML file (defaults to all angles zero)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="iec-transform",
        description="IEC 61217 Transform Kit - Transforms between radiotherapy device coordinate frames",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List frames
  iec-transform frames

  # Transform from patient RAS to the collimator frame
  iec-transform transform --from Ras --to Collimator --pose configs/example_pose.yaml

  # Render the hierarchy
  iec-transform plot --pose configs/example_pose.yaml --out ./output/frames.png
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log records to this file",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    frames_parser = subparsers.add_parser(
        "frames",
        help="List coordinate frames and their conventions",
    )
    frames_parser.set_defaults(func=cmd_frames)

    edges_parser = subparsers.add_parser(
        "edges",
        help="List hierarchy edges with their elementary transforms",
    )
    _add_pose_argument(edges_parser)
    edges_parser.set_defaults(func=cmd_edges)

    path_parser = subparsers.add_parser(
        "path",
        help="Show the path from a frame up to the fixed reference",
    )
    path_parser.add_argument(
        "frame",
        help="Frame name, e.g. TableTop",
    )
    path_parser.set_defaults(func=cmd_path)

    transform_parser = subparsers.add_parser(
        "transform",
        help="Compute the transform between two frames",
    )
    transform_parser.add_argument(
        "--from",
        dest="from_frame",
        required=True,
        help="Source frame name",
    )
    transform_parser.add_argument(
        "--to",
        dest="to_frame",
        required=True,
        help="Destination frame name",
    )
    _add_pose_argument(transform_parser)
    transform_parser.add_argument(
        "--beam",
        action="store_true",
        help="Do not invert the destination-side transforms (legacy beam model)",
    )
    transform_parser.add_argument(
        "--point",
        type=float,
        nargs=3,
        metavar=("X", "Y", "Z"),
        default=None,
        help="Map a point given in the source frame",
    )
    transform_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write a transform report (.json, .yaml or .yml)",
    )
    transform_parser.set_defaults(func=cmd_transform)

    plot_parser = subparsers.add_parser(
        "plot",
        help="Render the frame hierarchy in 3D",
    )
    _add_pose_argument(plot_parser)
    plot_parser.add_argument(
        "--out",
        type=Path,
        required=True,
        help="Output image path",
    )
    plot_parser.add_argument(
        "--scale",
        type=float,
        default=100.0,
        help="Axis length of each frame triad",
    )
    plot_parser.set_defaults(func=cmd_plot)

    return parser


def _load_logic(pose_path: Path | None):
    """Create the transform logic and apply the pose file, if any."""
    from iec_transform.geometry.logic import IECTransformLogic
    from iec_transform.io.pose import load_pose_yaml

    logic = IECTransformLogic()
    pose = None
    if pose_path is not None:
        print_info(f"Pose: {pose_path.resolve()}")
        pose = load_pose_yaml(pose_path)
        pose.apply_to(logic)
    return logic, pose


def _format_matrix(matrix: np.ndarray) -> str:
    return np.array2string(np.asarray(matrix), precision=6, suppress_small=True)


def cmd_frames(args: argparse.Namespace) -> int:
    """Run frames command."""
    from iec_transform.common.frames import CoordinateFrame, get_frame_convention, get_frame_name
    from iec_transform.geometry.hierarchy import FrameHierarchy

    hierarchy = FrameHierarchy()

    table = Table(title="Coordinate frames")
    table.add_column("Id", justify="right")
    table.add_column("Name", no_wrap=True)
    table.add_column("Parent", no_wrap=True)
    table.add_column("Description")
    table.add_column("Axes (X / Y / Z)")

    for frame in CoordinateFrame:
        convention = get_frame_convention(frame)
        parent = hierarchy.parent(frame)
        table.add_row(
            str(int(frame)),
            convention.name,
            get_frame_name(parent) if parent is not None else "-",
            convention.description,
            f"{convention.x_axis} / {convention.y_axis} / {convention.z_axis}",
        )

    console.print(table)
    return 0


def cmd_edges(args: argparse.Namespace) -> int:
    """Run edges command."""
    logic, _ = _load_logic(args.pose)

    table = Table(title="Elementary transforms")
    table.add_column("Transform", no_wrap=True)
    table.add_column("Parametric")
    table.add_column("Elementary matrix")
    table.add_column("To FixedReference")

    for row in logic.summary():
        table.add_row(
            row["name"],
            "yes" if row["parametric"] else "no",
            _format_matrix(row["elementary"]),
            _format_matrix(row["concatenated"]),
        )

    console.print(table)
    return 0


def cmd_path(args: argparse.Namespace) -> int:
    """Run path command."""
    from iec_transform.common.frames import frame_from_name, get_frame_name
    from iec_transform.geometry.hierarchy import FrameHierarchy

    frame = frame_from_name(args.frame)
    path = FrameHierarchy().path_to_root(frame)

    print_frame_path(get_frame_name(f) for f in path)
    console.print(f"Depth: {len(path) - 1}")
    return 0


def cmd_transform(args: argparse.Namespace) -> int:
    """Run transform command."""
    print_banner()

    from iec_transform.common.frames import frame_from_name
    from iec_transform.common.transforms import apply_transform
    from iec_transform.io.export import build_transform_report, export_transform_report

    from_frame = frame_from_name(args.from_frame)
    to_frame = frame_from_name(args.to_frame)
    logic, pose = _load_logic(args.pose)

    report = build_transform_report(
        logic,
        from_frame,
        to_frame,
        invert_destination_side=not args.beam,
        pose=pose.to_dict() if pose is not None else None,
    )

    console.print(f"[bold]{report.name}[/bold]")
    print_frame_path(report.path_to_root, label="  Up:   ")
    print_frame_path(report.path_from_root, label="  Down: ")
    print_matrix(report.to_matrix())
    if args.beam:
        print_warning("Destination side not inverted (beam model)")

    if args.point is not None:
        mapped = apply_transform(report.to_matrix(), np.array(args.point))[0]
        console.print(f"Point {args.point} in {report.to_frame}:")
        print_matrix(mapped)

    if args.out is not None:
        out_path = export_transform_report(report, args.out.resolve())
        print_success(f"Exported: {out_path}")

    return 0


def cmd_plot(args: argparse.Namespace) -> int:
    """Run plot command."""
    from iec_transform.viz.frames_3d import plot_frames_3d
    import matplotlib.pyplot as plt

    logic, _ = _load_logic(args.pose)

    output_path = args.out.resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fig = plot_frames_3d(logic, output_path=output_path, scale=args.scale)
    plt.close(fig)

    print_success(f"Exported: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
