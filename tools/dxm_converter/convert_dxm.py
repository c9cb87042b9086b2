"""Convert a DXM/DLM model to OBJ/MTL (or binary glTF).

Usage:
    python -m dxm_converter <input> [-o <output>] [-f obj|glb] [--no-optimize]

Examples:
    # Convert next to the source file
    python -m dxm_converter model.dlm

    # A .dxm is read through the .dlm beside it
    python -m dxm_converter model.dxm -o ./output

    # Rotate the model upright and mirror it before exporting
    python -m dxm_converter model.dlm --rotate-x -90 --flip-z
"""
import argparse
import logging
import sys
from typing import List, Optional

from . import export
from .dxm_optimizer import optimize
from .dxm_parser import load_model
from .dxm_transform import ExportPose
from .errors import DXMError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dxm-convert",
        description="Convert DXM/DLM models to OBJ/MTL",
    )
    parser.add_argument(
        "input",
        help="Input .dlm file, or .dxm file with a .dlm beside it",
    )
    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Folder to create the output folder in (default: the input's folder)",
    )
    parser.add_argument(
        "-f", "--format",
        choices=["obj", "glb"],
        default="obj",
        help="Output format (default: obj)",
    )
    parser.add_argument(
        "--no-optimize",
        action="store_true",
        help="Skip vertex deduplication",
    )

    pose = parser.add_argument_group("export pose")
    for axis in "xyz":
        pose.add_argument(
            f"--rotate-{axis}",
            type=float,
            default=0.0,
            metavar="DEGREES",
            help=f"Rotate around the {axis.upper()} axis",
        )
    for axis in "xyz":
        pose.add_argument(
            f"--flip-{axis}",
            action="store_true",
            help=f"Mirror along the {axis.upper()} axis",
        )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only report warnings and errors",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(message)s",
        datefmt="%H:%M:%S",
    )

    pose = ExportPose(
        rot_x=args.rotate_x,
        rot_y=args.rotate_y,
        rot_z=args.rotate_z,
        flip_x=args.flip_x,
        flip_y=args.flip_y,
        flip_z=args.flip_z,
    )

    try:
        model = load_model(args.input)
        if not args.no_optimize:
            optimize(model)
        result = export(model, args.output, fmt=args.format, pose=pose)
    except (DXMError, ValueError, OSError) as e:
        print(f"Failed: {args.input} - {e}", file=sys.stderr)
        return 1

    for failure in result.failed_textures:
        print(f"Warning: {failure}", file=sys.stderr)

    print(f"Exported: {args.input} -> {result.directory}")
    return 0

