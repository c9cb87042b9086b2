"""Export pose: rotate and mirror a model before writing it out.

The pose rotates about X, then Y, then Z (degrees, right handed) and then
mirrors the flipped axes. Mirroring an odd number of axes turns triangles
inside out, so their winding is reversed to keep them facing outwards.
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from .dxm_optimizer import optimize, parse_key, raw_corners, tuple_key
from .dxm_types import DXMGroup, DXMModel

logger = logging.getLogger(__name__)

Matrix3 = Tuple[Tuple[float, float, float], ...]


def _multiply(a: Matrix3, b: Matrix3) -> Matrix3:
    return tuple(
        tuple(sum(a[r][k] * b[k][c] for k in range(3)) for c in range(3))
        for r in range(3)
    )


def _rotation(axis: str, degrees: float) -> Matrix3:
    rad = math.radians(degrees)
    c, s = math.cos(rad), math.sin(rad)
    if axis == "x":
        return ((1.0, 0.0, 0.0), (0.0, c, -s), (0.0, s, c))
    if axis == "y":
        return ((c, 0.0, s), (0.0, 1.0, 0.0), (-s, 0.0, c))
    return ((c, -s, 0.0), (s, c, 0.0), (0.0, 0.0, 1.0))


@dataclass
class ExportPose:
    """Rotation in degrees per axis plus per-axis mirroring."""

    rot_x: float = 0.0
    rot_y: float = 0.0
    rot_z: float = 0.0
    flip_x: bool = False
    flip_y: bool = False
    flip_z: bool = False

    @property
    def is_identity(self) -> bool:
        return (
            not (self.rot_x or self.rot_y or self.rot_z)
            and not (self.flip_x or self.flip_y or self.flip_z)
        )

    @property
    def reverses_winding(self) -> bool:
        return (self.flip_x + self.flip_y + self.flip_z) % 2 == 1

    def matrix(self) -> Matrix3:
        scale = (
            (-1.0 if self.flip_x else 1.0, 0.0, 0.0),
            (0.0, -1.0 if self.flip_y else 1.0, 0.0),
            (0.0, 0.0, -1.0 if self.flip_z else 1.0),
        )
        m = _multiply(scale, _rotation("z", self.rot_z))
        m = _multiply(m, _rotation("y", self.rot_y))
        return _multiply(m, _rotation("x", self.rot_x))


def transform_point(m: Matrix3, p: Sequence[float]) -> Tuple[float, float, float]:
    return tuple(m[r][0] * p[0] + m[r][1] * p[1] + m[r][2] * p[2] for r in range(3))


def _transform_flat(m: Matrix3, values: List[float]) -> List[float]:
    out = []
    for i in range(0, len(values), 3):
        out.extend(transform_point(m, values[i:i + 3]))
    return out


def _transform_pool(m: Matrix3, pool: List[str]) -> List[str]:
    return [tuple_key(transform_point(m, parse_key(key))) for key in pool]


def _copy_corners(corners: Optional[List[int]], reverse: bool) -> Optional[List[int]]:
    """Copy a corner list, swapping corners 2 and 3 of every triangle if reverse."""
    if corners is None:
        return None
    corners = list(corners)
    if reverse:
        for i in range(0, len(corners) - len(corners) % 3, 3):
            corners[i + 1], corners[i + 2] = corners[i + 2], corners[i + 1]
    return corners


def _posed_group(group: DXMGroup, reverse: bool) -> DXMGroup:
    indices = group.indices
    if indices is not None:
        indices = type(indices)(_copy_corners(raw_corners(group), reverse))
    return replace(
        group,
        indices=indices,
        vi=_copy_corners(group.vi, reverse),
        ni=_copy_corners(group.ni, reverse),
        ti=_copy_corners(group.ti, reverse),
    )


def apply_pose(model: DXMModel, pose: ExportPose) -> DXMModel:
    """Return a copy of the model with positions and normals transformed.

    The input model is never modified. Optimized models come back
    re-optimized since transformed tuples can round onto each other. Raw
    models stay raw.
    """
    if pose.is_identity:
        return model

    logger.info(
        "Applying export pose: rotation (%g, %g, %g), flip (%s, %s, %s)",
        pose.rot_x, pose.rot_y, pose.rot_z, pose.flip_x, pose.flip_y, pose.flip_z,
    )
    m = pose.matrix()
    reverse = pose.reverses_winding
    if reverse:
        logger.debug("Odd number of flipped axes, reversing winding")

    posed = replace(model, groups=[_posed_group(group, reverse) for group in model.groups])

    if model.is_optimized:
        posed.v = _transform_pool(m, model.v)
        if model.vn is not None:
            posed.vn = _transform_pool(m, model.vn)
        return optimize(posed)

    if model.vertex is not None:
        posed.vertex = _transform_flat(m, model.vertex)
    if model.normal is not None:
        posed.normal = _transform_flat(m, model.normal)
    return posed
