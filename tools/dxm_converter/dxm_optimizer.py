"""Vertex attribute deduplication for decoded DXM models.

Raw DXM attribute arrays hold one tuple per vertex, so positions, normals
and uvs shared between faces are stored many times over. OBJ wants one
pool per attribute with faces indexing into each pool separately.

Tuples are compared through their canonical text: every component is
rounded to 6 decimals with trailing zeros trimmed. Tuples with the same
text are merged, so values closer than the rounding step collapse into
one pool entry. Pool order is the order of first occurrence.
"""
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .dxm_types import DXMGroup, DXMModel, U16Indices, U32Indices
from .errors import InconsistentModel

logger = logging.getLogger(__name__)

NORMALS_EPSILON = 1e-6


def format_component(value: float) -> str:
    """Canonical text for one attribute component.

    >>> format_component(0.5)
    '0.5'
    >>> format_component(-1.0000004)
    '-1'
    """
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    # -0 and 0 share one pool entry
    if text == "-0":
        return "0"
    return text


def tuple_key(values: Iterable[float]) -> str:
    """Canonical text for an attribute tuple, components joined by spaces."""
    return " ".join(format_component(v) for v in values)


def parse_key(key: str) -> Tuple[float, ...]:
    return tuple(float(c) for c in key.split(" "))


def split_tuples(values: Sequence[float], size: int) -> List[Tuple[float, ...]]:
    """Split a flat component array into ``size``-wide tuples."""
    if len(values) % size:
        raise InconsistentModel(
            f"Attribute array of {len(values)} components is not a multiple of {size}"
        )
    return [tuple(values[i:i + size]) for i in range(0, len(values), size)]


class AttributePool:
    """Insertion-ordered set of canonical attribute tuples."""

    def __init__(self):
        self.keys: List[str] = []
        self.first_values: List[Tuple[float, ...]] = []
        self._lookup: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.keys)

    def add(self, values: Tuple[float, ...]) -> int:
        """Add a tuple and return its pool index."""
        key = tuple_key(values)
        index = self._lookup.get(key)
        if index is None:
            index = len(self.keys)
            self._lookup[key] = index
            self.keys.append(key)
            self.first_values.append(values)
        return index

    def is_degenerate(self, epsilon: float = NORMALS_EPSILON) -> bool:
        """True if every pooled tuple has squared length <= epsilon."""
        return all(
            sum(c * c for c in values) <= epsilon
            for values in self.first_values
        )


def build_pool(tuples: List[Tuple[float, ...]]) -> Tuple[AttributePool, List[int]]:
    """Deduplicate tuples.

    Returns:
        The pool and, for every input tuple, its index in the pool
    """
    pool = AttributePool()
    remap = [pool.add(values) for values in tuples]
    return pool, remap


def raw_corners(group: DXMGroup) -> Optional[List[int]]:
    """Raw vertex index per face corner, or None for a group without indices."""
    if isinstance(group.indices, U16Indices):
        return group.indices.values
    if isinstance(group.indices, U32Indices):
        return group.indices.values
    return None


def _remap(corners: List[int], remap: Sequence[int], channel: str) -> List[int]:
    try:
        return [remap[idx] for idx in corners]
    except IndexError:
        bad = next(idx for idx in corners if idx >= len(remap))
        raise InconsistentModel(
            f"{channel} index {bad} out of range for {len(remap)} entries"
        ) from None


def _source_tuples(raw: Optional[List[float]], pool: Optional[List[str]], size: int):
    if raw is not None:
        return split_tuples(raw, size)
    if pool is not None:
        return [parse_key(key) for key in pool]
    return None


def optimize(model: DXMModel) -> DXMModel:
    """Deduplicate the model's attributes and remap group faces.

    Works on freshly decoded models and on already optimized ones; the
    latter come out unchanged. The model is modified in place and returned.

    Raises:
        InconsistentModel: If a group index points past the vertex arrays
    """
    logger.info("## Optimizing DXM ##")
    from_raw = model.vertex is not None

    logger.info("Processing vertices...")
    positions = _source_tuples(model.vertex, model.v, 3) or []
    position_pool, position_remap = build_pool(positions)

    normal_pool = normal_remap = None
    normals = _source_tuples(model.normal, model.vn, 3)
    if normals is not None:
        logger.info("Processing normals...")
        normal_pool, normal_remap = build_pool(normals)
        # Pools of an optimized model already passed this check
        if from_raw and normal_pool.is_degenerate():
            logger.info("All normals are effectively zero, ignoring...")
            normal_pool = normal_remap = None

    uv_pool = uv_remap = None
    uvs = _source_tuples(model.uv, model.vt, 2)
    if uvs is not None:
        logger.info("Processing UVs...")
        uv_pool, uv_remap = build_pool(uvs)

    logger.info("Updating model indices...")
    for i, group in enumerate(model.groups):
        if from_raw:
            corners = raw_corners(group)
            if corners is None:
                continue
            vi_source = ni_source = ti_source = corners
        else:
            if group.vi is None:
                continue
            vi_source, ni_source, ti_source = group.vi, group.ni, group.ti

        group.vi = _remap(vi_source, position_remap, "Position")
        group.ni = None
        group.ti = None
        if normal_remap is not None and ni_source is not None:
            group.ni = _remap(ni_source, normal_remap, "Normal")
        if uv_remap is not None and ti_source is not None:
            group.ti = _remap(ti_source, uv_remap, "UV")
        group.indices = None
        logger.debug("Group %d: %d corners remapped", i, len(group.vi))

    logger.info("Updating model data...")
    model.v = list(position_pool.keys)
    model.vn = list(normal_pool.keys) if normal_pool is not None else None
    model.vt = list(uv_pool.keys) if uv_pool is not None else None
    model.vertex = model.normal = model.uv = None

    logger.debug(
        "Pools: %d positions (from %d), %s normals, %s uvs",
        len(model.v), len(positions),
        len(model.vn) if model.vn is not None else "no",
        len(model.vt) if model.vt is not None else "no",
    )
    return model


def with_pools(model: DXMModel) -> DXMModel:
    """Return a model that has pools, building identity pools if needed.

    An unoptimized model gets one pool entry per raw tuple, in raw order,
    and per-corner indices equal to its raw indices. Optimized models are
    returned as they are. The input model is never modified.
    """
    if model.is_optimized:
        return model

    positions = split_tuples(model.vertex or [], 3)
    normals = split_tuples(model.normal, 3) if model.normal is not None else None
    uvs = split_tuples(model.uv, 2) if model.uv is not None else None

    groups = []
    for group in model.groups:
        corners = raw_corners(group)
        if corners is None:
            groups.append(replace(group))
            continue
        groups.append(replace(
            group,
            indices=None,
            vi=_remap(corners, range(len(positions)), "Position"),
            ni=list(corners) if normals is not None else None,
            ti=list(corners) if uvs is not None else None,
        ))

    return replace(
        model,
        groups=groups,
        vertex=None,
        normal=None,
        uv=None,
        v=[tuple_key(p) for p in positions],
        vn=[tuple_key(n) for n in normals] if normals is not None else None,
        vt=[tuple_key(t) for t in uvs] if uvs is not None else None,
    )
