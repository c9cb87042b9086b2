"""Tests for vertex deduplication."""
import copy
import io

import pytest

from dxm_converter.dxm_optimizer import format_component, optimize, tuple_key, with_pools
from dxm_converter.dxm_parser import load_model
from dxm_converter.dxm_types import DXMGroup, DXMHeader, DXMModel, U16Indices, U32Indices
from dxm_converter.errors import InconsistentModel

from .dxm_samples import build_dxm, triangle_with_duplicate


def make_model(vertex, normal=None, uv=None, groups=None):
    header = DXMHeader(
        identifier=b"DXM1",
        major_version=2,
        minor_version=2,
        encoding=1,
        compression=0,
        vertex_count=len(vertex) // 3,
        vertex_composition_flags=7 if normal is not None else 9,
        group_count=len(groups or []),
    )
    return DXMModel(header=header, groups=groups or [], vertex=vertex, normal=normal, uv=uv)


@pytest.mark.parametrize("value,expected", [
    (0.0, "0"),
    (1.0, "1"),
    (-2.5, "-2.5"),
    (0.1234564, "0.123456"),
    (0.1234566, "0.123457"),
    (100.0, "100"),
    (-0.0000001, "0"),
    (-0.0, "0"),
    (1e-7, "0"),
])
def test_format_component(value, expected):
    assert format_component(value) == expected


def test_tuple_key():
    assert tuple_key((1.0, 0.5, -0.25)) == "1 0.5 -0.25"


def test_end_to_end_duplicate_positions():
    """4 raw vertices with a duplicate position dedupe to 3 pooled positions."""
    model = optimize(load_model(io.BytesIO(triangle_with_duplicate())))

    assert model.v == ["0 0 0", "1 0 0", "0 1 0"]
    assert model.vn == ["0 0 1"]
    assert model.vt == ["0 0", "1 0", "0 1"]

    group = model.groups[0]
    assert group.vi == [0, 1, 2]
    assert group.ni == [0, 0, 0]
    assert group.ti == [0, 1, 2]
    assert group.indices is None
    assert model.vertex is None and model.normal is None and model.uv is None


def test_pool_order_is_first_occurrence():
    vertex = [
        5.0, 5.0, 5.0,
        1.0, 1.0, 1.0,
        5.0, 5.0, 5.0,
        2.0, 2.0, 2.0,
        1.0, 1.0, 1.0,
    ]
    model = make_model(vertex, groups=[DXMGroup(indices=U16Indices([4, 3, 2, 1, 0]))])
    optimize(model)

    assert model.v == ["5 5 5", "1 1 1", "2 2 2"]
    assert model.groups[0].vi == [1, 2, 0, 1, 0]


def test_near_identical_values_merge():
    """Values equal to 6 decimals share one pool entry."""
    vertex = [0.1, 0.2, 0.3, 0.1000001, 0.2000001, 0.3000001]
    model = make_model(vertex, groups=[DXMGroup(indices=U32Indices([0, 1]))])
    optimize(model)

    assert model.v == ["0.1 0.2 0.3"]
    assert model.groups[0].vi == [0, 0]


def test_degenerate_normals_dropped():
    """Normals with squared length under epsilon drop the normal channel."""
    vertex = [0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0]
    normal = [0.0009999, 0.0, 0.0] * 3
    uv = [0.0, 0.0, 1.0, 0.0, 0.0, 1.0]
    model = make_model(vertex, normal, uv, groups=[DXMGroup(indices=U16Indices([0, 1, 2]))])
    optimize(model)

    assert model.vn is None
    assert model.groups[0].ni is None
    assert model.groups[0].ti == [0, 1, 2]


def test_small_but_valid_normals_kept():
    vertex = [0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0]
    normal = [0.0011, 0.0, 0.0] * 3
    uv = [0.0, 0.0, 1.0, 0.0, 0.0, 1.0]
    model = make_model(vertex, normal, uv, groups=[DXMGroup(indices=U16Indices([0, 1, 2]))])
    optimize(model)

    assert model.vn == ["0.0011 0 0"]
    assert model.groups[0].ni == [0, 0, 0]


def test_one_valid_normal_keeps_channel():
    vertex = [0.0, 0.0, 0.0, 1.0, 0.0, 0.0]
    normal = [0.0, 0.0, 0.0, 0.0, 1.0, 0.0]
    uv = [0.0, 0.0, 1.0, 0.0]
    model = make_model(vertex, normal, uv)
    optimize(model)

    assert model.vn == ["0 0 0", "0 1 0"]


def test_degenerate_normals_from_file():
    positions = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0)]
    normals = [(0.0009999, 0.0, 0.0)] * 3
    uvs = [(0.0, 0.0)] * 3
    model = optimize(load_model(io.BytesIO(build_dxm(positions, normals, uvs))))

    assert model.vn is None
    assert model.vt == ["0 0"]


def test_optimize_is_idempotent():
    """Optimizing twice yields identical pools and indices."""
    positions = [(0.1, 0.2, 0.3), (1.0, 0.5, 0.25), (0.1, 0.2, 0.3), (-1.0, 2.0, 3.5)]
    normals = [(0.0, 1.0, 0.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0)]
    uvs = [(0.3, 0.7), (0.1, 0.9), (0.3, 0.7), (0.0, 0.0)]
    data = build_dxm(positions, normals, uvs, groups=[("a.png", [0, 1, 2, 2, 1, 3]), (None, [3, 2, 0])])

    model = optimize(load_model(io.BytesIO(data)))
    first = copy.deepcopy(model)
    optimize(model)

    assert model.v == first.v
    assert model.vn == first.vn
    assert model.vt == first.vt
    for group, before in zip(model.groups, first.groups):
        assert group.vi == before.vi
        assert group.ni == before.ni
        assert group.ti == before.ti


def test_groups_without_indices_are_skipped():
    vertex = [0.0, 0.0, 0.0, 1.0, 1.0, 1.0]
    model = make_model(vertex, groups=[DXMGroup(), DXMGroup(indices=U16Indices([1, 0]))])
    optimize(model)

    assert model.groups[0].vi is None
    assert model.groups[1].vi == [1, 0]


def test_point_cloud_keeps_colors():
    positions = [(0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0)]
    colors = [(1, 2, 3, 4)] * 3
    model = optimize(load_model(io.BytesIO(build_dxm(positions, colors=colors))))

    assert model.v == ["0 0 0", "1 0 0"]
    assert model.vn is None
    assert model.vt is None
    assert model.color == bytes([1, 2, 3, 4] * 3)
    assert model.groups[0].vi == [0, 0, 1]


def test_index_out_of_range():
    model = make_model([0.0, 0.0, 0.0], groups=[DXMGroup(indices=U16Indices([0, 5]))])
    with pytest.raises(InconsistentModel, match="index 5"):
        optimize(model)


def test_with_pools_builds_identity_pools():
    """Unoptimized models get one pool entry per raw tuple."""
    model = load_model(io.BytesIO(triangle_with_duplicate()))
    pooled = with_pools(model)

    assert pooled.v == ["0 0 0", "1 0 0", "0 1 0", "1 0 0"]
    assert pooled.vn == ["0 0 1"] * 4
    assert pooled.groups[0].vi == [0, 3, 2]
    assert pooled.groups[0].ni == [0, 3, 2]
    # The source model is left alone
    assert model.v is None
    assert model.groups[0].indices.values == [0, 3, 2]


def test_with_pools_returns_optimized_model_unchanged():
    model = optimize(load_model(io.BytesIO(triangle_with_duplicate())))
    assert with_pools(model) is model
