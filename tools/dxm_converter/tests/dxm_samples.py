"""Builders for synthetic DXM/DLM files used across the tests."""
import struct

MESH_FLAGS = 1 | 2 | 4
POINT_CLOUD_FLAGS = 1 | 8


def build_dxm(
    positions,
    normals=None,
    uvs=None,
    colors=None,
    groups=None,
    identifier=b"DXM1",
    major=2,
    minor=2,
    encoding=1,
    compression=0,
    flags=None,
    index_width=2,
    trailing=b"",
):
    """Assemble a DLM byte string.

    Args:
        positions: List of (x, y, z) tuples
        normals: List of (x, y, z) tuples, mesh layout only
        uvs: List of (u, v) tuples, mesh layout only
        colors: List of (r, g, b, a) byte tuples, point-cloud layout only
        groups: List of (texture name or None, index list)
    """
    if flags is None:
        flags = POINT_CLOUD_FLAGS if colors is not None else MESH_FLAGS
    if groups is None:
        groups = [(None, list(range(len(positions))))]

    header = identifier
    header += struct.pack("<BBBB", major, minor, encoding, compression)
    header += struct.pack("<Q", len(positions))
    header += struct.pack("<I", flags)
    header += struct.pack("<H", len(groups))
    header += struct.pack("<BB", 0, index_width)
    header += struct.pack("<QQ", 0, 0)

    table = b""
    offset = 0
    for texture, indices in groups:
        table += struct.pack("<QQ", offset, len(indices))
        if texture is None:
            table += struct.pack("<H", 0)
        else:
            name = texture.encode("latin-1")
            table += struct.pack("<H", len(name) + 1) + name + b"\x00"
        offset += len(indices)

    vertex_data = b"".join(struct.pack("<fff", *p) for p in positions)
    if normals is not None:
        vertex_data += b"".join(struct.pack("<fff", *n) for n in normals)
    if uvs is not None:
        vertex_data += b"".join(struct.pack("<ff", *t) for t in uvs)
    if colors is not None:
        vertex_data += b"".join(struct.pack("<BBBB", *c) for c in colors)
    vertex_chunk = struct.pack("<QQ", len(vertex_data), len(vertex_data)) + vertex_data

    code = "H" if index_width == 2 else "I"
    index_data = b"".join(
        struct.pack(f"<{len(indices)}{code}", *indices) for _, indices in groups
    )
    index_chunk = struct.pack("<QQ", len(index_data), len(index_data)) + index_data

    return header + table + vertex_chunk + index_chunk + trailing


def triangle_with_duplicate(texture=None):
    """4 raw vertices, the 4th repeating the 2nd, one triangle using it."""
    positions = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 0.0, 0.0)]
    normals = [(0.0, 0.0, 1.0)] * 4
    uvs = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 0.0)]
    return build_dxm(positions, normals, uvs, groups=[(texture, [0, 3, 2])])
