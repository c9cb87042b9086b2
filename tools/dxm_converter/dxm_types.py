"""Type definitions for the DXM/DLM model format."""
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from pathlib import Path
from typing import List, Optional, Union


DXM_IDENTIFIER = "DXM1"
MIN_VERSION = (2, 2)


class DXMEncoding(IntEnum):
    """Vertex data encodings. Only DE_INTERLEAVED is implemented."""
    INTERLEAVED = 0
    DE_INTERLEAVED = 1
    BYTE_PACK = 2


class DXMCompression(IntEnum):
    """Chunk compression schemes. Only NO_COMPRESSION is implemented."""
    NO_COMPRESSION = 0
    LZ77 = 1


class DXMVertexFlag(IntFlag):
    """Vertex composition bits."""
    POSITION = 1   # 3x f32
    NORMAL = 2     # 3x f32
    TEXCOORD = 4   # 2x f32
    COLOR = 8      # 4x u8


MESH_LAYOUT = DXMVertexFlag.POSITION | DXMVertexFlag.NORMAL | DXMVertexFlag.TEXCOORD
POINT_CLOUD_LAYOUT = DXMVertexFlag.POSITION | DXMVertexFlag.COLOR

# Header record: ident(4) + version(2) + encoding(1) + compression(1)
# + vertex_count(8) + flags(4) + group_count(2) + index format/width(2)
# + vertex/index table offsets(16)
HEADER_SIZE = 40


@dataclass
class DXMHeader:
    """DXM file header."""

    identifier: bytes
    major_version: int
    minor_version: int
    encoding: int
    compression: int
    vertex_count: int
    vertex_composition_flags: int
    group_count: int
    index_format: int = 0
    index_byte_count: int = 2
    vertex_table_offset: int = 0
    index_table_offset: int = 0

    @property
    def identifier_text(self) -> str:
        """Identifier bytes mapped one to one onto characters."""
        return self.identifier.decode("latin-1")

    @property
    def version(self) -> int:
        return self.major_version * 256 + self.minor_version


@dataclass
class VertexLayouts:
    """The two accepted composition flag combinations."""
    mesh: int = int(MESH_LAYOUT)
    point_cloud: int = int(POINT_CLOUD_LAYOUT)


@dataclass
class DXMChunk:
    """Descriptor preceding the vertex and index payloads."""

    compressed_size: int
    uncompressed_size: int


@dataclass
class U16Indices:
    """Raw 16-bit group indices."""
    values: List[int] = field(default_factory=list)

    width = 2


@dataclass
class U32Indices:
    """Raw 32-bit group indices."""
    values: List[int] = field(default_factory=list)

    width = 4


Indices = Union[U16Indices, U32Indices]


@dataclass
class DXMGroup:
    """A sub-mesh sharing one texture.

    ``vi``/``ni``/``ti`` are per-corner indices into the model pools and are
    only filled in by the optimizer.
    """

    offset: int = 0
    length: int = 0
    texture: Optional[str] = None
    indices: Optional[Indices] = None
    vi: Optional[List[int]] = None
    ni: Optional[List[int]] = None
    ti: Optional[List[int]] = None

    @property
    def material_name(self) -> Optional[str]:
        """Texture file name with any folder part stripped."""
        if not self.texture:
            return None
        name = self.texture.replace("\\", "/")
        return name[name.rfind("/") + 1:]

    @property
    def has_faces(self) -> bool:
        return bool(self.vi)


@dataclass
class DXMModel:
    """Decoded DXM model.

    The raw arrays (``vertex``, ``normal``, ``uv``, ``color``) are filled by
    the parser. After optimization they are dropped and the canonical text
    pools ``v``, ``vn`` and ``vt`` take their place.
    """

    header: DXMHeader
    groups: List[DXMGroup] = field(default_factory=list)
    vertex: Optional[List[float]] = None
    normal: Optional[List[float]] = None
    uv: Optional[List[float]] = None
    color: Optional[bytes] = None
    v: Optional[List[str]] = None
    vn: Optional[List[str]] = None
    vt: Optional[List[str]] = None
    source_path: Optional[Path] = None

    @property
    def name(self) -> str:
        if self.source_path is None:
            return "model"
        return self.source_path.stem

    @property
    def is_optimized(self) -> bool:
        return self.v is not None

    @property
    def is_point_cloud(self) -> bool:
        return self.color is not None
