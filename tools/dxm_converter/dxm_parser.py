"""Parser for DXM/DLM model files.

DLM layout (little-endian, no padding between fields):
- Header (40 bytes):
  - +0: identifier, 4 bytes, "DXM1"
  - +4: major, minor version (u8 each), minimum 2.2
  - +6: encoding (u8), compression (u8)
  - +8: vertex count (u64)
  - +16: vertex composition flags (u32)
  - +20: group count (u16)
  - +22: index format (u8), index byte width (u8, 2 or 4)
  - +24: vertex table offset, index table offset (u64 each)
- Group table, one entry per group:
  - offset (u64), length (u64), texture name size (u16)
  - texture name bytes (size - 1) followed by a null byte, only if size > 0
- Vertex chunk: compressed/uncompressed size (u64 each), then
  positions (3x f32 per vertex), then either normals (3x f32) and
  uvs (2x f32) or colors (4x u8), one block per attribute
- Index chunk: compressed/uncompressed size (u64 each), then each group's
  indices back to back in table order

A .dxm file is the packed form of the same data. Unpacking it is not
supported, so a .dxm path is only accepted when a .dlm sits beside it.
"""
import io
import logging
from pathlib import Path
from typing import BinaryIO, List, Union

from .binary_reader import BinaryReader
from .dxm_types import (
    DXM_IDENTIFIER,
    HEADER_SIZE,
    MIN_VERSION,
    DXMChunk,
    DXMCompression,
    DXMEncoding,
    DXMGroup,
    DXMHeader,
    DXMModel,
    U16Indices,
    U32Indices,
    VertexLayouts,
)
from .errors import (
    MissingSourceFile,
    OutdatedFormatVersion,
    UnsupportedCompression,
    UnsupportedEncoding,
    UnsupportedFormat,
    UnsupportedVertexLayout,
)

logger = logging.getLogger(__name__)


def resolve_source_path(path: Union[str, Path]) -> Path:
    """Map an input path to the file that is actually decoded.

    Raises:
        MissingSourceFile: If the file, or the .dlm beside a .dxm, is absent
    """
    path = Path(path)
    if path.suffix.lower() == ".dxm":
        dlm_path = path.with_suffix(".dlm")
        if not dlm_path.is_file():
            raise MissingSourceFile(
                dlm_path, "unpacking of DXM files is not yet supported"
            )
        return dlm_path

    if not path.is_file():
        raise MissingSourceFile(path)
    return path


class DXMParser:
    """Decodes DLM streams into DXMModel objects."""

    def parse_header(self, reader: BinaryReader) -> DXMHeader:
        """Read the header fields in storage order."""
        logger.info("Loading DXM header...")
        identifier = reader.read_bytes(4, "identifier")
        major_version = reader.read_u8("major version")
        minor_version = reader.read_u8("minor version")
        encoding = reader.read_u8("encoding")
        compression = reader.read_u8("compression")
        vertex_count = reader.read_u64("vertex count")
        flags = reader.read_u32("vertex composition flags")
        group_count = reader.read_u16("group count")
        index_format = reader.read_u8("index format")
        index_byte_count = reader.read_u8("index byte count")
        vertex_table_offset = reader.read_u64("vertex table offset")
        index_table_offset = reader.read_u64("index table offset")

        return DXMHeader(
            identifier=identifier,
            major_version=major_version,
            minor_version=minor_version,
            encoding=encoding,
            compression=compression,
            vertex_count=vertex_count,
            vertex_composition_flags=flags,
            group_count=group_count,
            index_format=index_format,
            index_byte_count=index_byte_count,
            vertex_table_offset=vertex_table_offset,
            index_table_offset=index_table_offset,
        )

    def parse_header_bytes(self, data: bytes) -> DXMHeader:
        """Parse a header from at least HEADER_SIZE bytes.

        Raises:
            TruncatedInput: If data is shorter than a header
        """
        return self.parse_header(BinaryReader(io.BytesIO(data[:HEADER_SIZE])))

    def validate_header(self, header: DXMHeader) -> VertexLayouts:
        """Check the header against what this decoder supports.

        Returns:
            The accepted mesh and point-cloud flag combinations

        Raises:
            UnsupportedFormat, OutdatedFormatVersion, UnsupportedEncoding,
            UnsupportedCompression, UnsupportedVertexLayout
        """
        logger.info("Validating DXM header...")
        layouts = VertexLayouts()

        if header.identifier_text != DXM_IDENTIFIER:
            raise UnsupportedFormat(header.identifier)

        if header.version < MIN_VERSION[0] * 256 + MIN_VERSION[1]:
            raise OutdatedFormatVersion(
                header.major_version, header.minor_version, MIN_VERSION
            )

        if header.encoding != DXMEncoding.DE_INTERLEAVED:
            raise UnsupportedEncoding(header.encoding)

        if header.compression != DXMCompression.NO_COMPRESSION:
            raise UnsupportedCompression(header.compression)

        flags = header.vertex_composition_flags
        if flags not in (layouts.mesh, layouts.point_cloud):
            raise UnsupportedVertexLayout(flags)

        return layouts

    def parse_groups(self, reader: BinaryReader, header: DXMHeader) -> List[DXMGroup]:
        """Read the group table."""
        logger.info("Loading DXM groups...")
        groups = []
        for i in range(header.group_count):
            offset = reader.read_u64(f"group {i} offset")
            length = reader.read_u64(f"group {i} length")
            name_size = reader.read_u16(f"group {i} texture name size")

            texture = None
            if name_size > 0:
                texture = reader.read_bytes(name_size - 1, f"group {i} texture name").decode("latin-1")
                reader.skip(1, f"group {i} texture name terminator")

            logger.debug("Group %d: offset=%d length=%d texture=%s", i, offset, length, texture)
            groups.append(DXMGroup(offset=offset, length=length, texture=texture))

        return groups

    def parse_chunk(self, reader: BinaryReader, what: str) -> DXMChunk:
        compressed_size = reader.read_u64(f"{what} compressed size")
        uncompressed_size = reader.read_u64(f"{what} uncompressed size")
        return DXMChunk(compressed_size=compressed_size, uncompressed_size=uncompressed_size)

    def parse_vertex_data(self, reader: BinaryReader, model: DXMModel, layouts: VertexLayouts):
        """Read the vertex chunk into the model's raw attribute arrays."""
        logger.info("Loading DXM vertex data...")
        header = model.header
        count = header.vertex_count

        self.parse_chunk(reader, "vertex chunk")
        model.vertex = reader.read_f32_array(count * 3, "positions")

        if header.vertex_composition_flags == layouts.mesh:
            model.normal = reader.read_f32_array(count * 3, "normals")
            model.uv = reader.read_f32_array(count * 2, "uvs")
        elif header.vertex_composition_flags == layouts.point_cloud:
            model.color = reader.read_bytes(count * 4, "colors")

        logger.debug("Read %d vertices", count)

    def parse_index_data(self, reader: BinaryReader, model: DXMModel):
        """Read each group's raw indices, contiguous and in table order."""
        logger.info("Loading DXM index data...")
        width = model.header.index_byte_count

        self.parse_chunk(reader, "index chunk")

        if width not in (2, 4):
            logger.warning("Unsupported index width %d, groups will have no faces", width)
            return

        for i, group in enumerate(model.groups):
            if width == 2:
                group.indices = U16Indices(reader.read_u16_array(group.length, f"group {i} indices"))
            else:
                group.indices = U32Indices(reader.read_u32_array(group.length, f"group {i} indices"))

    def parse(self, file: BinaryIO) -> DXMModel:
        """Decode a whole DLM stream.

        Raises:
            DXMError: On the first validation or truncation error
        """
        reader = BinaryReader(file)

        header = self.parse_header(reader)
        layouts = self.validate_header(header)

        model = DXMModel(header=header)
        model.groups = self.parse_groups(reader, header)
        self.parse_vertex_data(reader, model, layouts)
        self.parse_index_data(reader, model)

        return model


def load_model(source: Union[str, Path, BinaryIO]) -> DXMModel:
    """Load a DXM model from a path or an open binary stream.

    Paths go through resolve_source_path first. The file is closed before
    returning, whether decoding succeeded or not.
    """
    logger.info("## Loading DXM ##")
    parser = DXMParser()

    if not isinstance(source, (str, Path)):
        return parser.parse(source)

    path = resolve_source_path(source)
    with open(path, "rb") as file:
        model = parser.parse(file)

    # Output is named after the path the caller gave, not the .dlm sibling
    model.source_path = Path(source)
    return model
