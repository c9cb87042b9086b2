"""Forward-only little-endian reader used by the DXM parser."""
import struct
from typing import BinaryIO, List

from .errors import TruncatedInput

READ_PIECE_SIZE = 1 << 20


class BinaryReader:
    """Sequential little-endian reads over a binary stream.

    The reader never seeks; every read advances the stream position and
    fails with TruncatedInput when the stream runs short.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.position = 0

    def read_bytes(self, count: int, what: str = "data") -> bytes:
        """Read exactly ``count`` bytes."""
        if count < 0:
            raise ValueError(f"Negative read size: {count}")
        if count <= READ_PIECE_SIZE:
            data = self.stream.read(count)
            if len(data) < count:
                raise TruncatedInput(count, len(data), what)
        else:
            # count may be a corrupt size from the file, read it in pieces
            pieces = []
            got = 0
            while got < count:
                piece = self.stream.read(min(READ_PIECE_SIZE, count - got))
                got += len(piece)
                if not piece:
                    raise TruncatedInput(count, got, what)
                pieces.append(piece)
            data = b"".join(pieces)
        self.position += count
        return data

    def skip(self, count: int, what: str = "padding"):
        self.read_bytes(count, what)

    def read_u8(self, what: str = "u8") -> int:
        return self.read_bytes(1, what)[0]

    def read_u16(self, what: str = "u16") -> int:
        return struct.unpack("<H", self.read_bytes(2, what))[0]

    def read_u32(self, what: str = "u32") -> int:
        return struct.unpack("<I", self.read_bytes(4, what))[0]

    def read_u64(self, what: str = "u64") -> int:
        return struct.unpack("<Q", self.read_bytes(8, what))[0]

    def read_f32_array(self, count: int, what: str = "f32 array") -> List[float]:
        data = self.read_bytes(count * 4, what)
        return list(struct.unpack(f"<{count}f", data))

    def read_i32_array(self, count: int, what: str = "i32 array") -> List[int]:
        data = self.read_bytes(count * 4, what)
        return list(struct.unpack(f"<{count}i", data))

    def read_u16_array(self, count: int, what: str = "u16 array") -> List[int]:
        data = self.read_bytes(count * 2, what)
        return list(struct.unpack(f"<{count}H", data))

    def read_u32_array(self, count: int, what: str = "u32 array") -> List[int]:
        data = self.read_bytes(count * 4, what)
        return list(struct.unpack(f"<{count}I", data))
