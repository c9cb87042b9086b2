"""Errors raised while converting DXM models."""
from pathlib import Path
from typing import Optional, Union


class DXMError(Exception):
    """Base class for every conversion error."""


class TruncatedInput(DXMError, EOFError):
    """The stream ended before a field or block was fully read."""

    def __init__(self, expected: int, actual: int, what: str = "data"):
        self.expected = expected
        self.actual = actual
        self.what = what
        super().__init__(
            f"Unexpected end of input reading {what}: "
            f"expected {expected} bytes, got {actual}"
        )


class UnsupportedFormat(DXMError, ValueError):
    """Identifier is not DXM1."""

    def __init__(self, identifier: bytes):
        self.identifier = identifier
        text = identifier.decode("latin-1")
        super().__init__(f"Invalid file format of type: {text!r} ({identifier.hex()})")


class OutdatedFormatVersion(DXMError, ValueError):
    """File version is older than the oldest supported version."""

    def __init__(self, major: int, minor: int, minimum=(2, 2)):
        self.major = major
        self.minor = minor
        self.minimum = minimum
        super().__init__(
            f"Outdated format version {major}.{minor}, "
            f"minimum supported is {minimum[0]}.{minimum[1]}"
        )


class UnsupportedEncoding(DXMError, ValueError):
    """Vertex data is not de-interleaved."""

    def __init__(self, encoding: int):
        self.encoding = encoding
        super().__init__(f"Unsupported encoding: {encoding}")


class UnsupportedCompression(DXMError, ValueError):
    """Chunks are compressed."""

    def __init__(self, compression: int):
        self.compression = compression
        super().__init__(f"Unsupported compression: {compression}")


class UnsupportedVertexLayout(DXMError, ValueError):
    """Composition flags match neither the mesh nor the point-cloud layout."""

    def __init__(self, flags: int):
        self.flags = flags
        super().__init__(f"Unsupported vertex format: flags {flags:#x}")


class MissingSourceFile(DXMError, FileNotFoundError):
    """Input file, or the .dlm sibling of a .dxm, is absent."""

    def __init__(self, path: Union[str, Path], reason: Optional[str] = None):
        self.path = Path(path)
        self.reason = reason
        message = f"Source file not found: {self.path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InconsistentModel(DXMError, ValueError):
    """Decoded arrays and group indices disagree."""


class TextureCopyFailure(DXMError, OSError):
    """A resolved texture could not be copied. Never fatal."""

    def __init__(self, texture: str, source: Path, cause: OSError):
        self.texture = texture
        self.source = source
        self.cause = cause
        super().__init__(f"Failed to copy texture {texture} from {source}: {cause}")


class OutputWriteFailure(DXMError, OSError):
    """Output directory or file could not be written."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")
