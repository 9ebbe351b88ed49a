"""Exceptions raised by the STL decode/scale/encode pipeline.

Everything derives from StlError so callers at the edges (HTTP API, bot,
CLI) can catch one type and report the message.
"""


class StlError(Exception):
    """Base class for all STL pipeline failures."""


class DecodeError(StlError):
    """The buffer could not be turned into a mesh."""


class UnsupportedInputError(DecodeError):
    """Too short for a binary header, not valid UTF-8, or not an STL at all."""


class TruncatedError(DecodeError):
    """Binary triangle count implies more bytes than the buffer holds."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Binary STL truncated: header declares {expected} bytes, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class MalformedTextError(DecodeError):
    """Text STL does not follow the solid/facet/loop grammar."""

    def __init__(self, message: str, line: int):
        super().__init__(f"Line {line}: {message}")
        self.line = line


class InvalidScaleError(StlError, ValueError):
    """Scale factor is zero, negative, NaN or infinite."""


class EmptyMeshError(StlError):
    """Dimensions were requested for a mesh with no triangles."""
