"""Decide whether a buffer holds a binary or a text STL."""

from .model import DATA_OFFSET, HEADER_SIZE, RECORD_SIZE, Encoding

TEXT_MARKER = b"solid"
UTF8_BOM = b"\xef\xbb\xbf"


def declared_size(raw: bytes) -> int | None:
    """Total size a binary STL with this header would have, or None if too short."""
    if len(raw) < DATA_OFFSET:
        return None
    count = int.from_bytes(raw[HEADER_SIZE:DATA_OFFSET], "little")
    return DATA_OFFSET + count * RECORD_SIZE


def starts_with_solid(raw: bytes) -> bool:
    """True if the first non-whitespace bytes (after any BOM) are `solid` in any case."""
    head = raw[:256]
    if head.startswith(UTF8_BOM):
        head = head[len(UTF8_BOM):]
    head = head.lstrip()
    return head[:len(TEXT_MARKER)].lower() == TEXT_MARKER


def detect_encoding(raw: bytes) -> Encoding:
    """Classify a raw STL buffer.

    A binary header whose declared size matches the buffer exactly wins, even
    when the header text starts with "solid" (some exporters write that).
    Otherwise a leading "solid" means text, and length decides the rest.
    """
    if declared_size(raw) == len(raw):
        return Encoding.BINARY
    if starts_with_solid(raw):
        return Encoding.TEXT
    if len(raw) > DATA_OFFSET:
        return Encoding.BINARY
    return Encoding.TEXT
