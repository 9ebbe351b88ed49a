"""Serialize an StlMesh back to binary or text STL bytes."""

import numpy as np

from .model import HEADER_SIZE, RECORD_DTYPE, Encoding, StlMesh

PLACEHOLDER_HEADER = b"binary STL written by stl-scaler".ljust(HEADER_SIZE, b"\0")
DEFAULT_SOLID_NAME = "stl-scaler"


def encode(stl: StlMesh, encoding: Encoding) -> bytes:
    if encoding is Encoding.BINARY:
        return encode_binary(stl)
    return encode_text(stl)


def encode_binary(stl: StlMesh) -> bytes:
    """Header, LE u32 triangle count, then one 50-byte record per triangle."""
    header = stl.header if len(stl.header) == HEADER_SIZE else PLACEHOLDER_HEADER
    records = np.ascontiguousarray(stl.data, dtype=RECORD_DTYPE)
    count = len(records).to_bytes(4, "little")
    return header + count + records.tobytes()


def _format_vertex(xyz) -> str:
    # + 0.0 turns -0.0 into 0.0
    return "vertex {:.6f} {:.6f} {:.6f}".format(*(float(v) + 0.0 for v in xyz))


def encode_text(stl: StlMesh) -> bytes:
    """Rewrite vertex statements of the original text, or generate fresh text."""
    coords = stl.coordinates().reshape(-1, 3)
    if stl.text_source is None or len(stl.vertex_spans) != len(coords):
        return _generate_text(stl, coords).encode("utf-8")

    parts = []
    last = 0
    for (start, end), xyz in zip(stl.vertex_spans, coords):
        parts.append(stl.text_source[last:start])
        parts.append(_format_vertex(xyz))
        last = end
    parts.append(stl.text_source[last:])
    return "".join(parts).encode("utf-8")


def _generate_text(stl: StlMesh, coords: np.ndarray) -> str:
    name = stl.name or DEFAULT_SOLID_NAME
    lines = [f"solid {name}"]
    for i, normal in enumerate(stl.normals):
        lines.append("  facet normal {:.6f} {:.6f} {:.6f}".format(*normal))
        lines.append("    outer loop")
        for xyz in coords[i * 3:i * 3 + 3]:
            lines.append(f"      {_format_vertex(xyz)}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines) + "\n"
