"""Decode -> scale -> encode for whole files, singly or in batches."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from .decoder import decode
from .encoder import encode
from .errors import EmptyMeshError, StlError
from .model import Dimensions, Encoding, StlMesh
from .naming import scaled_filename
from .stl_transform import dimensions, scale, validate_factor

# Pause between deliveries in a batch export, in seconds
EXPORT_PAUSE = 0.1


@dataclass
class ModelInfo:
    encoding: Encoding
    triangles: int
    dimensions: Dimensions | None  # None for an empty mesh


@dataclass
class ScaledFile:
    filename: str
    data: bytes
    encoding: Encoding
    triangles: int
    factor: float
    original: Dimensions | None
    scaled: Dimensions | None


def is_stl_filename(name: str) -> bool:
    return name.lower().endswith(".stl")


def dimensions_or_none(stl: StlMesh) -> Dimensions | None:
    try:
        return dimensions(stl)
    except EmptyMeshError:
        return None


def inspect_bytes(raw: bytes) -> ModelInfo:
    """Decode raw and report encoding, triangle count and dimensions."""
    stl, encoding = decode(raw)
    return ModelInfo(encoding, stl.triangle_count, dimensions_or_none(stl))


def scale_file_bytes(raw: bytes, filename: str, factor: float) -> ScaledFile:
    """Scale one file's bytes, keeping its encoding, and name the result."""
    factor = validate_factor(factor)
    stl, encoding = decode(raw)
    scaled = scale(stl, factor)
    original_dims = dimensions_or_none(stl)
    return ScaledFile(
        filename=scaled_filename(filename, factor),
        data=encode(scaled, encoding),
        encoding=encoding,
        triangles=stl.triangle_count,
        factor=factor,
        original=original_dims,
        scaled=original_dims.scaled(factor) if original_dims else None,
    )


def scale_stl(src: Path, factor: float, output_dir: Path | None = None) -> tuple[Path, ScaledFile]:
    """Write a scaled copy of src next to it (or into output_dir)."""
    result = scale_file_bytes(src.read_bytes(), src.name, factor)
    out_dir = output_dir or src.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / result.filename
    out_path.write_bytes(result.data)
    print(f"[Scale] {src.name} x{factor:g} -> {out_path} ({result.encoding.value}, {result.triangles} triangles)")
    return out_path, result


async def export_all(
    files: list[tuple[str, bytes]],
    factor: float,
    deliver: Callable[[ScaledFile], Awaitable[None]],
    pause: float = EXPORT_PAUSE,
) -> tuple[list[ScaledFile], list[tuple[str, str]]]:
    """Scale and deliver files in order, pausing between deliveries.

    A file that fails to decode is recorded in the failures list and the
    batch continues. Returns (delivered, [(name, error), ...]).
    """
    factor = validate_factor(factor)
    delivered: list[ScaledFile] = []
    failures: list[tuple[str, str]] = []

    for name, raw in files:
        try:
            result = scale_file_bytes(raw, name, factor)
        except StlError as e:
            print(f"[Export] Failed: {name}: {e}")
            failures.append((name, str(e)))
            continue

        if delivered and pause > 0:
            await asyncio.sleep(pause)
        await deliver(result)
        delivered.append(result)
        print(f"[Export] {result.filename} ({len(result.data)} bytes)")

    return delivered, failures
