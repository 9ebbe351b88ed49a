"""Uniform scaling and bounding-box dimensions for an StlMesh.

Both operations are pure: the input mesh is never modified, so the same
decoded mesh can be measured and exported at any number of factors.
"""

import math
from dataclasses import replace
from numbers import Real

from .errors import EmptyMeshError, InvalidScaleError
from .model import Dimensions, StlMesh


def validate_factor(factor) -> float:
    """Return factor as a float, or raise InvalidScaleError."""
    if isinstance(factor, bool) or not isinstance(factor, Real):
        raise InvalidScaleError(f"Scale factor must be a number, got {factor!r}")
    value = float(factor)
    if not math.isfinite(value) or value <= 0:
        raise InvalidScaleError(f"Scale factor must be a finite number above 0, got {factor}")
    return value


def needs_scaling(factor: float) -> bool:
    """Return True if the factor differs from 1 (100%)."""
    return factor != 1.0


def scale(stl: StlMesh, factor: float) -> StlMesh:
    """Return a copy of stl with every vertex coordinate multiplied by factor.

    Normals and attribute bytes are copied unchanged; uniform positive
    scaling does not change surface orientation.
    """
    factor = validate_factor(factor)
    data = stl.data.copy()
    data["vectors"] *= factor
    precise = None
    if stl.precise_vectors is not None:
        precise = stl.precise_vectors * factor
    scaled = StlMesh.from_records(data)
    return replace(stl, mesh=scaled.mesh, precise_vectors=precise)


def dimensions(stl: StlMesh) -> Dimensions:
    """Axis-aligned bounding-box extents over every vertex of every triangle."""
    if stl.triangle_count == 0:
        raise EmptyMeshError("Mesh has no triangles")
    if stl.precise_vectors is not None:
        points = stl.precise_vectors.reshape(-1, 3)
        extent = points.max(axis=0) - points.min(axis=0)
    else:
        extent = stl.mesh.max_ - stl.mesh.min_
    return Dimensions(float(extent[0]), float(extent[1]), float(extent[2]))
