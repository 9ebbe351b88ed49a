"""In-memory STL model shared by the decoder, scaler and encoder.

Triangles live in a numpy-stl Mesh whose structured array is laid out
exactly like a binary STL record (12 + 36 + 2 = 50 bytes, little-endian),
so the binary codec is a single frombuffer/tobytes away.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from stl import mesh as stl_mesh

HEADER_SIZE = 80
COUNT_SIZE = 4
DATA_OFFSET = HEADER_SIZE + COUNT_SIZE

# Same field names and shapes as stl.mesh.Mesh.dtype, with explicit byte order
RECORD_DTYPE = np.dtype([
    ("normals", "<f4", (3,)),
    ("vectors", "<f4", (3, 3)),
    ("attr", "<u2", (1,)),
])
RECORD_SIZE = RECORD_DTYPE.itemsize

AXES = ("width", "height", "depth")


class Encoding(Enum):
    BINARY = "binary"
    TEXT = "text"


@dataclass(frozen=True)
class Dimensions:
    """Bounding-box extents along x, y and z."""
    width: float
    height: float
    depth: float

    def scaled(self, factor: float) -> "Dimensions":
        return Dimensions(self.width * factor, self.height * factor, self.depth * factor)

    def get(self, axis: str) -> float:
        return getattr(self, axis)

    def as_dict(self) -> dict[str, float]:
        return {"width": self.width, "height": self.height, "depth": self.depth}

    def __str__(self) -> str:
        return f"{self.width:.2f} x {self.height:.2f} x {self.depth:.2f} mm"


@dataclass
class StlMesh:
    """Ordered triangles plus whatever the encoder needs to reproduce the input.

    header: 80-byte binary header, empty for meshes not read from binary.
    name: solid name of a text STL.
    text_source: original text, rewritten in place on text output.
    vertex_spans: (start, end) offsets of each `vertex x y z` statement in
        text_source, three per triangle in triangle order.
    precise_vectors: float64 copy of text coordinates, shape (n, 3, 3).
    """
    mesh: stl_mesh.Mesh
    header: bytes = b""
    name: str = ""
    text_source: str | None = None
    vertex_spans: tuple[tuple[int, int], ...] = field(default_factory=tuple)
    precise_vectors: np.ndarray | None = None

    @classmethod
    def from_records(cls, data: np.ndarray, **kwargs) -> "StlMesh":
        """Wrap a RECORD_DTYPE array without recomputing normals."""
        return cls(mesh=stl_mesh.Mesh(data, calculate_normals=False), **kwargs)

    @classmethod
    def from_arrays(cls, normals, vectors, attr=None, **kwargs) -> "StlMesh":
        """Build a mesh from (n, 3) normals and (n, 3, 3) vertices."""
        vectors = np.asarray(vectors, dtype=np.float64).reshape(-1, 3, 3)
        data = np.zeros(len(vectors), dtype=RECORD_DTYPE)
        data["normals"] = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
        data["vectors"] = vectors
        if attr is not None:
            data["attr"] = np.asarray(attr, dtype=np.uint16).reshape(-1, 1)
        return cls.from_records(data, **kwargs)

    @property
    def data(self) -> np.ndarray:
        return self.mesh.data

    @property
    def normals(self) -> np.ndarray:
        return self.mesh.normals

    @property
    def vectors(self) -> np.ndarray:
        return self.mesh.vectors

    @property
    def attr(self) -> np.ndarray:
        return self.mesh.attr

    @property
    def triangle_count(self) -> int:
        return len(self.mesh.data)

    def coordinates(self) -> np.ndarray:
        """Vertex coordinates at the best precision available, shape (n, 3, 3)."""
        if self.precise_vectors is not None:
            return self.precise_vectors
        return self.mesh.vectors.astype(np.float64)
