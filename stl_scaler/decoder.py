"""Parse binary and text STL buffers into an StlMesh.

Binary records are read straight into the numpy-stl structured layout.
Text is tokenized and walked with a small recursive-descent parser over

    solid <name>
      facet [normal nx ny nz]
        outer loop
          vertex x y z   (three times)
        endloop
      endfacet
    endsolid [name]

Keywords are case-insensitive and any whitespace separates tokens. The
parser remembers where each `vertex` statement sits so the encoder can
rewrite text output in place.
"""

import re
from dataclasses import dataclass

import numpy as np

from .detect import declared_size, detect_encoding
from .errors import MalformedTextError, TruncatedError, UnsupportedInputError
from .model import DATA_OFFSET, HEADER_SIZE, RECORD_DTYPE, RECORD_SIZE, Encoding, StlMesh

_TOKEN_RE = re.compile(r"\S+")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def decode(raw: bytes) -> tuple[StlMesh, Encoding]:
    """Detect the encoding of raw and parse it. Never returns a partial mesh."""
    raw = bytes(raw)
    encoding = detect_encoding(raw)
    if encoding is Encoding.BINARY:
        return decode_binary(raw), encoding
    try:
        return decode_text(raw), encoding
    except (UnsupportedInputError, MalformedTextError):
        # Binary header that starts with "solid" plus trailing bytes
        size = declared_size(raw)
        if size is None or size > len(raw):
            raise
    return decode_binary(raw), Encoding.BINARY


def decode_binary(raw: bytes) -> StlMesh:
    """Parse an 80-byte header, LE u32 count and count 50-byte records."""
    size = declared_size(raw)
    if size is None:
        raise UnsupportedInputError(
            f"Buffer of {len(raw)} bytes is too short for a binary STL header"
        )
    if size > len(raw):
        raise TruncatedError(size, len(raw))

    count = (size - DATA_OFFSET) // RECORD_SIZE
    if count:
        data = np.frombuffer(raw, dtype=RECORD_DTYPE, count=count, offset=DATA_OFFSET).copy()
    else:
        data = np.zeros(0, dtype=RECORD_DTYPE)
    return StlMesh.from_records(data, header=bytes(raw[:HEADER_SIZE]))


def decode_text(raw: bytes) -> StlMesh:
    """Parse a text STL. Multiple consecutive solids are concatenated."""
    try:
        source = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise UnsupportedInputError(f"Text STL is not valid UTF-8: {e}") from e

    parser = _TextParser(source)
    parser.parse()

    vectors = np.array(parser.vertices, dtype=np.float64).reshape(-1, 3, 3)
    normals = np.array(parser.normals, dtype=np.float64).reshape(-1, 3)
    return StlMesh.from_arrays(
        normals, vectors,
        name=parser.name or "",
        text_source=source,
        vertex_spans=tuple(parser.spans),
        precise_vectors=vectors,
    )


@dataclass
class _Token:
    text: str
    start: int
    end: int
    line: int


def _tokenize(source: str) -> list[_Token]:
    """Split on whitespace, keeping offsets and 1-based line numbers."""
    tokens = []
    line = 1
    last = 0
    for m in _TOKEN_RE.finditer(source):
        line += source.count("\n", last, m.start())
        last = m.start()
        tokens.append(_Token(m.group(), m.start(), m.end(), line))
    return tokens


class _TextParser:
    def __init__(self, source: str):
        self.source = source
        self.tokens = _tokenize(source)
        self.pos = 0
        self.name: str | None = None
        self.normals: list[tuple[float, float, float]] = []
        self.vertices: list[tuple[float, float, float]] = []
        self.spans: list[tuple[int, int]] = []

    def parse(self) -> None:
        if not self._at("solid"):
            raise UnsupportedInputError("Text STL must start with 'solid'")
        while self._at("solid"):
            self._solid()
        if self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            raise MalformedTextError(f"Unexpected '{tok.text}' after endsolid", tok.line)

    def _solid(self) -> None:
        keyword = self._next("solid")
        name = self._line_text(keyword, stop=("facet", "endsolid"))
        if self.name is None:
            self.name = name

        while self._at("facet"):
            self._facet()

        # Some exporters stop without a closing endsolid
        if self.pos == len(self.tokens):
            return
        end = self._expect("endsolid")
        self._line_text(end, stop=("solid",))

    def _facet(self) -> None:
        self._next("facet")
        normal = (0.0, 0.0, 0.0)
        if self._at("normal"):
            self._next("normal")
            normal = self._numbers(3)
        self._expect("outer")
        self._expect("loop")
        for _ in range(3):
            keyword = self._expect("vertex")
            self.vertices.append(self._numbers(3))
            self.spans.append((keyword.start, self.tokens[self.pos - 1].end))
        self._expect("endloop")
        self._expect("endfacet")
        self.normals.append(normal)

    def _line_text(self, keyword: _Token, stop: tuple[str, ...]) -> str:
        """Consume the rest of keyword's line (up to a stop keyword) and return it."""
        first = last = None
        while self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            if tok.line != keyword.line or tok.text.lower() in stop:
                break
            first = first or tok
            last = tok
            self.pos += 1
        if first is None:
            return ""
        return self.source[first.start:last.end]

    def _numbers(self, n: int) -> tuple[float, ...]:
        values = []
        for _ in range(n):
            tok = self._next("a number")
            if not _NUMBER_RE.fullmatch(tok.text):
                raise MalformedTextError(f"Expected a number, got '{tok.text}'", tok.line)
            values.append(float(tok.text))
        return tuple(values)

    def _at(self, keyword: str) -> bool:
        return self.pos < len(self.tokens) and self.tokens[self.pos].text.lower() == keyword

    def _expect(self, keyword: str) -> _Token:
        tok = self._next(f"'{keyword}'")
        if tok.text.lower() != keyword:
            raise MalformedTextError(f"Expected '{keyword}', got '{tok.text}'", tok.line)
        return tok

    def _next(self, expected: str) -> _Token:
        if self.pos >= len(self.tokens):
            line = self.tokens[-1].line if self.tokens else 1
            raise MalformedTextError(f"Unexpected end of file, expected {expected}", line)
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok
