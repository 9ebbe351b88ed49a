"""Tests for whole-file scaling and batch export."""

import struct
from unittest.mock import AsyncMock, patch

import pytest

from stl_scaler.decoder import decode
from stl_scaler.errors import InvalidScaleError, TruncatedError
from stl_scaler.model import Dimensions, Encoding
from stl_scaler.pipeline import (
    export_all, inspect_bytes, is_stl_filename, scale_file_bytes, scale_stl,
)

TEXT_STL = (
    "solid t\nfacet normal 0 0 1\nouter loop\nvertex 0 0 0\nvertex 10 0 0\n"
    "vertex 0 20 5\nendloop\nendfacet\nendsolid t\n"
).encode()


def _binary_stl(count: int = 1) -> bytes:
    out = b"\0" * 80 + struct.pack("<I", count)
    for i in range(count):
        out += struct.pack("<12fH", 0, 0, 1, i, 0, 0, i + 10, 0, 0, i, 10, 0, 0)
    return out


class TestIsStlFilename:
    def test_extensions(self):
        assert is_stl_filename("part.stl")
        assert is_stl_filename("PART.STL")
        assert not is_stl_filename("part.obj")
        assert not is_stl_filename("stl")


class TestInspectBytes:
    def test_binary(self):
        info = inspect_bytes(_binary_stl(2))
        assert info.encoding is Encoding.BINARY
        assert info.triangles == 2
        assert info.dimensions == Dimensions(11.0, 10.0, 0.0)

    def test_text(self):
        info = inspect_bytes(TEXT_STL)
        assert info.encoding is Encoding.TEXT
        assert info.dimensions == Dimensions(10.0, 20.0, 5.0)

    def test_empty_mesh_has_no_dimensions(self):
        info = inspect_bytes(_binary_stl(0))
        assert info.triangles == 0
        assert info.dimensions is None


class TestScaleFileBytes:
    def test_binary_stays_binary(self):
        result = scale_file_bytes(_binary_stl(), "part.stl", 2.0)
        assert result.filename == "part_200percent.stl"
        assert result.encoding is Encoding.BINARY
        assert result.original == Dimensions(10.0, 10.0, 0.0)
        assert result.scaled == Dimensions(20.0, 20.0, 0.0)
        stl, encoding = decode(result.data)
        assert encoding is Encoding.BINARY
        assert stl.vectors[0][1][0] == 20.0

    def test_text_stays_text(self):
        result = scale_file_bytes(TEXT_STL, "part.stl", 0.5)
        assert result.encoding is Encoding.TEXT
        assert b"vertex 0.000000 10.000000 2.500000" in result.data

    def test_invalid_factor(self):
        with pytest.raises(InvalidScaleError):
            scale_file_bytes(_binary_stl(), "part.stl", 0)

    def test_decode_error_propagates(self):
        with pytest.raises(TruncatedError):
            scale_file_bytes(_binary_stl(3)[:-20], "part.stl", 2.0)


class TestScaleStl:
    def test_writes_next_to_source(self, tmp_path):
        src = tmp_path / "part.stl"
        src.write_bytes(_binary_stl())
        out_path, result = scale_stl(src, 1.5)
        assert out_path == tmp_path / "part_150percent.stl"
        assert out_path.read_bytes() == result.data
        assert src.read_bytes() == _binary_stl()

    def test_output_dir_created(self, tmp_path):
        src = tmp_path / "part.stl"
        src.write_bytes(TEXT_STL)
        out_path, _ = scale_stl(src, 2.0, tmp_path / "out" / "nested")
        assert out_path.parent == tmp_path / "out" / "nested"
        assert out_path.exists()


class TestExportAll:
    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        delivered = []

        async def deliver(result):
            delivered.append(result.filename)

        with patch("stl_scaler.pipeline.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            ok, failures = await export_all(
                [("a.stl", _binary_stl()), ("b.stl", TEXT_STL), ("c.stl", _binary_stl(2))],
                1.25, deliver, pause=0.1,
            )
        assert delivered == ["a_125percent.stl", "b_125percent.stl", "c_125percent.stl"]
        assert [r.filename for r in ok] == delivered
        assert failures == []
        # pause between files, not before the first
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_batch(self):
        deliver = AsyncMock()
        with patch("stl_scaler.pipeline.asyncio.sleep", new=AsyncMock()):
            ok, failures = await export_all(
                [("bad.stl", b"nope"), ("good.stl", _binary_stl())], 2.0, deliver,
            )
        assert len(ok) == 1
        assert deliver.await_count == 1
        assert failures[0][0] == "bad.stl"

    @pytest.mark.asyncio
    async def test_no_pause(self):
        deliver = AsyncMock()
        with patch("stl_scaler.pipeline.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await export_all([("a.stl", _binary_stl()), ("b.stl", _binary_stl())], 2.0, deliver, pause=0)
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_factor_raises_before_delivery(self):
        deliver = AsyncMock()
        with pytest.raises(InvalidScaleError):
            await export_all([("a.stl", _binary_stl())], -1, deliver)
        deliver.assert_not_awaited()
