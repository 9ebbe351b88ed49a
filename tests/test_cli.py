"""Tests for the info and scale CLI commands."""

import struct

import pytest

from stl_scaler.cli import build_parser, main
from stl_scaler.decoder import decode


def _binary_stl() -> bytes:
    return (
        b"\0" * 80 + struct.pack("<I", 1)
        + struct.pack("<12fH", 0, 0, 1, 0, 0, 0, 10, 0, 0, 0, 20, 5, 0)
    )


@pytest.fixture
def stl_path(tmp_path):
    path = tmp_path / "part.stl"
    path.write_bytes(_binary_stl())
    return path


@pytest.fixture
def no_config(tmp_path):
    return ["-c", str(tmp_path / "missing.ini")]


class TestInfo:
    def test_prints_dimensions(self, stl_path, no_config, capsys):
        assert main(no_config + ["info", str(stl_path)]) == 0
        out = capsys.readouterr().out
        assert "part.stl: binary, 1 triangles, 10.00 x 20.00 x 5.00 mm" in out

    def test_bad_file(self, tmp_path, no_config, capsys):
        bad = tmp_path / "bad.stl"
        bad.write_bytes(b"junk")
        assert main(no_config + ["info", str(bad)]) == 1
        assert "[Error] bad.stl" in capsys.readouterr().err


class TestScale:
    def test_writes_scaled_copy(self, stl_path, tmp_path, no_config):
        out_dir = tmp_path / "out"
        assert main(no_config + ["scale", str(stl_path), "-s", "150%", "-o", str(out_dir)]) == 0
        stl, _ = decode((out_dir / "part_150percent.stl").read_bytes())
        assert stl.vectors[0][1].tolist() == [15.0, 0.0, 0.0]

    def test_target_size(self, stl_path, tmp_path, no_config):
        out_dir = tmp_path / "out"
        assert main(no_config + ["scale", str(stl_path), "-s", "height=10", "-o", str(out_dir)]) == 0
        assert (out_dir / "part_50percent.stl").exists()

    def test_invalid_scale(self, stl_path, tmp_path, no_config, capsys):
        assert main(no_config + ["scale", str(stl_path), "-s", "0", "-o", str(tmp_path / "out")]) == 1
        assert "must be above 0" in capsys.readouterr().err

    def test_skips_non_stl(self, tmp_path, no_config, capsys):
        other = tmp_path / "part.obj"
        other.write_text("v 0 0 0")
        assert main(no_config + ["scale", str(other), "-s", "2", "-o", str(tmp_path / "out")]) == 0
        assert "[Skip] part.obj" in capsys.readouterr().err


def test_command_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
