"""Tests for scale parsing, output filenames and presets."""

import json

import pytest

from stl_scaler.errors import InvalidScaleError
from stl_scaler.model import Dimensions
from stl_scaler.naming import scale_percent, scaled_filename
from stl_scaler.presets import BUILTIN_PRESETS, ScalePresets, preset_label
from stl_scaler.scale_input import (
    ScaleResult, factor_for_target, parse_scale, percent_to_factor, round_factor,
)

DIMS = Dimensions(width=40.0, height=20.0, depth=8.0)


class TestScaledFilename:
    def test_basic(self):
        assert scaled_filename("part.stl", 1.5) == "part_150percent.stl"

    def test_splits_on_last_dot(self):
        assert scaled_filename("my.model.v2.STL", 0.5) == "my.model.v2_50percent.STL"

    def test_rounds_to_whole_percent(self):
        assert scaled_filename("a.stl", 1.234) == "a_123percent.stl"
        assert scaled_filename("a.stl", 0.125) == "a_13percent.stl"

    def test_no_extension(self):
        assert scaled_filename("part", 2) == "part_200percent"

    def test_scale_percent_rounds_half_up(self):
        assert scale_percent(0.005) == 1
        assert scale_percent(0.125) == 13
        assert scale_percent(1.0) == 100


class TestRounding:
    def test_round_factor(self):
        assert round_factor(1.23456) == 1.235
        assert round_factor(0.0004) == 0.0

    def test_percent_to_factor(self):
        assert percent_to_factor(150) == 1.5
        assert percent_to_factor(33.3333) == 0.333

    def test_factor_for_target(self):
        assert factor_for_target(DIMS, "width", 120) == 3.0
        assert factor_for_target(DIMS, "y", 5) == 0.25

    def test_factor_for_flat_axis(self):
        with pytest.raises(InvalidScaleError):
            factor_for_target(Dimensions(10.0, 10.0, 0.0), "depth", 5)


class TestParseScale:
    @pytest.mark.parametrize("raw, factor", [
        ("1.5", 1.5),
        ("1.5x", 1.5),
        ("2X", 2.0),
        ("0.5×", 0.5),
        ("150%", 1.5),
        (" 75 % ", 0.75),
        ("10", 10.0),
    ])
    def test_valid_forms(self, raw, factor):
        result = parse_scale(raw)
        assert result.ok
        assert result.factor == pytest.approx(factor)

    @pytest.mark.parametrize("raw, factor", [
        ("width=120", 3.0),
        ("w=20", 0.5),
        ("height = 30", 1.5),
        ("z=16mm", 2.0),
    ])
    def test_target_sizes(self, raw, factor):
        result = parse_scale(raw, DIMS)
        assert result.ok
        assert result.factor == pytest.approx(factor)

    def test_target_needs_dimensions(self):
        result = parse_scale("width=100")
        assert not result.ok
        assert "loaded model" in result.error

    def test_unknown_axis(self):
        result = parse_scale("length=100", DIMS)
        assert not result.ok
        assert "Unknown axis" in result.error

    def test_bad_target(self):
        assert not parse_scale("width=-5", DIMS).ok
        assert not parse_scale("width=abc", DIMS).ok

    @pytest.mark.parametrize("raw", ["", "abc", "0", "-1", "0%", "nan", "inf", "1.5y"])
    def test_invalid(self, raw):
        result = parse_scale(raw)
        assert isinstance(result, ScaleResult)
        assert not result.ok
        assert result.error

    def test_above_maximum(self):
        result = parse_scale("1100%")
        assert not result.ok
        assert "above maximum" in result.error

    def test_custom_maximum(self):
        assert not parse_scale("3", max_scale=2.0).ok
        assert parse_scale("2", max_scale=2.0).ok

    def test_target_above_maximum(self):
        result = parse_scale("width=1000", DIMS)
        assert not result.ok


class TestPresets:
    def test_builtin_factors(self):
        assert ScalePresets().factors() == [0.5, 0.75, 1.0, 1.25, 1.5, 2.0, 3.0]

    def test_get_case_insensitive(self):
        assert ScalePresets().get("Double") == 2.0
        assert ScalePresets().get("missing") is None

    def test_custom_file(self, tmp_path):
        path = tmp_path / "presets.json"
        path.write_text(json.dumps({"Mini": 0.25, "double": 2.5}))
        presets = ScalePresets(path)
        assert presets.get("mini") == 0.25
        assert presets.get("double") == 2.5
        assert len(presets.names()) == len(BUILTIN_PRESETS) + 1

    def test_missing_custom_file_ignored(self, tmp_path):
        presets = ScalePresets(tmp_path / "nope.json")
        assert presets.list_presets() == BUILTIN_PRESETS

    def test_labels(self):
        assert preset_label(1.5) == "150%"
        assert preset_label(1.5, "factor") == "1.5x"
        assert preset_label(0.75) == "75%"

    def test_to_list(self):
        entry = ScalePresets().to_list()[0]
        assert entry == {"name": "half", "factor": 0.5, "percent": 50, "label": "50%"}
