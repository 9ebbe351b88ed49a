"""Turn user-typed scale values into a validated factor.

Accepted forms:
    1.5  1.5x       factor
    150%            percentage
    width=120       target size along an axis (needs the model's dimensions)
"""

import math
from dataclasses import dataclass

from .errors import InvalidScaleError
from .model import Dimensions

DEFAULT_MAX_SCALE = 10.0
FACTOR_DECIMALS = 3

AXIS_ALIASES = {
    "width": "width", "w": "width", "x": "width",
    "height": "height", "h": "height", "y": "height",
    "depth": "depth", "d": "depth", "z": "depth",
}


@dataclass
class ScaleResult:
    ok: bool
    factor: float = 1.0
    error: str = ""     # non-empty if ok is False


def round_factor(value: float) -> float:
    """Round to 3 decimals, halves up."""
    step = 10 ** FACTOR_DECIMALS
    return math.floor(value * step + 0.5) / step


def percent_to_factor(percent: float) -> float:
    return round_factor(percent / 100)


def factor_for_target(dims: Dimensions, axis: str, target: float) -> float:
    """Factor that makes the model's extent along axis equal target."""
    original = dims.get(AXIS_ALIASES.get(axis, axis))
    if original <= 0:
        raise InvalidScaleError(f"Model has no extent along {axis}, cannot scale to a target size")
    return round_factor(target / original)


def _parse_number(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_scale(
    raw: str, dims: Dimensions | None = None, max_scale: float = DEFAULT_MAX_SCALE,
) -> ScaleResult:
    text = raw.strip().lower().replace(" ", "")
    if not text:
        return ScaleResult(ok=False, error="Empty scale value")

    if "=" in text:
        return _parse_target(raw, text, dims, max_scale)

    if text.endswith("%"):
        value = _parse_number(text[:-1])
        if value is None:
            return ScaleResult(ok=False, error=f"Expected a percentage, got '{raw}'")
        if value <= 0:
            return ScaleResult(ok=False, error=f"Percentage must be above 0, got '{raw}'")
        return _check_bounds(percent_to_factor(value), max_scale)

    if text.endswith(("x", "×")):
        text = text[:-1]
    value = _parse_number(text)
    if value is None:
        return ScaleResult(ok=False, error=f"Expected a scale like 1.5, 150% or width=120, got '{raw}'")
    return _check_bounds(value, max_scale)


def _parse_target(raw: str, text: str, dims: Dimensions | None, max_scale: float) -> ScaleResult:
    axis, _, value_text = text.partition("=")
    if axis not in AXIS_ALIASES:
        valid = ", ".join(("width", "height", "depth"))
        return ScaleResult(ok=False, error=f"Unknown axis '{axis}'. Valid axes: {valid}")
    if dims is None:
        return ScaleResult(ok=False, error="Target sizes need a loaded model")

    target = _parse_number(value_text.removesuffix("mm"))
    if target is None or target <= 0:
        return ScaleResult(ok=False, error=f"Expected a positive size, got '{raw}'")
    try:
        factor = factor_for_target(dims, axis, target)
    except InvalidScaleError as e:
        return ScaleResult(ok=False, error=str(e))
    return _check_bounds(factor, max_scale)


def _check_bounds(factor: float, max_scale: float) -> ScaleResult:
    if factor <= 0:
        return ScaleResult(ok=False, factor=factor, error=f"Scale {factor} must be above 0")
    if factor > max_scale:
        return ScaleResult(
            ok=False, factor=factor,
            error=f"Scale {factor} is above maximum ({max_scale})")
    return ScaleResult(ok=True, factor=factor)
