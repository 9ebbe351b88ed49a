import math


def scale_percent(factor: float) -> int:
    """Factor as a whole percentage, rounding halves up (0.125 -> 13)."""
    return math.floor(factor * 100 + 0.5)


def scaled_filename(filename: str, factor: float) -> str:
    """Derive `<base>_<pct>percent.<ext>`, splitting on the last dot.

    Names without a dot get the suffix and no extension.
    """
    suffix = f"_{scale_percent(factor)}percent"
    base, dot, ext = filename.rpartition(".")
    if not dot:
        return f"{filename}{suffix}"
    return f"{base}{suffix}.{ext}"
