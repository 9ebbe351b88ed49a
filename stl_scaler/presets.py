import json
from pathlib import Path

from .naming import scale_percent


BUILTIN_PRESETS: dict[str, float] = {
    "half": 0.5,
    "three-quarter": 0.75,
    "original": 1.0,
    "quarter-up": 1.25,
    "one-and-half": 1.5,
    "double": 2.0,
    "triple": 3.0,
}


def preset_label(factor: float, mode: str = "percent") -> str:
    """Button label: `150%` in percent mode, `1.5x` in factor mode."""
    if mode == "factor":
        return f"{factor:g}x"
    return f"{scale_percent(factor)}%"


class ScalePresets:
    def __init__(self, custom_presets_path: Path | None = None):
        self._presets = dict(BUILTIN_PRESETS)
        if custom_presets_path and custom_presets_path.exists():
            with open(custom_presets_path) as f:
                custom = json.load(f)
            self._presets.update({k.lower(): float(v) for k, v in custom.items()})

    def list_presets(self) -> dict[str, float]:
        return self._presets

    def get(self, name: str) -> float | None:
        return self._presets.get(name.lower())

    def names(self) -> list[str]:
        return list(self._presets.keys())

    def factors(self) -> list[float]:
        """Distinct preset factors in ascending order."""
        return sorted(set(self._presets.values()))

    def to_list(self) -> list[dict]:
        return [
            {
                "name": name,
                "factor": factor,
                "percent": scale_percent(factor),
                "label": preset_label(factor),
            }
            for name, factor in self._presets.items()
        ]
