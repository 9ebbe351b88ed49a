from dataclasses import dataclass, field
from pathlib import Path

from .pipeline import EXPORT_PAUSE
from .presets import ScalePresets
from .scale_input import DEFAULT_MAX_SCALE


@dataclass
class Config:
    output_dir: Path
    presets: ScalePresets
    max_scale: float = DEFAULT_MAX_SCALE
    export_pause: float = EXPORT_PAUSE
    telegram_token: str = ""
    allowed_users: set[int] = field(default_factory=set)
    notify_chat_id: int | None = None
    api_port: int = 0
    api_host: str = "0.0.0.0"
    cors_origin: str = "*"
    max_upload_mb: int = 50


def _parse_allowed_users(raw: str) -> set[int]:
    """Parse comma-separated user IDs into a set."""
    return set(int(x) for x in raw.split(",") if x.strip())


def _section(config, name: str) -> dict[str, str]:
    return dict(config[name]) if config.has_section(name) else {}


def load_config(config) -> Config:
    """Build a Config from a parsed configparser object. Every key is optional."""
    scaling = _section(config, "SCALING")
    api = _section(config, "API")
    telegram = _section(config, "TELEGRAM")

    output_dir = Path(scaling.get("output_directory", "").strip() or "scaled")
    presets_file = scaling.get("presets_file", "").strip()
    presets = ScalePresets(Path(presets_file) if presets_file else None)
    max_scale = float(scaling.get("max_scale", "").strip() or DEFAULT_MAX_SCALE)
    export_pause = float(scaling.get("export_pause", "").strip() or EXPORT_PAUSE)

    allowed = telegram.get("allowed_users", "").strip()
    allowed_users = _parse_allowed_users(allowed) if allowed else set()

    notify = telegram.get("notify_chat_id", "").strip()
    notify_chat_id = int(notify) if notify else None

    return Config(
        output_dir=output_dir,
        presets=presets,
        max_scale=max_scale,
        export_pause=export_pause,
        telegram_token=telegram.get("bot_token", "").strip(),
        allowed_users=allowed_users,
        notify_chat_id=notify_chat_id,
        api_port=int(api.get("port", "0").strip() or "0"),
        api_host=api.get("host", "").strip() or "0.0.0.0",
        cors_origin=api.get("cors_origin", "").strip() or "*",
        max_upload_mb=int(api.get("max_upload_mb", "50").strip() or "50"),
    )


def is_allowed(config: Config, user_id: int) -> bool:
    """Check if user is allowed to use the bot."""
    if not config.allowed_users:
        return False
    return user_id in config.allowed_users
