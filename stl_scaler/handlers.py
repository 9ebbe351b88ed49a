import io
import json
import zipfile
from pathlib import Path

from telegram import Update
from telegram.constants import ChatAction
from telegram.ext import ContextTypes

from .config import Config, is_allowed
from .errors import StlError
from .pipeline import ScaledFile, export_all, inspect_bytes, is_stl_filename, scale_file_bytes
from .presets import preset_label
from .scale_input import parse_scale
from .stl_transform import needs_scaling


SCALES_FILE = Path(__file__).parent.parent / "user_scales.json"


def load_user_scales(path: Path) -> dict[int, float]:
    """Load per-user scale factors from a JSON file."""
    if not path.exists():
        return {}
    data = json.loads(path.read_text())
    return {int(k): float(v) for k, v in data.items()}


def save_user_scales(path: Path, scales: dict[int, float]) -> None:
    """Atomically write per-user scale factors to a JSON file."""
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(scales, indent=2))
    tmp.rename(path)


HELP_TEXT = """STL Scaler Bot

Send me an STL file (or a ZIP of STL files) and I'll send back scaled copies.

Commands:
/scale 150% - Set your scale (also 1.5, 1.5x, width=120)
/presets - Show preset scales
/myscale - Show your current scale
/reset - Back to 100%"""


def _user_scales(context: ContextTypes.DEFAULT_TYPE) -> dict[int, float]:
    return context.bot_data.setdefault("user_scales", {})


def _save_scales(context: ContextTypes.DEFAULT_TYPE) -> None:
    save_fn = context.bot_data.get("save_scales_fn")
    if save_fn:
        save_fn()


def _format_scaled(result: ScaledFile) -> str:
    lines = [f"{result.filename} ({result.encoding.value}, {result.triangles} triangles)"]
    if result.original:
        lines.append(f"Original: {result.original}")
        lines.append(f"Scaled {preset_label(result.factor)}: {result.scaled}")
    return "\n".join(lines)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    config: Config = context.bot_data["config"]
    if not is_allowed(config, update.effective_user.id):
        await update.message.reply_text("You are not authorized to use this bot.")
        return
    await update.message.reply_text(HELP_TEXT)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    config: Config = context.bot_data["config"]
    if not is_allowed(config, update.effective_user.id):
        return
    await update.message.reply_text(HELP_TEXT)


async def scale_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /scale <value>: set the user's scale factor.

    Target sizes (width=120) resolve against the last model the user sent.
    """
    config: Config = context.bot_data["config"]
    user_id = update.effective_user.id
    if not is_allowed(config, user_id):
        return

    if not context.args:
        await update.message.reply_text(
            "Usage: /scale value\n\n"
            "Examples:\n"
            "  /scale 150%\n"
            "  /scale 0.5x\n"
            "  /scale width=120 (mm, uses your last model)"
        )
        return

    raw = " ".join(context.args)
    preset = config.presets.get(raw)
    if preset is not None:
        raw = str(preset)
    last_dims = context.bot_data.setdefault("last_dims", {}).get(user_id)
    result = parse_scale(raw, last_dims, config.max_scale)
    if not result.ok:
        await update.message.reply_text(f"Invalid scale: {result.error}")
        return

    _user_scales(context)[user_id] = result.factor
    _save_scales(context)
    reply = f"Scale set to {preset_label(result.factor)} ({result.factor:g}x)"
    if last_dims:
        reply += f"\nLast model would be {last_dims.scaled(result.factor)}"
    await update.message.reply_text(reply)


async def presets_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /presets: list preset names and factors."""
    config: Config = context.bot_data["config"]
    if not is_allowed(config, update.effective_user.id):
        return
    lines = [
        f"  {name}: {preset_label(factor)} ({preset_label(factor, 'factor')})"
        for name, factor in config.presets.list_presets().items()
    ]
    await update.message.reply_text("Presets (use /scale name):\n" + "\n".join(lines))


async def myscale_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myscale: show the user's current scale."""
    config: Config = context.bot_data["config"]
    user_id = update.effective_user.id
    if not is_allowed(config, user_id):
        return
    factor = _user_scales(context).get(user_id)
    if factor is None:
        await update.message.reply_text("No custom scale. Using 100%.")
    else:
        await update.message.reply_text(f"Your scale: {preset_label(factor)} ({factor:g}x)")


async def reset_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset: drop the user's scale."""
    config: Config = context.bot_data["config"]
    user_id = update.effective_user.id
    if not is_allowed(config, user_id):
        return
    _user_scales(context).pop(user_id, None)
    _save_scales(context)
    await update.message.reply_text("Scale reset to 100%.")


async def post_init(app) -> None:
    """Send startup notification and start HTTP API if configured."""
    config: Config = app.bot_data["config"]
    if config.notify_chat_id:
        try:
            await app.bot.send_message(config.notify_chat_id, "STL Scaler Bot is online!")
        except Exception as e:
            print(f"Startup notification failed: {e}")

    if config.api_port > 0:
        from aiohttp import web as aio_web
        from .web_api import create_web_app

        runner = aio_web.AppRunner(create_web_app(config))
        await runner.setup()
        site = aio_web.TCPSite(runner, config.api_host, config.api_port)
        await site.start()
        app.bot_data["_api_runner"] = runner
        print(f"HTTP API started on port {config.api_port}")


async def post_shutdown(app) -> None:
    """Clean up the HTTP API server."""
    runner = app.bot_data.get("_api_runner")
    if runner:
        await runner.cleanup()


def _find_stls_in_zip(zf: zipfile.ZipFile) -> list[str]:
    """STL member names in a ZIP, skipping directories and macOS artifacts."""
    return sorted(
        name for name in zf.namelist()
        if is_stl_filename(name)
        and not name.endswith("/")
        and "__MACOSX" not in name.split("/")
        and not name.rsplit("/", 1)[-1].startswith("._")
    )


def _read_zip(raw: bytes) -> list[tuple[str, bytes]] | None:
    """Return [(basename, bytes)] for every STL in the ZIP, or None if invalid."""
    try:
        with zipfile.ZipFile(io.BytesIO(raw)) as zf:
            return [(name.rsplit("/", 1)[-1], zf.read(name)) for name in _find_stls_in_zip(zf)]
    except zipfile.BadZipFile:
        return None


async def _send_scaled(update: Update, result: ScaledFile) -> None:
    await update.message.reply_document(
        document=io.BytesIO(result.data),
        filename=result.filename,
        caption=_format_scaled(result),
    )


async def _handle_zip(update: Update, config: Config, name: str, raw: bytes, factor: float) -> None:
    """Scale every STL inside a ZIP and send them one after another."""
    files = _read_zip(raw)
    if files is None:
        await update.message.reply_text("Invalid ZIP file.")
        return
    if not files:
        await update.message.reply_text("No STL files found in ZIP.")
        return

    n = len(files)
    await update.message.reply_text(
        f"Received {name}, scaling {n} STL file{'s' if n != 1 else ''} to {preset_label(factor)}..."
    )

    async def deliver(result: ScaledFile) -> None:
        await _send_scaled(update, result)

    delivered, failures = await export_all(files, factor, deliver, pause=config.export_pause)

    lines = [f"Done! {len(delivered)}/{n} scaled."]
    for file_name, msg in failures:
        lines.append(f"Failed: {file_name}: {msg}")
    await update.message.reply_text("\n".join(lines))


async def _handle_stl(update: Update, context: ContextTypes.DEFAULT_TYPE, name: str, raw: bytes, factor: float) -> None:
    """Report an STL's dimensions and send the scaled copy."""
    try:
        info = inspect_bytes(raw)
    except StlError as e:
        await update.message.reply_text(f"Could not read {name}: {e}")
        return

    if info.dimensions:
        context.bot_data.setdefault("last_dims", {})[update.effective_user.id] = info.dimensions

    if not needs_scaling(factor):
        dims = info.dimensions or "empty mesh"
        await update.message.reply_text(
            f"{name} ({info.encoding.value}, {info.triangles} triangles)\n"
            f"Size: {dims}\n\n"
            "Scale is 100%. Use /scale to pick a size."
        )
        return

    await _send_scaled(update, scale_file_bytes(raw, name, factor))


async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle STL and ZIP file uploads."""
    document = update.message.document
    name_lower = document.file_name.lower()

    if not name_lower.endswith((".stl", ".zip")):
        return

    config: Config = context.bot_data["config"]
    user_id = update.effective_user.id
    if not is_allowed(config, user_id):
        return
    factor = _user_scales(context).get(user_id, 1.0)

    await context.bot.send_chat_action(
        chat_id=update.effective_chat.id, action=ChatAction.UPLOAD_DOCUMENT,
    )

    file = await context.bot.get_file(document.file_id)
    raw = bytes(await file.download_as_bytearray())

    if name_lower.endswith(".zip"):
        await _handle_zip(update, config, document.file_name, raw, factor)
    else:
        await _handle_stl(update, context, document.file_name, raw, factor)
