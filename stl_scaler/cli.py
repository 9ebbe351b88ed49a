"""Command-line entry point: inspect and scale files, or run the API or bot."""

import argparse
import configparser
import sys
from pathlib import Path

from .config import Config, load_config
from .errors import StlError
from .pipeline import inspect_bytes, is_stl_filename, scale_stl
from .scale_input import parse_scale


def _load(path: str) -> Config:
    parser = configparser.ConfigParser()
    parser.read(path)
    return load_config(parser)


def info_command(args, config: Config) -> int:
    status = 0
    for name in args.files:
        path = Path(name)
        try:
            info = inspect_bytes(path.read_bytes())
        except (OSError, StlError) as e:
            print(f"[Error] {path.name}: {e}", file=sys.stderr)
            status = 1
            continue
        dims = info.dimensions or "empty mesh"
        print(f"{path.name}: {info.encoding.value}, {info.triangles} triangles, {dims}")
    return status


def scale_command(args, config: Config) -> int:
    output_dir = Path(args.output) if args.output else None
    status = 0
    for name in args.files:
        path = Path(name)
        if not is_stl_filename(path.name):
            print(f"[Skip] {path.name}: not an .stl file", file=sys.stderr)
            continue
        try:
            dims = inspect_bytes(path.read_bytes()).dimensions
            result = parse_scale(args.scale, dims, config.max_scale)
            if not result.ok:
                print(f"[Error] {path.name}: {result.error}", file=sys.stderr)
                status = 1
                continue
            scale_stl(path, result.factor, output_dir or config.output_dir)
        except (OSError, StlError) as e:
            print(f"[Error] {path.name}: {e}", file=sys.stderr)
            status = 1
    return status


def serve_command(args, config: Config) -> int:
    from aiohttp import web
    from .web_api import create_web_app

    port = args.port or config.api_port or 8080
    print(f"HTTP API starting on {config.api_host}:{port}")
    web.run_app(create_web_app(config), host=config.api_host, port=port, print=None)
    return 0


def bot_command(args, config: Config) -> int:
    from telegram.ext import Application, CommandHandler, MessageHandler, filters
    from . import handlers

    if not config.telegram_token:
        print("[Error] TELEGRAM.bot_token is not set", file=sys.stderr)
        return 1

    app = (
        Application.builder()
        .token(config.telegram_token)
        .post_init(handlers.post_init)
        .post_shutdown(handlers.post_shutdown)
        .build()
    )
    app.bot_data["config"] = config
    user_scales = handlers.load_user_scales(handlers.SCALES_FILE)
    app.bot_data["user_scales"] = user_scales
    app.bot_data["save_scales_fn"] = lambda: handlers.save_user_scales(handlers.SCALES_FILE, user_scales)

    app.add_handler(CommandHandler("start", handlers.start_command))
    app.add_handler(CommandHandler("help", handlers.help_command))
    app.add_handler(CommandHandler("scale", handlers.scale_command))
    app.add_handler(CommandHandler("presets", handlers.presets_command))
    app.add_handler(CommandHandler("myscale", handlers.myscale_command))
    app.add_handler(CommandHandler("reset", handlers.reset_command))
    app.add_handler(MessageHandler(filters.Document.ALL, handlers.handle_document))

    print("Bot started...")
    app.run_polling()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scale STL files for 3D printing")
    parser.add_argument("-c", "--config", type=str, default="config.ini", help="Path to config file")
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Show encoding, triangle count and dimensions")
    info.add_argument("files", nargs="+")
    info.set_defaults(func=info_command)

    scale = sub.add_parser("scale", help="Write scaled copies of STL files")
    scale.add_argument("files", nargs="+")
    scale.add_argument("-s", "--scale", required=True, help="1.5, 1.5x, 150%% or width=120")
    scale.add_argument("-o", "--output", help="Output directory (default from config)")
    scale.set_defaults(func=scale_command)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("-p", "--port", type=int, default=0)
    serve.set_defaults(func=serve_command)

    bot = sub.add_parser("bot", help="Run the Telegram bot")
    bot.set_defaults(func=bot_command)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = _load(args.config)
    return args.func(args, config)
