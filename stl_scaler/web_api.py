"""HTTP API for scaling STL files. Uses aiohttp.

The request body is the raw STL file. Scale inputs go in the query string
in any form parse_scale accepts (1.5, 1.5x, 150%, width=120).
"""

import json
import time
from pathlib import PurePath

from aiohttp import web

from .config import Config
from .decoder import decode
from .encoder import encode
from .errors import StlError
from .model import Encoding
from .naming import scaled_filename
from .pipeline import dimensions_or_none, inspect_bytes
from .scale_input import parse_scale
from .stl_transform import scale

DEFAULT_FILENAME = "model.stl"

CONTENT_TYPES = {
    Encoding.BINARY: "application/octet-stream",
    Encoding.TEXT: "text/plain",
}


def _safe_filename(raw: str) -> str:
    """Strip directories and quotes from a client-supplied filename."""
    name = PurePath(raw.replace("\\", "/")).name.replace('"', "")
    return name or DEFAULT_FILENAME


def _dims_dict(dims) -> dict | None:
    return dims.as_dict() if dims else None


async def _read_body(request: web.Request) -> bytes | None:
    raw = await request.read()
    return raw or None


async def handle_health(request: web.Request) -> web.Response:
    """GET /api/health: simple health check."""
    return web.json_response({"status": "ok", "time": int(time.time())})


async def handle_presets(request: web.Request) -> web.Response:
    """GET /api/presets: preset factors and the upper scale bound."""
    config: Config = request.app["config"]
    return web.json_response({
        "presets": config.presets.to_list(),
        "max_scale": config.max_scale,
    })


async def handle_inspect(request: web.Request) -> web.Response:
    """POST /api/inspect: encoding, triangle count and dimensions of the body."""
    raw = await _read_body(request)
    if raw is None:
        return web.json_response({"error": "empty request body"}, status=400)
    try:
        info = inspect_bytes(raw)
    except StlError as e:
        return web.json_response({"error": str(e)}, status=400)

    return web.json_response({
        "encoding": info.encoding.value,
        "triangles": info.triangles,
        "dimensions": _dims_dict(info.dimensions),
    })


async def handle_scale(request: web.Request) -> web.Response:
    """POST /api/scale?scale=150%&filename=part.stl: return the scaled file.

    The output keeps the input's encoding; the derived filename is sent in
    Content-Disposition.
    """
    config: Config = request.app["config"]
    raw = await _read_body(request)
    if raw is None:
        return web.json_response({"error": "empty request body"}, status=400)

    filename = _safe_filename(request.query.get("filename", DEFAULT_FILENAME))
    try:
        stl, encoding = decode(raw)
    except StlError as e:
        return web.json_response({"error": str(e)}, status=400)

    original = dimensions_or_none(stl)
    result = parse_scale(request.query.get("scale", "1"), original, config.max_scale)
    if not result.ok:
        return web.json_response({"error": result.error}, status=400)

    scaled = scale(stl, result.factor)
    out_name = scaled_filename(filename, result.factor)
    headers = {
        "Content-Disposition": f'attachment; filename="{out_name}"',
        "X-Scale-Factor": f"{result.factor:g}",
        "X-Original-Dimensions": json.dumps(_dims_dict(original)),
        "X-Scaled-Dimensions": json.dumps(_dims_dict(original.scaled(result.factor) if original else None)),
    }
    return web.Response(
        body=encode(scaled, encoding),
        content_type=CONTENT_TYPES[encoding],
        headers=headers,
    )


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.Response:
    """Add CORS headers for browser frontends."""
    if request.method == "OPTIONS":
        response = web.Response()
    else:
        response = await handler(request)

    allowed_origin = request.app.get("cors_origin", "*")
    response.headers["Access-Control-Allow-Origin"] = allowed_origin
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Expose-Headers"] = (
        "Content-Disposition, X-Scale-Factor, X-Original-Dimensions, X-Scaled-Dimensions"
    )
    return response


@web.middleware
async def logging_middleware(request: web.Request, handler) -> web.Response:
    """Log all incoming requests."""
    start = time.time()
    try:
        response = await handler(request)
        elapsed = (time.time() - start) * 1000
        print(f"[API] {request.method} {request.path} → {response.status} ({elapsed:.0f}ms)")
        return response
    except Exception as e:
        elapsed = (time.time() - start) * 1000
        print(f"[API] {request.method} {request.path} → ERROR: {e} ({elapsed:.0f}ms)")
        raise


def create_web_app(config: Config) -> web.Application:
    """Create and configure the aiohttp web application."""
    app = web.Application(
        middlewares=[logging_middleware, cors_middleware],
        client_max_size=config.max_upload_mb * 1024 * 1024,
    )
    app["config"] = config
    app["cors_origin"] = config.cors_origin

    app.router.add_get("/api/health", handle_health)
    app.router.add_get("/api/presets", handle_presets)
    app.router.add_post("/api/inspect", handle_inspect)
    app.router.add_post("/api/scale", handle_scale)

    return app
