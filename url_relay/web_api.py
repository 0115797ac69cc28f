"""HTTP API for the Telegram Mini App.

Accepts URL submissions from the Mini App and sends a confirmation message
to the submitting user. Uses aiohttp.

Authentication is via Telegram initData HMAC validation; the raw initData
arrives in the X-Telegram-Init-Data header.
"""

import json
import re
import time
from typing import Awaitable, Callable
from urllib.parse import urlsplit

from aiohttp import web

from .config import Config
from .init_data import InitDataVerifier, Rejected, RejectReason
from .notify import DeliveryError


INIT_DATA_HEADER = "X-Telegram-Init-Data"

INVALID_CREDENTIALS = "Invalid Telegram credentials"
INVALID_BODY = "Invalid JSON body"
INVALID_URL = "Please provide a valid URL"
DELIVERY_FAILED = "Could not deliver confirmation message"

_URL_RE = re.compile(r"^(https|http)://[^\s$.?#].[^\s]*\Z", re.IGNORECASE)

SendFn = Callable[[int, str], Awaitable[None]]


def is_valid_url(url: str) -> bool:
    """Check that url is an absolute http(s) URL without whitespace."""
    if not isinstance(url, str) or not _URL_RE.match(url):
        return False
    try:
        return bool(urlsplit(url).netloc)
    except ValueError:
        return False


def _error(detail: str, status: int) -> web.Response:
    return web.json_response({"detail": detail}, status=status)


def _authenticate(request: web.Request) -> tuple[int | None, RejectReason | None]:
    """Verify the initData header and return (user_id, reason)."""
    verifier: InitDataVerifier = request.app["verifier"]
    init_data = request.headers.get(INIT_DATA_HEADER, "")
    if not init_data:
        return None, RejectReason.MISSING_HASH

    outcome = verifier.verify(init_data)
    if isinstance(outcome, Rejected):
        return None, outcome.reason
    return outcome.user.id, None


async def handle_upload_url(request: web.Request) -> web.Response:
    """POST /upload-url: accept a URL and confirm it to the user.

    Body: {"url": "https://..."}
    """
    user_id, reason = _authenticate(request)
    if user_id is None:
        print(f"[Auth] rejected: {reason.value}")
        return _error(INVALID_CREDENTIALS, 401)

    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError):
        return _error(INVALID_BODY, 400)
    if not isinstance(body, dict):
        return _error(INVALID_BODY, 400)

    url = body.get("url", "")
    if not is_valid_url(url):
        return _error(INVALID_URL, 400)

    send_fn: SendFn = request.app["send_fn"]
    try:
        await send_fn(user_id, url)
    except DeliveryError:
        return _error(DELIVERY_FAILED, 502)

    print(f"[Upload] user {user_id} submitted {url}")
    return web.json_response({"status": "ok"})


async def handle_health(request: web.Request) -> web.Response:
    """GET /api/health: simple health check, no auth required."""
    return web.json_response({"status": "ok", "time": int(time.time())})


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.Response:
    """Add CORS headers for the Mini App frontend."""
    if request.method == "OPTIONS":
        response = web.Response()
    else:
        response = await handler(request)

    allowed_origin = request.app.get("cors_origin", "*")
    response.headers["Access-Control-Allow-Origin"] = allowed_origin
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = f"Content-Type, {INIT_DATA_HEADER}"
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


def create_web_app(config: Config, send_fn: SendFn) -> web.Application:
    """Create and configure the aiohttp web application.

    send_fn(chat_id, url) delivers the confirmation and raises DeliveryError
    when the Bot API refuses it.
    """
    app = web.Application(middlewares=[logging_middleware, cors_middleware])
    app["verifier"] = config.verifier()
    app["send_fn"] = send_fn
    app["cors_origin"] = config.cors_origin

    app.router.add_get("/api/health", handle_health)
    app.router.add_post("/upload-url", handle_upload_url)

    return app
