"""
wabot — HTTP Surface
aiohttp server exposing the messaging client to external callers.

Route handlers decode their bodies with read_body(), which accepts JSON,
form and plain-text payloads. The route table itself lives in
engine/routes.py and receives the client it should drive.

The bridge posts its lifecycle and message events here too, so the server
has to be listening before the client can ever report ready.
"""
import errno
import hashlib
import hmac
import json
import logging
from typing import Any, Optional

from aiohttp import web

from config import JSON_BODY_LIMIT, TEXT_BODY_LIMIT

logger = logging.getLogger("wabot.webhooks")

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
TEXT_BODY_LIMIT_KEY = web.AppKey("text_body_limit", int)


class PortInUseError(OSError):
    """The HTTP port is already bound by another process."""

    def __init__(self, port: int):
        super().__init__(errno.EADDRINUSE, f"Port {port} is already in use")
        self.port = port


def _json_error(exc_class, message: str):
    return exc_class(text=json.dumps({"error": message}), content_type="application/json")


# ── Body parsing ─────────────────────────────────────────────

async def read_body(request: web.Request) -> Any:
    """Decode a JSON, form or text body.

    Returns None when there is no body or the content type isn't one of those.
    Raises HTTPBadRequest for malformed JSON and HTTPRequestEntityTooLarge for
    text over the configured limit.
    """
    if not request.can_read_body:
        return None

    content_type = request.content_type
    if content_type == "application/json":
        raw = await request.read()
        try:
            return json.loads(raw) if raw else None
        except ValueError as e:
            raise _json_error(web.HTTPBadRequest, f"Invalid JSON: {e}")
    if content_type in FORM_TYPES:
        return dict(await request.post())
    if content_type.startswith("text/"):
        raw = await request.read()
        limit = request.app.get(TEXT_BODY_LIMIT_KEY, TEXT_BODY_LIMIT)
        if len(raw) > limit:
            raise web.HTTPRequestEntityTooLarge(
                max_size=limit, actual_size=len(raw),
                text=json.dumps({"error": "Text body too large"}), content_type="application/json",
            )
        return raw.decode(request.charset or "utf-8", errors="replace")
    return None


# ── Signatures ───────────────────────────────────────────────

def validate_signature(secret: Optional[str], payload_bytes: bytes, signature: Optional[str]) -> bool:
    """Validate an HMAC-SHA256 signature of the form sha256=<hex_digest>.

    Returns True if valid (or if no secret is configured).
    """
    if not secret:
        return True  # No secret = no validation required

    if not signature:
        return False

    if signature.startswith("sha256="):
        signature = signature[7:]

    expected = hmac.new(
        secret.encode("utf-8"),
        payload_bytes,
        hashlib.sha256,
    ).hexdigest()

    return hmac.compare_digest(expected, signature)


# ── App / server ─────────────────────────────────────────────

def create_app(client, supervisor=None, json_body_limit: int = JSON_BODY_LIMIT,
               text_body_limit: int = TEXT_BODY_LIMIT,
               webhook_secret: Optional[str] = None) -> web.Application:
    """
    Creates an aiohttp Application wired to the messaging client.
    """
    from engine.routes import register_routes

    app = web.Application(client_max_size=json_body_limit)
    app[TEXT_BODY_LIMIT_KEY] = text_body_limit
    register_routes(app, client, supervisor, webhook_secret=webhook_secret)
    return app


async def start_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Start listening. Raises PortInUseError if the port is taken.

    Access logging is off; logs/status.log only carries bot status lines.
    """
    runner = web.AppRunner(app, access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError as e:
        await runner.cleanup()
        if e.errno == errno.EADDRINUSE:
            raise PortInUseError(port) from e
        raise
    logger.info(f"Server running on port {port}")
    return runner
