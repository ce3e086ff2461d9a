"""
wabot — HTTP Routes
Route table for the HTTP surface. Every route gets the messaging client it
drives; nothing here reaches for a global.
"""
import logging
from typing import Optional

from aiohttp import web

from engine.client import BridgeError
from engine.events import EVENTS
from engine.webhooks import read_body, validate_signature

logger = logging.getLogger("wabot.routes")

SIGNATURE_HEADER = "X-Bridge-Signature"


def register_routes(app: web.Application, client, supervisor=None,
                    webhook_secret: Optional[str] = None) -> None:

    async def health(request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def status(request: web.Request) -> web.Response:
        if supervisor is not None:
            return web.json_response(supervisor.status())
        return web.json_response({"ready": client.ready})

    async def send_message(request: web.Request) -> web.Response:
        body = await read_body(request)
        if isinstance(body, dict):
            to = body.get("to")
            text = body.get("message")
        else:
            to = request.query.get("to")
            text = body
        if not to or not text:
            return web.json_response({"error": "'to' and 'message' are required"}, status=400)

        if not client.ready:
            return web.json_response({"error": "WhatsApp client is not ready"}, status=503)

        try:
            message_id = await client.send_message(str(to), str(text))
        except BridgeError as e:
            logger.error(f"Failed to send message to {to}: {e}")
            return web.json_response({"error": f"Failed to send message: {e}"}, status=502)

        logger.info(f"Message sent to {to} via HTTP")
        return web.json_response({"ok": True, "id": message_id})

    async def bridge_event(request: web.Request) -> web.Response:
        raw = await request.read()
        if not validate_signature(webhook_secret, raw, request.headers.get(SIGNATURE_HEADER)):
            logger.warning("Bridge event signature validation failed")
            return web.json_response({"error": "Invalid signature"}, status=401)

        body = await read_body(request)
        event = body.get("event") if isinstance(body, dict) else None
        if not isinstance(event, str) or event not in EVENTS:
            return web.json_response({"error": f"Unknown event: {event}"}, status=400)

        client.feed_event(event, body.get("data"))
        return web.json_response({"accepted": event}, status=202)

    app.router.add_get("/health", health)
    app.router.add_get("/status", status)
    app.router.add_post("/send-message", send_message)
    app.router.add_post("/events", bridge_event)
