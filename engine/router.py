"""
wabot — Command Router
Routes incoming chat text to the matching command handler.
Exact or prefix comparison only, first match wins.
"""
import logging
from typing import Optional

from handlers import (
    DELETE_PREFIX, handle_ping, handle_logs, handle_delete_message, handle_schedule,
)

logger = logging.getLogger("wabot.router")

def match_command(body: Optional[str]):
    """Return the handler for this text, or None if it isn't a command."""
    if not body:
        return None

    if body == "!ping":
        return handle_ping
    if body == "!logs":
        return handle_logs
    if body.startswith(DELETE_PREFIX):
        return handle_delete_message
    if body == "!jadwaldeo":
        return handle_schedule
    return None


async def route(client, message) -> bool:
    """Dispatch a message. Returns True if a handler ran, False if ignored.

    Handler errors are logged and swallowed so one bad command can't take
    the bot down.
    """
    handler = match_command(message.body)
    if handler is None:
        return False

    try:
        await handler(client, message)
    except Exception as e:
        logger.exception(f"{handler.__name__} failed for {message.sender}: {e}")
    return True


def attach(client) -> None:
    """Route every incoming message event through the command table."""
    async def _on_message(message):
        await route(client, message)

    client.events.on("message", _on_message)
