"""
wabot Command Handlers

Each handler takes the messaging client and the triggering message.
Failures stay silent in the chat; only the success paths reply.
"""
import logging

from config import BASE_DIR, STATUS_LOG_FILE, SCHEDULE_COMMAND, SCHEDULE_TIMEOUT, LOG_TAIL_LINES
from executor import run_script
from status_log import read_recent_lines

logger = logging.getLogger("wabot.handlers")

DELETE_PREFIX = "!deleteMessage,"


async def handle_ping(client, message) -> None:
    await client.reply(message, "pong")
    logger.info(f"{message.sender}: pinged!")


async def handle_logs(client, message) -> None:
    """Reply with the tail of the status log. Unreadable log = no reply."""
    recent = read_recent_lines(STATUS_LOG_FILE, LOG_TAIL_LINES)
    if not recent:
        return
    await client.reply(message, recent)
    logger.info(f"{message.sender}: !logs")


def extract_message_id(body: str) -> str:
    """Text after the first comma."""
    _, _, message_id = body.partition(",")
    return message_id


async def handle_delete_message(client, message) -> None:
    """Delete one of the bot's own messages for everyone."""
    message_id = extract_message_id(message.body)
    if not message_id:
        logger.warning(f"{message.sender}: !deleteMessage without an id")
        return

    try:
        target = await client.get_message_by_id(message_id)
    except Exception as e:
        logger.error(f"Error getting message: {e}")
        return

    if target is None:
        logger.error(f"Error getting message: {message_id} not found")
        return

    # Never delete messages the bot account didn't send
    if not target.from_me:
        return

    await client.delete_message(message_id, everyone=True)
    await client.reply(message, f"Message with ID {message_id} has been deleted!")
    logger.info(f"Message with ID {message_id} has been deleted!")


async def handle_schedule(client, message) -> None:
    result = await run_script(SCHEDULE_COMMAND, timeout=SCHEDULE_TIMEOUT, cwd=BASE_DIR)
    if not result.ok:
        logger.error(f"Error getting schedule: {result.describe_failure()}")
        return

    if not result.stdout:
        logger.warning(f"Schedule script produced no output for {message.sender}")
        return

    await client.reply(message, result.stdout)
    logger.info(f"Sending schedule to {message.sender}")
