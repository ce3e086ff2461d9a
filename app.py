#!/usr/bin/env python3
"""
wabot - WhatsApp command bot with an HTTP API

Starts the HTTP surface, connects the WhatsApp bridge session with retries,
and routes chat commands to their handlers until SIGINT/SIGTERM.
"""
import asyncio
import logging
import signal
import sys

from config import (
    HOST, PORT, PUBLIC_URL, BRIDGE_URL, BRIDGE_API_KEY, BRIDGE_WEBHOOK_SECRET,
    BRIDGE_TIMEOUT, SESSION_NAME, SESSION_DIR, MAX_RETRIES, RETRY_DELAY,
    INIT_TIMEOUT, EXIT_ON_RETRY_EXHAUSTED, JSON_BODY_LIMIT, TEXT_BODY_LIMIT,
)
from status_log import setup_logging
from supervisor import ClientSupervisor
from engine import router
from engine.client import BridgeClient
from engine.webhooks import PortInUseError, create_app, start_server

logger = logging.getLogger("wabot.app")


async def main() -> int:
    setup_logging()

    shutdown = asyncio.Event()
    exit_code = 0

    def request_exit():
        nonlocal exit_code
        exit_code = 1
        shutdown.set()

    client = BridgeClient(
        BRIDGE_URL,
        session_name=SESSION_NAME,
        webhook_url=f"{PUBLIC_URL.rstrip('/')}/events",
        api_key=BRIDGE_API_KEY,
        session_dir=SESSION_DIR,
        timeout=BRIDGE_TIMEOUT,
    )
    supervisor = ClientSupervisor(
        client,
        max_attempts=MAX_RETRIES,
        retry_delay=RETRY_DELAY,
        init_timeout=INIT_TIMEOUT,
        exit_on_exhausted=EXIT_ON_RETRY_EXHAUSTED,
        on_exhausted=request_exit,
    )
    supervisor.attach()
    router.attach(client)

    # Start server immediately; the bridge reports readiness through it
    app = create_app(
        client, supervisor,
        json_body_limit=JSON_BODY_LIMIT,
        text_body_limit=TEXT_BODY_LIMIT,
        webhook_secret=BRIDGE_WEBHOOK_SECRET,
    )
    try:
        runner = await start_server(app, HOST, PORT)
    except PortInUseError:
        logger.error(f"Port {PORT} is already in use. Exiting...")
        await client.close()
        return 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            pass  # Windows

    supervisor.start()

    try:
        await shutdown.wait()
    finally:
        logger.info("Shutting down...")
        await supervisor.stop()
        await client.events.drain()
        await runner.cleanup()
        await client.close()
        logger.info("Shutdown complete.")

    return exit_code


def run():
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
