"""
Supervisor - Messaging client lifecycle with bounded connect retries.

Only one retry sequence runs at a time. Error and disconnect signals that
arrive while a sequence is in flight join it instead of starting another.
"""
import asyncio
import inspect
import io
import logging
import sys
from typing import Awaitable, Callable, Optional

import qrcode

from config import MAX_RETRIES, RETRY_DELAY, INIT_TIMEOUT, EXIT_ON_RETRY_EXHAUSTED
from connection_manager import (
    ConnectionState, with_timeout, record_success, record_failure, record_disconnect,
    get_connection_status,
)

logger = logging.getLogger("wabot.supervisor")


def render_qr(data: str) -> str:
    """Render a login QR payload as a terminal block (small, half-height)."""
    code = qrcode.QRCode(border=1)
    code.add_data(data)
    code.make(fit=True)
    out = io.StringIO()
    code.print_ascii(out=out, invert=True)
    return out.getvalue()


class ClientSupervisor:
    def __init__(self, client, max_attempts: int = MAX_RETRIES, retry_delay: float = RETRY_DELAY,
                 init_timeout: float = INIT_TIMEOUT, exit_on_exhausted: bool = EXIT_ON_RETRY_EXHAUSTED,
                 on_exhausted: Optional[Callable] = None,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.init_timeout = init_timeout
        self.exit_on_exhausted = exit_on_exhausted
        self._on_exhausted = on_exhausted
        self._sleep = sleep
        self.state = ConnectionState()
        self._inflight: Optional[asyncio.Future] = None
        self._start_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def retrying(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def status(self) -> dict:
        status = get_connection_status(self.state)
        status["ready"] = self.client.ready
        return status

    async def connect_with_retry(self, max_attempts: Optional[int] = None,
                                 retry_delay: Optional[float] = None) -> bool:
        """Bring the client up, retrying on failure.

        retry_delay is in seconds (the default 5.0 matches a 5000 ms delay).
        Returns True once initialize() succeeds, False when attempts run out.
        Never raises for initialize failures. A call made while a sequence is
        already running waits on that sequence and returns its result.
        """
        if self._stopped:
            return False
        if self.retrying:
            logger.info("Retry sequence already in progress, waiting on it")
            return await asyncio.shield(self._inflight)

        attempts_allowed = max_attempts if max_attempts is not None else self.max_attempts
        delay = retry_delay if retry_delay is not None else self.retry_delay
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")

        self._inflight = asyncio.ensure_future(self._retry_sequence(attempts_allowed, delay))
        return await asyncio.shield(self._inflight)

    async def _retry_sequence(self, max_attempts: int, retry_delay: float) -> bool:
        self.state.retrying = True
        self.state.total_sequences += 1
        attempts = 0
        try:
            while attempts < max_attempts:
                try:
                    await with_timeout(self.client.initialize(), self.init_timeout)
                except Exception as e:
                    attempts += 1
                    record_failure(self.state, e)
                    logger.warning(
                        f"Client initialization failed (attempt {attempts}/{max_attempts}): {e}"
                    )
                    if attempts < max_attempts:
                        await self._sleep(retry_delay)
                    continue

                record_success(self.state)
                logger.info("Client initialized successfully!")
                return True

            self.state.exhausted = True
            if self.exit_on_exhausted:
                logger.critical("Max retries reached. Shutting down.")
                await self._notify_exhausted()
            else:
                logger.error("Max retries reached. Server remains running.")
            return False
        finally:
            self.state.retrying = False

    async def _notify_exhausted(self) -> None:
        if self._on_exhausted is None:
            return
        try:
            result = self._on_exhausted()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.exception(f"Exhaustion callback failed: {e}")

    # ── Client signals ───────────────────────────────────────

    def attach(self) -> None:
        """Register lifecycle handlers on the client's event dispatcher."""
        events = self.client.events
        events.on("qr", self.on_qr)
        events.on("loading_screen", self.on_loading_screen)
        events.on("authenticated", self.on_authenticated)
        events.on("auth_failure", self.on_auth_failure)
        events.on("ready", self.on_ready)
        events.on("disconnected", self.on_disconnected)
        events.on("error", self.on_error)

    def on_qr(self, qr) -> None:
        if not qr:
            logger.warning("QR event without a payload")
            return
        logger.info("QR code received, scan it with WhatsApp to log in")
        sys.stdout.write(render_qr(qr))
        sys.stdout.flush()

    def on_loading_screen(self, percent, message) -> None:
        logger.info(f"Loading: {percent}% - {message}")

    def on_authenticated(self) -> None:
        logger.info("Client authenticated!")

    def on_auth_failure(self, message=None) -> None:
        logger.error(f"Authentication failure!{f' {message}' if message else ''}")

    def on_ready(self) -> None:
        logger.info("WhatsApp API is ready to use!")

    async def on_disconnected(self, reason=None) -> None:
        record_disconnect(self.state)
        logger.warning(f"Client disconnected!{f' ({reason})' if reason else ''}")
        await self.connect_with_retry()

    async def on_error(self, error) -> None:
        logger.error(f"Client error: {error}")
        await self.connect_with_retry()

    # ── Start / stop ─────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Kick off the first retry sequence in the background."""
        self._start_task = asyncio.create_task(self.connect_with_retry())
        return self._start_task

    async def stop(self) -> None:
        self._stopped = True
        for task in (self._inflight, self._start_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self.state.retrying = False
        logger.info("Supervisor stopped")
