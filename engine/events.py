"""
wabot — Client Event Dispatcher
A fixed set of named client events, each delivered to its registered handlers.
One handler failing never stops the others or the bot.
"""
import asyncio
import inspect
import logging
from typing import Callable, Dict, List, Set

logger = logging.getLogger("wabot.events")

EVENTS = frozenset({
    "qr",
    "loading_screen",
    "authenticated",
    "auth_failure",
    "ready",
    "disconnected",
    "error",
    "message",
})


class EventDispatcher:
    """Routes client lifecycle and message events to handlers."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {name: [] for name in EVENTS}
        self._tasks: Set[asyncio.Task] = set()

    def on(self, event: str, handler: Callable) -> Callable:
        """Register a handler (sync or async) for a named event."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._handlers[event].append(handler)
        return handler

    async def emit(self, event: str, *args) -> None:
        """Run every handler for `event` in registration order."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")

        for handler in list(self._handlers[event]):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception(f"Handler for '{event}' failed: {e}")

    def dispatch(self, event: str, *args) -> asyncio.Task:
        """Schedule emit() in the background and keep a reference to the task."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")
        task = asyncio.create_task(self.emit(event, *args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for all background dispatches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
