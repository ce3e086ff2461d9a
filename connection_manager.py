"""
wabot Connection Manager - Connection bookkeeping for the messaging client

Features:
- Connection state tracking
- Success/failure recording
- Timeouts around client calls
- Status snapshot for the HTTP surface
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

import pytz
from config import TIMEZONE

logger = logging.getLogger("wabot.connection")

CONNECTION_TIMEOUT = 30  # seconds


class ConnectionState:
    """Track connection state."""

    def __init__(self):
        self.connected: bool = False
        self.exhausted: bool = False
        self.retrying: bool = False
        self.last_success: Optional[datetime] = None
        self.last_failure: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.consecutive_failures: int = 0
        self.total_failures: int = 0
        self.total_sequences: int = 0


def _now() -> datetime:
    return datetime.now(pytz.timezone(TIMEZONE))


async def with_timeout(coro, timeout: float = CONNECTION_TIMEOUT):
    """Execute a coroutine with timeout."""
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        raise TimeoutError(f"Operation timed out after {timeout}s")


def record_success(state: ConnectionState) -> None:
    """Record a successful initialization."""
    state.connected = True
    state.exhausted = False
    state.last_success = _now()
    state.consecutive_failures = 0
    state.last_error = None


def record_failure(state: ConnectionState, error: Optional[BaseException] = None) -> None:
    """Record a failed initialization."""
    state.connected = False
    state.last_failure = _now()
    state.consecutive_failures += 1
    state.total_failures += 1
    if error is not None:
        state.last_error = str(error) or type(error).__name__


def record_disconnect(state: ConnectionState) -> None:
    state.connected = False


def get_connection_status(state: ConnectionState) -> dict:
    """Get a JSON-friendly view of the connection state."""
    return {
        "connected": state.connected,
        "retrying": state.retrying,
        "exhausted": state.exhausted,
        "consecutive_failures": state.consecutive_failures,
        "total_failures": state.total_failures,
        "total_sequences": state.total_sequences,
        "last_error": state.last_error,
        "last_success": state.last_success.isoformat() if state.last_success else None,
        "last_failure": state.last_failure.isoformat() if state.last_failure else None,
    }
