"""Tests for connection bookkeeping."""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


def test_failure_then_success():
    from connection_manager import (
        ConnectionState, record_failure, record_success, record_disconnect, get_connection_status,
    )

    state = ConnectionState()
    record_failure(state, RuntimeError("net::ERR_CONNECTION_REFUSED"))
    record_failure(state, RuntimeError(""))

    status = get_connection_status(state)
    assert status["connected"] is False
    assert status["consecutive_failures"] == 2
    assert status["last_error"] == "RuntimeError"
    assert status["last_failure"] is not None

    record_success(state)
    status = get_connection_status(state)
    assert status["connected"] is True
    assert status["consecutive_failures"] == 0
    assert status["total_failures"] == 2
    assert status["last_error"] is None

    record_disconnect(state)
    assert state.connected is False
    assert "ready" not in get_connection_status(state)


def test_with_timeout():
    from connection_manager import with_timeout

    async def slow():
        await asyncio.sleep(1)

    async def fast():
        return "ok"

    assert asyncio.run(with_timeout(fast(), timeout=1)) == "ok"
    with pytest.raises(TimeoutError):
        asyncio.run(with_timeout(slow(), timeout=0.01))
