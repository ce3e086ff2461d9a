"""Tests for command handlers."""

import asyncio
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FakeClient, make_message
from engine.client import BridgeError, IncomingMessage


def _write_log(path, count):
    lines = [f"2026-10-19 10:00:{i:02d} - wabot.app - INFO - line {i}" for i in range(count)]
    path.write_text("\n\n" + "\n".join(lines) + "\n\n")
    return lines


def test_logs_short_file_returns_everything():
    from handlers import handle_logs

    with tempfile.TemporaryDirectory() as tmpdir:
        log_file = Path(tmpdir) / "status.log"
        lines = _write_log(log_file, 4)

        client = FakeClient()
        with patch("handlers.STATUS_LOG_FILE", log_file):
            asyncio.run(handle_logs(client, make_message("!logs", msg_id="m1")))

    assert client.replies == [("m1", "\n".join(lines))]


def test_logs_long_file_returns_last_ten_in_order():
    from handlers import handle_logs

    with tempfile.TemporaryDirectory() as tmpdir:
        log_file = Path(tmpdir) / "status.log"
        lines = _write_log(log_file, 25)

        client = FakeClient()
        with patch("handlers.STATUS_LOG_FILE", log_file):
            asyncio.run(handle_logs(client, make_message("!logs")))

    reply = client.replies[0][1]
    assert reply.split("\n") == lines[-10:]


def test_logs_missing_file_is_silent():
    from handlers import handle_logs

    with tempfile.TemporaryDirectory() as tmpdir:
        client = FakeClient()
        with patch("handlers.STATUS_LOG_FILE", Path(tmpdir) / "nope.log"):
            asyncio.run(handle_logs(client, make_message("!logs")))

    assert client.replies == []


def test_delete_not_own_message_does_nothing():
    from handlers import handle_delete_message

    client = FakeClient()
    client.stored["abc123"] = IncomingMessage(body="hi", sender="other@c.us", id="abc123", from_me=False)

    asyncio.run(handle_delete_message(client, make_message("!deleteMessage,abc123")))

    assert client.deleted == []
    assert client.replies == []


def test_delete_own_message_deletes_and_confirms():
    from handlers import handle_delete_message

    client = FakeClient()
    client.stored["abc123"] = IncomingMessage(body="hi", sender="me@c.us", id="abc123", from_me=True)

    asyncio.run(handle_delete_message(client, make_message("!deleteMessage,abc123", msg_id="cmd")))

    assert client.deleted == [("abc123", True)]
    assert len(client.replies) == 1
    assert client.replies[0][0] == "cmd"
    assert "abc123" in client.replies[0][1]


def test_delete_lookup_failure_is_logged_only():
    from handlers import handle_delete_message

    client = FakeClient()
    client.lookup_error = BridgeError("Bridge returned 500")

    asyncio.run(handle_delete_message(client, make_message("!deleteMessage,abc123")))

    assert client.deleted == []
    assert client.replies == []


def test_delete_unknown_and_empty_ids():
    from handlers import handle_delete_message

    client = FakeClient()
    asyncio.run(handle_delete_message(client, make_message("!deleteMessage,missing")))
    asyncio.run(handle_delete_message(client, make_message("!deleteMessage,")))

    assert client.deleted == []
    assert client.replies == []


def test_extract_message_id_takes_everything_after_first_comma():
    from handlers import extract_message_id

    assert extract_message_id("!deleteMessage,abc123") == "abc123"
    assert extract_message_id("!deleteMessage,true_123@c.us_ABC,x") == "true_123@c.us_ABC,x"
    assert extract_message_id("!deleteMessage,") == ""


def test_schedule_replies_with_stdout():
    from handlers import handle_schedule

    command = [sys.executable, "-c", "print('Senin: 08:00 Rapat')"]
    client = FakeClient()
    with patch("handlers.SCHEDULE_COMMAND", command):
        asyncio.run(handle_schedule(client, make_message("!jadwaldeo", msg_id="m9")))

    assert len(client.replies) == 1
    assert client.replies[0][0] == "m9"
    assert client.replies[0][1].strip() == "Senin: 08:00 Rapat"


def test_schedule_failure_sends_nothing():
    from handlers import handle_schedule

    command = [sys.executable, "-c", "import sys; print('partial'); sys.exit(2)"]
    client = FakeClient()
    with patch("handlers.SCHEDULE_COMMAND", command):
        asyncio.run(handle_schedule(client, make_message("!jadwaldeo")))

    assert client.replies == []


def test_schedule_timeout_sends_nothing():
    from handlers import handle_schedule

    command = [sys.executable, "-c", "import time; time.sleep(10)"]
    client = FakeClient()
    with patch("handlers.SCHEDULE_COMMAND", command), \
         patch("handlers.SCHEDULE_TIMEOUT", 0.5):
        asyncio.run(handle_schedule(client, make_message("!jadwaldeo")))

    assert client.replies == []


def test_schedule_empty_output_sends_and_logs_nothing(caplog):
    from handlers import handle_schedule

    command = [sys.executable, "-c", "pass"]
    client = FakeClient()
    with caplog.at_level("INFO", logger="wabot.handlers"), \
         patch("handlers.SCHEDULE_COMMAND", command):
        asyncio.run(handle_schedule(client, make_message("!jadwaldeo")))

    assert client.replies == []
    assert "Sending schedule" not in caplog.text
    assert "produced no output" in caplog.text
