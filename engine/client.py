"""
wabot — Messaging Client Layer
A thin client for the WhatsApp bridge service, plus the abstract base the
rest of the bot talks to. The bridge owns the browser session and auth state;
this side only issues REST calls and receives events.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from engine.events import EventDispatcher, EVENTS

logger = logging.getLogger("wabot.client")


class BridgeError(Exception):
    """Raised when the bridge rejects a call or can't be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass
class IncomingMessage:
    """A chat message as delivered by the bridge."""
    body: str
    sender: str
    id: str
    from_me: bool = False
    timestamp: Optional[int] = None

    @classmethod
    def from_payload(cls, data: dict) -> "IncomingMessage":
        msg_id = data.get("id", "")
        if isinstance(msg_id, dict):
            # whatsapp-web.js style id objects
            msg_id = msg_id.get("_serialized") or msg_id.get("id", "")
        return cls(
            body=data.get("body") or "",
            sender=data.get("from") or data.get("sender") or "",
            id=str(msg_id),
            from_me=bool(data.get("fromMe", data.get("from_me", False))),
            timestamp=data.get("timestamp"),
        )


class MessagingClient(ABC):
    """Base class for a chat account connection."""

    def __init__(self):
        self.events = EventDispatcher()
        self.ready: bool = False

    @abstractmethod
    async def initialize(self) -> None:
        """Bring the session up. Raises on failure."""
        ...

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> Optional[str]:
        """Send text to a chat. Returns the new message id if known."""
        ...

    @abstractmethod
    async def reply(self, message: IncomingMessage, text: str) -> None:
        ...

    @abstractmethod
    async def get_message_by_id(self, message_id: str) -> Optional[IncomingMessage]:
        ...

    @abstractmethod
    async def delete_message(self, message_id: str, everyone: bool = True) -> None:
        ...

    async def close(self) -> None:
        pass

    def feed_event(self, event: str, payload: Any = None):
        """Translate a raw event payload into handler arguments and dispatch it.

        Returns the background task running the handlers.
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}")

        data = payload if isinstance(payload, dict) else {}

        if event == "ready":
            self.ready = True
            args = ()
        elif event == "disconnected":
            self.ready = False
            args = (data.get("reason") or (payload if isinstance(payload, str) else None),)
        elif event == "qr":
            args = (data.get("qr") if data else payload,)
        elif event == "loading_screen":
            args = (data.get("percent"), data.get("message"))
        elif event == "auth_failure":
            args = (data.get("message") or (payload if isinstance(payload, str) else None),)
        elif event == "error":
            message = data.get("message") or (payload if isinstance(payload, str) else "Unknown error")
            args = (BridgeError(message),)
        elif event == "message":
            args = (IncomingMessage.from_payload(data),)
        else:
            args = ()

        return self.events.dispatch(event, *args)


class BridgeClient(MessagingClient):
    """Messaging client backed by the WhatsApp bridge REST API."""

    def __init__(
        self,
        base_url: str,
        session_name: str = "default",
        webhook_url: Optional[str] = None,
        api_key: Optional[str] = None,
        session_dir: Optional[str] = None,
        timeout: float = 30.0,
    ):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.session_name = session_name
        self.webhook_url = webhook_url
        self.api_key = api_key
        self.session_dir = session_dir
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
            self._session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    def _url(self, path: str) -> str:
        return f"{self.base_url}/sessions/{self.session_name}{path}"

    async def _request(self, method: str, path: str, *, json: Optional[dict] = None,
                       params: Optional[dict] = None, allow_404: bool = False) -> Any:
        session = self._get_session()
        try:
            async with session.request(method, self._url(path), json=json, params=params) as response:
                if allow_404 and response.status == 404:
                    return None
                if response.status >= 400:
                    detail = (await response.text())[:200]
                    raise BridgeError(f"Bridge returned {response.status}: {detail}", status=response.status)
                if response.content_type == "application/json":
                    return await response.json()
                return await response.text()
        except aiohttp.ClientError as e:
            raise BridgeError(f"Bridge unreachable: {e}") from e
        except asyncio.TimeoutError as e:
            raise BridgeError(f"Bridge timed out after {self.timeout}s") from e

    async def initialize(self) -> None:
        payload = {"webhook": self.webhook_url}
        if self.session_dir:
            payload["dataPath"] = self.session_dir
        await self._request("POST", "/start", json=payload)
        logger.info(f"Bridge session '{self.session_name}' started")

    async def send_message(self, chat_id: str, text: str) -> Optional[str]:
        result = await self._request("POST", f"/chats/{chat_id}/messages", json={"text": text})
        if isinstance(result, dict):
            return result.get("id")
        return None

    async def reply(self, message: IncomingMessage, text: str) -> None:
        await self._request("POST", f"/messages/{message.id}/reply", json={"text": text})

    async def get_message_by_id(self, message_id: str) -> Optional[IncomingMessage]:
        result = await self._request("GET", f"/messages/{message_id}", allow_404=True)
        if not isinstance(result, dict):
            return None
        return IncomingMessage.from_payload(result)

    async def delete_message(self, message_id: str, everyone: bool = True) -> None:
        await self._request(
            "DELETE", f"/messages/{message_id}",
            params={"everyone": "true" if everyone else "false"},
        )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self.ready = False
