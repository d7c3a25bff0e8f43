"""Realtime channel for live question events"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import socketio

logger = logging.getLogger(__name__)

# Inbound events
QUESTION_CREATED = "question:new"
QUESTION_UPDATED = "question:update"

# Room membership control messages
ROOM_JOIN = "room:join"
ROOM_LEAVE = "room:leave"

EventHandler = Callable[[Any], None]


class RealtimeChannel(ABC):
    """An explicitly owned handle on the marketplace broadcast channel.

    Callers open and close it, join and leave topic rooms, and register
    handlers for inbound events. Membership control is fire-and-forget.
    """

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def join(self, topic: str) -> None: ...

    @abstractmethod
    async def leave(self, topic: str) -> None: ...

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None: ...

    @abstractmethod
    def off(self, event: str, handler: EventHandler) -> None: ...

    @property
    @abstractmethod
    def is_open(self) -> bool: ...


class SocketIOChannel(RealtimeChannel):
    """Socket.IO implementation of the realtime channel"""

    def __init__(
        self,
        url: str,
        token: str = "",
        client: socketio.AsyncClient | None = None,
    ):
        self.url = url
        self.token = token
        self._sio = client or socketio.AsyncClient(reconnection=True)
        self._handlers: dict[str, list[EventHandler]] = {}
        self._rooms: set[str] = set()

        self._sio.on("connect", self._on_connect)
        self._sio.on("disconnect", self._on_disconnect)

    @property
    def is_open(self) -> bool:
        return bool(self._sio.connected)

    @property
    def rooms(self) -> set[str]:
        return self._rooms.copy()

    async def open(self) -> None:
        """Connect to the Socket.IO server"""
        if self.is_open:
            return

        logger.info(f"Connecting realtime channel to {self.url}")
        await self._sio.connect(
            self.url,
            transports=["websocket", "polling"],
            auth={"token": self.token} if self.token else None,
        )

    async def close(self) -> None:
        """Disconnect and forget all room memberships"""
        self._rooms.clear()
        if self.is_open:
            await self._sio.disconnect()
        logger.info("Realtime channel closed")

    async def join(self, topic: str) -> None:
        if not topic.strip() or topic in self._rooms:
            return
        self._rooms.add(topic)
        if self.is_open:
            await self._sio.emit(ROOM_JOIN, topic)
        logger.debug(f"Joined room {topic}")

    async def leave(self, topic: str) -> None:
        if topic not in self._rooms:
            return
        self._rooms.discard(topic)
        if self.is_open:
            await self._sio.emit(ROOM_LEAVE, topic)
        logger.debug(f"Left room {topic}")

    def on(self, event: str, handler: EventHandler) -> None:
        if event not in self._handlers:
            self._handlers[event] = []
            self._sio.on(event, self._dispatcher(event))
        self._handlers[event].append(handler)

    def off(self, event: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def _dispatcher(self, event: str) -> Callable[[Any], None]:
        def dispatch(payload: Any = None) -> None:
            for handler in list(self._handlers.get(event, [])):
                try:
                    handler(payload)
                except Exception as e:
                    logger.error(f"Handler for {event} failed: {e}", exc_info=True)

        return dispatch

    async def _on_connect(self) -> None:
        # The server forgets room membership across reconnects
        for topic in sorted(self._rooms):
            await self._sio.emit(ROOM_JOIN, topic)
        logger.info(f"Realtime channel connected, {len(self._rooms)} rooms restored")

    def _on_disconnect(self, *args) -> None:
        logger.warning("Realtime channel disconnected")

    def __repr__(self) -> str:
        return f"SocketIOChannel(url='{self.url}')"
