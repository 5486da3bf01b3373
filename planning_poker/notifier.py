"""Fan-out of post-mutation room snapshots to connected clients.

The engine only knows the ``Broadcaster`` interface. ``ConnectionHub`` is the
in-process WebSocket implementation used by the bundled app; a hosted pub/sub
service can be plugged in instead by implementing the same method.
"""
from __future__ import annotations

from typing import Dict, Protocol, Set

from fastapi import WebSocket

from .logging_config import get_logger

logger = get_logger(__name__)


class Broadcaster(Protocol):
    async def broadcast(self, channel: str, event: str, payload: dict) -> None:
        ...


class ConnectionHub:
    """Tracks WebSocket subscribers per channel and pushes events to them."""

    def __init__(self) -> None:
        self.channels: Dict[str, Set[WebSocket]] = {}

    def subscribe(self, channel: str, ws: WebSocket) -> None:
        self.channels.setdefault(channel, set()).add(ws)
        logger.debug(f"Subscriber added to {channel}; {len(self.channels[channel])} connected")

    def unsubscribe(self, channel: str, ws: WebSocket) -> None:
        subscribers = self.channels.get(channel)
        if not subscribers:
            return
        subscribers.discard(ws)
        if not subscribers:
            self.channels.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        return len(self.channels.get(channel, ()))

    async def broadcast(self, channel: str, event: str, payload: dict) -> None:
        """Send ``{"type": event, "data": payload}`` to every subscriber of *channel*."""
        message = {"type": event, "data": payload}
        for ws in list(self.channels.get(channel, ())):
            try:
                await ws.send_json(message)
            except Exception as exc:
                # Client went away without a clean close
                logger.debug(f"Dropping subscriber on {channel}: {exc}")
                self.unsubscribe(channel, ws)


async def dispatch(broadcaster: Broadcaster, channel: str, event: str, payload: dict) -> None:
    """Publish after a mutation has committed. Failures are logged, never raised."""
    try:
        await broadcaster.broadcast(channel, event, payload)
    except Exception as exc:
        logger.error(f"Failed to broadcast {event} on {channel}: {exc}", exc_info=True)


__all__ = ["Broadcaster", "ConnectionHub", "dispatch"]
