from __future__ import annotations

import asyncio
from typing import List, Optional

from .logging_config import get_logger
from .store import RoomStore

logger = get_logger(__name__)

DEFAULT_REAP_INTERVAL_SEC = 30 * 60


class RoomReaper:
    """Periodically deletes rooms idle past the store's TTL.

    Deletion is silent: an idle room is assumed to have nobody left listening.
    """

    def __init__(self, store: RoomStore, interval_sec: float = DEFAULT_REAP_INTERVAL_SEC):
        self.store = store
        self.interval_sec = interval_sec
        self.task: Optional[asyncio.Task] = None

    def sweep(self) -> List[str]:
        removed = self.store.delete_expired()
        if removed:
            logger.info(f"Reaper removed {len(removed)} idle rooms; {len(self.store)} remain")
        return removed

    async def run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_sec)
                try:
                    self.sweep()
                except Exception:
                    logger.exception("Room sweep failed")
        except asyncio.CancelledError:
            pass

    def start(self) -> asyncio.Task:
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self.run())
            logger.info(f"Room reaper started (interval={self.interval_sec}s, ttl={self.store.ttl_sec}s)")
        return self.task

    async def stop(self) -> None:
        if self.task is None:
            return
        self.task.cancel()
        await asyncio.gather(self.task, return_exceptions=True)
        self.task = None


__all__ = ["DEFAULT_REAP_INTERVAL_SEC", "RoomReaper"]
