"""Process-local in-memory room table.

The store is an explicitly constructed object owned by the hosting app
(``app.state.store``) rather than a module-level singleton, so tests can build
as many isolated stores as they need and the table could later be moved to an
external cache without touching call sites.

Locking: a table lock guards the room and lock maps; each room has its own
re-entrant lock that is held for the whole read-compute-write of a mutation
(and for snapshot reads). Rooms never block each other.
"""
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .constants import RECOVERED_ROOM_NAME
from .logging_config import get_logger
from .room import Room
from .schemas import RoomInfoResponse, RoomState
from .utils import generate_room_code, is_valid_room_code

logger = get_logger(__name__)

DEFAULT_ROOM_TTL_SEC = 30 * 60


class RoomStore:
    def __init__(
        self,
        ttl_sec: float = DEFAULT_ROOM_TTL_SEC,
        clock: Callable[[], float] = time.time,
        code_factory: Callable[[], str] = generate_room_code,
    ):
        self.ttl_sec = ttl_sec
        self.clock = clock
        self._code_factory = code_factory
        self._rooms: Dict[str, Room] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._table_lock = threading.Lock()

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._rooms)

    def room_ids(self) -> List[str]:
        with self._table_lock:
            return list(self._rooms)

    # ---------------------------------------------------------------------
    # Creation / lookup
    # ---------------------------------------------------------------------

    def create_room(self, name: str) -> str:
        self.delete_expired()
        now = self.clock()
        with self._table_lock:
            room_id = self._code_factory()
            while room_id in self._rooms:
                logger.debug(f"Room code collision on {room_id}, regenerating")
                room_id = self._code_factory()
            self._insert(Room(room_id, name, now))
            total = len(self._rooms)
        logger.info(f"Created room {room_id} ({name!r}); {total} live rooms")
        return room_id

    def room_exists(self, room_id: str) -> bool:
        self.delete_expired()
        with self._table_lock:
            exists = room_id in self._rooms
        logger.debug(f"Room exists check: {room_id} -> {exists}")
        return exists

    def recover_room(self, room_id: str, name: Optional[str] = None) -> bool:
        """Recreate an empty room under a well-formed code lost to a restart.

        Returns False if the room is already live or the code is malformed.
        """
        if not is_valid_room_code(room_id):
            return False
        now = self.clock()
        with self._table_lock:
            if room_id in self._rooms:
                return False
            self._insert(Room(room_id, name or RECOVERED_ROOM_NAME, now))
        logger.info(f"Recovered room {room_id}")
        return True

    def get_room_snapshot(self, room_id: str) -> Optional[RoomState]:
        with self.lock(room_id) as room:
            if room is None:
                return None
            return room.snapshot(self.clock())

    def get_room_info(self, room_id: str) -> Optional[RoomInfoResponse]:
        with self.lock(room_id) as room:
            if room is None:
                return None
            story = room.current_story
            return RoomInfoResponse(
                room_id=room.room_id,
                name=room.name,
                participant_count=len(room.participants),
                current_story=story.model_copy(deep=True) if story else None,
                revealed=room.revealed,
            )

    @contextmanager
    def lock(self, room_id: str) -> Iterator[Optional[Room]]:
        """Hold *room_id*'s lock and yield the room, or ``None`` if it is unknown.

        If the room was reaped (and possibly recovered under a fresh lock)
        while we waited, the stale lock is dropped and the lookup retried.
        """
        while True:
            with self._table_lock:
                room_lock = self._locks.get(room_id)
            if room_lock is None:
                yield None
                return
            with room_lock:
                with self._table_lock:
                    current = self._locks.get(room_id) is room_lock
                    room = self._rooms.get(room_id) if current else None
                if current:
                    yield room
                    return
            logger.debug(f"Lock for room {room_id} replaced while waiting, retrying")

    # ---------------------------------------------------------------------
    # Expiry
    # ---------------------------------------------------------------------

    def delete_expired(self, now: Optional[float] = None) -> List[str]:
        """Remove every room idle for longer than the TTL; return the removed codes."""
        now = self.clock() if now is None else now
        removed: List[str] = []
        with self._table_lock:
            for room_id, room in list(self._rooms.items()):
                if not room.is_expired(now, self.ttl_sec):
                    continue
                room_lock = self._locks[room_id]
                # Held by a mutation in another thread; skip it this round
                if not room_lock.acquire(blocking=False):
                    continue
                try:
                    del self._rooms[room_id]
                    del self._locks[room_id]
                finally:
                    room_lock.release()
                removed.append(room_id)
        for room_id in removed:
            logger.info(f"Cleaning up expired room: {room_id}")
        return removed

    def _insert(self, room: Room) -> None:
        # Caller holds the table lock
        self._rooms[room.room_id] = room
        self._locks[room.room_id] = threading.RLock()


__all__ = ["DEFAULT_ROOM_TTL_SEC", "RoomStore"]
