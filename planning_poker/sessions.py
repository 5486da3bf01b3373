"""Join resolution keyed on the client-held session identity.

A join is one of:

* a reconnect: some participant already holds the caller's session id, so that
  record is updated in place (name, ready flag, join time);
* a duplicate retry: same as a reconnect but arriving within the duplicate
  window of the previous join, so nothing changes at all;
* a new participant: no record holds the session id (or none was supplied).

Display names are never compared. Two people called "Alice", or one person in
a normal and a private browser window, must end up as two participants.
"""
from __future__ import annotations

from typing import NamedTuple, Optional

from .logging_config import get_logger
from .room import Room
from .schemas import Participant
from .utils import new_participant_id, new_session_id

logger = get_logger(__name__)

DEFAULT_DUPLICATE_JOIN_WINDOW_SEC = 1.0


class JoinResult(NamedTuple):
    participant: Participant
    is_new: bool
    is_duplicate: bool = False


def resolve_join(
    room: Room,
    name: str,
    session_id: Optional[str],
    now: float,
    duplicate_window_sec: float = DEFAULT_DUPLICATE_JOIN_WINDOW_SEC,
) -> JoinResult:
    """Apply a join for *name* / *session_id* to *room* and describe what happened.

    The caller must hold the room's lock.
    """
    existing = room.participant_by_session(session_id)

    if existing is not None and now - existing.joined_at < duplicate_window_sec:
        logger.debug(f"Ignoring rapid duplicate join for session {session_id} in room {room.room_id}")
        return JoinResult(existing, is_new=False, is_duplicate=True)

    if existing is not None:
        existing.name = name
        existing.is_ready = False
        existing.joined_at = now
        participant = existing
        is_new = False
        logger.info(f"Participant {participant.id} reconnected to room {room.room_id}")
    else:
        participant = Participant(
            id=new_participant_id(),
            name=name,
            joined_at=now,
            session_id=session_id or new_session_id(),
        )
        is_new = True

    if session_id:
        stale = room.purge_session_duplicates(session_id, participant.id)
        if stale:
            logger.info(f"Cleaned up stale participants {stale} for session {session_id}")

    room.add_participant(participant)
    return JoinResult(room.participants[participant.id], is_new=is_new)


__all__ = ["DEFAULT_DUPLICATE_JOIN_WINDOW_SEC", "JoinResult", "resolve_join"]
