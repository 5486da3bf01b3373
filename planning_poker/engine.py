"""Atomic state transitions over a single room.

Every operation takes the room's lock from ``RoomStore``, applies one
transition, refreshes the room's last-activity timestamp and releases the
lock. Expected failures (unknown room, unknown participant, no active story,
denied by policy) are reported by returning ``False`` / ``None``; nothing here
raises for them.

State machine per room::

    empty --submit_story--> voting --reveal/timer--> revealed
    revealed --reset--> voting (same story, new round)
    voting|revealed --clear_story_and_reset--> empty
"""
from __future__ import annotations

import math
from typing import Callable, Optional

from .constants import (
    ACTION_CLEAR,
    ACTION_REVEAL,
    ACTION_RESET,
    ACTION_SUBMIT_ESTIMATE,
    ACTION_SUBMIT_STORY,
    UNKNOWN_ESTIMATE,
)
from .logging_config import get_logger
from .room import Room
from .schemas import Participant, Story
from .sessions import DEFAULT_DUPLICATE_JOIN_WINDOW_SEC, JoinResult, resolve_join
from .store import RoomStore
from .timer import DEFAULT_VOTING_DURATION_SEC

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Permission policies
# ---------------------------------------------------------------------------

Policy = Callable[[str, Optional[Participant], Room], bool]


def allow_all(action: str, participant: Optional[Participant], room: Room) -> bool:
    """Egalitarian rooms: anyone may perform any action."""
    return True


def moderator_only(action: str, participant: Optional[Participant], room: Room) -> bool:
    """Only the moderator (first joiner) may steer the round; anyone may vote."""
    if action == ACTION_SUBMIT_ESTIMATE:
        return True
    return participant is not None and participant.id == room.moderator_id


def is_valid_estimate(value: float) -> bool:
    return value == UNKNOWN_ESTIMATE or (math.isfinite(value) and value >= 0)


class RoomSessionEngine:
    def __init__(
        self,
        store: RoomStore,
        voting_duration_sec: int = DEFAULT_VOTING_DURATION_SEC,
        duplicate_join_window_sec: float = DEFAULT_DUPLICATE_JOIN_WINDOW_SEC,
        policy: Policy = allow_all,
    ):
        self.store = store
        self.voting_duration_sec = voting_duration_sec
        self.duplicate_join_window_sec = duplicate_join_window_sec
        self.policy = policy

    def _now(self) -> float:
        return self.store.clock()

    def _permitted(self, action: str, room: Room, actor_id: Optional[str]) -> bool:
        actor = room.participants.get(actor_id) if actor_id else None
        if self.policy(action, actor, room):
            return True
        logger.warning(f"Policy denied {action} by {actor_id} in room {room.room_id}")
        return False

    # -------------------- Participants -------------------- #

    def join(self, room_id: str, name: str, session_id: Optional[str] = None) -> Optional[JoinResult]:
        """Resolve and apply a join in one critical section."""
        with self.store.lock(room_id) as room:
            if room is None:
                return None
            now = self._now()
            result = resolve_join(room, name, session_id, now, self.duplicate_join_window_sec)
            if not result.is_duplicate:
                room.touch(now)
            return result._replace(participant=result.participant.model_copy())

    def add_participant(self, room_id: str, participant: Participant) -> bool:
        """Insert or merge *participant* by id.

        Session identity is not checked here: callers adding a participant
        with a ``session_id`` must follow up with
        ``cleanup_stale_participants_by_session``. ``join`` does both.
        """
        with self.store.lock(room_id) as room:
            if room is None:
                return False
            room.add_participant(participant)
            room.touch(self._now())
            return True

    def remove_participant(self, room_id: str, participant_id: str) -> bool:
        with self.store.lock(room_id) as room:
            if room is None:
                return False
            if not room.remove_participant(participant_id):
                logger.debug(f"Leave for unknown participant {participant_id} in room {room_id}")
            room.touch(self._now())
            return True

    def get_participant_by_session_id(self, room_id: str, session_id: str) -> Optional[Participant]:
        with self.store.lock(room_id) as room:
            if room is None:
                return None
            participant = room.participant_by_session(session_id)
            return participant.model_copy() if participant else None

    def cleanup_stale_participants_by_session(
        self, room_id: str, session_id: str, current_participant_id: str
    ) -> bool:
        """Drop records sharing *session_id* other than *current_participant_id*."""
        if not session_id:
            return False
        with self.store.lock(room_id) as room:
            if room is None:
                return False
            return bool(room.purge_session_duplicates(session_id, current_participant_id))

    def is_moderator(self, room_id: str, participant_id: str) -> bool:
        with self.store.lock(room_id) as room:
            return room is not None and room.moderator_id == participant_id

    # -------------------- Rounds -------------------- #

    def submit_story(self, room_id: str, story: Story, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id) as room:
            if room is None or not self._permitted(ACTION_SUBMIT_STORY, room, actor_id):
                return False
            now = self._now()
            room.set_story(story, now, self.voting_duration_sec)
            room.touch(now)
            return True

    def submit_estimate(self, room_id: str, participant_id: str, value: float) -> bool:
        """Upsert *participant_id*'s vote; last write wins.

        Rejected when there is no story, the participant is not in the room or
        the value is neither a non-negative number nor the "?" sentinel.
        """
        if not is_valid_estimate(value):
            return False
        with self.store.lock(room_id) as room:
            if room is None or not self._permitted(ACTION_SUBMIT_ESTIMATE, room, participant_id):
                return False
            if not room.record_estimate(participant_id, value):
                logger.debug(f"Estimate from {participant_id} ignored in room {room_id} (phase={room.phase})")
                return False
            room.touch(self._now())
            return True

    def reveal_estimates(self, room_id: str, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id) as room:
            if room is None or not self._permitted(ACTION_REVEAL, room, actor_id):
                return False
            room.reveal()
            room.touch(self._now())
            return True

    def reset_estimates(self, room_id: str, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id) as room:
            if room is None or not self._permitted(ACTION_RESET, room, actor_id):
                return False
            now = self._now()
            room.reset_round(now, self.voting_duration_sec)
            room.touch(now)
            return True

    def clear_story_and_reset(self, room_id: str, actor_id: Optional[str] = None) -> bool:
        with self.store.lock(room_id) as room:
            if room is None or not self._permitted(ACTION_CLEAR, room, actor_id):
                return False
            room.clear_story()
            room.touch(self._now())
            return True

    # -------------------- Voting timer -------------------- #

    def start_voting_timer(self, room_id: str, duration_sec: Optional[int] = None) -> bool:
        with self.store.lock(room_id) as room:
            if room is None:
                return False
            now = self._now()
            if not room.start_timer(now, duration_sec or self.voting_duration_sec):
                return False
            room.touch(now)
            return True

    def stop_voting_timer(self, room_id: str) -> bool:
        with self.store.lock(room_id) as room:
            if room is None:
                return False
            room.stop_timer()
            room.touch(self._now())
            return True

    def is_voting_timer_expired(self, room_id: str) -> bool:
        with self.store.lock(room_id) as room:
            return room is not None and room.timer_expired(self._now())

    def reveal_if_expired(self, room_id: str) -> bool:
        """Reveal when the voting timer has run out. Returns True if it did.

        Check and reveal happen under one lock so only one caller wins.
        """
        with self.store.lock(room_id) as room:
            if room is None:
                return False
            now = self._now()
            if not room.timer_expired(now):
                return False
            room.reveal()
            room.touch(now)
            logger.info(f"Voting timer expired for room {room_id}, auto-revealing estimates")
            return True


__all__ = [
    "Policy",
    "allow_all",
    "moderator_only",
    "is_valid_estimate",
    "RoomSessionEngine",
]
