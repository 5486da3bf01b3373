from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel

from .schemas import (
    EstimationResult,
    Participant,
    RoomState,
    RoomSummary,
    Story,
)
from .stats import calculate_estimation_stats
from .timer import DEFAULT_VOTING_DURATION_SEC, VotingTimer

# NOTE: ``Room`` performs no locking of its own. Every method here is called by
# ``RoomStore`` / ``RoomSessionEngine`` while the room's lock is held.

# ---------------------------------------------------------------------------
# Story state: each variant carries only the fields valid in that phase
# ---------------------------------------------------------------------------


class EmptyRound(BaseModel):
    phase: Literal["empty"] = "empty"


class VotingRound(BaseModel):
    phase: Literal["voting"] = "voting"
    story: Story
    timer: VotingTimer


class RevealedRound(BaseModel):
    phase: Literal["revealed"] = "revealed"
    story: Story


StoryState = Union[EmptyRound, VotingRound, RevealedRound]


class Room:
    """Runtime state of one estimation room."""

    def __init__(self, room_id: str, name: str, now: float):
        self.room_id = room_id
        self.name = name
        self.created_at = now
        self.last_activity = now
        self.state: StoryState = EmptyRound()
        # participant id -> Participant, in join order
        self.participants: Dict[str, Participant] = {}
        # participant id -> estimate for the current round only
        self.estimates: Dict[str, float] = {}
        # First joiner. Kept for bookkeeping; permissions go through the engine policy.
        self.moderator_id: Optional[str] = None

    # ---------------------------------------------------------------------
    # Derived properties
    # ---------------------------------------------------------------------

    @property
    def phase(self) -> str:
        return self.state.phase

    @property
    def current_story(self) -> Optional[Story]:
        if isinstance(self.state, (VotingRound, RevealedRound)):
            return self.state.story
        return None

    @property
    def revealed(self) -> bool:
        return isinstance(self.state, RevealedRound)

    @property
    def timer(self) -> Optional[VotingTimer]:
        if isinstance(self.state, VotingRound):
            return self.state.timer
        return None

    def touch(self, now: float) -> None:
        self.last_activity = now

    def is_expired(self, now: float, ttl_sec: float) -> bool:
        return now - self.last_activity > ttl_sec

    # -------------------- Participant management -------------------- #

    def add_participant(self, participant: Participant) -> None:
        """Insert *participant*, or merge it into the record with the same id."""
        existing = self.participants.get(participant.id)
        if existing is participant:
            return
        if existing is not None:
            self.participants[participant.id] = existing.model_copy(
                update=participant.model_dump(exclude_unset=True)
            )
            return
        if not self.participants:
            self.moderator_id = participant.id
        self.participants[participant.id] = participant

    def remove_participant(self, participant_id: str) -> bool:
        removed = self.participants.pop(participant_id, None) is not None
        self.estimates.pop(participant_id, None)
        # Hand the moderator role to the longest-standing remaining member
        if participant_id == self.moderator_id:
            self.moderator_id = next(iter(self.participants), None)
        return removed

    def participant_by_session(self, session_id: Optional[str]) -> Optional[Participant]:
        if not session_id:
            return None
        for participant in self.participants.values():
            if participant.session_id == session_id:
                return participant
        return None

    def purge_session_duplicates(self, session_id: str, keep_id: str) -> List[str]:
        """Drop every record holding *session_id* except *keep_id*; return dropped ids."""
        stale = [
            pid
            for pid, p in self.participants.items()
            if p.session_id == session_id and pid != keep_id
        ]
        for pid in stale:
            self.remove_participant(pid)
        return stale

    # -------------------- Round transitions -------------------- #

    def set_story(self, story: Story, now: float, duration: int = DEFAULT_VOTING_DURATION_SEC) -> None:
        self.estimates.clear()
        self.state = VotingRound(story=story, timer=VotingTimer.start(now, duration))

    def record_estimate(self, participant_id: str, value: float) -> bool:
        if self.current_story is None or participant_id not in self.participants:
            return False
        self.estimates[participant_id] = value
        return True

    def reveal(self) -> None:
        if isinstance(self.state, VotingRound):
            self.state = RevealedRound(story=self.state.story)

    def reset_round(self, now: float, duration: int = DEFAULT_VOTING_DURATION_SEC) -> None:
        self.estimates.clear()
        story = self.current_story
        if story is not None:
            self.state = VotingRound(story=story, timer=VotingTimer.start(now, duration))

    def clear_story(self) -> None:
        self.estimates.clear()
        self.state = EmptyRound()

    def start_timer(self, now: float, duration: int) -> bool:
        if not isinstance(self.state, VotingRound):
            return False
        self.state.timer = VotingTimer.start(now, duration)
        return True

    def stop_timer(self) -> None:
        if isinstance(self.state, VotingRound):
            self.state.timer.stop()

    def timer_expired(self, now: float) -> bool:
        timer = self.timer
        return timer is not None and timer.is_expired(now)

    # -------------------- Read model -------------------- #

    def snapshot(self, now: float) -> RoomState:
        """Project the room into the externally consumed ``RoomState``."""
        participants: List[Participant] = []
        for pid, p in self.participants.items():
            # Copy so callers never hold a reference to the canonical record
            participants.append(p.model_copy(update={"estimate": self.estimates.get(pid)}))

        estimates = [
            EstimationResult(
                participant_id=pid,
                participant_name=self.participants[pid].name,
                estimate=value,
            )
            for pid, value in self.estimates.items()
            if pid in self.participants
        ]

        timer = self.timer
        return RoomState(
            room=RoomSummary(id=self.room_id, name=self.name, participant_count=len(participants)),
            participants=participants,
            current_story=self.current_story.model_copy(deep=True) if self.current_story else None,
            estimates=estimates,
            revealed=self.revealed,
            phase=self.phase,
            voting_timer=timer.view(now) if timer is not None and timer.active else None,
            stats=calculate_estimation_stats(self.estimates.values()) if self.revealed else None,
        )


__all__ = ["EmptyRound", "VotingRound", "RevealedRound", "StoryState", "Room"]
