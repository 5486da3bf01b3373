"""Per-story voting countdown.

The timer never stores a decrementing counter: remaining time is always
derived from the start time and the fixed duration, so it stays correct no
matter how often (or rarely) it is read.
"""
from __future__ import annotations

from pydantic import BaseModel

from .schemas import VotingTimerState

DEFAULT_VOTING_DURATION_SEC = 300


class VotingTimer(BaseModel):
    start_time: float
    duration: int = DEFAULT_VOTING_DURATION_SEC
    active: bool = True

    @classmethod
    def start(cls, now: float, duration: int = DEFAULT_VOTING_DURATION_SEC) -> "VotingTimer":
        return cls(start_time=now, duration=duration, active=True)

    def elapsed(self, now: float) -> int:
        """Whole seconds since the timer started (never negative)."""
        return max(0, int(now - self.start_time))

    def remaining(self, now: float) -> int:
        return max(0, self.duration - self.elapsed(now))

    def is_expired(self, now: float) -> bool:
        return self.active and now - self.start_time >= self.duration

    def stop(self) -> None:
        self.active = False

    def view(self, now: float) -> VotingTimerState:
        remaining = self.remaining(now) if self.active else 0
        return VotingTimerState(remaining_time=remaining, active=self.active and remaining > 0)


__all__ = ["DEFAULT_VOTING_DURATION_SEC", "VotingTimer"]
