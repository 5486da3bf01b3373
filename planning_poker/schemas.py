"""Pydantic data schemas used across the service.

This module centralises all models so that other packages can import
from a single location instead of sprinkling the definitions across
multiple files.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

# -----------------------------
# Stories
# -----------------------------


class AIAnalysis(BaseModel):
    """Externally produced sizing hints attached to a story. Stored verbatim."""

    complexity: Literal["low", "medium", "high"]
    suggested_points: List[float] = Field(default_factory=list)
    reasoning: str = ""
    tags: List[str] = Field(default_factory=list)
    recommendations: Optional[List[str]] = None


class Story(BaseModel):
    title: str
    description: str = ""
    acceptance_criteria: Optional[List[str]] = None
    ai_analysis: Optional[AIAnalysis] = None


# -----------------------------
# Runtime
# -----------------------------


class Participant(BaseModel):
    """One human's membership record inside a room."""

    id: str
    name: str
    socket_id: str = ""
    is_ready: bool = False
    estimate: Optional[float] = None  # only populated in snapshots
    joined_at: float  # epoch seconds, refreshed on reconnect
    session_id: Optional[str] = None  # absent for legacy callers


class EstimationResult(BaseModel):
    participant_id: str
    participant_name: str
    estimate: float


class EstimationStats(BaseModel):
    min: float
    max: float
    average: float
    median: float
    consensus: bool


class VotingTimerState(BaseModel):
    remaining_time: int
    active: bool


class RoomSummary(BaseModel):
    id: str
    name: str
    participant_count: int


class RoomState(BaseModel):
    """Read model broadcast to clients after every mutation."""

    room: RoomSummary
    participants: List[Participant] = []
    current_story: Optional[Story] = None
    estimates: List[EstimationResult] = []
    revealed: bool = False
    phase: str = "empty"  # empty | voting | revealed
    voting_timer: Optional[VotingTimerState] = None
    stats: Optional[EstimationStats] = None


# -----------------------------
# REST request / response models
# -----------------------------


class CreateRoomRequest(BaseModel):
    name: str


class CreateRoomResponse(BaseModel):
    room_id: str
    name: str
    message: str


class RoomInfoResponse(BaseModel):
    room_id: str
    name: str
    participant_count: int
    current_story: Optional[Story] = None
    revealed: bool
    exists: bool = True


class RoomActionRequest(BaseModel):
    """Body of ``POST /api/rooms/{room_id}/actions``.

    Only the fields relevant to ``action`` are read; the rest are ignored.
    """

    action: str
    participant_name: Optional[str] = None
    session_id: Optional[str] = None
    participant_id: Optional[str] = None
    story: Optional[Story] = None
    estimate: Optional[float] = None


class ActionResponse(BaseModel):
    success: bool = True


class JoinResponse(BaseModel):
    success: bool = True
    participant: Participant
    room_state: RoomState
    is_moderator: bool


class RoomStateResponse(BaseModel):
    room_state: RoomState


__all__ = [
    # stories
    "AIAnalysis",
    "Story",
    # runtime
    "Participant",
    "EstimationResult",
    "EstimationStats",
    "VotingTimerState",
    "RoomSummary",
    "RoomState",
    # REST
    "CreateRoomRequest",
    "CreateRoomResponse",
    "RoomInfoResponse",
    "RoomActionRequest",
    "ActionResponse",
    "JoinResponse",
    "RoomStateResponse",
]
