"""Processing of one inbound room action.

Each action goes through the same steps:

1. resolve the room, recovering a well-formed code lost to a restart;
2. if the voting timer ran out, reveal and broadcast that first, tagged as an
   automatic reveal;
3. validate the request fields;
4. apply the mutation through ``RoomSessionEngine``;
5. broadcast the resulting snapshot.

Expected failures surface as ``HTTPException`` so the routers stay thin.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status

from .constants import (
    ACTION_CLEAR,
    ACTION_JOIN,
    ACTION_LEAVE,
    ACTION_REVEAL,
    ACTION_RESET,
    ACTION_SUBMIT_ESTIMATE,
    ACTION_SUBMIT_STORY,
    ESTIMATE_SUBMITTED,
    ESTIMATES_RESET,
    ESTIMATES_REVEALED,
    PARTICIPANT_JOINED,
    PARTICIPANT_LEFT,
    ROOM_STATE_UPDATED,
    STORY_SUBMITTED,
    channel_name,
)
from .engine import RoomSessionEngine
from .logging_config import get_logger
from .notifier import Broadcaster, dispatch
from .schemas import ActionResponse, JoinResponse, RoomActionRequest, Story
from .store import RoomStore
from .utils import sanitize_input

logger = get_logger(__name__)

ROOM_NOT_FOUND = "Room not found. Please check the room code."


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _failed(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{detail}. Please try again.")


class RoomActions:
    def __init__(self, store: RoomStore, engine: RoomSessionEngine, broadcaster: Broadcaster):
        self.store = store
        self.engine = engine
        self.broadcaster = broadcaster

    # ---------------------------------------------------------------------
    # Shared steps
    # ---------------------------------------------------------------------

    def ensure_room(self, room_id: str) -> None:
        """Raise 404 unless *room_id* is live or could be recovered."""
        if self.store.room_exists(room_id):
            return
        if self.store.recover_room(room_id):
            logger.info(f"Room {room_id} recovered on demand")
            return
        logger.warning(f"Room {room_id} not found and not recoverable")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=ROOM_NOT_FOUND)

    async def publish(self, room_id: str, event: str, **extra) -> None:
        snapshot = self.store.get_room_snapshot(room_id)
        if snapshot is None:
            return
        payload = {"room_state": snapshot.model_dump(), **extra}
        await dispatch(self.broadcaster, channel_name(room_id), event, payload)

    async def auto_reveal_if_expired(self, room_id: str) -> bool:
        if not self.engine.reveal_if_expired(room_id):
            return False
        await self.publish(room_id, ESTIMATES_REVEALED, auto_revealed=True)
        return True

    # ---------------------------------------------------------------------
    # Entry point
    # ---------------------------------------------------------------------

    async def handle(self, room_id: str, req: RoomActionRequest):
        self.ensure_room(room_id)
        await self.auto_reveal_if_expired(room_id)

        action = req.action
        if action == ACTION_JOIN:
            return await self.join(room_id, req.participant_name, req.session_id)
        if action == ACTION_LEAVE:
            return await self.leave(room_id, req.participant_id)
        if action == ACTION_SUBMIT_STORY:
            return await self.submit_story(room_id, req.participant_id, req.story)
        if action == ACTION_SUBMIT_ESTIMATE:
            return await self.submit_estimate(room_id, req.participant_id, req.estimate)
        if action == ACTION_REVEAL:
            if not self.engine.reveal_estimates(room_id, req.participant_id):
                raise _failed("Failed to reveal estimates")
            await self.publish(room_id, ESTIMATES_REVEALED)
            return ActionResponse()
        if action == ACTION_RESET:
            if not self.engine.reset_estimates(room_id, req.participant_id):
                raise _failed("Failed to reset estimates")
            await self.publish(room_id, ESTIMATES_RESET)
            return ActionResponse()
        if action == ACTION_CLEAR:
            if not self.engine.clear_story_and_reset(room_id, req.participant_id):
                raise _failed("Failed to clear story and reset")
            await self.publish(room_id, ROOM_STATE_UPDATED)
            return ActionResponse()
        raise _bad_request("Invalid action")

    # ---------------------------------------------------------------------
    # Handlers
    # ---------------------------------------------------------------------

    async def join(self, room_id: str, participant_name: Optional[str], session_id: Optional[str]) -> JoinResponse:
        name = sanitize_input(participant_name)
        if not name:
            raise _bad_request("Participant name is required")

        logger.info(f"Join request: room={room_id}, name={name}, session={session_id}")
        result = self.engine.join(room_id, name, session_id or None)
        if result is None:
            raise _failed("Failed to join room")

        participant = result.participant
        if result.is_new:
            await self.publish(room_id, PARTICIPANT_JOINED, participant=participant.model_dump())

        snapshot = self.store.get_room_snapshot(room_id)
        if snapshot is None:
            raise _failed("Failed to join room")
        logger.info(
            f"Join successful: participant={participant.id}, new={result.is_new}, "
            f"duplicate={result.is_duplicate}, total={snapshot.room.participant_count}"
        )
        return JoinResponse(
            participant=participant,
            room_state=snapshot,
            is_moderator=self.engine.is_moderator(room_id, participant.id),
        )

    async def leave(self, room_id: str, participant_id: Optional[str]) -> ActionResponse:
        if not participant_id:
            raise _bad_request("Participant ID is required")
        if not self.engine.remove_participant(room_id, participant_id):
            raise _failed("Failed to leave room")
        await self.publish(room_id, PARTICIPANT_LEFT, participant_id=participant_id)
        return ActionResponse()

    async def submit_story(self, room_id: str, participant_id: Optional[str], story: Optional[Story]) -> ActionResponse:
        if story is None or not participant_id:
            raise _bad_request("Story and participant ID are required")
        story = story.model_copy(
            update={
                "title": sanitize_input(story.title),
                "description": sanitize_input(story.description),
            }
        )
        if not story.title:
            raise _bad_request("Story title is required")
        if not self.engine.submit_story(room_id, story, participant_id):
            raise _failed("Failed to submit story")
        await self.publish(room_id, STORY_SUBMITTED, story=story.model_dump())
        return ActionResponse()

    async def submit_estimate(self, room_id: str, participant_id: Optional[str], estimate: Optional[float]) -> ActionResponse:
        if estimate is None or not participant_id:
            raise _bad_request("Estimate and participant ID are required")
        if not self.engine.submit_estimate(room_id, participant_id, estimate):
            raise _failed("Failed to submit estimate")
        await self.publish(room_id, ESTIMATE_SUBMITTED, participant_id=participant_id)
        return ActionResponse()


__all__ = ["ROOM_NOT_FOUND", "RoomActions"]
