import re

# Room codes are both the invite token and the lookup key.
ROOM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ROOM_CODE_LENGTH = 8
ROOM_CODE_PATTERN = re.compile(r"^[A-Z0-9]{8}$")

RECOVERED_ROOM_NAME = "Recovered Room"
MAX_ROOM_NAME_LENGTH = 50
MAX_INPUT_LENGTH = 500

# Value submitted for the "?" card.
UNKNOWN_ESTIMATE = -1.0

# Card deck offered to clients. The "?" card maps to UNKNOWN_ESTIMATE.
ESTIMATION_CARDS: list[dict] = [
    {"value": 1, "label": "1"},
    {"value": 2, "label": "2"},
    {"value": 3, "label": "3"},
    {"value": 5, "label": "5"},
    {"value": 8, "label": "8"},
    {"value": 13, "label": "13"},
    {"value": 21, "label": "21"},
    {"value": "?", "label": "?"},
]

# Event names published on a room channel.
PARTICIPANT_JOINED = "participant-joined"
PARTICIPANT_LEFT = "participant-left"
STORY_SUBMITTED = "story-submitted"
ESTIMATE_SUBMITTED = "estimate-submitted"
ESTIMATES_REVEALED = "estimates-revealed"
ESTIMATES_RESET = "estimates-reset"
ROOM_STATE_UPDATED = "room-state-updated"

# Inbound room actions.
ACTION_JOIN = "join"
ACTION_LEAVE = "leave"
ACTION_SUBMIT_STORY = "submit-story"
ACTION_SUBMIT_ESTIMATE = "submit-estimate"
ACTION_REVEAL = "reveal-estimates"
ACTION_RESET = "reset-estimates"
ACTION_CLEAR = "clear-story-and-reset"


def channel_name(room_id: str) -> str:
    """Return the broadcast channel for *room_id*."""
    return f"room-{room_id}"


__all__ = [
    "ROOM_CODE_ALPHABET",
    "ROOM_CODE_LENGTH",
    "ROOM_CODE_PATTERN",
    "RECOVERED_ROOM_NAME",
    "MAX_ROOM_NAME_LENGTH",
    "MAX_INPUT_LENGTH",
    "UNKNOWN_ESTIMATE",
    "ESTIMATION_CARDS",
    "PARTICIPANT_JOINED",
    "PARTICIPANT_LEFT",
    "STORY_SUBMITTED",
    "ESTIMATE_SUBMITTED",
    "ESTIMATES_REVEALED",
    "ESTIMATES_RESET",
    "ROOM_STATE_UPDATED",
    "ACTION_JOIN",
    "ACTION_LEAVE",
    "ACTION_SUBMIT_STORY",
    "ACTION_SUBMIT_ESTIMATE",
    "ACTION_REVEAL",
    "ACTION_RESET",
    "ACTION_CLEAR",
    "channel_name",
]
