from __future__ import annotations

import secrets
import uuid
from typing import Optional

from .constants import MAX_INPUT_LENGTH, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, ROOM_CODE_PATTERN


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def is_valid_room_code(code: Optional[str]) -> bool:
    return bool(code) and ROOM_CODE_PATTERN.match(code) is not None


def new_participant_id() -> str:
    return f"participant-{uuid.uuid4().hex[:12]}"


def new_session_id() -> str:
    return f"session-{uuid.uuid4().hex[:12]}"


def sanitize_input(value: Optional[str], max_length: int = MAX_INPUT_LENGTH) -> str:
    """Strip angle brackets and surrounding whitespace, then cap the length."""
    if not value:
        return ""
    return value.replace("<", "").replace(">", "").strip()[:max_length]


__all__ = [
    "generate_room_code",
    "is_valid_room_code",
    "new_participant_id",
    "new_session_id",
    "sanitize_input",
]
