import os


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Config:
    # Room lifecycle (seconds)
    ROOM_TTL_SEC = int(os.getenv("ROOM_TTL_SEC", "1800"))
    REAP_INTERVAL_SEC = int(os.getenv("REAP_INTERVAL_SEC", "1800"))
    # Voting timer started with every new story or reset
    VOTING_DURATION_SEC = int(os.getenv("VOTING_DURATION_SEC", "300"))
    # Repeat joins for the same session inside this window are treated as retries
    DUPLICATE_JOIN_WINDOW_SEC = float(os.getenv("DUPLICATE_JOIN_WINDOW_SEC", "1.0"))
    # Set to 0 to disable the background reaper (rooms are still swept lazily)
    ENABLE_REAPER = os.getenv("ENABLE_REAPER", "1") != "0"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", None)
    CORS_ORIGINS = _split_origins(os.getenv("CORS_ORIGINS", "*"))


__all__ = ["Config"]
