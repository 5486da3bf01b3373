import os

import uvicorn

from .config import Config
from .logging_config import get_logger, setup_logging

setup_logging(log_level=Config.LOG_LEVEL, log_file=Config.LOG_FILE)
logger = get_logger(__name__)


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting Planning Poker server on {host}:{port}")
    # Single worker: room state lives in this process only
    uvicorn.run("planning_poker.app:create_app", factory=True, host=host, port=port, workers=1)


if __name__ == "__main__":
    main()
