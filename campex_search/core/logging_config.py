"""Logging setup for the search service: one stdout handler, quiet third-party clients."""

import logging
import sys

NOISY_LOGGERS = ("uvicorn", "uvicorn.access", "httpx", "httpcore", "openai", "pymongo", "qdrant_client")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Level name for the campex_search loggers (DEBUG, INFO, ...)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on reload
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("campex_search").setLevel(level)

    logging.info(f"Logging configured at {logging.getLevelName(level)}")
