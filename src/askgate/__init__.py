# askgate package init
import logging
import os


def _configure_logging() -> None:
    level_name = (os.getenv("ASKGATE_LOG_LEVEL") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logger = logging.getLogger("askgate")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[ASKGATE][%(levelname)s] %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)


_configure_logging()
