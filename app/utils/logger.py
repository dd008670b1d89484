"""
Logger factory shared by every module of the service.
"""

import logging
import os

LOGGER_NAMESPACE = "interview_coach"


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under the service namespace.

    Handlers are configured once by ``app.logging_config.setup_logging``; loggers
    returned here only carry a level so they propagate to the root handlers.
    """
    if not name.startswith(LOGGER_NAMESPACE):
        name = f"{LOGGER_NAMESPACE}.{name}"
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

    return logger
