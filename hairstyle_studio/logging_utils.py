"""Logging setup for the hairstyle pipeline.

Every module logs through ``logging.getLogger(__name__)``, so all records land
under the ``hairstyle_studio`` logger configured here.
"""

import logging
import sys

LOGGER_NAME = "hairstyle_studio"

_initialized = False


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger.

    Safe to call more than once; later calls only update the level.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level.

    Returns:
        The configured package logger.
    """
    global _initialized

    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not _initialized:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        _initialized = True

    return logger
