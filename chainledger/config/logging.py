"""
Logging configuration.

Configures the loguru logger with a stderr sink and a rotating file sink.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = "logs/indexer.log") -> None:
    """
    Configure logger with file rotation.

    Args:
        level: Minimum level for both sinks
        log_file: Path of the rotating log file, None disables the file sink
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )
