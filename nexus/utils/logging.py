"""Logging setup for the assistant.

Log output goes to stderr so it never mixes with the chat transcript the
terminal driver prints on stdout.
"""

import logging
import os
import sys

from pydantic import BaseModel, Field

# Client libraries that log every request at INFO
DEFAULT_QUIET_LOGGERS = ("anthropic", "httpx", "httpcore")


class LogConfig(BaseModel):
    """Logging configuration.

    ``quiet_loggers`` are third-party loggers capped at ``quiet_level`` so that
    model and tool traffic does not drown out the orchestrator's own messages.
    """

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: list[str] = Field(default_factory=lambda: list(DEFAULT_QUIET_LOGGERS))
    quiet_level: str = "WARNING"


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger on stderr and quiet the model and HTTP clients.

    Args:
        config: Logging configuration (defaults to LOG_LEVEL from the environment)
    """
    if config is None:
        config = LogConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    logging.basicConfig(
        level=getattr(logging, config.level.upper()),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stderr,
        force=True,  # Override any existing configuration
    )

    quiet_level = getattr(logging, config.quiet_level.upper())
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a module logger at the LOG_LEVEL threshold.

    Args:
        name: Module name (typically __name__)
        level: Explicit level, overriding the LOG_LEVEL environment variable
    """
    logger = logging.getLogger(name)

    log_level = level if level else os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(log_level.upper())

    return logger
