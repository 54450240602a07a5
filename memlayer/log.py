"""
Logger factory.

Every module gets a named logger that writes to stderr. Stdout is reserved
for the MCP stdio transport, so nothing here may ever print to it.
"""

import logging
import os
import sys


def get_logger(name: str) -> logging.Logger:
    """Return the `memlayer.<name>` logger, attaching a stderr handler once."""
    logger = logging.getLogger(f"memlayer.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(os.environ.get("MEMLAYER_LOG_LEVEL", "INFO").upper())
    return logger


def set_level(level: str) -> None:
    """Apply a level to every `memlayer.*` logger created so far."""
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith("memlayer.") and isinstance(logger, logging.Logger):
            logger.setLevel(level.upper())
