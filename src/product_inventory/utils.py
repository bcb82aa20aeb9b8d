"""Logging helpers."""

import logging
import sys
from typing import (
    Optional,
    Union,
)


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "product_inventory"


def configure_logging(name: Optional[str] = None, level: Union[str, int] = "INFO") -> logging.Logger:
    """Configure a logger with a single stderr handler.

    Calling this again for the same logger replaces the handler installed by a
    previous call instead of stacking another one, so it is safe to use for
    changing the level at runtime.

    Args:
        name: Logger name. ``None`` configures the root logger.
        level: Level name in any case ("debug", "WARNING") or a numeric level.

    Returns:
        The configured logger.

    Raises:
        ValueError: If ``level`` is not a known logging level name.

    Examples:
        >>> configure_logging(level="INFO" if verbose else "WARNING")
        >>> configure_logging(name="product_inventory.storage", level="debug")
    """
    if isinstance(level, str):
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Invalid logging level: {level}")
    else:
        numeric_level = level

    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(numeric_level)
    return logger
