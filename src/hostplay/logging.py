"""Logging setup for hostplay.

Engine modules log through ``logging.getLogger(__name__)``; this module
maps CLI verbosity to levels, installs the console handler, and provides
a timing context manager used around task execution.
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

# Standard log format
DEFAULT_FORMAT = "%(levelname)s [%(name)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

# Custom TRACE level (more detailed than DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Verbosity level mapping
VERBOSITY_LEVELS = {
    0: logging.WARNING,   # Default: warnings and errors only
    1: logging.INFO,      # -v: Info level
    2: logging.DEBUG,     # -vv: Debug level
    3: TRACE,             # -vvv: Trace level (includes remote commands)
}


def get_level_from_verbosity(verbosity: int) -> int:
    """Convert verbosity count to logging level.

    Args:
        verbosity: Number of -v flags (0-3+)

    Returns:
        Logging level constant
    """
    return VERBOSITY_LEVELS.get(min(max(verbosity, 0), 3), TRACE)


def configure_logging(
    level: int = logging.WARNING,
    log_file: str | Path | None = None,
) -> None:
    """Configure logging for hostplay.

    Args:
        level: Logging level for the console handler
        log_file: Optional path to also write logs to, at the same level

    Example:
        >>> configure_logging(level=logging.INFO)
        >>> configure_logging(level=logging.DEBUG, log_file="/tmp/hostplay.log")
    """
    format_string = DEBUG_FORMAT if level <= logging.DEBUG else DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        # Always use detailed format for file logging
        file_handler.setFormatter(logging.Formatter(DEBUG_FORMAT))
        root_logger.addHandler(file_handler)


@contextmanager
def log_performance(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    **context: Any,
) -> Generator[None, None, None]:
    """Context manager for performance logging.

    Times an operation and logs the duration, also when it raises.

    Example:
        >>> logger = logging.getLogger(__name__)
        >>> with log_performance(logger, "task", host="web1"):
        ...     pass
        DEBUG: task completed in 0.000s (host=web1)
    """
    start_time = time.perf_counter()
    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
    suffix = f" ({context_str})" if context_str else ""

    try:
        yield
    finally:
        duration = time.perf_counter() - start_time
        logger.log(level, f"{operation} completed in {duration:.3f}s{suffix}")
