"""
Logging configuration for the movie ratings service.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """
    Send log records at ``level`` and above to stdout.

    Safe to call more than once; the stdout handler is installed only once.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_movieratings", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        handler._movieratings = True
        root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
