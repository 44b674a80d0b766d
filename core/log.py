"""
core/log.py -- Process-wide logging setup.

Every module obtains its own named logger (logging.getLogger("hotdeal.<area>"))
and never configures handlers itself. configure_logging() is called once by
the API lifespan.
"""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Apply the shared log format at the given level name (INFO, DEBUG, ...)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_FORMAT,
        datefmt=_DATEFMT,
    )
    # Keep request-level noise out of the auth logs.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
