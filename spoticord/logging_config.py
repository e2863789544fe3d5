"""structlog setup shared by the entry points."""

from __future__ import annotations

from typing import TextIO

import structlog


def configure_logging(stream: TextIO | None = None) -> None:
    """Render log events as JSON lines with an ISO timestamp.

    Events go to stdout unless ``stream`` is given.
    """
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=stream),
    )
