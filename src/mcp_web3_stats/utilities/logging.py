"""Logging setup for the server process.

Everything goes to stderr: in stdio mode stdout carries the protocol stream.
"""

import logging
from collections.abc import Mapping
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SENSITIVE_HEADERS = frozenset({"authorization", "x-api-key", "x-sim-api-key", "cookie"})


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for the server.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    # uvicorn's access log duplicates our own transport lines
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def redact_headers(headers: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``headers`` with credential-bearing values replaced by "***"."""
    return {key: "***" if key.lower() in SENSITIVE_HEADERS else value for key, value in headers.items()}
