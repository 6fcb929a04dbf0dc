"""structlog setup shared by the web app and the CLI."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

# Renderer currently installed: None until the first call, else json_output
_json_output: Optional[bool] = None


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Set the stdlib level and install the structlog chain.

    The chain is rebuilt only when the renderer changes. Loggers are not
    cached, so module-level ``log`` objects pick up a new renderer too.
    """
    global _json_output
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    if _json_output is not None and _json_output == bool(json_output):
        return

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    _json_output = bool(json_output)


def get_logger(name: str):
    return structlog.get_logger(name)
