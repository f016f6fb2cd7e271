"""
Logging configuration for calldisasm.

Console output goes through rich. Set CALLDISASM_DEBUG=1 to log the decoder's
candidate trials and nested-bytes scans, or CALLDISASM_LOG_LEVEL to pick a
level explicitly.
"""
from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "calldisasm"

NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "asyncio")


def _env_level(default: int) -> int:
    if os.getenv("CALLDISASM_DEBUG", "").lower() in ("1", "true", "yes"):
        return logging.DEBUG
    name = os.getenv("CALLDISASM_LOG_LEVEL", "").upper()
    if name:
        level = logging.getLevelName(name)
        if isinstance(level, int):
            return level
    return default


def setup_logging(level: int | None = None, *, console: Console | None = None) -> logging.Logger:
    """
    Configure the package logger. Safe to call more than once.

    `level` wins over the environment; without it CALLDISASM_DEBUG and
    CALLDISASM_LOG_LEVEL are consulted, defaulting to WARNING.
    """
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    resolved = level if level is not None else _env_level(logging.WARNING)

    app_logger = logging.getLogger(PACKAGE_LOGGER)
    app_logger.setLevel(resolved)
    app_logger.handlers = [h for h in app_logger.handlers if getattr(h, "name", None) != "calldisasm_rich"]

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=resolved <= logging.DEBUG,
        rich_tracebacks=True,
        markup=False,
    )
    handler.name = "calldisasm_rich"
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
    app_logger.addHandler(handler)
    return app_logger
