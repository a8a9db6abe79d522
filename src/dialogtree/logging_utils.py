"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from logging import Handler
from typing import Literal

from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "chat"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "chat": "{message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[run]} | {message}",
}
_CONFIGURED: tuple[LogProfile, str] | None = None


def _build_chat_handler() -> Handler:
    return RichHandler(
        console=get_console(),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Configure process-level logging once per profile and level."""
    global _CONFIGURED
    level = (level or os.getenv("DIALOGTREE_LOG_LEVEL", "INFO")).upper()
    if (profile, level) == _CONFIGURED:
        return

    logger.remove()
    logger.configure(extra={"run": "-"})
    if profile == "chat":
        logger.add(
            _build_chat_handler(),
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    _CONFIGURED = (profile, level)
