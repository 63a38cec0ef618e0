"""Runtime logging helpers."""

from __future__ import annotations

import inspect
import logging
import os
import sys
from logging import Handler
from typing import Literal

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

LogProfile = Literal["default", "interactive"]

LOG_FILTER_ENV = "EVALEXPR_LOG_FILTER"
DEFAULT_LOG_FILTER = "warning"

_DEFAULT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<7} | {name}:{function}:{line} | {message}"
_CONFIGURED_PROFILE: LogProfile | None = None


class InterceptHandler(logging.Handler):
    """Handler that forwards stdlib logging messages to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame:
            filename = frame.f_code.co_filename
            is_logging = filename == logging.__file__
            is_frozen = "importlib" in filename and "_bootstrap" in filename
            if depth > 0 and not (is_logging or is_frozen):
                break
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _build_interactive_handler() -> Handler:
    # stdout carries REPL output; diagnostics stay on stderr
    return RichHandler(
        console=Console(stderr=True),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def parse_log_filter(filter_spec: str | None = None) -> tuple[str, dict[str | None, str | int | bool]]:
    """Parse a log filter, EVALEXPR_LOG_FILTER by default.

    Format: "level" or "level,module1=level,module2=false"
    Examples:
        - "warning" - global WARNING level
        - "debug,evalexpr.eval=info" - global DEBUG, compiler at INFO
        - "debug,evalexpr.eval=false" - global DEBUG, compiler disabled

    Returns:
        (global_level, module_filter_dict)
    """
    if filter_spec is None:
        filter_spec = os.getenv(LOG_FILTER_ENV, DEFAULT_LOG_FILTER)
    parts = [p.strip() for p in filter_spec.lower().split(",") if p.strip()]

    filter_dict: dict[str | None, str | int | bool] = {}
    global_level = DEFAULT_LOG_FILTER

    for part in parts:
        if "=" in part:
            module, level = part.split("=", 1)
            module = module.strip()
            level = level.strip()
            if level == "false":
                filter_dict[module] = False
            else:
                filter_dict[module] = level.upper()
        else:
            global_level = part

    return global_level, filter_dict


def _setup_stdlib_intercept() -> None:
    """Forward stdlib logging to loguru."""
    root_logger = logging.getLogger()
    if not any(isinstance(handler, InterceptHandler) for handler in root_logger.handlers):
        root_logger.addHandler(InterceptHandler())


def configure_logging(*, profile: LogProfile = "default", filter_spec: str | None = None) -> None:
    """Configure process-level logging once per profile.

    Levels come from `filter_spec`, falling back to EVALEXPR_LOG_FILTER.
    """
    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    global_level, module_filter = parse_log_filter(filter_spec)

    logger.remove()

    if profile == "interactive":
        logger.add(
            _build_interactive_handler(),
            level=global_level.upper(),
            format="{message}",
            backtrace=False,
            diagnose=False,
            filter=module_filter,
        )
    else:
        logger.add(
            sys.stderr,
            level=global_level.upper(),
            format=_DEFAULT_FORMAT,
            backtrace=False,
            diagnose=False,
            filter=module_filter,
        )

    _setup_stdlib_intercept()

    _CONFIGURED_PROFILE = profile
