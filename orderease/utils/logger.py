"""
Console logging for the OrderEase backend.

Every module does `logger = OrderEaseLogger(__name__)`; the level is taken
from ORDEREASE_LOG_LEVEL unless the caller passes one.
"""

import logging
import os
from typing import Optional

import coloredlogs

DEFAULT_LEVEL = "INFO"

LOG_FORMAT = "[%(asctime)s] [%(hostname)s] [%(name)s] [%(levelname)s] %(message)s"

LEVEL_STYLES = dict(
    coloredlogs.DEFAULT_LEVEL_STYLES,
    warning={'color': 'yellow', 'bright': True},
    error={'color': 'red', 'bold': True, 'bright': True},
    critical={'color': 'black', 'bold': True, 'background': 'red'},
)

FIELD_STYLES = dict(
    coloredlogs.DEFAULT_FIELD_STYLES,
    hostname={'color': 'magenta'},
    name={'color': 'blue', 'bright': True},
    levelname={'color': 'white', 'bold': True},
)


def resolve_level(name: Optional[str]) -> int:
    """Level name -> logging constant; unknown names fall back to INFO"""
    level = logging.getLevelName((name or os.environ.get("ORDEREASE_LOG_LEVEL", DEFAULT_LEVEL)).upper())
    return level if isinstance(level, int) else logging.INFO


def console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setFormatter(coloredlogs.ColoredFormatter(
        fmt=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        level_styles=LEVEL_STYLES,
        field_styles=FIELD_STYLES,
    ))
    handler.addFilter(coloredlogs.HostNameFilter())
    return handler


class OrderEaseLogger:
    """
    Thin wrapper so views, services and socket consumers log in one format.

    The handler is attached once per logger name; later instances for the
    same module reuse it.
    """

    def __init__(self, module_name: str = "", level: Optional[str] = None) -> None:
        self.logger = logging.getLogger(module_name)
        if not self.logger.handlers:
            self.logger.addHandler(console_handler())
            self.logger.setLevel(resolve_level(level))
            self.logger.propagate = False

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str, exc_info: bool = False) -> None:
        """Pass exc_info=True from an except block to include the traceback"""
        self.logger.error(message, exc_info=exc_info)

    def critical(self, message: str, exc_info: bool = False) -> None:
        self.logger.critical(message, exc_info=exc_info)
