"""Logging configuration for the jokegate CLI.

Reads the 'logging.*' settings and configures the root logger with a console
handler and an optional file handler. Command output goes to stdout, so log
records go to stderr unless 'logging.stream' says otherwise.
"""

import logging
import sys
from typing import Optional, TextIO

from jokegate.infrastructure.config.settings import get_config

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
# httpx logs every request at INFO
HTTP_LOGGERS = ("httpx", "httpcore")

_STREAMS = {"stderr": lambda: sys.stderr, "stdout": lambda: sys.stdout}


def level_from_name(name: str, default: int = logging.WARNING) -> int:
    """Maps 'DEBUG', 'info', ... to a logging level, default for unknown names."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def _console_stream() -> TextIO:
    name = str(get_config("logging.stream", "stderr")).lower()
    if name not in _STREAMS:
        logging.getLogger(__name__).warning(f"Unknown logging.stream '{name}', using stderr")
        name = "stderr"
    return _STREAMS[name]()


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> int:
    """Configures the root logger from the loaded settings.

    Args:
        verbose: Force DEBUG regardless of 'logging.level'.
        stream: Console stream; 'logging.stream' picks stderr or stdout if None.

    Returns:
        The level applied to the root logger.
    """
    log_level = logging.DEBUG if verbose else level_from_name(get_config("logging.level", DEFAULT_LOG_LEVEL))
    formatter = logging.Formatter(get_config("logging.format", DEFAULT_LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or _console_stream())
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = get_config("logging.file")
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    http_level = level_from_name(get_config("logging.http_level", "WARNING"))
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(max(http_level, log_level))

    logging.getLogger(__name__).debug(
        f"Logging configured. Level={logging.getLevelName(log_level)}, file={log_file or 'none'}"
    )
    return log_level
