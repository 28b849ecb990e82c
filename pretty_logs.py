#!/usr/bin/env python3
"""
Log output for launched servers

By default every record is written to stdout as one JSON object per line.
With pretty logs enabled, records are rendered as short colourised lines
instead, through a handler that treats a failing output stream as fatal.
"""
import json
import logging
import os
import socket
import sys
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, TextIO

from base_plugin import ServerRuntimeError

TRACE = 5
SILENT = logging.CRITICAL + 10
logging.addLevelName(TRACE, "TRACE")

LOG_LEVELS: Dict[str, int] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "silent": SILENT,
}

# Numeric levels used in JSON output, compatible with pino tooling.
JSON_LEVELS = {
    TRACE: 10,
    logging.DEBUG: 20,
    logging.INFO: 30,
    logging.WARNING: 40,
    logging.ERROR: 50,
    logging.CRITICAL: 60,
}

LEVEL_STYLES = {
    TRACE: ("🔍", "\033[90m"),
    logging.DEBUG: ("🐛", "\033[36m"),
    logging.INFO: ("✨", "\033[32m"),
    logging.WARNING: ("⚠️ ", "\033[33m"),
    logging.ERROR: ("🚨", "\033[31m"),
    logging.CRITICAL: ("💀", "\033[35m"),
}
DIM = "\033[2m"
RESET = "\033[0m"

LOGGER_NAMES = ("aiohttp", "plugstart")
APP_LOGGER = "aiohttp.web"


def resolve_level(name: str) -> int:
    """Map a level name such as "warn" or "fatal" to a logging level"""
    try:
        return LOG_LEVELS[name.strip().lower()]
    except (KeyError, AttributeError):
        raise ServerRuntimeError(
            f"Unknown log level {name!r}, expected one of: {', '.join(LOG_LEVELS)}"
        )


def _json_level(levelno: int) -> int:
    for threshold in sorted(JSON_LEVELS, reverse=True):
        if levelno >= threshold:
            return JSON_LEVELS[threshold]
    return JSON_LEVELS[TRACE]


class JsonFormatter(logging.Formatter):
    """One JSON object per record"""

    def __init__(self):
        super().__init__()
        self.pid = os.getpid()
        self.hostname = socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "level": _json_level(record.levelno),
            "time": int(record.created * 1000),
            "pid": self.pid,
            "hostname": self.hostname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            data["err"] = self.formatException(record.exc_info)
        return json.dumps(data)


class PrettyFormatter(logging.Formatter):
    """Short, colourised lines: time, level marker, message"""

    def __init__(self, colors: bool = True):
        super().__init__()
        self.colors = colors

    def _level_style(self, levelno: int):
        for threshold in sorted(LEVEL_STYLES, reverse=True):
            if levelno >= threshold:
                return LEVEL_STYLES[threshold]
        return LEVEL_STYLES[TRACE]

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        marker, color = self._level_style(record.levelno)
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if not self.colors:
            return f"{stamp} {marker} {message}"
        return f"{DIM}{stamp}{RESET} {marker} {color}{message}{RESET}"


class FailFastStreamHandler(logging.StreamHandler):
    """StreamHandler that hands output stream failures to on_fatal instead of printing them"""

    def __init__(self, stream: TextIO, on_fatal: Callable[[BaseException], None]):
        super().__init__(stream)
        self.on_fatal = on_fatal

    def handleError(self, record: logging.LogRecord) -> None:
        cause = sys.exc_info()[1]
        if not isinstance(cause, OSError):
            super().handleError(record)
            return
        if isinstance(cause, BrokenPipeError) and self.stream is sys.__stdout__:
            # Interpreter shutdown flushes stdout again; send that flush nowhere.
            devnull = os.open(os.devnull, os.O_WRONLY)
            os.dup2(devnull, self.stream.fileno())
        error = ServerRuntimeError(f"Log output stream failed: {cause}")
        error.__cause__ = cause
        self.on_fatal(error)


def _raise(error: BaseException) -> None:
    raise error


def build_handler(
    pretty: bool = False,
    stream: Optional[TextIO] = None,
    on_fatal: Optional[Callable[[BaseException], None]] = None,
) -> logging.Handler:
    stream = stream if stream is not None else sys.stdout
    if pretty:
        handler: logging.Handler = FailFastStreamHandler(stream, on_fatal or _raise)
        handler.setFormatter(PrettyFormatter(colors=stream.isatty() if hasattr(stream, "isatty") else False))
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JsonFormatter())
    handler._plugstart = True
    return handler


def configure_logging(
    level: str = "fatal",
    pretty: bool = False,
    stream: Optional[TextIO] = None,
    on_fatal: Optional[Callable[[BaseException], None]] = None,
    names: Iterable[str] = LOGGER_NAMES,
) -> logging.Logger:
    """
    Point the framework and launcher loggers at stdout.

    Returns the logger handed to the application. Handlers installed by an
    earlier call are replaced, so calling this twice does not duplicate output.
    """
    levelno = resolve_level(level)
    handler = build_handler(pretty, stream, on_fatal)

    for name in names:
        target = logging.getLogger(name)
        for old in [h for h in target.handlers if getattr(h, "_plugstart", False)]:
            target.removeHandler(old)
        target.setLevel(levelno)
        target.addHandler(handler)
        target.propagate = False

    return logging.getLogger(APP_LOGGER)
