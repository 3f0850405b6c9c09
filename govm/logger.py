"""Logging to the console with check/cross marks and to a text log file.

Structured attributes are passed as ``extra={"attrs": {...}}``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from typing import TextIO

LOGGER_NAME = "govm"


def _attrs(record: logging.LogRecord) -> dict:
    return getattr(record, "attrs", None) or {}


class ConsoleHandler(logging.Handler):
    """Write ``✓ message [key]="value"`` lines; warnings and worse get ``✗``."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(level=logging.DEBUG)
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = self.stream if self.stream is not None else sys.stdout
            flag = "✓" if record.levelno <= logging.INFO else "✗"
            extras = "".join(f' [{k}]="{v}"' for k, v in _attrs(record).items())
            stream.write(f"{flag} {record.getMessage()}{extras}\n")
            stream.flush()
        except Exception:
            self.handleError(record)


def _quote(value: object) -> str:
    text = str(value)
    if text == "" or any(ch.isspace() or ch in '"=' for ch in text):
        return json.dumps(text, ensure_ascii=False)
    return text


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "msg": record.getMessage(),
            **_attrs(record),
        }
        return " ".join(f"{k}={_quote(v)}" for k, v in fields.items())


def setup(directory: str | os.PathLike, name: str) -> Callable[[], None]:
    """Log to stdout and to ``directory/name``; return a function that closes the file."""
    log = logging.getLogger(LOGGER_NAME)
    try:
        fd = os.open(
            os.path.join(directory, name), os.O_RDWR | os.O_CREAT | os.O_APPEND, 0o600
        )
    except OSError as exc:
        log.error(
            "open log file failed, using default logger", extra={"attrs": {"reason": exc}}
        )
        return lambda: None

    handle = os.fdopen(fd, "a", encoding="utf-8")
    console = ConsoleHandler(sys.stdout)
    file_handler = logging.StreamHandler(handle)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(_TextFormatter())

    for existing in list(log.handlers):
        log.removeHandler(existing)
    log.addHandler(console)
    log.addHandler(file_handler)
    log.setLevel(logging.DEBUG)
    log.propagate = False

    def cleanup() -> None:
        log.removeHandler(console)
        log.removeHandler(file_handler)
        handle.close()

    return cleanup