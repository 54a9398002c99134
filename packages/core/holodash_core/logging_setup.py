"""JSON-lines client logging, crash hooks and the native fault log."""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

from .config import config_root


_LOGGER_NAME = "holodash"
LOG_FILE_NAME = "holodash.log"
FAULT_FILE_NAME = "fault.log"

# Extras copied into each JSON record when a call site passes them.
CONTEXT_FIELDS = ("event", "crash_id", "endpoint", "state", "mode", "tick", "generation")

_fault_stream: IO[str] | None = None


def log_dir() -> Path:
    path = config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, timestamped from the record itself."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "src": f"{record.module}:{record.lineno}",
            "msg": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            if key in record.__dict__:
                payload[key] = _plain(record.__dict__[key])
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    level: int = logging.INFO,
    directory: Path | None = None,
) -> logging.Logger:
    """Attach the rotating JSON file handler (and optionally stderr) once per process."""
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(level)
    target_dir = directory or log_dir()
    target_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(target_dir / LOG_FILE_NAME),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    file_handler.setFormatter(JsonFormatter())
    logger.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", "%H:%M:%S"))
        logger.addHandler(stream_handler)

    logger.info("logging to %s", target_dir, extra={"event": "logging_configured"})
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def _install_fault_handler(logger: logging.Logger, directory: Path) -> None:
    global _fault_stream
    if _fault_stream is None:
        _fault_stream = (directory / FAULT_FILE_NAME).open("a", encoding="utf-8")
    faulthandler.enable(file=_fault_stream, all_threads=True)
    logger.info("native faults go to %s", _fault_stream.name, extra={"event": "fault_handler_enabled"})


def _crash(logger: logging.Logger, event: str, exc_info: tuple) -> None:
    crash_id = uuid.uuid4().hex[:12]
    logger.critical(
        "%s crash_id=%s",
        event.replace("_", " "),
        crash_id,
        exc_info=exc_info,
        extra={"event": event, "crash_id": crash_id},
    )


def install_crash_hooks(directory: Path | None = None) -> None:
    """Route uncaught exceptions from any thread into the log; Ctrl+C keeps its default."""
    logger = get_logger()

    def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return
        _crash(logger, "uncaught_exception", (exc_type, exc_value, exc_tb))

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        _crash(logger, "thread_exception", (args.exc_type, args.exc_value, args.exc_traceback))

    sys.excepthook = _log_uncaught
    threading.excepthook = _thread_hook
    _install_fault_handler(logger, directory or log_dir())
