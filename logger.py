"""
Logging

Unified logging entry point with run-context tracking and timing helpers.

Quick start:
============

```python
from logger import get_logger, set_run_context, log_execution_time

logger = get_logger(__name__)

# Set once when a loop run starts (and again for each turn)
set_run_context(run_id="run-123", turn=1)

logger.info("turn started")
logger.error("turn failed", exc_info=True)

with log_execution_time("jury evaluation", logger):
    verdict = jury.vote(context)
```

Output:
=======
- Console: colored, human readable (when attached to a TTY)
- File: one JSON object per line, easy to grep and ship
"""
import json
import logging
import os
import sys
import tempfile
import time
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# ============================================================
# Configuration
# ============================================================

ROOT_LOGGER_NAME = "loopguard"


def _get_log_dir() -> Path:
    """Resolve the log directory ($LOOPGUARD_LOG_DIR or a temp dir)."""
    configured = os.environ.get("LOOPGUARD_LOG_DIR")
    if configured:
        return Path(configured)
    return Path(tempfile.gettempdir()) / "loopguard" / "logs"


_log_dir = _get_log_dir()


LOG_CONFIG = {
    "level": os.environ.get("LOOPGUARD_LOG_LEVEL", "INFO").upper(),
    "console_enabled": True,
    "file_enabled": os.environ.get("LOOPGUARD_LOG_FILE", "1") != "0",
    "file": str(_log_dir / "app.log"),
    "error_file": str(_log_dir / "error.log"),
    "max_size": 20 * 1024 * 1024,  # 20MB
    "backup_count": 5,
}

# ============================================================
# Context variables (run tracking)
# ============================================================
_run_id: ContextVar[str] = ContextVar("run_id", default="")
_turn: ContextVar[str] = ContextVar("turn", default="")


def set_run_context(run_id: str = "", turn: Optional[int] = None) -> None:
    """
    Set the run context stamped on every log record.

    Args:
        run_id: loop run identifier
        turn: current turn number (1-based, for humans)
    """
    if run_id:
        _run_id.set(run_id)
    if turn is not None:
        _turn.set(str(turn))


def clear_run_context() -> None:
    """Clear the run context (call when a run finishes)."""
    _run_id.set("")
    _turn.set("")


@contextmanager
def log_execution_time(operation: str, logger: Optional[logging.Logger] = None):
    """
    Log how long an operation took.

    Args:
        operation: operation name
        logger: logger to write to (defaults to the root project logger)

    Usage:
        with log_execution_time("jury evaluation", logger):
            verdict = jury.vote(context)
    """
    if logger is None:
        logger = logging.getLogger(ROOT_LOGGER_NAME)

    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"{operation} finished", extra={
            "operation": operation,
            "duration_ms": round(duration_ms, 2),
        })


# ============================================================
# Formatters
# ============================================================

class _ContextFilter(logging.Filter):
    """Attach run context to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get() or "-"
        record.turn = _turn.get() or "-"
        return True


class _ConsoleFormatter(logging.Formatter):
    """Console formatter (colored when attached to a TTY)."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s:%(turn)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_colors = sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if self.use_colors:
            record = logging.makeLogRecord(record.__dict__)
            color = self.COLORS.get(record.levelname, "")
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """
    JSON formatter for file output.

    Example line:
    {"ts":"2026-01-01T12:00:00.123+00:00","level":"INFO","run":"run-1","turn":"3","logger":"termination","msg":"max turns reached"}
    """

    _RESERVED = {
        "name", "msg", "args", "created", "levelname", "levelno",
        "pathname", "filename", "module", "exc_info", "exc_text",
        "stack_info", "lineno", "funcName", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message",
        "taskName", "run_id", "turn",
    }

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "run": getattr(record, "run_id", "-"),
            "turn": getattr(record, "turn", "-"),
            "logger": record.name.replace(f"{ROOT_LOGGER_NAME}.", ""),
            "file": f"{record.filename}:{record.lineno}",
            "func": record.funcName or "-",
            "msg": record.getMessage(),
        }

        if record.exc_info:
            log["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "msg": str(record.exc_info[1]) if record.exc_info[1] else None,
                "trace": "".join(traceback.format_exception(*record.exc_info)).strip(),
            }

        # extra= fields
        for key, value in record.__dict__.items():
            if key not in self._RESERVED:
                try:
                    json.dumps(value)
                    log[key] = value
                except (TypeError, ValueError):
                    log[key] = str(value)

        return json.dumps(log, ensure_ascii=False, default=str)


# ============================================================
# Logger management
# ============================================================

class _LoggerManager:
    """Logger manager (process-wide singleton)."""

    _initialized = False
    _loggers: dict[str, logging.Logger] = {}

    @classmethod
    def setup(cls) -> None:
        """Configure handlers on the project root logger once."""
        if cls._initialized:
            return

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(LOG_CONFIG["level"])
        root.handlers.clear()

        context_filter = _ContextFilter()

        if LOG_CONFIG["console_enabled"]:
            console = logging.StreamHandler(sys.stdout)
            console.setLevel(LOG_CONFIG["level"])
            console.setFormatter(_ConsoleFormatter())
            console.addFilter(context_filter)
            root.addHandler(console)

        if LOG_CONFIG["file_enabled"]:
            try:
                Path(LOG_CONFIG["file"]).parent.mkdir(parents=True, exist_ok=True)
                Path(LOG_CONFIG["error_file"]).parent.mkdir(parents=True, exist_ok=True)
            except OSError:
                # Read-only filesystem: keep console logging only
                LOG_CONFIG["file_enabled"] = False

        if LOG_CONFIG["file_enabled"]:
            file_handler = RotatingFileHandler(
                LOG_CONFIG["file"],
                maxBytes=LOG_CONFIG["max_size"],
                backupCount=LOG_CONFIG["backup_count"],
                encoding="utf-8",
            )
            file_handler.setLevel(LOG_CONFIG["level"])
            file_handler.setFormatter(_JsonFormatter())
            file_handler.addFilter(context_filter)
            root.addHandler(file_handler)

            error_handler = RotatingFileHandler(
                LOG_CONFIG["error_file"],
                maxBytes=LOG_CONFIG["max_size"],
                backupCount=LOG_CONFIG["backup_count"],
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(_JsonFormatter())
            error_handler.addFilter(context_filter)
            root.addHandler(error_handler)

        cls._initialized = True

    @classmethod
    def get(cls, name: Optional[str] = None) -> logging.Logger:
        """
        Get a logger under the project root.

        Args:
            name: logger name (dotted module path is shortened to its last part)
        """
        if not cls._initialized:
            cls.setup()

        if not name or name == ROOT_LOGGER_NAME:
            full_name = ROOT_LOGGER_NAME
        else:
            short = name.split(".")[-1]
            full_name = f"{ROOT_LOGGER_NAME}.{short}"

        if full_name not in cls._loggers:
            cls._loggers[full_name] = logging.getLogger(full_name)

        return cls._loggers[full_name]


# ============================================================
# Public API
# ============================================================

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger.

    Args:
        name: logger name, usually ``__name__``

    Returns:
        Logger instance

    Usage:
        logger = get_logger(__name__)
        logger.info("loop started")
    """
    return _LoggerManager.get(name)


def set_level(level: str) -> None:
    """
    Set the log level for the project logger and its handlers.

    Args:
        level: 'DEBUG', 'INFO', 'WARNING', 'ERROR' or 'CRITICAL'
    """
    LOG_CONFIG["level"] = level.upper()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper())
    for handler in root.handlers:
        if handler.level != logging.ERROR:
            handler.setLevel(level.upper())
