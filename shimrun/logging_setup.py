"""
Logging bootstrap.
Console output goes to stderr through rich; a JSONL sink is added when
SHIMRUN_LOG_PATH is set.
"""

import json
import logging
import os
from datetime import UTC
from datetime import datetime
from pathlib import Path

from rich.logging import RichHandler

from .console import err_console

ENV_LOG_PATH = "SHIMRUN_LOG_PATH"
ENV_LOG_LEVEL = "SHIMRUN_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"

_RESERVED_ATTRS = frozenset(
    {
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "name",
        "taskName",
    }
)


class JsonlHandler(logging.Handler):
    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            base = {
                "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
                "lvl": record.levelname,
                "schema": {"name": "shimrun.log", "ver": "1.0.0"},
                "logger": record.name,
                "pid": record.process,
                "message": record.getMessage(),
            }
            if record.exc_info:
                base["exc"] = logging.Formatter().formatException(record.exc_info)
            for k, v in record.__dict__.items():
                if k in _RESERVED_ATTRS:
                    continue
                base.setdefault(k, v)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(base, ensure_ascii=False, default=str) + "\n")
        except Exception:
            self.handleError(record)


def init_logging(path: str | None = None, level: str | None = None) -> None:
    """Configure the root logger. Safe to call more than once."""
    path = path or os.environ.get(ENV_LOG_PATH)
    level = (level or os.environ.get(ENV_LOG_LEVEL) or DEFAULT_LEVEL).upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.WARNING))

    # Remove existing handlers of the same kind to avoid duplicates
    for h in list(root.handlers):
        if isinstance(h, (JsonlHandler, RichHandler)):
            root.removeHandler(h)

    root.addHandler(RichHandler(console=err_console, show_time=False, show_path=False, markup=False))
    if path:
        root.addHandler(JsonlHandler(path))
