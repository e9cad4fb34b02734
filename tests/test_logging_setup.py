"""Tests for logging bootstrap."""

import json
import logging

import pytest
from rich.logging import RichHandler
from shimrun.logging_setup import JsonlHandler
from shimrun.logging_setup import init_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_jsonl_sink(tmp_path, root_logger):
    """Test records are written to the JSONL sink."""
    log_path = tmp_path / "logs" / "shimrun.jsonl"
    init_logging(path=str(log_path), level="debug")

    logging.getLogger("shimrun.test").info("resolved %s", "./a.ts", extra={"specifier": "./a.ts"})

    record = json.loads(log_path.read_text().splitlines()[-1])
    assert record["lvl"] == "INFO"
    assert record["logger"] == "shimrun.test"
    assert record["message"] == "resolved ./a.ts"
    assert record["specifier"] == "./a.ts"
    assert record["schema"]["name"] == "shimrun.log"


def test_repeated_init_does_not_duplicate_handlers(root_logger, monkeypatch):
    """Test init_logging can be called twice."""
    monkeypatch.delenv("SHIMRUN_LOG_PATH", raising=False)
    init_logging()
    init_logging()
    assert len([h for h in root_logger.handlers if isinstance(h, RichHandler)]) == 1
    assert not any(isinstance(h, JsonlHandler) for h in root_logger.handlers)


def test_level_from_environment(monkeypatch, root_logger):
    """Test the level comes from SHIMRUN_LOG_LEVEL."""
    monkeypatch.setenv("SHIMRUN_LOG_LEVEL", "error")
    init_logging()
    assert root_logger.level == logging.ERROR
