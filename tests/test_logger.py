from __future__ import annotations

import logging
from pathlib import Path

import pytest

from utils.logger import LOG_FILE_NAME, build_logging_config, configure_logging


def test_console_is_quieter_than_file(tmp_path: Path) -> None:
    config = build_logging_config(tmp_path / LOG_FILE_NAME, "debug", "warning")

    assert config["handlers"]["file"]["level"] == "DEBUG"
    assert config["handlers"]["stderr"]["level"] == "WARNING"
    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["googleapiclient.discovery_cache"] == {"level": "WARNING"}


def test_unknown_level_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        build_logging_config(tmp_path / LOG_FILE_NAME, "chatty", "warning")


def test_configure_logging_writes_file(tmp_path: Path) -> None:
    log_path = configure_logging(tmp_path / "logs", "INFO", "ERROR")
    logging.getLogger("triage.test").info("thread t-1 processed")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "logs" / LOG_FILE_NAME
    assert "thread t-1 processed" in log_path.read_text(encoding="utf-8")
