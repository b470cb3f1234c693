from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

LOG_FILE_NAME = "mail_triage.log"
NOISY_LOGGERS = ("googleapiclient.discovery_cache", "google_auth_oauthlib", "schedule")


def build_logging_config(log_path: Path, level: str, console_level: str) -> Dict[str, Any]:
    """Return a dictConfig mapping with a full file log and a quieter console.

    The console handler only shows records at ``console_level`` or above
    because the CLI already prints a results table.
    """

    file_level = _level_name(level)
    console_level = _level_name(console_level)
    root_level = min(logging.getLevelName(file_level), logging.getLevelName(console_level))
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "console": {
                "format": "%(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "level": file_level,
                "filename": str(log_path),
                "maxBytes": 1_000_000,
                "backupCount": 3,
                "encoding": "utf-8",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": console_level,
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
        "root": {
            "handlers": ["file", "stderr"],
            "level": logging.getLevelName(root_level),
        },
    }


def _level_name(level: str) -> str:
    name = level.strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"Unknown log level: {level}")
    return name


def configure_logging(log_dir: Path, level: str = "INFO", console_level: str = "WARNING") -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    logging.config.dictConfig(build_logging_config(log_path, level, console_level))
    logging.getLogger(__name__).debug("Logging to %s (file=%s, console=%s)", log_path, level, console_level)
    return log_path
