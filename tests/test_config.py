from __future__ import annotations

import json
from pathlib import Path

import pytest

from utils.config import load_config


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in ("DRY_RUN", "ALLOW_HARD_DELETE", "SCAN_VIEWS", "FETCH_BATCH_SIZE", "LABEL_PROCESSED"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("STATS_FILE", str(tmp_path / "stats.json"))
    monkeypatch.setenv("GMAIL_ACCOUNTS_FILE", str(tmp_path / "accounts.json"))
    return tmp_path


def test_defaults_are_safe(isolated_env: Path) -> None:
    config = load_config(isolated_env / "missing.env")
    assert config.dry_run is True
    assert config.allow_hard_delete is False
    assert config.scan_views == ("inbox", "spam")
    assert config.fetch_batch_size == 25
    assert config.labels.processed == "Triage/Processed"


def test_env_overrides_and_accounts(isolated_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DRY_RUN", "no")
    monkeypatch.setenv("ALLOW_HARD_DELETE", "TRUE")
    monkeypatch.setenv("SCAN_VIEWS", "Inbox, trash")
    monkeypatch.setenv("LABEL_PROCESSED", "Done")
    (isolated_env / "accounts.json").write_text(
        json.dumps({"accounts": [{"name": "work", "user_id": "me@work.example"}]}),
        encoding="utf-8",
    )

    config = load_config(isolated_env / "missing.env")

    assert config.dry_run is False
    assert config.allow_hard_delete is True
    assert config.scan_views == ("inbox", "trash")
    assert config.labels.processed == "Done"
    assert config.get_account("work").user_id == "me@work.example"
    with pytest.raises(KeyError):
        config.get_account("ghost")


def test_invalid_batch_size(isolated_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FETCH_BATCH_SIZE", "0")
    with pytest.raises(ValueError):
        load_config(isolated_env / "missing.env")
