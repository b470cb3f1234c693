from __future__ import annotations

import json
from pathlib import Path

import pytest

from utils.detectors import has_shorteners
from utils.rules_loader import load_triage_rules


def _write_rules(tmp_path: Path, payload: dict) -> Path:
    rules_path = tmp_path / "triage_rules.json"
    rules_path.write_text(json.dumps(payload), encoding="utf-8")
    return rules_path


def test_rules_are_normalized(tmp_path: Path) -> None:
    rules_path = _write_rules(
        tmp_path,
        {
            "known_senders": [" Chase.com ", "", "Boss@Work.example"],
            "phishing_phrases": ["Click Here"],
        },
    )
    rules = load_triage_rules(rules_path, dry_run=False, batch_size=5)

    assert rules.known_senders == ("chase.com", "boss@work.example")
    assert rules.phishing_phrases == ("click here",)
    assert rules.important_keywords == ()
    assert rules.dry_run is False
    assert rules.allow_hard_delete is False
    assert rules.batch_size == 5


def test_missing_rules_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_triage_rules(tmp_path / "missing.json")


def test_non_list_entry_is_rejected(tmp_path: Path) -> None:
    rules_path = _write_rules(tmp_path, {"suspicious_tlds": "ru"})
    with pytest.raises(ValueError):
        load_triage_rules(rules_path)


def test_non_positive_batch_size_is_rejected(tmp_path: Path) -> None:
    rules_path = _write_rules(tmp_path, {})
    with pytest.raises(ValueError):
        load_triage_rules(rules_path, batch_size=0)


def test_bundled_rules_file_loads() -> None:
    bundled = Path(__file__).resolve().parent.parent / "rules" / "triage_rules.json"
    rules = load_triage_rules(bundled)
    assert "bit.ly" in rules.shortener_domains
    assert rules.dry_run is True


def test_bundled_shorteners_do_not_match_ordinary_domains() -> None:
    bundled = Path(__file__).resolve().parent.parent / "rules" / "triage_rules.json"
    rules = load_triage_rules(bundled)

    assert not has_shorteners(["https://microsoft.com/account", "https://paypal.com.evil.example/x"], rules.shortener_domains)
    assert has_shorteners(["https://t.co/abc123"], rules.shortener_domains)
