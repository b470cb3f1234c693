from __future__ import annotations

import pytest

from models.triage_rules import TriageLabels, TriageRules


@pytest.fixture
def rules() -> TriageRules:
    return TriageRules(
        known_senders=("chase.com", "boss@work.example"),
        important_keywords=("statement", "invoice"),
        suspicious_tlds=("ru", "tk"),
        shortener_domains=("bit.ly", "tinyurl.com"),
        phishing_phrases=("click here", "verify your account", "urgent"),
        dry_run=False,
        allow_hard_delete=True,
        batch_size=10,
    )


@pytest.fixture
def labels() -> TriageLabels:
    return TriageLabels()
