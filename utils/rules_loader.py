from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from models.triage_rules import TriageRules, normalize_entries

LOGGER = logging.getLogger(__name__)

LIST_KEYS = (
    "known_senders",
    "important_keywords",
    "suspicious_tlds",
    "shortener_domains",
    "phishing_phrases",
)


def load_triage_rules(
    rules_file: Path,
    *,
    dry_run: bool = True,
    allow_hard_delete: bool = False,
    batch_size: int = 25,
) -> TriageRules:
    """Read the heuristic lists from ``rules_file`` and freeze them with the run flags."""

    if not rules_file.exists():
        raise FileNotFoundError(f"Missing rules file: {rules_file}")
    data: Dict[str, Any] = json.loads(rules_file.read_text(encoding="utf-8"))

    lists = {}
    for key in LIST_KEYS:
        value = data.get(key, [])
        if not isinstance(value, list):
            raise ValueError(f"'{key}' in {rules_file} must be a list, got {type(value).__name__}")
        lists[key] = normalize_entries(value)

    unknown = sorted(set(data) - set(LIST_KEYS))
    if unknown:
        LOGGER.warning("Ignoring unknown keys in %s: %s", rules_file, ", ".join(unknown))

    rules = TriageRules(
        dry_run=dry_run,
        allow_hard_delete=allow_hard_delete,
        batch_size=batch_size,
        **lists,
    )
    LOGGER.debug(
        "Loaded %s known sender(s), %s keyword(s), %s phrase(s) from %s",
        len(rules.known_senders),
        len(rules.important_keywords),
        len(rules.phishing_phrases),
        rules_file,
    )
    return rules
