from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


def normalize_entries(values: Iterable[str]) -> Tuple[str, ...]:
    """Lowercase and strip list entries, dropping blanks."""

    cleaned = (str(value).strip().lower() for value in values)
    return tuple(value for value in cleaned if value)


@dataclass(frozen=True, slots=True)
class TriageRules:
    """Heuristic lists and run flags shared by the classifier and aggregator."""

    known_senders: Tuple[str, ...] = ()
    important_keywords: Tuple[str, ...] = ()
    suspicious_tlds: Tuple[str, ...] = ()
    shortener_domains: Tuple[str, ...] = ()
    phishing_phrases: Tuple[str, ...] = ()
    dry_run: bool = True
    allow_hard_delete: bool = False
    batch_size: int = 25

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")


@dataclass(frozen=True, slots=True)
class TriageLabels:
    important: str = "Triage/Important"
    suspicious: str = "Triage/Suspicious"
    processed: str = "Triage/Processed"

    def all(self) -> Tuple[str, str, str]:
        return (self.important, self.suspicious, self.processed)
