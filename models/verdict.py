from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class Verdict:
    """Three independent flags produced for a message or a whole thread."""

    important: bool = False
    suspicious: bool = False
    spam: bool = False

    def __or__(self, other: "Verdict") -> "Verdict":
        return Verdict(
            important=self.important or other.important,
            suspicious=self.suspicious or other.suspicious,
            spam=self.spam or other.spam,
        )

    def describe(self) -> str:
        flags = [name for name in ("important", "suspicious", "spam") if getattr(self, name)]
        return ", ".join(flags) or "clean"


class ThreadAction(str, Enum):
    TRASH = "trash"
    SUSPICIOUS = "suspicious"
    IMPORTANT = "important"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class ThreadOutcome:
    """Result of handling one thread; ``error`` is set when handling failed."""

    thread_id: str
    view: str
    verdict: Verdict
    action: ThreadAction
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
