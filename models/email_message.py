from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Tuple


@dataclass(frozen=True, slots=True)
class EmailMessage:
    """Read-only view of a single message inside a thread."""

    id: str
    thread_id: str | None
    subject: str
    body: str
    snippet: str = ""
    sender: str = ""
    reply_to: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    labels: Tuple[str, ...] = ()
    received_at: datetime | None = None

    def header(self, name: str) -> str:
        return self.headers.get(name.lower(), "")


@dataclass(frozen=True, slots=True)
class MailThread:
    """A conversation and its messages in mailbox order."""

    id: str
    messages: Tuple[EmailMessage, ...] = ()
    labels: Tuple[str, ...] = ()

    @property
    def subject(self) -> str:
        return self.messages[0].subject if self.messages else ""
