"""Signal extraction from message records.

Every function here is total: malformed or missing input produces empty
results instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from models.email_message import EmailMessage

AUTH_RESULTS_HEADER = "authentication-results"

_DOMAIN_RE = re.compile(r"@([a-z0-9.-]+\.[a-z]{2,})", re.IGNORECASE)
_URL_RE = re.compile(r"https?://[^\s)>'\"]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?"


@dataclass(frozen=True, slots=True)
class ExtractedSignals:
    sender: str
    sender_domain: str
    reply_domain: str
    subject: str
    body: str
    urls: Tuple[str, ...]
    spf_pass: bool
    dkim_pass: bool


def extract_domain(address: Optional[str]) -> str:
    if not address:
        return ""
    match = _DOMAIN_RE.search(address)
    if not match:
        return ""
    return match.group(1).lower()


def extract_urls(text: Optional[str]) -> List[str]:
    if not text:
        return []
    urls: List[str] = []
    for match in _URL_RE.finditer(text):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if url:
            urls.append(url.lower())
    return urls


def auth_passes(auth_results: Optional[str]) -> Tuple[bool, bool]:
    """Return ``(spf_pass, dkim_pass)`` for an Authentication-Results value."""

    lowered = (auth_results or "").lower()
    return "spf=pass" in lowered, "dkim=pass" in lowered


def extract_signals(message: EmailMessage) -> ExtractedSignals:
    spf_pass, dkim_pass = auth_passes(message.header(AUTH_RESULTS_HEADER))
    return ExtractedSignals(
        sender=(message.sender or "").lower(),
        sender_domain=extract_domain(message.sender),
        reply_domain=extract_domain(message.reply_to),
        subject=message.subject or "",
        body=message.body or "",
        urls=tuple(extract_urls(message.body)),
        spf_pass=spf_pass,
        dkim_pass=dkim_pass,
    )
