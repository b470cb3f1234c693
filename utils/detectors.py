from __future__ import annotations

from typing import Iterable, Sequence


def _contains_any(haystacks: Iterable[str], needles: Iterable[str]) -> bool:
    lowered = [text.lower() for text in haystacks if text]
    for needle in needles:
        needle = needle.strip().lower()
        if needle and any(needle in text for text in lowered):
            return True
    return False


def is_known_sender(sender_address: str, sender_domain: str, known_senders: Iterable[str]) -> bool:
    address = (sender_address or "").lower()
    domain = (sender_domain or "").lower()
    if not address and not domain:
        return False
    for entry in known_senders:
        entry = entry.strip().lower()
        if not entry:
            continue
        if "@" in entry:
            if address and entry in address:
                return True
        elif domain and domain.endswith(entry):
            return True
    return False


def has_weird_tld(sender_domain: str, spam_tlds: Iterable[str]) -> bool:
    if not sender_domain:
        return False
    domain = sender_domain.lower()
    for tld in spam_tlds:
        tld = tld.strip().lower().lstrip(".")
        if tld and domain.endswith("." + tld):
            return True
    return False


def has_shorteners(urls: Sequence[str], shortener_domains: Iterable[str]) -> bool:
    return _contains_any(urls, shortener_domains)


def urgent_tone(subject: str, body: str, phishing_phrases: Iterable[str]) -> bool:
    return _contains_any((subject, body), phishing_phrases)


def keyword_important(subject: str, body: str, important_keywords: Iterable[str]) -> bool:
    return _contains_any((subject, body), important_keywords)


def domain_mismatch(sender_domain: str, reply_domain: str) -> bool:
    # An absent reply-to never counts as a mismatch.
    return bool(sender_domain) and bool(reply_domain) and sender_domain != reply_domain
