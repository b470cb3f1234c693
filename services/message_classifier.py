from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from models.email_message import EmailMessage
from models.triage_rules import TriageRules
from models.verdict import Verdict
from utils import detectors
from utils.extractors import ExtractedSignals, extract_signals

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Detections:
    """Detector outputs for one message."""

    known_sender: bool
    weird_tld: bool
    shorteners: bool
    urgent: bool
    keyword: bool
    mismatch: bool
    spf_pass: bool
    dkim_pass: bool
    has_urls: bool


HeuristicRule = Tuple[str, Callable[[Detections], bool]]

# Evaluation order matters: the first matching reason is the one reported.
SPAM_RULES: Tuple[HeuristicRule, ...] = (
    ("suspicious-tld", lambda d: d.weird_tld),
    ("shortener-with-urgent-tone", lambda d: d.shorteners and d.urgent),
    (
        "unauthenticated-urgent-link",
        lambda d: not d.spf_pass and not d.dkim_pass and d.urgent and d.has_urls,
    ),
)
SUSPICIOUS_RULES: Tuple[HeuristicRule, ...] = (
    ("reply-to-mismatch", lambda d: d.mismatch),
    ("urgent-tone-with-link", lambda d: d.urgent and d.has_urls),
)
IMPORTANT_RULES: Tuple[HeuristicRule, ...] = (
    ("known-sender", lambda d: d.known_sender),
    ("authenticated-keyword", lambda d: d.keyword and (d.spf_pass or d.dkim_pass)),
)


@dataclass(frozen=True, slots=True)
class Classification:
    signals: ExtractedSignals
    detections: Detections
    reasons: Tuple[str, ...]
    verdict: Verdict


def _first_match(rules: Sequence[HeuristicRule], detections: Detections) -> Optional[str]:
    for reason, predicate in rules:
        if predicate(detections):
            return reason
    return None


class MessageClassifier:
    """Score a single message as important, suspicious or spam."""

    def __init__(self, rules: TriageRules):
        self.rules = rules

    def detect(self, signals: ExtractedSignals) -> Detections:
        rules = self.rules
        return Detections(
            known_sender=detectors.is_known_sender(signals.sender, signals.sender_domain, rules.known_senders),
            weird_tld=detectors.has_weird_tld(signals.sender_domain, rules.suspicious_tlds),
            shorteners=detectors.has_shorteners(signals.urls, rules.shortener_domains),
            urgent=detectors.urgent_tone(signals.subject, signals.body, rules.phishing_phrases),
            keyword=detectors.keyword_important(signals.subject, signals.body, rules.important_keywords),
            mismatch=detectors.domain_mismatch(signals.sender_domain, signals.reply_domain),
            spf_pass=signals.spf_pass,
            dkim_pass=signals.dkim_pass,
            has_urls=bool(signals.urls),
        )

    def explain(self, email: EmailMessage) -> Classification:
        signals = extract_signals(email)
        detections = self.detect(signals)

        # A known sender is never spam or suspicious, and spam shadows suspicious.
        spam_reason = None if detections.known_sender else _first_match(SPAM_RULES, detections)
        suspicious_reason = None
        if spam_reason is None and not detections.known_sender:
            suspicious_reason = _first_match(SUSPICIOUS_RULES, detections)
        important_reason = _first_match(IMPORTANT_RULES, detections)

        important = important_reason is not None
        verdict = Verdict(
            important=important,
            suspicious=suspicious_reason is not None and not important,
            spam=spam_reason is not None and not important,
        )
        reasons: List[str] = [
            reason for reason in (important_reason, spam_reason, suspicious_reason) if reason
        ]
        return Classification(signals=signals, detections=detections, reasons=tuple(reasons), verdict=verdict)

    def classify(self, email: EmailMessage) -> Verdict:
        result = self.explain(email)
        if result.reasons:
            LOGGER.debug("Heuristics fired for %s: %s", email.id, ", ".join(result.reasons))
        LOGGER.info("Message %s classified as %s", email.id, result.verdict.describe())
        return result.verdict
