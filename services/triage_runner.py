from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from models.triage_rules import TriageLabels, TriageRules
from models.verdict import ThreadOutcome
from services.mailbox import MailboxDriver
from services.message_classifier import MessageClassifier
from services.thread_aggregator import ThreadAggregator

LOGGER = logging.getLogger(__name__)


@dataclass
class TriageReport:
    outcomes: List[ThreadOutcome] = field(default_factory=list)
    view_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def action_counts(self) -> Counter[str]:
        return Counter(outcome.action.value for outcome in self.outcomes if outcome.ok)

    @property
    def failures(self) -> List[ThreadOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def processed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)


class TriageRunner:
    """Run one bounded triage batch over a set of mailbox views."""

    def __init__(self, mailbox: MailboxDriver, rules: TriageRules, labels: TriageLabels):
        self._mailbox = mailbox
        self._rules = rules
        self._labels = labels
        self._aggregator = ThreadAggregator(MessageClassifier(rules), mailbox, rules, labels)

    def ensure_labels(self) -> Dict[str, str]:
        return {name: self._mailbox.ensure_label(name) for name in self._labels.all()}

    def run(self, views: Sequence[str], max_results: Optional[int] = None) -> TriageReport:
        limit = max_results or self._rules.batch_size
        report = TriageReport()
        self.ensure_labels()

        for view in views:
            try:
                thread_ids = self._mailbox.list_thread_ids(view, self._labels.processed, limit)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("Failed to list threads in %s", view)
                report.view_errors[view] = f"{type(exc).__name__}: {exc}"
                continue

            LOGGER.info("Processing %s thread(s) from %s", len(thread_ids), view)
            for thread_id in thread_ids:
                report.outcomes.append(self._aggregator.process(thread_id, view))

        if report.failures:
            LOGGER.warning("%s thread(s) failed and will be retried next run", len(report.failures))
        return report
