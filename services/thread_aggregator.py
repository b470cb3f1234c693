from __future__ import annotations

import logging
from typing import Iterable

from models.email_message import MailThread
from models.triage_rules import TriageLabels, TriageRules
from models.verdict import ThreadAction, ThreadOutcome, Verdict
from services.mailbox import MailboxDriver
from services.message_classifier import MessageClassifier

LOGGER = logging.getLogger(__name__)


def aggregate(verdicts: Iterable[Verdict]) -> Verdict:
    """Combine message verdicts; any flagged message flags the thread."""

    combined = Verdict()
    for verdict in verdicts:
        combined = combined | verdict
    return combined


def select_action(verdict: Verdict, dry_run: bool, allow_hard_delete: bool) -> ThreadAction:
    if verdict.spam and not dry_run and allow_hard_delete:
        return ThreadAction.TRASH
    if verdict.suspicious:
        return ThreadAction.SUSPICIOUS
    if verdict.important:
        return ThreadAction.IMPORTANT
    return ThreadAction.NONE


class ThreadAggregator:
    """Classify a thread and apply the resulting action through a mailbox driver."""

    def __init__(
        self,
        classifier: MessageClassifier,
        mailbox: MailboxDriver,
        rules: TriageRules,
        labels: TriageLabels,
    ):
        self._classifier = classifier
        self._mailbox = mailbox
        self._rules = rules
        self._labels = labels

    def decide(self, thread: MailThread) -> tuple[Verdict, ThreadAction]:
        verdict = aggregate(self._classifier.classify(message) for message in thread.messages)
        action = select_action(verdict, self._rules.dry_run, self._rules.allow_hard_delete)
        if verdict.spam and action is not ThreadAction.TRASH:
            LOGGER.info(
                "Thread %s looks like spam but trash is disabled (dry_run=%s, allow_hard_delete=%s)",
                thread.id,
                self._rules.dry_run,
                self._rules.allow_hard_delete,
            )
        return verdict, action

    def process(self, thread_id: str, view: str) -> ThreadOutcome:
        verdict = Verdict()
        action = ThreadAction.NONE
        try:
            thread = self._mailbox.get_thread(thread_id)
            verdict, action = self.decide(thread)
            self._execute(thread_id, action)
            self._mailbox.apply_label(thread_id, self._labels.processed)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Failed to process thread %s in %s", thread_id, view)
            return ThreadOutcome(thread_id, view, verdict, action, error=f"{type(exc).__name__}: {exc}")

        LOGGER.info("Thread %s (%s) -> %s [%s]", thread_id, view, action.value, verdict.describe())
        return ThreadOutcome(thread_id, view, verdict, action)

    def _execute(self, thread_id: str, action: ThreadAction) -> None:
        if action is ThreadAction.TRASH:
            self._mailbox.trash_thread(thread_id)
        elif action is ThreadAction.SUSPICIOUS:
            self._mailbox.apply_label(thread_id, self._labels.suspicious)
            self._mailbox.star_thread(thread_id)
        elif action is ThreadAction.IMPORTANT:
            self._mailbox.apply_label(thread_id, self._labels.important)
            self._mailbox.mark_important(thread_id)
            self._mailbox.star_thread(thread_id)
