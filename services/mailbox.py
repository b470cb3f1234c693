from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set, Tuple

from models.email_message import MailThread

LOGGER = logging.getLogger(__name__)

STARRED = "STARRED"
IMPORTANT = "IMPORTANT"
TRASH = "TRASH"


class MailboxDriver(ABC):
    """Read/write capabilities the triage core needs from a mail provider."""

    @abstractmethod
    def list_thread_ids(self, view: str, exclude_label: str, max_results: int) -> List[str]:
        """Return up to ``max_results`` thread ids in ``view`` not carrying ``exclude_label``."""
        raise NotImplementedError

    @abstractmethod
    def get_thread(self, thread_id: str) -> MailThread:
        """Load one thread with all of its messages."""
        raise NotImplementedError

    @abstractmethod
    def ensure_label(self, label_name: str) -> str:
        """Create the label if needed and return its id."""
        raise NotImplementedError

    @abstractmethod
    def apply_label(self, thread_id: str, label_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def star_thread(self, thread_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def mark_important(self, thread_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def trash_thread(self, thread_id: str) -> None:
        raise NotImplementedError


class InMemoryMailbox(MailboxDriver):
    """Deterministic mailbox used by tests and offline runs.

    Threads live in named views. Every write is appended to ``calls`` as a
    ``(operation, thread_id, argument)`` tuple so callers can assert on the
    exact sequence of side effects. ``failures`` maps a thread id to the
    exception raised on any write touching that thread, ``read_failures``
    to the exception raised when that thread is loaded, and
    ``fetch_failures`` a view name to the exception raised when it is listed.
    """

    def __init__(self, threads: Optional[Dict[str, Iterable[MailThread]]] = None):
        self._views: Dict[str, List[str]] = defaultdict(list)
        self._threads: Dict[str, MailThread] = {}
        self._labels: Dict[str, Set[str]] = defaultdict(set)
        self.created_labels: List[str] = []
        self.calls: List[Tuple[str, str, Optional[str]]] = []
        self.failures: Dict[str, Exception] = {}
        self.read_failures: Dict[str, Exception] = {}
        self.fetch_failures: Dict[str, Exception] = {}
        for view, items in (threads or {}).items():
            for thread in items:
                self.add_thread(view, thread)

    def add_thread(self, view: str, thread: MailThread) -> None:
        self._views[view].append(thread.id)
        self._threads[thread.id] = thread
        self._labels[thread.id].update(thread.labels)

    def labels_for(self, thread_id: str) -> Set[str]:
        return set(self._labels.get(thread_id, set()))

    def list_thread_ids(self, view: str, exclude_label: str, max_results: int) -> List[str]:
        if view in self.fetch_failures:
            raise self.fetch_failures[view]
        selected = [
            thread_id for thread_id in self._views.get(view, []) if exclude_label not in self._labels[thread_id]
        ][:max_results]
        LOGGER.debug("Listed %s thread(s) from in-memory view %s", len(selected), view)
        return selected

    def get_thread(self, thread_id: str) -> MailThread:
        if thread_id in self.read_failures:
            raise self.read_failures[thread_id]
        thread = self._threads[thread_id]
        return replace(thread, labels=tuple(sorted(self._labels[thread_id])))

    def ensure_label(self, label_name: str) -> str:
        if label_name not in self.created_labels:
            self.created_labels.append(label_name)
        return label_name

    def apply_label(self, thread_id: str, label_name: str) -> None:
        self._write("label", thread_id, label_name)

    def star_thread(self, thread_id: str) -> None:
        self._write("star", thread_id, STARRED)

    def mark_important(self, thread_id: str) -> None:
        self._write("important", thread_id, IMPORTANT)

    def trash_thread(self, thread_id: str) -> None:
        self._write("trash", thread_id, TRASH)

    def _write(self, operation: str, thread_id: str, label: str) -> None:
        if thread_id in self.failures:
            raise self.failures[thread_id]
        self.calls.append((operation, thread_id, label))
        self._labels[thread_id].add(label)
