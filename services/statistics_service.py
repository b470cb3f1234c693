from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Mapping

LOGGER = logging.getLogger(__name__)


class StatisticsService:
    """Very small JSON-backed stats store."""

    def __init__(self, stats_file: Path):
        self._stats_file = stats_file
        self._stats_file.parent.mkdir(parents=True, exist_ok=True)
        self._stats_file.touch(exist_ok=True)
        if not self._stats_file.read_text(encoding="utf-8").strip():
            self._write({})

    def _read(self) -> Dict:
        try:
            return json.loads(self._stats_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("Stats file was corrupt, resetting %s", self._stats_file)
            self._write({})
            return {}

    def _write(self, payload: Dict) -> None:
        self._stats_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def record_run(self, account: str, action_counts: Mapping[str, int], failures: int) -> None:
        stats = self._read()
        self._bump(stats, action_counts, failures)
        self._bump(self._account_bucket(stats, account), action_counts, failures)
        self._write(stats)

    def snapshot(self) -> Dict:
        return self._read()

    @staticmethod
    def _bump(bucket: Dict, action_counts: Mapping[str, int], failures: int) -> None:
        bucket["runs"] = bucket.get("runs", 0) + 1
        bucket["threads_processed"] = bucket.get("threads_processed", 0) + sum(action_counts.values())
        bucket["failures"] = bucket.get("failures", 0) + failures
        actions = Counter(bucket.get("actions", {}))
        actions.update(action_counts)
        bucket["actions"] = dict(actions)

    def _account_bucket(self, stats: Dict, account: str) -> Dict:
        accounts = stats.setdefault("accounts", {})
        return accounts.setdefault(account, {})
