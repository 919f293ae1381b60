"""In-memory persistence for finished score records."""

from __future__ import annotations

from threading import Lock
from typing import Callable
from uuid import uuid4

from exam_app.core.models import ScoreRecord


class ScoreStore:
    """Keeps score records by id; records are stored as-is and never modified."""

    def __init__(self) -> None:
        self._records: dict[str, ScoreRecord] = {}
        self._lock = Lock()

    def persist_score_record(self, record: ScoreRecord) -> str:
        record_id = uuid4().hex
        with self._lock:
            self._records[record_id] = record
        return record_id

    def get_record(self, record_id: str) -> ScoreRecord:
        with self._lock:
            return self._records[record_id]

    def records_for_user(self, user_id: str) -> list[tuple[str, ScoreRecord]]:
        """(record_id, record) pairs for one user, oldest first."""
        return self._matching(lambda record: record.user_id == user_id)

    def records_for_quiz_set(self, quiz_set_id: str) -> list[tuple[str, ScoreRecord]]:
        return self._matching(lambda record: record.quiz_set_id == quiz_set_id)

    def _matching(self, predicate: Callable[[ScoreRecord], bool]) -> list[tuple[str, ScoreRecord]]:
        with self._lock:
            matches = [(record_id, record) for record_id, record in self._records.items() if predicate(record)]
        return sorted(matches, key=lambda entry: entry[1].created_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
