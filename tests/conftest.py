# num_search Remediation - Shared Test Fixtures
"""Shared pytest fixtures and an in-memory document store."""

from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Set

import pytest

from num_search_remediation.config import Settings
from num_search_remediation.core.log_sink import LogSink
from num_search_remediation.core.outcome_recorder import OutcomeRecorder
from num_search_remediation.engine.predicate import is_candidate, recompute_num_search
from num_search_remediation.models import JobRecord


class CursorError(Exception):
    """Injected cursor failure."""


class FakeCursor:
    """Non-restartable async cursor over a snapshot of documents."""

    def __init__(self, documents: List[dict], fail_after: Optional[int] = None):
        self._documents = list(documents)
        self._position = 0
        self.fail_after = fail_after
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict:
        if self.closed:
            raise StopAsyncIteration
        if self.fail_after is not None and self._position >= self.fail_after:
            raise CursorError("connection reset by peer")
        if self._position >= len(self._documents):
            raise StopAsyncIteration
        document = self._documents[self._position]
        self._position += 1
        return dict(document)

    async def close(self) -> None:
        self.closed = True


class FakeStore:
    """In-memory stand-in for MongoStore.

    Evaluates the candidate filter and the update pipeline with the pure
    Python predicates.
    """

    def __init__(
        self,
        documents: List[dict],
        failing_ids: Optional[Set] = None,
        cursor_fail_after: Optional[int] = None,
        connect_error: Optional[Exception] = None,
    ):
        self.documents: Dict = {doc["_id"]: dict(doc) for doc in documents}
        self.failing_ids = failing_ids or set()
        self.cursor_fail_after = cursor_fail_after
        self.connect_error = connect_error
        self.connected = False
        self.closed = False
        self.cursors: List[FakeCursor] = []
        self.criteria: List[dict] = []
        self.update_calls: List = []

    async def connect(self) -> None:
        if self.connect_error:
            raise self.connect_error
        self.connected = True

    async def close(self) -> None:
        self.connected = False
        self.closed = True

    def _matching(self) -> List[dict]:
        return [
            doc for doc in self.documents.values()
            if is_candidate(JobRecord.model_validate(doc))
        ]

    async def count_matching(self, criterion: dict) -> int:
        self.criteria.append(criterion)
        return len(self._matching())

    @asynccontextmanager
    async def open_cursor(self, criterion: dict):
        self.criteria.append(criterion)
        cursor = FakeCursor(self._matching(), fail_after=self.cursor_fail_after)
        self.cursors.append(cursor)
        try:
            yield cursor
        finally:
            await cursor.close()

    async def update_one(self, record_id, pipeline: list) -> bool:
        self.update_calls.append(record_id)
        if record_id in self.failing_ids:
            raise RuntimeError(f"write conflict on {record_id}")

        doc = self.documents[record_id]
        new_value = recompute_num_search(JobRecord.model_validate(doc))
        if "num_search" in doc and doc["num_search"] == new_value:
            return False
        if "num_search" not in doc and new_value is None:
            return False
        doc["num_search"] = new_value
        return True


@pytest.fixture
def settings(tmp_path):
    """Settings writing all sinks and history under tmp_path."""
    return Settings(
        log_dir=str(tmp_path / "logs"),
        progress_db_path=str(tmp_path / "runs.db"),
    )


class ReadableSink(LogSink):
    """LogSink that can read back what was written."""

    def read(self, name: str) -> str:
        path = self.log_dir / name
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8")


@pytest.fixture
def sink(settings):
    """File sink rooted at the test log directory."""
    return ReadableSink(settings.log_dir)


@pytest.fixture
def recorder(sink, settings):
    """Outcome recorder without run history."""
    return OutcomeRecorder(sink, settings)


@pytest.fixture
def sample_documents():
    """Five candidate documents covering update and skip paths."""
    return [
        {"_id": 1, "job_id": 7, "client_code": 3, "num_search": ""},
        {"_id": 2, "job_id": None, "client_code": 3, "num_search": ""},
        {"_id": 3, "job_id": 12, "client_code": 40},
        {"_id": 4, "job_id": 5, "client_code": 9, "num_search": "J5-C9"},
        {"_id": 5, "job_id": 8, "num_search": "j8c1"},
    ]


@pytest.fixture
def make_store():
    """Factory for FakeStore instances."""
    return FakeStore
