"""Persistence collaborator contract.

The engine never writes to storage directly; it talks to a ``SurveyBackend``.
``InMemoryBackend`` backs tests and the terminal runner, the API wires in
``api.storage.JsonFileBackend``.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence

from .catalog import load_catalog
from .errors import PersistenceError
from .types import QuestionDescriptor, RecordedResponse


class SurveyBackend:
    def fetch_catalog(self) -> List[QuestionDescriptor]:
        raise NotImplementedError

    def fetch_progress(self) -> Dict[str, int]:
        raise NotImplementedError

    def save_response(self, response: RecordedResponse) -> None:
        raise NotImplementedError

    def delete_response(self, question_id: str) -> None:
        raise NotImplementedError

    def bulk_save_responses(
        self, responses: Sequence[RecordedResponse], session_metadata: Dict[str, Any]
    ) -> None:
        """Replace the stored answers with ``responses``, the whole local store."""
        raise NotImplementedError


def progress_snapshot(
    catalog: Sequence[QuestionDescriptor], responses: Dict[str, Any]
) -> Dict[str, int]:
    """``{completedCount, totalCount, sectionsCompleted, totalSections}`` for a stored answer set."""

    sections: Dict[str, List[str]] = {}
    for q in catalog:
        sections.setdefault(q.section, []).append(q.id)
    done_sections = sum(1 for ids in sections.values() if all(i in responses for i in ids))
    return {
        "completedCount": sum(1 for q in catalog if q.id in responses),
        "totalCount": len(catalog),
        "sectionsCompleted": done_sections,
        "totalSections": len(sections),
    }


class InMemoryBackend(SurveyBackend):
    def __init__(self, catalog: Optional[Sequence[QuestionDescriptor]] = None):
        self._catalog = list(catalog) if catalog is not None else None
        self._lock = threading.Lock()
        self.responses: Dict[str, RecordedResponse] = {}
        self.bulk_calls: List[Dict[str, Any]] = []

    def fetch_catalog(self) -> List[QuestionDescriptor]:
        if self._catalog is None:
            self._catalog = load_catalog()
        return list(self._catalog)

    def fetch_progress(self) -> Dict[str, int]:
        with self._lock:
            stored = dict(self.responses)
        return progress_snapshot(self.fetch_catalog(), stored)

    def save_response(self, response: RecordedResponse) -> None:
        if not isinstance(response, RecordedResponse):
            raise PersistenceError("not a recorded response", retryable=False)
        with self._lock:
            self.responses[response.question_id] = response

    def delete_response(self, question_id: str) -> None:
        with self._lock:
            self.responses.pop(question_id, None)

    def bulk_save_responses(
        self, responses: Sequence[RecordedResponse], session_metadata: Dict[str, Any]
    ) -> None:
        with self._lock:
            self.responses = {r.question_id: r for r in responses}
            self.bulk_calls.append({"count": len(responses), "meta": dict(session_metadata)})
