from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from survey_core.persistence import InMemoryBackend
from survey_core.session import SurveySession
from survey_core.types import QuestionDescriptor, RecordedResponse


def build_synthetic_catalog(
    *,
    sections: dict[str, int] | None = None,
    required: bool = True,
    optional_sections: tuple[str, ...] = (),
) -> list[QuestionDescriptor]:
    """Create a deterministic scale-only catalog for tests and smoke runs."""

    layout = sections or {"alpha": 3, "beta": 2, "gamma": 4}
    items: list[QuestionDescriptor] = []
    for name, count in layout.items():
        for idx in range(count):
            items.append(
                QuestionDescriptor(
                    id=f"{name}_{idx}",
                    type="scale",
                    section=name,
                    required=required and name not in optional_sections,
                    text=f"{name} statement #{idx}",
                )
            )
    return items


def resp(qid: str, value=3, confidence: int = 3, ms: int = 10_000) -> RecordedResponse:
    return RecordedResponse(question_id=qid, value=value, confidence_level=confidence, completion_time_ms=ms)


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def synthetic_catalog() -> list[QuestionDescriptor]:
    return build_synthetic_catalog()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(clock):
    """Factory for sessions over an in-memory backend; auto-save is off unless asked for."""

    created: list[SurveySession] = []

    def _make(catalog=None, backend=None, **kw) -> SurveySession:
        kw.setdefault("autosave", False)
        kw.setdefault("cfg", {})
        be = backend if backend is not None else InMemoryBackend(catalog or build_synthetic_catalog())
        sess = SurveySession(be, clock=clock, **kw)
        created.append(sess)
        return sess

    yield _make
    for sess in created:
        sess.close()
