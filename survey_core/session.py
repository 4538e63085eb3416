# survey_core/session.py
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .types import ProgressionState, QuestionDescriptor, RecordedResponse
from .config import load_config, optional_markers, autosave_interval, AUTOSAVE_ENABLED
from .errors import CatalogLoadError, PersistenceError, ValidationError
from .persistence import SurveyBackend, progress_snapshot
from .sections import order_by_section, section_named
from .policy import NavigationPolicy
from .validators import validate_response
from .autosave import AutoSaver
from .activity_export import summarize
from . import progression as pg
from . import personalization
from . import consistency


log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransitionResult:
    ok: bool
    index: int
    complete: bool
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "currentIndex": self.index, "complete": self.complete,
                "message": self.message}


@dataclass
class SaveOutcome:
    accepted: bool
    persisted: bool = False
    error: Optional[str] = None       # validation message; nothing was stored
    notice: Optional[str] = None      # persistence problem; answer kept locally
    retryable: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"accepted": self.accepted, "persisted": self.persisted, "error": self.error,
                "notice": self.notice, "retryable": self.retryable}


@dataclass
class FinalizeOutcome:
    finalized: bool
    review: Dict[str, Any]
    notice: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)


def _check_catalog(raw: List[QuestionDescriptor]) -> List[QuestionDescriptor]:
    if not raw:
        raise CatalogLoadError("catalog contains no questions")
    seen: set[str] = set()
    for q in raw:
        if q.id in seen:
            raise CatalogLoadError(f"duplicate question id {q.id}")
        seen.add(q.id)
    return order_by_section(raw)


class SurveySession:
    """One user's pass through a survey: state machine, policy, scoring and auto-save."""

    def __init__(
        self,
        backend: SurveyBackend,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        cfg: Optional[dict] = None,
        clock: Callable[[], datetime] = _utcnow,
        autosave: bool = AUTOSAVE_ENABLED,
    ):
        self.cfg = cfg if cfg is not None else load_config()
        self.backend = backend
        self.session_id = session_id or str(uuid.uuid4())
        self.user_id = user_id
        self._clock = clock
        try:
            raw = list(backend.fetch_catalog())
        except CatalogLoadError:
            raise
        except Exception as exc:
            raise CatalogLoadError(f"could not fetch catalog: {exc}") from exc
        self.catalog: List[QuestionDescriptor] = _check_catalog(raw)
        self._by_id: Dict[str, int] = {q.id: i for i, q in enumerate(self.catalog)}
        self.optional_markers = optional_markers(self.cfg)
        self.policy = NavigationPolicy(self.catalog, self.optional_markers)

        self._state: ProgressionState = pg.initial_state(clock())
        self._sync_lock = threading.Lock()
        self._unsynced: set[str] = set()
        self.finalized = False
        self.events: List[Dict[str, Any]] = []
        self.autosaver: Optional[AutoSaver] = (
            AutoSaver(self._flush, autosave_interval(self.cfg)) if autosave else None
        )
        log.info("session %s started with %d questions", self.session_id, len(self.catalog))

    # ---- state ----

    @property
    def state(self) -> ProgressionState:
        return self._state

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def responses(self) -> Dict[str, RecordedResponse]:
        return self._state.responses

    def is_complete(self) -> bool:
        return pg.is_complete(self._state, self.catalog)

    def current_question(self) -> Optional[QuestionDescriptor]:
        return pg.current_question(self._state, self.catalog)

    def sections(self):
        return self.policy.sections(self._state)

    def session_duration_sec(self) -> float:
        return max(0.0, (self._clock() - self._state.session_start).total_seconds())

    def avg_response_time_sec(self) -> float:
        vals = list(self._state.responses.values())
        if not vals:
            return 0.0
        return sum(r.completion_time_ms for r in vals) / 1000.0 / len(vals)

    @property
    def unsynced(self) -> List[str]:
        with self._sync_lock:
            return sorted(self._unsynced)

    def _record(self, action: str, before: int, ok: bool, question_id: Optional[str] = None,
                detail: Optional[str] = None) -> None:
        self.events.append({
            "t": self._clock().isoformat(),
            "action": action,
            "question_id": question_id,
            "index_before": before,
            "index_after": self._state.current_index,
            "ok": ok,
            "detail": detail,
        })

    def restore(self, responses: Dict[str, RecordedResponse], current_index: int = 0,
                started_at: Optional[datetime] = None) -> int:
        """Reload previously persisted answers; unknown or now-invalid ones are dropped."""
        state = self._state
        if started_at is not None:
            state = replace(state, session_start=started_at)
        kept = 0
        for qid, r in responses.items():
            idx = self._by_id.get(qid)
            if idx is None:
                continue
            try:
                validate_response(self.catalog[idx], r)
            except ValidationError as exc:
                log.warning("dropping stored response question=%s: %s", qid, exc.message)
                continue
            state = pg.record_response(state, r)
            kept += 1
        self._state = pg.jump_to(state, self.catalog, current_index)
        return kept

    # ---- responses ----

    def save_response(self, value: Any, confidence_level: int, completion_time_ms: int,
                      question_id: Optional[str] = None) -> SaveOutcome:
        """Record an answer for the current question (``question_id`` must match it when given)."""
        q = self.current_question()
        if q is None:
            return self._reject("save", question_id, "There is no current question to answer")
        if question_id is not None and question_id != q.id:
            return self._reject("save", question_id, f"Current question is {q.id}, not {question_id}")
        return self._store(q, value, confidence_level, completion_time_ms, "save")

    def edit_response(self, question_id: str, value: Any, confidence_level: int,
                      completion_time_ms: int) -> SaveOutcome:
        idx = self._by_id.get(question_id)
        if idx is None:
            return self._reject("edit", question_id, f"Unknown question {question_id}")
        return self._store(self.catalog[idx], value, confidence_level, completion_time_ms, "edit")

    def _reject(self, action: str, question_id: Optional[str], message: str) -> SaveOutcome:
        self._record(action, self.current_index, False, question_id, message)
        return SaveOutcome(accepted=False, error=message)

    def _store(self, q: QuestionDescriptor, value: Any, confidence_level: int,
               completion_time_ms: int, action: str) -> SaveOutcome:
        if self.finalized:
            return self._reject(action, q.id, "Survey already finalized")
        response = RecordedResponse(q.id, value, confidence_level, completion_time_ms)
        try:
            validate_response(q, response)
        except ValidationError as exc:
            log.debug("rejected response question=%s reason=%s", q.id, exc.message)
            return self._reject(action, q.id, exc.message)

        before = self.current_index
        self._state = pg.record_response(self._state, response)
        with self._sync_lock:
            self._unsynced.add(q.id)
        if self.autosaver is not None:
            self.autosaver.touch()

        outcome = SaveOutcome(accepted=True)
        try:
            self.backend.save_response(response)
        except PersistenceError as exc:
            log.warning("save_response failed session=%s question=%s: %s",
                        self.session_id, q.id, exc.message)
            outcome.notice, outcome.retryable = exc.message, exc.retryable
        except Exception as exc:
            log.warning("save_response failed session=%s question=%s: %s",
                        self.session_id, q.id, exc)
            outcome.notice, outcome.retryable = f"Could not save response: {exc}", True
        else:
            with self._sync_lock:
                self._unsynced.discard(q.id)
            outcome.persisted = True
        self._record(action, before, True, q.id, outcome.notice)
        return outcome

    def delete_response(self, question_id: str) -> bool:
        if question_id not in self._state.responses or self.finalized:
            return False
        before = self.current_index
        self._state = pg.remove_response(self._state, question_id)
        with self._sync_lock:
            self._unsynced.add(question_id)
        if self.autosaver is not None:
            self.autosaver.touch()
        notice = None
        try:
            self.backend.delete_response(question_id)
        except Exception as exc:
            # the next sync rewrites the whole store without this answer
            log.warning("delete_response failed session=%s question=%s: %s",
                        self.session_id, question_id, exc)
            notice = str(exc)
        else:
            with self._sync_lock:
                self._unsynced.discard(question_id)
        self._record("delete", before, True, question_id, notice)
        return True

    # ---- transitions ----

    def _result(self, ok: bool, message: Optional[str] = None) -> TransitionResult:
        return TransitionResult(ok=ok, index=self.current_index, complete=self.is_complete(),
                                message=message)

    def advance(self) -> TransitionResult:
        before = self.current_index
        q = self.current_question()
        nxt = pg.advance(self._state, self.catalog)
        if nxt is self._state:
            msg = "Survey is complete" if q is None else "Please answer this required question before continuing"
            self._record("advance", before, False, q.id if q else None, msg)
            return self._result(False, msg)
        self._state = nxt
        self._record("advance", before, True, q.id if q else None)
        return self._result(True)

    def retreat(self) -> TransitionResult:
        before = self.current_index
        self._state = pg.retreat(self._state)
        self._record("retreat", before, True)
        return self._result(True)

    def jump_to(self, index: int) -> TransitionResult:
        before = self.current_index
        self._state = pg.jump_to(self._state, self.catalog, index)
        self._record("jump", before, True, detail=str(index))
        return self._result(True)

    def jump_to_section(self, name: str) -> TransitionResult:
        sec = section_named(self.sections(), name)
        if sec is None:
            self._record("jump_section", self.current_index, False, detail=name)
            return self._result(False, f"Unknown section {name}")
        return self.jump_to(sec.start_index)

    def skip_section(self, name: str) -> TransitionResult:
        target = self.policy.section_skip_target(self._state, name)
        if target is None:
            self._record("skip_section", self.current_index, False, detail=name)
            return self._result(False, f"Unknown section {name}")
        before = self.current_index
        self._state = pg.jump_to(self._state, self.catalog, target.index)
        self._record("skip_section", before, True, detail=name)
        return self._result(True)

    def smart_skip(self) -> TransitionResult:
        before = self.current_index
        target = self.policy.smart_skip_target(self._state)
        if target is None:
            msg = "This question is required and has not been answered"
            self._record("smart_skip", before, False, detail=msg)
            return self._result(False, msg)
        self._state = pg.jump_to(self._state, self.catalog, target.index)
        self._record("smart_skip", before, True, detail=target.section)
        return self._result(True)

    # ---- derived views ----

    def navigation(self, skip_optional: bool = False, prioritize_required: bool = True) -> Dict[str, Any]:
        nav = self.policy.summary(self._state)
        nav["path"] = self.policy.navigation_path(
            self._state, skip_optional=skip_optional, prioritize_required=prioritize_required
        )
        return nav

    def personalization(self, now: Optional[datetime] = None, user_name: str = "Student") -> Dict[str, Any]:
        duration = self.session_duration_sec()
        ctx = personalization.compute(
            self._state.responses,
            duration,
            self.avg_response_time_sec(),
            self.current_index,
            len(self.catalog),
            questions=self.catalog,
            now=now,
        )
        return {
            "context": personalization.context_to_dict(ctx),
            "content": personalization.personalized_content(
                ctx, len(self._state.responses), self.current_index, len(self.catalog),
                duration, user_name,
            ),
        }

    def review(self) -> Dict[str, Any]:
        return consistency.review(self.catalog, self._state.responses, self.optional_markers)

    def progress(self) -> Dict[str, int]:
        return progress_snapshot(self.catalog, self._state.responses)

    def metadata(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "startedAt": self._state.session_start.isoformat(),
            "currentIndex": self.current_index,
            "durationSec": round(self.session_duration_sec(), 1),
            "finalized": self.finalized,
        }

    def to_dict(self) -> Dict[str, Any]:
        q = self.current_question()
        return {
            "sessionId": self.session_id,
            "currentIndex": self.current_index,
            "totalQuestions": len(self.catalog),
            "complete": self.is_complete(),
            "percentComplete": round(pg.percent_complete(self._state, self.catalog), 1),
            "question": None if q is None else {
                "id": q.id, "type": q.type, "section": q.section, "required": q.required,
                "text": q.text, "options": list(q.options) if q.options else None,
                "scaleMin": q.scale_min, "scaleMax": q.scale_max,
            },
            "response": None if q is None or q.id not in self._state.responses
            else self._state.responses[q.id].to_dict(),
            "answered": len(self._state.responses),
            "unsynced": self.unsynced,
            "finalized": self.finalized,
        }

    # ---- persistence ----

    def _flush(self) -> None:
        snapshot = self._state
        self.backend.bulk_save_responses(list(snapshot.responses.values()), self.metadata())
        with self._sync_lock:
            # ids changed while the flush was in flight stay unsynced
            current = self._state.responses
            for qid in list(self._unsynced):
                if current.get(qid) is snapshot.responses.get(qid):
                    self._unsynced.discard(qid)

    def sync(self) -> SaveOutcome:
        """Push the whole Response Store now; the retry path for failed saves."""
        try:
            self._flush()
        except PersistenceError as exc:
            log.warning("sync failed session=%s: %s", self.session_id, exc.message)
            return SaveOutcome(accepted=True, notice=exc.message, retryable=exc.retryable)
        except Exception as exc:
            log.warning("sync failed session=%s: %s", self.session_id, exc)
            return SaveOutcome(accepted=True, notice=f"Could not save responses: {exc}", retryable=True)
        return SaveOutcome(accepted=True, persisted=True)

    def finalize(self) -> FinalizeOutcome:
        summary = self.review()
        if not summary["readyToFinalize"]:
            self._record("finalize", self.current_index, False, detail="not ready")
            return FinalizeOutcome(finalized=False, review=summary,
                                   notice="Survey is not ready to finalize")
        outcome = self.sync()
        if not outcome.persisted:
            self._record("finalize", self.current_index, False, detail=outcome.notice)
            return FinalizeOutcome(finalized=False, review=summary, notice=outcome.notice)
        self.finalized = True
        self.close()
        self._record("finalize", self.current_index, True)
        profile = {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "createdAt": self._clock().isoformat(),
            "responses": [r.to_dict() for r in self._state.responses.values()],
            "review": summary,
            "personalization": self.personalization()["context"],
            "progress": self.progress(),
            "activitySummary": summarize(self.events),
        }
        log.info("session %s finalized with %d responses", self.session_id, len(self._state.responses))
        return FinalizeOutcome(finalized=True, review=summary, profile=profile)

    def close(self) -> None:
        if self.autosaver is not None:
            self.autosaver.cancel()
