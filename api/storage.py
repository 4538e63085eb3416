"""JSON-file persistence for session responses, finished profiles and the
active-session index.

Everything lives under ``DATA_DIR``. Writes go through a temp file and an
atomic replace, and a process-wide lock serializes read-modify-write cycles
(auto-save timers write from their own threads).
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from survey_core.catalog import load_catalog
from survey_core.errors import PersistenceError
from survey_core.persistence import SurveyBackend, progress_snapshot
from survey_core.types import QuestionDescriptor, RecordedResponse


log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
RESPONSES_DIR = DATA_ROOT / "responses"
PROFILES_DIR = DATA_ROOT / "profiles"
PROFILE_INDEX_PATH = DATA_ROOT / "profiles_index.json"
ACTIVE_SESSIONS_PATH = DATA_ROOT / "sessions_active.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    RESPONSES_DIR.mkdir(parents=True, exist_ok=True)
    PROFILES_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        log.warning("unreadable json file %s; using default", path)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---- session responses ----

def _responses_path(session_id: str) -> Path:
    return RESPONSES_DIR / f"{session_id}.json"


def load_session_record(session_id: str) -> Dict[str, Any]:
    return _read_json(_responses_path(session_id), {"responses": {}, "meta": {}})


def load_responses(session_id: str) -> Dict[str, RecordedResponse]:
    rows = load_session_record(session_id).get("responses") or {}
    out: Dict[str, RecordedResponse] = {}
    for qid, row in rows.items():
        try:
            out[qid] = RecordedResponse.from_dict(row)
        except (KeyError, TypeError):
            log.warning("skipping malformed stored response %s/%s", session_id, qid)
    return out


def delete_responses(session_id: str) -> bool:
    path = _responses_path(session_id)
    with _LOCK:
        if not path.exists():
            return False
        path.unlink()
    return True


class JsonFileBackend(SurveyBackend):
    """One backend per session; answers live in ``responses/<session_id>.json``."""

    def __init__(self, session_id: str, catalog_path: Optional[str] = None):
        self.session_id = session_id
        self.catalog_path = catalog_path
        self._catalog: Optional[List[QuestionDescriptor]] = None

    def fetch_catalog(self) -> List[QuestionDescriptor]:
        if self._catalog is None:
            self._catalog = load_catalog(self.catalog_path)
        return list(self._catalog)

    def fetch_progress(self) -> Dict[str, int]:
        return progress_snapshot(self.fetch_catalog(), load_responses(self.session_id))

    def _update(
        self,
        rows: Dict[str, Dict[str, Any]],
        meta: Optional[Dict[str, Any]],
        replace: bool = False,
        drop: Sequence[str] = (),
    ) -> None:
        _ensure_dirs()
        path = _responses_path(self.session_id)
        try:
            with _LOCK:
                record = _read_json(path, {"responses": {}, "meta": {}})
                stored = {} if replace else record.get("responses", {})
                stored.update(rows)
                for qid in drop:
                    stored.pop(qid, None)
                record["responses"] = stored
                if meta is not None:
                    record["meta"] = meta
                record["updatedAt"] = utcnow_iso()
                _write_json(path, record)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Could not save responses: {exc}") from exc

    def save_response(self, response: RecordedResponse) -> None:
        self._update({response.question_id: response.to_dict()}, None)

    def delete_response(self, question_id: str) -> None:
        self._update({}, None, drop=(question_id,))

    def bulk_save_responses(
        self, responses: Sequence[RecordedResponse], session_metadata: Dict[str, Any]
    ) -> None:
        self._update({r.question_id: r.to_dict() for r in responses}, dict(session_metadata), replace=True)
        update_active_session(
            self.session_id,
            {"lastUpdated": utcnow_iso(), "currentIndex": session_metadata.get("currentIndex")},
        )


# ---- profiles ----

def save_profile(profile_id: str, profile: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    """Persist a finalized profile and its index metadata."""

    _ensure_dirs()
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(PROFILE_INDEX_PATH, {})
        index[profile_id] = metadata
        _write_json(PROFILE_INDEX_PATH, index)

    _write_json(PROFILES_DIR / f"{profile_id}.json", profile)


def load_profile(profile_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(PROFILES_DIR / f"{profile_id}.json", None)


def list_profiles_for_user(user_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(PROFILE_INDEX_PATH, {})
    out: List[Dict[str, Any]] = []
    for pid, meta in index.items():
        if meta.get("userId") == user_id:
            item = {"id": pid}
            item.update({k: v for k, v in meta.items() if k != "id"})
            out.append(item)
    out.sort(key=lambda r: r.get("createdAt", ""), reverse=True)
    return out


def find_profile_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(PROFILE_INDEX_PATH, {})
    for pid, meta in index.items():
        if meta.get("sessionId") == session_id:
            return load_profile(pid)
    return None


# ---- active sessions ----

def _load_sessions() -> Dict[str, Dict[str, Any]]:
    return _read_json(ACTIVE_SESSIONS_PATH, {})


def record_active_session(session_id: str, payload: Dict[str, Any]) -> None:
    with _LOCK:
        sessions = _load_sessions()
        sessions[session_id] = payload
        _write_json(ACTIVE_SESSIONS_PATH, sessions)


def update_active_session(session_id: str, updates: Dict[str, Any]) -> None:
    with _LOCK:
        sessions = _load_sessions()
        if session_id not in sessions:
            return
        sessions[session_id].update(updates)
        _write_json(ACTIVE_SESSIONS_PATH, sessions)


def clear_active_session(session_id: str) -> None:
    with _LOCK:
        sessions = _load_sessions()
        if session_id in sessions:
            sessions.pop(session_id, None)
            _write_json(ACTIVE_SESSIONS_PATH, sessions)


def active_sessions_for_user(user_id: str) -> List[Dict[str, Any]]:
    out = [p for p in _load_sessions().values() if p.get("userId") == user_id]
    out.sort(key=lambda r: r.get("startedAt", ""), reverse=True)
    return out


def load_active_session(session_id: str) -> Optional[Dict[str, Any]]:
    return _load_sessions().get(session_id)
