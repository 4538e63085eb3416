from __future__ import annotations
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging, uuid, os, typing as t

# ---- Engine imports ----
from survey_core.session import SurveySession
from survey_core.errors import CatalogLoadError
from survey_core.config import load_config, ACTIVITY_EXPORT_ENABLED, AUTOSAVE_ENABLED
from survey_core.activity_export import to_json as activity_to_json, to_csv as activity_to_csv
from .storage import (
    JsonFileBackend,
    active_sessions_for_user,
    clear_active_session,
    delete_responses,
    find_profile_by_session,
    list_profiles_for_user,
    load_active_session,
    load_profile,
    load_responses,
    record_active_session,
    save_profile,
    update_active_session,
    utcnow_iso,
)

log = logging.getLogger(__name__)

SESS: dict[str, SurveySession] = {}
CFG: dict[str, t.Any] = load_config()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # stop pending auto-save timers; the last flush already hit disk or was logged
    for sess in list(SESS.values()):
        sess.close()
    SESS.clear()


app = FastAPI(title="Survey Progression API", lifespan=lifespan)


@app.get("/")
def root():
    return {"status": "ok", "service": "survey-progression-api"}


ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class StartReq(BaseModel):
    user_id: str | None = None

class ResponseReq(BaseModel):
    value: t.Any = None
    confidence_level: int = 3
    completion_time_ms: int = 0
    question_id: str | None = None

class EditReq(BaseModel):
    value: t.Any = None
    confidence_level: int = 3
    completion_time_ms: int = 0

class JumpReq(BaseModel):
    index: int

class SkipReq(BaseModel):
    section: str | None = None


# ---- Helpers ----
def _backend(sid: str) -> JsonFileBackend:
    return JsonFileBackend(sid, CFG.get("catalog_path"))


def _open(sid: str, user_id: str | None) -> SurveySession:
    try:
        return SurveySession(
            _backend(sid), session_id=sid, user_id=user_id, cfg=CFG,
            autosave=bool(CFG.get("autosave_enabled", AUTOSAVE_ENABLED)),
        )
    except CatalogLoadError as exc:
        log.error("catalog unavailable for session %s: %s", sid, exc)
        raise HTTPException(503, f"survey catalog unavailable: {exc}")


def _parse_started(value: t.Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        log.warning("ignoring unreadable startedAt %r", value)
        return None


def _get(sid: str) -> SurveySession:
    sess = SESS.get(sid)
    if sess is not None:
        return sess
    payload = load_active_session(sid)
    if not payload:
        raise HTTPException(404, "session not found")
    # resume after a restart from the last persisted answers
    sess = _open(sid, payload.get("userId"))
    kept = sess.restore(
        load_responses(sid), int(payload.get("currentIndex") or 0), _parse_started(payload.get("startedAt"))
    )
    log.info("resumed session %s with %d stored responses", sid, kept)
    SESS[sid] = sess
    return sess


def _touch(sess: SurveySession) -> None:
    update_active_session(sess.session_id, {"lastUpdated": utcnow_iso(), "currentIndex": sess.current_index})


def _transition(sess: SurveySession, res) -> dict[str, t.Any]:
    _touch(sess)
    return {**res.to_dict(), "session": sess.to_dict()}


# ---- Health ----
@app.get("/health")
def health():
    return {
        "status": "ok",
        "active_sessions": len(SESS),
        "catalog_path": CFG.get("catalog_path") or "bundled",
        "activity_export": ACTIVITY_EXPORT_ENABLED,
    }


# ---- Sessions ----
@app.post("/sessions/start")
def start(req: StartReq | None = None):
    req = req or StartReq()
    sid = str(uuid.uuid4())
    sess = _open(sid, req.user_id)
    SESS[sid] = sess
    started_at = sess.state.session_start.isoformat()
    record_active_session(
        sid,
        {
            "sessionId": sid,
            "userId": req.user_id,
            "startedAt": started_at,
            "lastUpdated": started_at,
            "currentIndex": 0,
        },
    )
    return {"session_id": sid, "session": sess.to_dict()}


@app.get("/sessions/{sid}")
def get_session(sid: str):
    return _get(sid).to_dict()


@app.post("/sessions/{sid}/responses")
def save_response(sid: str, req: ResponseReq):
    sess = _get(sid)
    out = sess.save_response(req.value, req.confidence_level, req.completion_time_ms, req.question_id)
    if not out.accepted:
        raise HTTPException(422, out.error)
    _touch(sess)
    return {**out.to_dict(), "session": sess.to_dict()}


@app.put("/sessions/{sid}/responses/{qid}")
def edit_response(sid: str, qid: str, req: EditReq):
    sess = _get(sid)
    out = sess.edit_response(qid, req.value, req.confidence_level, req.completion_time_ms)
    if not out.accepted:
        raise HTTPException(422, out.error)
    _touch(sess)
    return {**out.to_dict(), "session": sess.to_dict()}


@app.delete("/sessions/{sid}/responses/{qid}")
def delete_response(sid: str, qid: str):
    sess = _get(sid)
    if not sess.delete_response(qid):
        raise HTTPException(404, "response not found")
    _touch(sess)
    return {"ok": True, "session": sess.to_dict()}


@app.post("/sessions/{sid}/advance")
def advance(sid: str):
    sess = _get(sid)
    return _transition(sess, sess.advance())


@app.post("/sessions/{sid}/retreat")
def retreat(sid: str):
    sess = _get(sid)
    return _transition(sess, sess.retreat())


@app.post("/sessions/{sid}/jump")
def jump(sid: str, req: JumpReq):
    sess = _get(sid)
    return _transition(sess, sess.jump_to(req.index))


@app.post("/sessions/{sid}/skip")
def skip(sid: str, req: SkipReq | None = None):
    req = req or SkipReq()
    sess = _get(sid)
    res = sess.skip_section(req.section) if req.section else sess.smart_skip()
    if not res.ok and req.section:
        raise HTTPException(404, res.message)
    return _transition(sess, res)


@app.post("/sessions/{sid}/sections/{name}/jump")
def jump_section(sid: str, name: str):
    sess = _get(sid)
    res = sess.jump_to_section(name)
    if not res.ok:
        raise HTTPException(404, res.message)
    return _transition(sess, res)


@app.get("/sessions/{sid}/sections")
def sections(sid: str):
    return {"sections": [s.to_dict() for s in _get(sid).sections()]}


@app.get("/sessions/{sid}/navigation")
def navigation(
    sid: str,
    skip_optional: bool = Query(False),
    prioritize_required: bool = Query(True),
):
    return _get(sid).navigation(skip_optional=skip_optional, prioritize_required=prioritize_required)


@app.get("/sessions/{sid}/personalization")
def personalization(sid: str, user_name: str = Query("Student")):
    return _get(sid).personalization(user_name=user_name)


@app.get("/sessions/{sid}/review")
def review(sid: str):
    return _get(sid).review()


@app.get("/sessions/{sid}/progress")
def progress(sid: str):
    sess = _get(sid)
    return {"local": sess.progress(), "stored": sess.backend.fetch_progress(), "unsynced": sess.unsynced}


@app.post("/sessions/{sid}/sync")
def sync(sid: str):
    sess = _get(sid)
    out = sess.sync()
    if not out.persisted:
        raise HTTPException(503, out.notice)
    return {**out.to_dict(), "unsynced": sess.unsynced}


@app.post("/sessions/{sid}/finalize")
def finalize(sid: str):
    sess = _get(sid)
    out = sess.finalize()
    if not out.finalized:
        if not out.review.get("readyToFinalize"):
            raise HTTPException(409, {"message": out.notice, "review": out.review})
        raise HTTPException(503, out.notice)
    pid = str(uuid.uuid4())
    profile = dict(out.profile, id=pid, activity=list(sess.events))
    save_profile(
        pid,
        profile,
        {
            "sessionId": sid,
            "userId": sess.user_id,
            "createdAt": profile["createdAt"],
            "completionRate": out.review.get("completionRate"),
        },
    )
    clear_active_session(sid)
    SESS.pop(sid, None)
    return profile


@app.delete("/sessions/{sid}")
def discard(sid: str):
    sess = SESS.pop(sid, None)
    known = sess is not None or load_active_session(sid) is not None
    if not known:
        raise HTTPException(404, "session not found")
    if sess is not None:
        sess.close()
    clear_active_session(sid)
    delete_responses(sid)
    return {"ok": True}


def _events(sid: str) -> list[dict[str, t.Any]]:
    if not ACTIVITY_EXPORT_ENABLED:
        raise HTTPException(404, "activity export disabled")
    sess = SESS.get(sid)
    if sess is not None:
        return list(sess.events)
    profile = find_profile_by_session(sid)
    if not profile:
        raise HTTPException(404, "session not found")
    return profile.get("activity") or []


@app.get("/sessions/{sid}/activity.json")
def get_activity_json(sid: str):
    return {"session_id": sid, **activity_to_json(_events(sid))}


@app.get("/sessions/{sid}/activity.csv")
def get_activity_csv(sid: str):
    body = activity_to_csv(_events(sid))
    filename = f"{sid}_activity.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )


# ---- Profiles ----
@app.get("/profiles/{profile_id}")
def get_profile(profile_id: str):
    profile = load_profile(profile_id)
    if not profile:
        raise HTTPException(404, "profile not found")
    return profile


@app.get("/users/{user_id}/profiles")
def list_profiles(user_id: str):
    return {"profiles": list_profiles_for_user(user_id)}


@app.get("/users/{user_id}/sessions/active")
def list_active_sessions(user_id: str):
    return {"sessions": active_sessions_for_user(user_id)}
