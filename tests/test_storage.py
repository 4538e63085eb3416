from __future__ import annotations

import json

import api.storage as storage

from tests.conftest import resp


def _point_at(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "DATA_ROOT", tmp_path)
    monkeypatch.setattr(storage, "RESPONSES_DIR", tmp_path / "responses")
    monkeypatch.setattr(storage, "PROFILES_DIR", tmp_path / "profiles")
    monkeypatch.setattr(storage, "PROFILE_INDEX_PATH", tmp_path / "profiles_index.json")
    monkeypatch.setattr(storage, "ACTIVE_SESSIONS_PATH", tmp_path / "sessions_active.json")


def test_json_backend_saves_and_reports_progress(tmp_path, monkeypatch):
    _point_at(tmp_path, monkeypatch)
    backend = storage.JsonFileBackend("s1")
    assert len(backend.fetch_catalog()) == 16
    backend.save_response(resp("econ_01", value=4))
    backend.bulk_save_responses(
        [resp("econ_01", value=4), resp("econ_02"), resp("econ_03")], {"sessionId": "s1", "currentIndex": 3}
    )

    record = json.loads((tmp_path / "responses" / "s1.json").read_text(encoding="utf-8"))
    assert record["meta"]["currentIndex"] == 3
    assert set(record["responses"]) == {"econ_01", "econ_02", "econ_03"}
    assert storage.load_responses("s1")["econ_01"].value == 4

    progress = backend.fetch_progress()
    assert progress["completedCount"] == 3
    assert progress["sectionsCompleted"] == 1
    assert progress["totalSections"] == 6


def test_json_backend_deletes_and_bulk_save_replaces(tmp_path, monkeypatch):
    _point_at(tmp_path, monkeypatch)
    backend = storage.JsonFileBackend("s2")
    backend.save_response(resp("econ_01"))
    backend.save_response(resp("econ_02"))
    backend.delete_response("econ_01")
    backend.delete_response("never_saved")
    assert set(storage.load_responses("s2")) == {"econ_02"}

    # the bulk payload is the whole local store, so anything missing from it is gone
    backend.save_response(resp("econ_03"))
    backend.bulk_save_responses([resp("social_01")], {"sessionId": "s2", "currentIndex": 4})
    assert set(storage.load_responses("s2")) == {"social_01"}
    assert backend.fetch_progress()["completedCount"] == 1


def test_active_session_index(tmp_path, monkeypatch):
    _point_at(tmp_path, monkeypatch)
    storage.record_active_session("a", {"sessionId": "a", "userId": "u", "startedAt": "2024-01-01"})
    storage.record_active_session("b", {"sessionId": "b", "userId": "u", "startedAt": "2024-02-01"})
    storage.update_active_session("a", {"currentIndex": 4})
    storage.update_active_session("ghost", {"currentIndex": 1})
    assert [s["sessionId"] for s in storage.active_sessions_for_user("u")] == ["b", "a"]
    assert storage.load_active_session("a")["currentIndex"] == 4
    storage.clear_active_session("a")
    assert storage.load_active_session("a") is None


def test_unreadable_files_fall_back_to_defaults(tmp_path, monkeypatch):
    _point_at(tmp_path, monkeypatch)
    (tmp_path / "sessions_active.json").write_text("{broken", encoding="utf-8")
    assert storage.active_sessions_for_user("u") == []
    assert storage.load_profile("missing") is None
