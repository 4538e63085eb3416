from __future__ import annotations

import threading
import time

from survey_core.autosave import AutoSaver
from survey_core.errors import PersistenceError
from survey_core.persistence import InMemoryBackend

from tests.conftest import build_synthetic_catalog


def test_touch_debounces_into_one_flush():
    fired = threading.Event()
    calls: list[int] = []

    def flush():
        calls.append(1)
        fired.set()

    saver = AutoSaver(flush, interval_sec=0.1)
    for _ in range(5):
        saver.touch()
    assert saver.pending
    assert fired.wait(2.0)
    time.sleep(0.2)
    assert calls == [1]
    assert saver.flush_count == 1
    assert not saver.pending
    saver.cancel()


def test_cancel_stops_pending_flush():
    calls: list[int] = []
    saver = AutoSaver(lambda: calls.append(1), interval_sec=0.05)
    saver.touch()
    saver.cancel()
    time.sleep(0.15)
    assert calls == []
    saver.touch()  # ignored once closed
    assert not saver.pending


def test_flush_failures_are_counted_not_raised(caplog):
    def boom():
        raise PersistenceError("disk full")

    saver = AutoSaver(boom, interval_sec=60)
    with caplog.at_level("WARNING", logger="survey_core.autosave"):
        assert saver.flush_now() is False
    assert saver.failure_count == 1
    assert "autosave flush failed" in caplog.text


def test_session_autosave_writes_snapshot(make_session):
    backend = InMemoryBackend(build_synthetic_catalog())
    sess = make_session(backend=backend, autosave=True, cfg={"autosave_interval_sec": 60})
    sess.save_response(4, 3, 1000)
    assert sess.autosaver.pending
    assert sess.autosaver.flush_now()
    assert backend.bulk_calls[-1]["count"] == 1
    assert backend.bulk_calls[-1]["meta"]["sessionId"] == sess.session_id
    sess.close()
    assert not sess.autosaver.pending
