from __future__ import annotations

from survey_core import progression as pg
from survey_core.types import QuestionDescriptor

from tests.conftest import build_synthetic_catalog, resp


def test_advance_holds_on_required_unanswered(synthetic_catalog):
    state = pg.initial_state()
    nxt = pg.advance(state, synthetic_catalog)
    assert nxt is state
    assert nxt.current_index == 0

    answered = pg.record_response(state, resp("alpha_0"))
    moved = pg.advance(answered, synthetic_catalog)
    assert moved.current_index == 1
    assert answered.current_index == 0  # previous state untouched


def test_advance_passes_optional_unanswered():
    catalog = build_synthetic_catalog(sections={"optional_bits": 2}, optional_sections=("optional_bits",))
    state = pg.advance(pg.initial_state(), catalog)
    assert state.current_index == 1


def test_advance_past_end_is_noop():
    catalog = [QuestionDescriptor(id="only", type="scale")]
    state = pg.advance(pg.initial_state(), catalog)
    assert pg.is_complete(state, catalog)
    assert pg.advance(state, catalog) is state
    assert pg.current_question(state, catalog) is None


def test_retreat_floors_at_zero(synthetic_catalog):
    state = pg.initial_state()
    assert pg.retreat(state).current_index == 0
    later = pg.jump_to(state, synthetic_catalog, 4)
    assert pg.retreat(later).current_index == 3


def test_jump_round_trip_from_complete(synthetic_catalog):
    n = len(synthetic_catalog)
    state = pg.jump_to(pg.initial_state(), synthetic_catalog, n)
    assert pg.is_complete(state, synthetic_catalog)
    back = pg.jump_to(state, synthetic_catalog, 0)
    assert back.current_index == 0
    assert not pg.is_complete(back, synthetic_catalog)


def test_jump_clamps_out_of_range(synthetic_catalog):
    state = pg.initial_state()
    assert pg.jump_to(state, synthetic_catalog, -5).current_index == 0
    assert pg.jump_to(state, synthetic_catalog, 999).current_index == len(synthetic_catalog)


def test_record_and_remove_do_not_mutate_previous_state(synthetic_catalog):
    s0 = pg.initial_state()
    s1 = pg.record_response(s0, resp("alpha_0", value=5))
    s2 = pg.record_response(s1, resp("alpha_0", value=1))
    assert s0.responses == {}
    assert s1.responses["alpha_0"].value == 5
    assert s2.responses["alpha_0"].value == 1
    s3 = pg.remove_response(s2, "alpha_0")
    assert "alpha_0" not in s3.responses
    assert "alpha_0" in s2.responses
    assert pg.remove_response(s3, "missing") is s3


def test_percent_complete(synthetic_catalog):
    state = pg.jump_to(pg.initial_state(), synthetic_catalog, 3)
    assert round(pg.percent_complete(state, synthetic_catalog), 1) == 33.3
    assert pg.percent_complete(pg.initial_state(), []) == 100.0
