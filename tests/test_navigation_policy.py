from __future__ import annotations

from survey_core import progression as pg
from survey_core.policy import NavigationPolicy, optimal_navigation_path
from survey_core.types import QuestionDescriptor

from tests.conftest import build_synthetic_catalog, resp


def _at(catalog, index, answered=()):
    state = pg.jump_to(pg.initial_state(), catalog, index)
    for qid in answered:
        state = pg.record_response(state, resp(qid))
    return state


def test_next_recommended_inside_section(synthetic_catalog):
    policy = NavigationPolicy(synthetic_catalog)
    assert policy.next_recommended_index(_at(synthetic_catalog, 0)) == 1


def test_next_recommended_jumps_to_first_incomplete_section(synthetic_catalog):
    policy = NavigationPolicy(synthetic_catalog)
    # end of beta (index 4); alpha has one answer so it resumes at start + completed
    state = _at(synthetic_catalog, 4, answered=("alpha_0",))
    assert policy.next_recommended_index(state) == 1


def test_next_recommended_never_exceeds_length(synthetic_catalog):
    ids = [q.id for q in synthetic_catalog]
    policy = NavigationPolicy(synthetic_catalog)
    last = len(synthetic_catalog) - 1
    assert policy.next_recommended_index(_at(synthetic_catalog, last, answered=ids)) == len(synthetic_catalog)
    done = _at(synthetic_catalog, len(synthetic_catalog), answered=ids)
    assert policy.next_recommended_index(done) == len(synthetic_catalog)


def test_can_skip_current(synthetic_catalog):
    policy = NavigationPolicy(synthetic_catalog)
    assert not policy.can_skip_current(_at(synthetic_catalog, 0))
    assert policy.can_skip_current(_at(synthetic_catalog, 0, answered=("alpha_0",)))
    opt = build_synthetic_catalog(sections={"extra": 2}, required=False)
    assert NavigationPolicy(opt).can_skip_current(_at(opt, 0))


def test_skip_recommendation_for_long_optional_section():
    catalog = build_synthetic_catalog(
        sections={"core": 1, "optional_deep_dive": 5}, optional_sections=("optional_deep_dive",)
    )
    policy = NavigationPolicy(catalog)
    msg = policy.skip_recommendation(_at(catalog, 1))
    assert msg == 'Consider skipping the rest of "Optional Deep Dive" section (5 questions remaining)'
    # three left is not more than three
    assert policy.skip_recommendation(_at(catalog, 3, answered=("optional_deep_dive_0", "optional_deep_dive_1"))) is None


def test_skip_recommendation_last_question(synthetic_catalog):
    policy = NavigationPolicy(synthetic_catalog)
    state = _at(synthetic_catalog, 4, answered=("beta_0",))
    assert policy.skip_recommendation(state) == "This is the last question in this section"


def test_smart_skip_targets():
    catalog = build_synthetic_catalog(
        sections={"core": 2, "optional_extra": 5, "tail": 1}, optional_sections=("optional_extra",)
    )
    policy = NavigationPolicy(catalog)
    assert policy.smart_skip_target(_at(catalog, 0)) is None  # required, unanswered
    target = policy.smart_skip_target(_at(catalog, 2))
    assert target.index == 7 and target.section == "optional_extra"
    assert policy.section_skip_target(_at(catalog, 0), "tail").index == len(catalog)
    assert policy.section_skip_target(_at(catalog, 0), "nope") is None


def test_optimal_path_required_only_in_catalog_order():
    catalog = [
        QuestionDescriptor(id="a", type="scale", required=True),
        QuestionDescriptor(id="b", type="scale"),
        QuestionDescriptor(id="c", type="scale", required=True),
        QuestionDescriptor(id="d", type="scale", required=True),
        QuestionDescriptor(id="e", type="scale"),
    ]
    answered = {"c": resp("c")}
    assert optimal_navigation_path(answered, catalog, skip_optional=True, prioritize_required=True) == [0, 3]
    assert optimal_navigation_path(answered, catalog) == [0, 3, 1, 4]
    assert optimal_navigation_path(answered, catalog, prioritize_required=False) == [1, 4]


def test_summary_keys(synthetic_catalog):
    summary = NavigationPolicy(synthetic_catalog).summary(_at(synthetic_catalog, 0))
    assert summary == {"nextRecommendedIndex": 1, "canSkipCurrent": False, "skipRecommendation": None}


def test_smart_skip_never_moves_backwards():
    catalog = [
        QuestionDescriptor(id="c0", type="scale", section="core", required=True),
        QuestionDescriptor(id="c1", type="scale", section="core"),
        QuestionDescriptor(id="t0", type="scale", section="tail", required=True),
    ]
    policy = NavigationPolicy(catalog)
    state = _at(catalog, 1, answered=("c0",))
    # the recommendation resumes core at index 1, the question being skipped
    assert policy.next_recommended_index(state) == 1
    assert policy.smart_skip_target(state).index == 2
