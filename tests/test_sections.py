from __future__ import annotations

import random

from survey_core.sections import (
    build_sections,
    order_by_section,
    section_at,
    section_display_name,
    is_optional_section,
)
from survey_core.types import QuestionDescriptor

from tests.conftest import build_synthetic_catalog, resp


def _shuffled_catalog(seed: int) -> list[QuestionDescriptor]:
    rng = random.Random(seed)
    tags = ["econ", "social", "optional_extra", "gov", "reflection"]
    size = rng.randint(1, 30)
    return [
        QuestionDescriptor(id=f"q{i}", type="scale", section=rng.choice(tags))
        for i in range(size)
    ]


def test_sections_partition_catalog_for_random_tags():
    for seed in range(50):
        catalog = order_by_section(_shuffled_catalog(seed))
        sections = build_sections(catalog, {})
        covered: list[int] = []
        for sec in sections:
            assert sec.end_index - sec.start_index + 1 == sec.total_count
            covered.extend(range(sec.start_index, sec.end_index + 1))
            ids = {catalog[i].id for i in range(sec.start_index, sec.end_index + 1)}
            assert ids == set(sec.question_ids)
        assert covered == list(range(len(catalog)))
        assert sum(s.total_count for s in sections) == len(catalog)


def test_sections_follow_first_seen_order():
    catalog = [
        QuestionDescriptor(id="a", type="scale", section="beta"),
        QuestionDescriptor(id="b", type="scale", section="alpha"),
        QuestionDescriptor(id="c", type="scale", section="beta"),
    ]
    ordered = order_by_section(catalog)
    assert [q.id for q in ordered] == ["a", "c", "b"]
    names = [s.name for s in build_sections(ordered, {})]
    assert names == ["beta", "alpha"]


def test_section_stats_and_duration():
    catalog = build_synthetic_catalog(sections={"alpha": 3, "beta": 1})
    responses = {"alpha_0": resp("alpha_0", confidence=5), "alpha_2": resp("alpha_2", confidence=2)}
    alpha, beta = build_sections(catalog, responses)
    assert (alpha.start_index, alpha.end_index) == (0, 2)
    assert alpha.completed_count == 2
    assert alpha.average_confidence == 3.5
    assert alpha.estimated_duration_minutes == 5  # ceil(3 * 1.5)
    assert beta.completed_count == 0
    assert beta.average_confidence == 0.0
    assert beta.estimated_duration_minutes == 2


def test_optional_markers_and_display_names():
    assert is_optional_section("optional_extras")
    assert is_optional_section("Open_Reflection")
    assert not is_optional_section("economic_beliefs")
    assert is_optional_section("bonus", markers=("bonus",))
    assert section_display_name("economic_beliefs") == "Economic Views"
    assert section_display_name("climate_policy") == "Climate Policy"


def test_section_at_bounds():
    sections = build_sections(build_synthetic_catalog(), {})
    assert section_at(sections, 0).name == "alpha"
    assert section_at(sections, 3).name == "beta"
    assert section_at(sections, 8).name == "gamma"
    assert section_at(sections, 9) is None
