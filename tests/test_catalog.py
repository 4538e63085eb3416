from __future__ import annotations

import json

import pytest

from survey_core.catalog import catalog_to_rows, load_catalog, parse_catalog
from survey_core.errors import CatalogLoadError
from survey_core.sections import build_sections, order_by_section


def test_bundled_catalog_loads():
    catalog = load_catalog()
    assert len(catalog) == 16
    assert [q.id for q in order_by_section(catalog)] == [q.id for q in catalog]
    sections = build_sections(catalog, {})
    assert [s.name for s in sections][-1] == "open_reflection"
    assert sections[-1].is_optional
    assert not any(q.required for q in catalog if q.section == "open_reflection")


def test_parse_accepts_wrapped_rows_and_legacy_types():
    catalog = parse_catalog({"questions": [
        {"id": "a", "type": "LIKERT", "scale": {"min": 1, "max": 7}},
        {"id": "b", "type": "TEXT_RESPONSE", "required": True, "section": "notes"},
    ]})
    a, b = catalog
    assert (a.type, a.scale_min, a.scale_max, a.section) == ("scale", 1, 7, "general")
    assert (b.type, b.required, b.section) == ("freeText", True, "notes")


@pytest.mark.parametrize(
    "rows",
    [
        [],
        [{"type": "scale"}],
        [{"id": "a", "type": "essay"}],
        [{"id": "a", "type": "scale"}, {"id": "a", "type": "binary"}],
        ["not-an-object"],
    ],
)
def test_parse_rejects_bad_catalogs(rows):
    with pytest.raises(CatalogLoadError):
        parse_catalog(rows)


def test_load_from_path(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([{"id": "only", "type": "binary"}]), encoding="utf-8")
    (only,) = load_catalog(path)
    assert only.id == "only"
    assert catalog_to_rows([only]) == [
        {"id": "only", "type": "binary", "section": "general", "required": False, "text": ""}
    ]
    with pytest.raises(CatalogLoadError):
        load_catalog(tmp_path / "missing.json")
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        load_catalog(path)
