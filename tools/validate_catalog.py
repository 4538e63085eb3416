from __future__ import annotations
from collections import Counter
import os, sys
from survey_core.catalog import load_catalog
from survey_core.config import load_config, optional_markers
from survey_core.errors import CatalogLoadError
from survey_core.sections import build_sections, order_by_section

# Configurable targets; defaults match the bundled catalog
TARGETS = {
    "section_min": int(os.getenv("TARGET_SECTION_MIN", 2)),
    "required_share_min": float(os.getenv("TARGET_REQUIRED_SHARE_MIN", 0.5)),
}
OPTION_TYPES = ("multiChoice", "ranking")


def main(path: str | None = None) -> int:
    cfg = load_config()
    try:
        catalog = load_catalog(path or cfg.get("catalog_path"))
    except CatalogLoadError as exc:
        print(f"✗ {exc}")
        return 1

    problems = 0
    ordered = order_by_section(catalog)
    if [q.id for q in ordered] != [q.id for q in catalog]:
        print("! sections are not contiguous; sessions will regroup them in first-seen order\n")

    required = sum(1 for q in catalog if q.required)
    share = required / len(catalog)
    print(f"{len(catalog)} questions, {required} required ({share:.0%}); "
          f"types: {dict(Counter(q.type for q in catalog))}\n")
    if share < TARGETS["required_share_min"]:
        print(f"  → required share below {TARGETS['required_share_min']:.0%}; the finalize gate may be unreachable\n")
        problems += 1

    for sec in build_sections(ordered, {}, optional_markers(cfg)):
        qs = ordered[sec.start_index: sec.end_index + 1]
        flag = " (optional)" if sec.is_optional else ""
        print(f"{sec.display_name}{flag}: {sec.total_count} questions, ~{sec.estimated_duration_minutes} min, "
              f"indices {sec.start_index}-{sec.end_index}")
        if sec.total_count < TARGETS["section_min"]:
            print(f"  → fewer than {TARGETS['section_min']} questions")
            problems += 1
        if sec.is_optional and any(q.required for q in qs):
            print("  → optional section contains required questions")
            problems += 1
        for q in qs:
            if q.type in OPTION_TYPES and not q.options:
                print(f"  → {q.id}: {q.type} without options")
                problems += 1
            if q.scale_min is not None and q.scale_max is not None and q.scale_min >= q.scale_max:
                print(f"  → {q.id}: empty range {q.scale_min}..{q.scale_max}")
                problems += 1
        print()

    print("✓ Catalog looks consistent" if not problems else f"{problems} problem(s) found")
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))
