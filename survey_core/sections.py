# survey_core/sections.py
from __future__ import annotations
import math, re
from typing import Dict, List, Mapping, Optional, Sequence

from .types import QuestionDescriptor, RecordedResponse, SectionSummary
from .config import MINUTES_PER_QUESTION, OPTIONAL_SECTION_MARKERS, DEFAULT_SECTION

SECTION_DISPLAY_NAMES: Dict[str, str] = {
    "economic_beliefs": "Economic Views",
    "social_values": "Social Values",
    "government_role": "Government Role",
    "environment_global": "Global Issues",
    "personal_flexibility": "Personal Reflection",
    "open_reflection": "Open Questions",
    "general": "General Questions",
}


def section_display_name(name: str) -> str:
    if name in SECTION_DISPLAY_NAMES:
        return SECTION_DISPLAY_NAMES[name]
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), name.replace("_", " "))


def is_optional_section(name: str, markers: Sequence[str] = OPTIONAL_SECTION_MARKERS) -> bool:
    low = name.lower()
    return any(m in low for m in markers)


def _group(catalog: Sequence[QuestionDescriptor]) -> Dict[str, List[QuestionDescriptor]]:
    groups: Dict[str, List[QuestionDescriptor]] = {}
    for q in catalog:
        groups.setdefault(q.section or DEFAULT_SECTION, []).append(q)
    return groups


def order_by_section(catalog: Sequence[QuestionDescriptor]) -> List[QuestionDescriptor]:
    """Stable regroup so every section occupies one contiguous run of the catalog."""

    out: List[QuestionDescriptor] = []
    for questions in _group(catalog).values():
        out.extend(questions)
    return out


def build_sections(
    catalog: Sequence[QuestionDescriptor],
    responses: Mapping[str, RecordedResponse],
    optional_markers: Sequence[str] = OPTIONAL_SECTION_MARKERS,
) -> List[SectionSummary]:
    """Summaries in first-seen section order; ranges are cumulative offsets."""

    out: List[SectionSummary] = []
    start = 0
    for name, questions in _group(catalog).items():
        answered = [responses[q.id] for q in questions if q.id in responses]
        total = len(questions)
        avg_conf = (
            sum(r.confidence_level for r in answered) / len(answered) if answered else 0.0
        )
        out.append(
            SectionSummary(
                name=name,
                display_name=section_display_name(name),
                start_index=start,
                end_index=start + total - 1,
                completed_count=len(answered),
                total_count=total,
                average_confidence=float(avg_conf),
                estimated_duration_minutes=int(math.ceil(total * MINUTES_PER_QUESTION)),
                is_optional=is_optional_section(name, optional_markers),
                question_ids=tuple(q.id for q in questions),
            )
        )
        start += total
    return out


def section_at(sections: Sequence[SectionSummary], index: int) -> Optional[SectionSummary]:
    for sec in sections:
        if sec.start_index <= index <= sec.end_index:
            return sec
    return None


def section_named(sections: Sequence[SectionSummary], name: str) -> Optional[SectionSummary]:
    return next((s for s in sections if s.name == name), None)
