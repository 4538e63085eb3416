# survey_core/policy.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from .config import OPTIONAL_SECTION_MARKERS, SKIP_SUGGEST_MIN_REMAINING
from .sections import build_sections, section_at, section_named
from .types import ProgressionState, QuestionDescriptor, RecordedResponse, SectionSummary


@dataclass(frozen=True)
class SkipTarget:
    index: int
    section: Optional[str] = None  # set when the rest of a section is skipped


def optimal_navigation_path(
    responses: Mapping[str, RecordedResponse],
    catalog: Sequence[QuestionDescriptor],
    skip_optional: bool = False,
    prioritize_required: bool = True,
) -> List[int]:
    """Unanswered indices: required ones first (when prioritised), then the rest unless skipped."""

    path: List[int] = []
    if prioritize_required:
        path.extend(i for i, q in enumerate(catalog) if q.required and q.id not in responses)
    if not skip_optional:
        path.extend(i for i, q in enumerate(catalog) if not q.required and q.id not in responses)
    return path


class NavigationPolicy:
    """Section-aware next/skip recommendations over a fixed catalog."""

    def __init__(
        self,
        catalog: Sequence[QuestionDescriptor],
        optional_markers: Sequence[str] = OPTIONAL_SECTION_MARKERS,
    ):
        self.catalog = list(catalog)
        self.optional_markers = tuple(optional_markers)

    def sections(self, state: ProgressionState) -> List[SectionSummary]:
        return build_sections(self.catalog, state.responses, self.optional_markers)

    def current_section(self, state: ProgressionState) -> Optional[SectionSummary]:
        return section_at(self.sections(state), state.current_index)

    def next_recommended_index(self, state: ProgressionState) -> int:
        n = len(self.catalog)
        idx = state.current_index
        sections = self.sections(state)
        current = section_at(sections, idx)
        if current is not None and idx < current.end_index:
            return idx + 1
        for sec in sections:
            if sec.completed_count < sec.total_count:
                return sec.start_index + sec.completed_count
        return min(idx + 1, n)

    def can_skip_current(self, state: ProgressionState) -> bool:
        if not 0 <= state.current_index < len(self.catalog):
            return False
        q = self.catalog[state.current_index]
        return (not q.required) or q.id in state.responses

    def _unanswered_in(self, sec: SectionSummary, state: ProgressionState) -> int:
        return sum(1 for qid in sec.question_ids if qid not in state.responses)

    def skip_recommendation(self, state: ProgressionState) -> Optional[str]:
        current = self.current_section(state)
        if current is None:
            return None
        remaining = self._unanswered_in(current, state)
        if current.is_optional and remaining > SKIP_SUGGEST_MIN_REMAINING:
            return (
                f'Consider skipping the rest of "{current.display_name}" section '
                f"({remaining} questions remaining)"
            )
        if remaining == 1:
            return "This is the last question in this section"
        return None

    def section_skip_target(self, state: ProgressionState, name: str) -> Optional[SkipTarget]:
        sec = section_named(self.sections(state), name)
        if sec is None:
            return None
        return SkipTarget(index=min(sec.end_index + 1, len(self.catalog)), section=sec.name)

    def smart_skip_target(self, state: ProgressionState) -> Optional[SkipTarget]:
        """Where a smart skip lands, or None when the current question may not be skipped."""

        if not self.can_skip_current(state):
            return None
        current = self.current_section(state)
        if current is not None and current.is_optional and self.skip_recommendation(state):
            return self.section_skip_target(state, current.name)
        # a skip always moves forward, even when the recommendation points back
        forward = min(state.current_index + 1, len(self.catalog))
        return SkipTarget(index=max(self.next_recommended_index(state), forward))

    def navigation_path(
        self,
        state: ProgressionState,
        skip_optional: bool = False,
        prioritize_required: bool = True,
    ) -> List[int]:
        return optimal_navigation_path(
            state.responses, self.catalog, skip_optional=skip_optional,
            prioritize_required=prioritize_required,
        )

    def summary(self, state: ProgressionState) -> Dict[str, object]:
        return {
            "nextRecommendedIndex": self.next_recommended_index(state),
            "canSkipCurrent": self.can_skip_current(state),
            "skipRecommendation": self.skip_recommendation(state),
        }
