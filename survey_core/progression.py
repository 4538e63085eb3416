# survey_core/progression.py
"""Progression state machine.

States are ``Active(i)`` for ``0 <= i < N`` and ``Complete`` for ``i == N``.
Every function returns a new :class:`ProgressionState`; callers swap the
reference, so readers on other threads (auto-save) only ever see whole states.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from .types import ProgressionState, QuestionDescriptor, RecordedResponse


def initial_state(session_start: Optional[datetime] = None) -> ProgressionState:
    return ProgressionState(
        current_index=0,
        responses={},
        session_start=session_start or datetime.now(timezone.utc),
    )


def is_complete(state: ProgressionState, catalog: Sequence[QuestionDescriptor]) -> bool:
    return state.current_index >= len(catalog)


def current_question(
    state: ProgressionState, catalog: Sequence[QuestionDescriptor]
) -> Optional[QuestionDescriptor]:
    if 0 <= state.current_index < len(catalog):
        return catalog[state.current_index]
    return None


def can_advance(state: ProgressionState, catalog: Sequence[QuestionDescriptor]) -> bool:
    q = current_question(state, catalog)
    if q is None:
        return False
    return (not q.required) or q.id in state.responses


def advance(state: ProgressionState, catalog: Sequence[QuestionDescriptor]) -> ProgressionState:
    """Move forward one question; a required, unanswered question holds the index."""

    if not can_advance(state, catalog):
        return state
    return replace(state, current_index=state.current_index + 1)


def retreat(state: ProgressionState) -> ProgressionState:
    if state.current_index <= 0:
        return state
    return replace(state, current_index=state.current_index - 1)


def jump_to(
    state: ProgressionState, catalog: Sequence[QuestionDescriptor], index: int
) -> ProgressionState:
    target = max(0, min(len(catalog), int(index)))
    if target == state.current_index:
        return state
    return replace(state, current_index=target)


def record_response(state: ProgressionState, response: RecordedResponse) -> ProgressionState:
    responses = dict(state.responses)
    responses[response.question_id] = response
    return replace(state, responses=responses)


def remove_response(state: ProgressionState, question_id: str) -> ProgressionState:
    if question_id not in state.responses:
        return state
    responses = dict(state.responses)
    responses.pop(question_id, None)
    return replace(state, responses=responses)


def answered_count(state: ProgressionState, catalog: Sequence[QuestionDescriptor]) -> int:
    return sum(1 for q in catalog if q.id in state.responses)


def percent_complete(state: ProgressionState, catalog: Sequence[QuestionDescriptor]) -> float:
    if not catalog:
        return 100.0
    return min(100.0, 100.0 * state.current_index / len(catalog))
