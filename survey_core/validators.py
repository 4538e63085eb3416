from __future__ import annotations
from numbers import Real
from typing import Any, Callable, Dict
from .types import QuestionDescriptor, RecordedResponse
from .errors import ValidationError
from .config import (
    CONFIDENCE_MIN,
    CONFIDENCE_MAX,
    SCALE_RANGE,
    SLIDER_RANGE,
    TEXT_MAX_LENGTH,
)


def _is_number(v: Any) -> bool:
    return isinstance(v, Real) and not isinstance(v, bool)


def _bounds(q: QuestionDescriptor, default: tuple[float, float]) -> tuple[float, float]:
    lo = q.scale_min if q.scale_min is not None else default[0]
    hi = q.scale_max if q.scale_max is not None else default[1]
    return float(lo), float(hi)


def _check_scale(q: QuestionDescriptor, v: Any) -> None:
    if not isinstance(v, int) or isinstance(v, bool):
        raise ValidationError("Scale response must be a whole number", q.id)
    lo, hi = _bounds(q, SCALE_RANGE)
    if not lo <= v <= hi:
        raise ValidationError(f"Scale value must be between {lo:g} and {hi:g}", q.id)


def _check_binary(q: QuestionDescriptor, v: Any) -> None:
    if not isinstance(v, bool):
        raise ValidationError("Binary choice response must be true or false", q.id)


def _check_multi_choice(q: QuestionDescriptor, v: Any) -> None:
    if not isinstance(v, str):
        raise ValidationError("Multiple choice response must be a string", q.id)
    if q.options is not None and v not in q.options:
        raise ValidationError("Response must be one of the provided options", q.id)


def _check_ranking(q: QuestionDescriptor, v: Any) -> None:
    if not isinstance(v, (list, tuple)):
        raise ValidationError("Ranking response must be a list", q.id)
    if not all(isinstance(item, str) for item in v):
        raise ValidationError("All options must be ranked exactly once", q.id)
    if q.options is None:
        if len(set(v)) != len(v):
            raise ValidationError("All options must be ranked exactly once", q.id)
        return
    if len(v) != len(q.options) or set(v) != set(q.options):
        raise ValidationError("All options must be ranked exactly once", q.id)


def _check_slider(q: QuestionDescriptor, v: Any) -> None:
    if not _is_number(v):
        raise ValidationError("Slider response must be a number", q.id)
    lo, hi = _bounds(q, SLIDER_RANGE)
    if not lo <= float(v) <= hi:
        raise ValidationError(f"Slider value must be between {lo:g} and {hi:g}", q.id)


def _check_free_text(q: QuestionDescriptor, v: Any) -> None:
    if not isinstance(v, str):
        raise ValidationError("Text response must be a string", q.id)
    if q.required and not v.strip():
        raise ValidationError("Text response cannot be empty", q.id)
    if len(v) > TEXT_MAX_LENGTH:
        raise ValidationError(
            f"Text response exceeds maximum length ({TEXT_MAX_LENGTH} characters)", q.id
        )


VALIDATORS: Dict[str, Callable[[QuestionDescriptor, Any], None]] = {
    "scale": _check_scale,
    "binary": _check_binary,
    "multiChoice": _check_multi_choice,
    "ranking": _check_ranking,
    "slider": _check_slider,
    "freeText": _check_free_text,
}


def validate_value(question: QuestionDescriptor, value: Any) -> None:
    check = VALIDATORS.get(question.type)
    if check is None:
        raise ValidationError(f"Unsupported question type: {question.type}", question.id, "type")
    check(question, value)


def validate_response(question: QuestionDescriptor, response: RecordedResponse) -> None:
    """Raise ValidationError unless the response is complete and well-typed for the question."""
    if response.question_id != question.id:
        raise ValidationError(
            f"Response for {response.question_id} cannot answer {question.id}", question.id, "questionId"
        )
    conf = response.confidence_level
    if not isinstance(conf, int) or isinstance(conf, bool) or not CONFIDENCE_MIN <= conf <= CONFIDENCE_MAX:
        raise ValidationError(
            f"Confidence must be a whole number between {CONFIDENCE_MIN} and {CONFIDENCE_MAX}",
            question.id, "confidenceLevel",
        )
    rt = response.completion_time_ms
    if not isinstance(rt, int) or isinstance(rt, bool) or rt < 0:
        raise ValidationError("Completion time must be a non-negative whole number of milliseconds",
                              question.id, "completionTimeMs")
    validate_value(question, response.value)
