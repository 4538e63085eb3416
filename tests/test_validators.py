from __future__ import annotations

import pytest

from survey_core.errors import ValidationError
from survey_core.types import QuestionDescriptor, RecordedResponse
from survey_core.validators import VALIDATORS, validate_response, validate_value
from survey_core.types import QUESTION_TYPES


SCALE = QuestionDescriptor(id="s", type="scale")
BINARY = QuestionDescriptor(id="b", type="binary")
CHOICE = QuestionDescriptor(id="c", type="multiChoice", options=("A", "B"))
RANK = QuestionDescriptor(id="r", type="ranking", options=("x", "y", "z"))
SLIDER = QuestionDescriptor(id="sl", type="slider")
TEXT = QuestionDescriptor(id="t", type="freeText")
TEXT_REQ = QuestionDescriptor(id="tr", type="freeText", required=True)


def test_every_question_type_has_a_validator():
    assert set(VALIDATORS) == set(QUESTION_TYPES)


@pytest.mark.parametrize(
    "question,value",
    [
        (SCALE, 1), (SCALE, 5),
        (BINARY, True), (BINARY, False),
        (CHOICE, "B"),
        (RANK, ["z", "x", "y"]),
        (SLIDER, 0), (SLIDER, 100), (SLIDER, 42.5),
        (TEXT, ""), (TEXT, "a" * 1000),
        (TEXT_REQ, "because"),
    ],
)
def test_valid_values(question, value):
    validate_value(question, value)


@pytest.mark.parametrize(
    "question,value",
    [
        (SCALE, 0), (SCALE, 6), (SCALE, 3.5), (SCALE, True), (SCALE, "3"),
        (BINARY, 1), (BINARY, "yes"),
        (CHOICE, "C"), (CHOICE, 0),
        (RANK, ["x", "y"]), (RANK, ["x", "x", "y"]), (RANK, "xyz"),
        (SLIDER, -1), (SLIDER, 100.5), (SLIDER, False),
        (TEXT, 5), (TEXT, "a" * 1001),
        (TEXT_REQ, "   "),
    ],
)
def test_invalid_values(question, value):
    with pytest.raises(ValidationError) as exc:
        validate_value(question, value)
    assert exc.value.question_id == question.id


def test_custom_scale_bounds():
    q = QuestionDescriptor(id="wide", type="scale", scale_min=0, scale_max=10)
    validate_value(q, 10)
    with pytest.raises(ValidationError, match="between 0 and 10"):
        validate_value(q, 11)


@pytest.mark.parametrize("conf", [0, 6, 2.5, True])
def test_confidence_must_be_int_one_to_five(conf):
    with pytest.raises(ValidationError) as exc:
        validate_response(SCALE, RecordedResponse("s", 3, conf, 100))
    assert exc.value.field == "confidenceLevel"


def test_completion_time_and_question_id_checks():
    with pytest.raises(ValidationError) as exc:
        validate_response(SCALE, RecordedResponse("s", 3, 3, -1))
    assert exc.value.field == "completionTimeMs"
    with pytest.raises(ValidationError) as exc:
        validate_response(SCALE, RecordedResponse("other", 3, 3, 0))
    assert exc.value.field == "questionId"
    validate_response(SCALE, RecordedResponse("s", 3, 3, 0))


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        validate_value(BINARY, None)


def test_ranking_rejects_non_string_items():
    for value in ([{"x": 1}, ["y"], "z"], [1, 2, 3]):
        with pytest.raises(ValidationError, match="ranked exactly once"):
            validate_response(RANK, RecordedResponse("r", value, 3, 10))
    loose = QuestionDescriptor(id="r2", type="ranking")
    with pytest.raises(ValidationError):
        validate_value(loose, [["a"], ["b"]])
