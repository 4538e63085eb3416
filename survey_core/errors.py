"""Error taxonomy shared by the engine, the persistence layer and the API."""
from __future__ import annotations


class SurveyError(Exception):
    """Base class for engine errors."""


class ValidationError(SurveyError, ValueError):
    """A response failed the per-question-type validity check."""

    def __init__(self, message: str, question_id: str | None = None, field: str = "value"):
        super().__init__(message)
        self.message = message
        self.question_id = question_id
        self.field = field


class PersistenceError(SurveyError):
    """The persistence collaborator rejected a save; local state is kept."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class CatalogLoadError(SurveyError):
    """The question catalog could not be fetched or is unusable."""
