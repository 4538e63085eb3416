from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Literal

QuestionType = Literal["scale", "binary", "multiChoice", "ranking", "slider", "freeText"]
QUESTION_TYPES: tuple[str, ...] = ("scale", "binary", "multiChoice", "ranking", "slider", "freeText")

IssueType = Literal["contradiction", "uncertainty", "incomplete", "outlier"]
Severity = Literal["low", "medium", "high"]
EngagementLevel = Literal["low", "medium", "high"]
FatigueLevel = Literal["none", "mild", "moderate", "high"]
SessionPhase = Literal["warmup", "focus", "deepthink", "wrapup"]
TimeOfDay = Literal["morning", "afternoon", "evening", "night"]
Pacing = Literal["fast", "moderate", "thoughtful"]
EngagementStyle = Literal["analytical", "intuitive", "collaborative"]
CertaintyLevel = Literal["uncertain", "moderate", "confident"]


@dataclass(frozen=True)
class QuestionDescriptor:
    id: str; type: QuestionType; section: str = "general"; required: bool = False
    text: str = ""
    options: Optional[tuple[str, ...]] = None
    scale_min: Optional[float] = None
    scale_max: Optional[float] = None


@dataclass(frozen=True)
class RecordedResponse:
    question_id: str
    value: Any
    confidence_level: int
    completion_time_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "value": list(self.value) if isinstance(self.value, tuple) else self.value,
            "confidenceLevel": self.confidence_level,
            "completionTimeMs": self.completion_time_ms,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RecordedResponse":
        return cls(
            question_id=str(raw["questionId"]),
            value=raw.get("value"),
            confidence_level=raw["confidenceLevel"],
            completion_time_ms=raw["completionTimeMs"],
        )


@dataclass(frozen=True)
class SectionSummary:
    name: str
    display_name: str
    start_index: int
    end_index: int
    completed_count: int
    total_count: int
    average_confidence: float
    estimated_duration_minutes: int
    is_optional: bool
    question_ids: tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "startIndex": self.start_index,
            "endIndex": self.end_index,
            "completedCount": self.completed_count,
            "totalCount": self.total_count,
            "averageConfidence": round(self.average_confidence, 2),
            "estimatedDurationMinutes": self.estimated_duration_minutes,
            "isOptional": self.is_optional,
        }


@dataclass(frozen=True)
class ProgressionState:
    current_index: int
    responses: Dict[str, RecordedResponse]
    session_start: datetime


@dataclass
class UserProfileInsights:
    certainty_level: CertaintyLevel
    thoughtfulness_score: int
    consistency_pattern: Literal["consistent", "exploring", "conflicted"]
    engagement_style: EngagementStyle
    topic_interests: List[str] = field(default_factory=list)
    dominant_ideology: Optional[str] = None


@dataclass
class PersonalizationContext:
    user_profile: UserProfileInsights
    engagement_level: EngagementLevel
    fatigue_level: FatigueLevel
    time_of_day: TimeOfDay
    session_phase: SessionPhase
    preferred_pacing: Pacing


@dataclass(frozen=True)
class ConsistencyIssue:
    type: IssueType
    severity: Severity
    question_ids: tuple[str, ...]
    title: str
    description: str
    suggestion: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "questionIds": list(self.question_ids),
            "title": self.title,
            "description": self.description,
            "suggestion": self.suggestion,
        }
