from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence
from .types import ConsistencyIssue, QuestionDescriptor, RecordedResponse
from .config import (
    LOW_CONFIDENCE_MAX,
    LOW_CONFIDENCE_CLUSTER_MIN,
    FINALIZE_MIN_COMPLETION,
    OPTIONAL_SECTION_MARKERS,
)
from .sections import build_sections


def analyze(
    catalog: Sequence[QuestionDescriptor], responses: Mapping[str, RecordedResponse]
) -> List[ConsistencyIssue]:
    """Only the incomplete and uncertainty rules exist; contradiction/outlier are never produced."""
    issues: List[ConsistencyIssue] = []

    missing = tuple(q.id for q in catalog if q.required and q.id not in responses)
    if missing:
        issues.append(ConsistencyIssue(
            type="incomplete",
            severity="high",
            question_ids=missing,
            title="Missing Required Responses",
            description=f"{len(missing)} required questions haven't been answered yet.",
            suggestion="Complete these questions to ensure accurate profile generation.",
        ))

    low_conf = tuple(qid for qid, r in responses.items() if r.confidence_level <= LOW_CONFIDENCE_MAX)
    if len(low_conf) >= LOW_CONFIDENCE_CLUSTER_MIN:
        issues.append(ConsistencyIssue(
            type="uncertainty",
            severity="medium",
            question_ids=low_conf,
            title="Many Uncertain Responses",
            description=f"You marked {len(low_conf)} responses as uncertain.",
            suggestion="Consider revisiting these questions if you have stronger opinions now.",
        ))
    return issues


def completion_rate(catalog: Sequence[QuestionDescriptor], responses: Mapping[str, RecordedResponse]) -> float:
    if not catalog:
        return 0.0
    answered = sum(1 for q in catalog if q.id in responses)
    return 100.0 * answered / len(catalog)


def ready_to_finalize(rate: float, issues: Sequence[ConsistencyIssue]) -> bool:
    return rate >= FINALIZE_MIN_COMPLETION and not any(i.severity == "high" for i in issues)


def confidence_label(avg: float) -> str:
    if avg >= 4: return "Very Sure"
    if avg >= 3: return "Confident"
    return "Uncertain"


def issue_target_index(catalog: Sequence[QuestionDescriptor], issue: ConsistencyIssue) -> Optional[int]:
    """Catalog index of the first question an issue points at."""
    if not issue.question_ids:
        return None
    first = issue.question_ids[0]
    return next((i for i, q in enumerate(catalog) if q.id == first), None)


def review(
    catalog: Sequence[QuestionDescriptor],
    responses: Mapping[str, RecordedResponse],
    optional_markers: Sequence[str] = OPTIONAL_SECTION_MARKERS,
) -> Dict[str, Any]:
    issues = analyze(catalog, responses)
    rate = completion_rate(catalog, responses)
    vals = list(responses.values())
    avg_conf = sum(r.confidence_level for r in vals) / max(len(vals), 1)

    sections = []
    for sec in build_sections(catalog, responses, optional_markers):
        ids = set(sec.question_ids)
        sec_issues = [i.to_dict() for i in issues if ids.intersection(i.question_ids)]
        row = sec.to_dict()
        row["issues"] = sec_issues
        sections.append(row)

    high = sum(1 for i in issues if i.severity == "high")
    medium = sum(1 for i in issues if i.severity == "medium")
    return {
        "completionRate": round(rate, 1),
        "averageConfidence": round(avg_conf, 2),
        "confidenceLabel": confidence_label(avg_conf),
        "totalResponses": len(vals),
        "activeSections": sum(1 for s in sections if s["completedCount"] > 0),
        "sections": sections,
        "issues": [
            dict(i.to_dict(), targetIndex=issue_target_index(catalog, i)) for i in issues
        ],
        "highSeverityIssues": high,
        "mediumSeverityIssues": medium,
        "readyToFinalize": ready_to_finalize(rate, issues),
    }
