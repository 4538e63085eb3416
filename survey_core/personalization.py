# survey_core/personalization.py
"""Engagement, fatigue and session-phase scoring.

All thresholds come from :mod:`survey_core.config`. They have no calibration
data behind them, so tests pin the exact band edges.
"""
from __future__ import annotations

from datetime import datetime
from statistics import mean
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .types import (
    PersonalizationContext,
    QuestionDescriptor,
    RecordedResponse,
    UserProfileInsights,
)
from .config import (
    ENGAGEMENT_TIME_CAP_SEC,
    ENGAGEMENT_TIME_CAP_POINTS,
    ENGAGEMENT_TIME_DIVISOR,
    ENGAGEMENT_PACE_THRESHOLD_SEC,
    ENGAGEMENT_PACE_CAP_POINTS,
    ENGAGEMENT_PACE_FACTOR,
    ENGAGEMENT_PER_RESPONSE,
    ENGAGEMENT_BANDS,
    FATIGUE_STYLE_MULTIPLIER,
    FATIGUE_PER_RESPONSE,
    FATIGUE_BANDS,
    PHASE_BANDS,
    ANALYTICAL_MIN_RT_SEC,
    ANALYTICAL_MIN_CONFIDENCE,
    INTUITIVE_MAX_RT_SEC,
    INTUITIVE_MARKERS,
    PACING_FAST_SEC,
    PACING_THOUGHTFUL_SEC,
    THOUGHTFULNESS_LENGTH_CAP,
    THOUGHTFULNESS_TIME_CAP,
    THOUGHTFULNESS_BASELINE,
    THOUGHTFULNESS_NO_TEXT,
    BOOSTER_EVERY,
)


def engagement_score(session_duration_sec: float, avg_response_time_sec: float, response_count: int) -> float:
    time_pts = (
        ENGAGEMENT_TIME_CAP_POINTS
        if session_duration_sec > ENGAGEMENT_TIME_CAP_SEC
        else session_duration_sec / ENGAGEMENT_TIME_DIVISOR
    )
    pace_pts = (
        ENGAGEMENT_PACE_CAP_POINTS
        if avg_response_time_sec > ENGAGEMENT_PACE_THRESHOLD_SEC
        else avg_response_time_sec * ENGAGEMENT_PACE_FACTOR
    )
    return time_pts + pace_pts + response_count * ENGAGEMENT_PER_RESPONSE


def engagement_level(session_duration_sec: float, avg_response_time_sec: float, response_count: int) -> str:
    score = engagement_score(session_duration_sec, avg_response_time_sec, response_count)
    medium, high = ENGAGEMENT_BANDS
    if score >= high:
        return "high"
    if score >= medium:
        return "medium"
    return "low"


def fatigue_score(session_duration_sec: float, response_count: int, engagement_style: str) -> float:
    minutes = session_duration_sec / 60.0
    multiplier = FATIGUE_STYLE_MULTIPLIER.get(engagement_style, 1.0)
    return minutes * multiplier + response_count * FATIGUE_PER_RESPONSE


def fatigue_level(session_duration_sec: float, response_count: int, engagement_style: str) -> str:
    score = fatigue_score(session_duration_sec, response_count, engagement_style)
    mild, moderate, high = FATIGUE_BANDS
    if score >= high:
        return "high"
    if score >= moderate:
        return "moderate"
    if score >= mild:
        return "mild"
    return "none"


def session_phase(current_index: int, catalog_length: int) -> str:
    # an empty catalog has nothing left to ask
    progress = current_index / catalog_length if catalog_length > 0 else 1.0
    warmup, focus, deepthink = PHASE_BANDS
    if progress < warmup:
        return "warmup"
    if progress < focus:
        return "focus"
    if progress < deepthink:
        return "deepthink"
    return "wrapup"


def time_of_day(now: Optional[datetime] = None) -> str:
    hour = (now or datetime.now()).hour
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    if hour < 21:
        return "evening"
    return "night"


def preferred_pacing(avg_response_time_sec: float) -> str:
    if avg_response_time_sec < PACING_FAST_SEC:
        return "fast"
    if avg_response_time_sec > PACING_THOUGHTFUL_SEC:
        return "thoughtful"
    return "moderate"


def thoughtfulness_score(text_responses: Sequence[Any], avg_response_time_sec: float) -> int:
    if not text_responses:
        return THOUGHTFULNESS_NO_TEXT
    avg_len = sum(len(r) if isinstance(r, str) else 0 for r in text_responses) / len(text_responses)
    length_pts = min(THOUGHTFULNESS_LENGTH_CAP, avg_len / 4.0)
    time_pts = min(THOUGHTFULNESS_TIME_CAP, avg_response_time_sec / 2.0)
    return int(round(length_pts + time_pts + THOUGHTFULNESS_BASELINE))


def engagement_style(text_responses: Sequence[Any], avg_response_time_sec: float, avg_confidence: float) -> str:
    if avg_response_time_sec > ANALYTICAL_MIN_RT_SEC and avg_confidence >= ANALYTICAL_MIN_CONFIDENCE:
        return "analytical"
    if avg_response_time_sec < INTUITIVE_MAX_RT_SEC and any(
        isinstance(r, str) and any(m in r.lower() for m in INTUITIVE_MARKERS)
        for r in text_responses
    ):
        return "intuitive"
    return "collaborative"


def _text_responses(
    responses: Mapping[str, RecordedResponse],
    questions: Optional[Sequence[QuestionDescriptor]],
) -> List[Any]:
    if questions is None:
        return [r.value for r in responses.values() if isinstance(r.value, str)]
    text_ids = {q.id for q in questions if q.type == "freeText"}
    return [r.value for qid, r in responses.items() if qid in text_ids]


def analyze_user_profile(
    responses: Mapping[str, RecordedResponse],
    questions: Optional[Sequence[QuestionDescriptor]] = None,
) -> UserProfileInsights:
    values = list(responses.values())
    avg_conf = mean(r.confidence_level for r in values) if values else 0.0
    avg_rt = mean(r.completion_time_ms / 1000.0 for r in values) if values else 0.0
    texts = _text_responses(responses, questions)
    if avg_conf >= 4:
        certainty = "confident"
    elif avg_conf >= 2.5:
        certainty = "moderate"
    else:
        certainty = "uncertain"
    return UserProfileInsights(
        certainty_level=certainty,
        thoughtfulness_score=thoughtfulness_score(texts, avg_rt),
        consistency_pattern="exploring",
        engagement_style=engagement_style(texts, avg_rt, avg_conf),
    )


def compute(
    responses: Mapping[str, RecordedResponse],
    session_duration_sec: float,
    avg_response_time_sec: float,
    current_index: int,
    catalog_length: int,
    questions: Optional[Sequence[QuestionDescriptor]] = None,
    now: Optional[datetime] = None,
) -> PersonalizationContext:
    profile = analyze_user_profile(responses, questions)
    count = len(responses)
    return PersonalizationContext(
        user_profile=profile,
        engagement_level=engagement_level(session_duration_sec, avg_response_time_sec, count),
        fatigue_level=fatigue_level(session_duration_sec, count, profile.engagement_style),
        time_of_day=time_of_day(now),
        session_phase=session_phase(current_index, catalog_length),
        preferred_pacing=preferred_pacing(avg_response_time_sec),
    )


def context_to_dict(ctx: PersonalizationContext) -> Dict[str, Any]:
    p = ctx.user_profile
    return {
        "userProfile": {
            "certaintyLevel": p.certainty_level,
            "thoughtfulnessScore": p.thoughtfulness_score,
            "consistencyPattern": p.consistency_pattern,
            "engagementStyle": p.engagement_style,
            "topicInterests": list(p.topic_interests),
            "dominantIdeology": p.dominant_ideology,
        },
        "engagementLevel": ctx.engagement_level,
        "fatigueLevel": ctx.fatigue_level,
        "timeOfDay": ctx.time_of_day,
        "sessionPhase": ctx.session_phase,
        "preferredPacing": ctx.preferred_pacing,
    }


# ---- presentation copy ----

_GREETINGS = {
    "morning": "Good morning, {name}! Ready to explore your perspectives?",
    "afternoon": "Hello {name}! Let's dive into some thought-provoking questions.",
    "evening": "Good evening, {name}! Perfect time for some reflection.",
    "night": "Hey {name}! Thanks for taking time for this survey tonight.",
}

_FOCUS_GREETINGS = {
    "analytical": "Great analysis so far, {name}! Let's examine this next topic.",
    "intuitive": "Your instincts are showing through, {name}. What does this question feel like?",
    "collaborative": "You're building a rich profile, {name}. This question connects to your previous thoughts.",
}


def greeting(ctx: PersonalizationContext, user_name: str = "Student") -> str:
    if ctx.session_phase == "warmup":
        return _GREETINGS[ctx.time_of_day].format(name=user_name)
    if ctx.session_phase == "focus":
        return _FOCUS_GREETINGS[ctx.user_profile.engagement_style].format(name=user_name)
    if ctx.session_phase == "wrapup":
        return f"Almost there, {user_name}! These final questions will round out your profile perfectly."
    return f"Keep going, {user_name}! Your thoughtful responses are creating something unique."


def progress_message(progress_pct: float) -> str:
    if progress_pct < 25: return "Building your foundation"
    if progress_pct < 50: return "Exploring your core beliefs"
    if progress_pct < 75: return "Diving deeper into your values"
    return "Putting the finishing touches on your profile"


def fatigue_message(level: str, session_duration_sec: float, questions_remaining: int) -> Optional[Dict[str, str]]:
    minutes = int(session_duration_sec // 60)
    if level == "mild":
        return {
            "title": "You're doing great!",
            "message": f"{minutes} minutes of thoughtful engagement. Consider taking a short break if needed.",
            "suggestion": "Stretch, hydrate, and come back refreshed!",
        }
    if level == "moderate":
        return {
            "title": "Impressive dedication!",
            "message": f"{minutes} minutes of deep thinking. You might benefit from a brief pause.",
            "suggestion": f"Only {questions_remaining} questions left - you're almost there!",
        }
    if level == "high":
        return {
            "title": "Take a well-deserved break",
            "message": f"After {minutes} minutes of intense reflection, your brain deserves a rest.",
            "suggestion": "Save your progress and return when you're refreshed. Quality over speed!",
        }
    return None


def personalized_content(
    ctx: PersonalizationContext,
    response_count: int,
    current_index: int,
    catalog_length: int,
    session_duration_sec: float,
    user_name: str = "Student",
) -> Dict[str, Any]:
    """Greeting, hints, boosters and fatigue copy shown alongside the current question."""

    progress = 100.0 * current_index / catalog_length if catalog_length else 100.0
    content: Dict[str, Any] = {
        "greeting": greeting(ctx, user_name),
        "progressMessage": progress_message(progress),
        "progress": round(progress, 1),
    }
    if ctx.session_phase == "focus" and ctx.user_profile.certainty_level == "uncertain":
        content["hints"] = {
            "title": "Embrace the uncertainty",
            "message": "It's perfectly okay to be unsure. Honest uncertainty is valuable for finding good debate partners.",
            "examples": [
                "Think about your gut reaction",
                "Consider both sides",
                "What feels most authentic to you?",
            ],
        }
    if response_count > 0 and response_count % BOOSTER_EVERY == 0:
        content["engagement"] = {
            "type": "achievement",
            "title": f"{response_count} responses completed!",
            "message": f"You're building a rich belief profile, {user_name}. Each response helps us find better matches.",
            "impact": "Your thoughtful answers will lead to more meaningful debates.",
        }
    remaining = max(0, catalog_length - current_index - 1)
    fatigue = fatigue_message(ctx.fatigue_level, session_duration_sec, remaining)
    if fatigue:
        content["fatigue"] = fatigue
    return content
