"""
Offline analysis collaborator.

Scores a transcript with simple text heuristics so the pipeline can run
without the analysis microservice (ANALYSIS_BACKEND=mock). Output is
deterministic for a given transcript.
"""
import re
from typing import List, Optional

from app.models.analysis_models import InterviewContext, UserProfile
from app.models.session import (
    DetailedScores,
    FeedbackReport,
    Priority,
    Recommendation,
    Speaker,
    TranscriptEntry,
)
from app.services.analysis_client import AnalysisCollaborator
from app.utils.logger import get_logger

logger = get_logger(__name__)

FILLER_WORDS = ("um", "uh", "like", "you know", "basically", "actually")
STRUCTURE_MARKERS = ("situation", "task", "action", "result", "first", "then", "finally", "because", "example")
WORD_RE = re.compile(r"[a-zA-Z']+")


def _bounded(value: float, low: float = 0, high: float = 100) -> float:
    return round(max(low, min(high, value)), 1)


def count_fillers(text: str) -> int:
    lowered = f" {text.lower()} "
    return sum(lowered.count(f" {filler} ") for filler in FILLER_WORDS)


def score_transcript(transcript: List[TranscriptEntry]) -> DetailedScores:
    """Category scores from answer length, filler use, structure and turn-taking."""
    answers = [e for e in transcript if e.speaker == Speaker.USER]
    questions = [e for e in transcript if e.speaker == Speaker.AI]
    words = [w.lower() for e in answers for w in WORD_RE.findall(e.text)]
    word_count = len(words) or 1
    avg_words = len(words) / max(len(answers), 1)

    fillers = sum(count_fillers(e.text) for e in answers)
    markers = sum(1 for marker in STRUCTURE_MARKERS if marker in words)
    confidences = [e.confidence for e in answers if e.confidence is not None]

    answered_ratio = len(answers) / max(len(questions), 1)

    return DetailedScores(
        content_relevance=_bounded(35 + avg_words * 1.2),
        communication=_bounded(90 - (fillers / word_count) * 400),
        confidence=_bounded(sum(confidences) / len(confidences) * 100 if confidences else 70),
        structure=_bounded(45 + markers * 8),
        engagement=_bounded(40 + min(answered_ratio, 1.5) * 40),
    )


class HeuristicAnalysisCollaborator(AnalysisCollaborator):
    """Deterministic stand-in for the analysis service."""

    name = "mock"

    async def analyze(
        self,
        transcript: List[TranscriptEntry],
        context: InterviewContext,
        user_profile: Optional[UserProfile] = None,
        session_id: Optional[str] = None
    ) -> FeedbackReport:
        scores = score_transcript(transcript)
        by_category = scores.model_dump()
        mean = sum(by_category.values()) / len(by_category)
        overall_rating = _bounded(mean / 10, 1, 10)

        labels = {
            "content_relevance": "Content relevance",
            "communication": "Communication",
            "confidence": "Confidence",
            "structure": "Answer structure",
            "engagement": "Engagement",
        }
        ranked = sorted(by_category.items(), key=lambda item: item[1], reverse=True)
        strengths = [f"{labels[k]} was a strong point ({v:.0f}/100)" for k, v in ranked if v >= 70][:3]
        weaknesses = [f"{labels[k]} needs work ({v:.0f}/100)" for k, v in reversed(ranked) if v < 70][:3]

        recommendations = []
        if scores.structure < 70:
            recommendations.append(Recommendation(
                area="Structure",
                suggestion="Organise answers with the STAR method: situation, task, action, result.",
                priority=Priority.HIGH,
                examples=["Start with the situation, then explain what you did and how it turned out."],
            ))
        if scores.communication < 75:
            recommendations.append(Recommendation(
                area="Communication",
                suggestion="Pause briefly instead of using filler words.",
                priority=Priority.MEDIUM,
            ))
        if scores.content_relevance < 60:
            recommendations.append(Recommendation(
                area="Content",
                suggestion=f"Give fuller answers with concrete examples related to {context.major}.",
                priority=Priority.HIGH,
            ))
        if not recommendations:
            recommendations.append(Recommendation(
                area="Practice",
                suggestion=f"Try a harder {context.interview_type.value} interview to keep improving.",
                priority=Priority.LOW,
            ))

        summary = (
            f"Overall rating {overall_rating}/10 for a {context.difficulty.value} "
            f"{context.interview_type.value} interview. "
            f"Strongest area: {labels[ranked[0][0]].lower()}; "
            f"focus next on {labels[ranked[-1][0]].lower()}."
        )

        logger.info(f"Heuristic analysis produced rating {overall_rating}/10")
        return FeedbackReport(
            overall_rating=overall_rating,
            strengths=strengths,
            weaknesses=weaknesses,
            recommendations=recommendations,
            detailed_scores=scores,
            summary=summary,
        )
