from __future__ import annotations  # Evaluation generator producing the final interview report

import math
from datetime import datetime
from enum import Enum
from textwrap import dedent
from typing import Any, List, Optional

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import EVALUATION_STAGE, Settings, settings as default_settings
from llm_gateway import LanguageModel
from ..models import InterviewState, Role, Seniority, utcnow
from .stage import invoke_stage
from .toolkit import clean_items, format_score, numbered_transcript


MIN_SCORE = 1
MAX_SCORE = 10
EARLY_END_QUESTIONS = 5
FULL_INTERVIEW_QUESTIONS = 7


class Recommendation(str, Enum):
    STRONG_HIRE = "STRONG_HIRE"
    HIRE = "HIRE"
    MAYBE = "MAYBE"
    NO_HIRE = "NO_HIRE"


EVALUATION_GUIDANCE = dedent(  # Report rubric handed to the evaluation model
    """
    You are an expert interview evaluator providing comprehensive feedback on a candidate's interview performance.
    Consider communication, technical knowledge, problem-solving, confidence, relevance and, for behavioral
    questions, STAR structure (Situation, Task, Action, Result).
    Be specific and reference actual responses. Be constructive and give actionable advice. Be fair.
    Score every category and the overall impression from 1 to 10.
    Reply with a single JSON object:
    {{"overallScore": number,
      "scores": {{"communication": number, "technicalKnowledge": number, "problemSolving": number,
                  "confidence": number, "relevance": number}},
      "strengths": [string], "improvements": [string], "highlights": [string], "redFlags": [string],
      "overallFeedback": "2-3 paragraph summary of the interview",
      "recommendation": "STRONG_HIRE" | "HIRE" | "MAYBE" | "NO_HIRE"}}
    """
).strip()

_PROMPT = PromptTemplate.from_template(
    "{instructions}\n\n"
    "INTERVIEW DETAILS:\n"
    "- Role: {role}\n"
    "- Seniority: {seniority}\n"
    "- Questions Asked: {question_count}\n"
    "- Duration: {duration} minutes\n\n"
    "ACCUMULATED ANALYTICS:\n"
    "- Average Answer Length: {avg_answer_length} characters\n"
    "- Was Chatty: {is_chatty}\n"
    "- Was Too Brief: {is_too_short}\n"
    "- Final Communication Score: {communication}/10\n"
    "- Final Technical Score: {technical}/10\n"
    "- Final Behavioral Score: {behavioral}/10\n"
    "- Final Confidence Score: {confidence}/10\n"
    "- Final Engagement Score: {engagement}/10\n\n"
    "COMPLETE INTERVIEW TRANSCRIPT:\n{transcript}\n\n"
    "Return ONLY valid JSON."
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:  # Integer score bounded to the 1..10 scale
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(value)))


def recommendation_for(overall: int) -> Recommendation:
    if overall >= 8:
        return Recommendation.STRONG_HIRE
    if overall >= 6:
        return Recommendation.HIRE
    if overall >= 4:
        return Recommendation.MAYBE
    return Recommendation.NO_HIRE


def _bounded(value: Any) -> int:
    try:
        numeric = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"score must be numeric, got {value!r}") from exc
    if not math.isfinite(numeric):
        raise ValueError(f"score must be finite, got {value!r}")
    return clamp_score(numeric)


class ScoreBreakdown(BaseModel):  # Five-category score breakdown
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    communication: int
    technical_knowledge: int
    problem_solving: int
    confidence: int
    relevance: int

    @field_validator("*", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:
        return _bounded(value)


class EvaluationReply(BaseModel):  # Shape of the evaluation model's JSON reply
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    overall_score: int
    scores: ScoreBreakdown
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    overall_feedback: str = ""
    recommendation: Optional[str] = None

    @field_validator("overall_score", mode="before")
    @classmethod
    def _clamp_overall(cls, value: Any) -> int:
        return _bounded(value)

    @field_validator("strengths", "improvements", "highlights", "red_flags", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class EvaluationOutput(BaseModel):  # Final report returned to the caller
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    role: Role
    seniority: Seniority
    duration_minutes: int
    question_count: int
    overall_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    scores: ScoreBreakdown
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    overall_feedback: str
    recommendation: Recommendation
    generated_at: datetime = Field(default_factory=utcnow)
    degraded: bool = False


class EvaluationGenerator:  # Stage writing the end-of-interview report
    def __init__(self, model: LanguageModel, *, settings: Optional[Settings] = None) -> None:
        self._model = model
        self._settings = settings or default_settings

    def invoke(self, state: InterviewState) -> EvaluationOutput:
        duration = state.duration_minutes()
        analytics = state.analytics
        prompt = _PROMPT.format(
            instructions=EVALUATION_GUIDANCE,
            role=state.role.label,
            seniority=state.seniority.value,
            question_count=state.question_count,
            duration=duration,
            avg_answer_length=round(analytics.avg_answer_length),
            is_chatty=analytics.is_chatty,
            is_too_short=analytics.is_too_short,
            communication=format_score(analytics.communication_score),
            technical=format_score(analytics.technical_score),
            behavioral=format_score(analytics.behavioral_score),
            confidence=format_score(analytics.confidence_score),
            engagement=format_score(analytics.engagement_score),
            transcript=numbered_transcript(state.history),
        )
        reply, from_model = invoke_stage(
            EVALUATION_STAGE,
            session_id=state.session_id,
            model=self._model,
            prompt=prompt,
            schema=EvaluationReply,
            fallback=lambda: fallback_evaluation(state, duration),
            timeout_s=self._settings.STAGE_TIMEOUT_S,
            workers=self._settings.STAGE_WORKERS,
        )
        return EvaluationOutput(
            session_id=state.session_id,
            role=state.role,
            seniority=state.seniority,
            duration_minutes=duration,
            question_count=state.question_count,
            overall_score=reply.overall_score,
            scores=reply.scores,
            strengths=clean_items(reply.strengths),
            improvements=clean_items(reply.improvements),
            highlights=clean_items(reply.highlights),
            red_flags=clean_items(reply.red_flags),
            overall_feedback=reply.overall_feedback.strip() or _summary(state, duration, reply.overall_score),
            recommendation=recommendation_for(reply.overall_score),
            degraded=not from_model,
        )


def fallback_evaluation(state: InterviewState, duration: int) -> EvaluationReply:
    """Report derived from accumulated analytics when the model path fails."""

    analytics = state.analytics
    values = analytics.score_values()
    overall = clamp_score(sum(values) / len(values))
    strengths: List[str] = []
    improvements: List[str] = []
    if state.question_count >= FULL_INTERVIEW_QUESTIONS:
        strengths.append("Completed the full interview, showing commitment")
    if not analytics.is_too_short:
        strengths.append("Provided detailed responses")
    if analytics.communication_score is not None and analytics.communication_score >= 7:
        strengths.append("Demonstrated strong communication skills")
    if analytics.is_chatty:
        improvements.append("Work on being more concise - aim for 1-2 minute responses (too verbose)")
    if analytics.is_too_short:
        improvements.append("Provide more detailed examples and elaborate on your experiences")
    if analytics.behavioral_score is not None and analytics.behavioral_score < 6:
        improvements.append("Use the STAR method (Situation, Task, Action, Result) for behavioral questions")
    communication, technical, behavioral, confidence, engagement = values
    return EvaluationReply(
        overall_score=overall,
        scores=ScoreBreakdown(
            communication=communication,
            technical_knowledge=technical,
            problem_solving=behavioral,
            confidence=confidence,
            relevance=engagement,
        ),
        strengths=strengths or ["Participated in the interview"],
        improvements=improvements or ["Continue practicing interview skills"],
        highlights=analytics.notes[-2:],
        red_flags=["Interview ended early"] if state.question_count < EARLY_END_QUESTIONS else [],
        overall_feedback=_summary(state, duration, overall),
    )


def _summary(state: InterviewState, duration: int, overall: int) -> str:
    verdict = (
        "Overall, you showed good understanding and communication."
        if overall >= 6
        else "There is room for improvement in your interview performance."
    )
    return (
        f"You completed {state.question_count} questions in {duration} minutes. {verdict} "
        "Focus on providing structured, detailed responses while staying concise. "
        "Practice using the STAR method for behavioral questions."
    )


__all__ = [
    "EVALUATION_GUIDANCE",
    "EvaluationGenerator",
    "EvaluationOutput",
    "EvaluationReply",
    "Recommendation",
    "ScoreBreakdown",
    "clamp_score",
    "fallback_evaluation",
    "recommendation_for",
    "round_half_up",
]
