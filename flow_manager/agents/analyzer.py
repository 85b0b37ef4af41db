from __future__ import annotations  # Response analyzer scoring a single candidate answer

import math
from textwrap import dedent
from typing import Any, List, Optional

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import ANALYZER_STAGE, Settings, settings as default_settings
from llm_gateway import LanguageModel
from ..models import InterviewState
from .stage import invoke_stage
from .toolkit import clean_items, one_line, transcript, word_count


NEUTRAL_SCORE = 5.0

ANALYZER_GUIDANCE = dedent(  # Evaluation rubric handed to the analyzer model
    """
    You are an expert interview evaluator analyzing one answer in a live mock interview.
    Evaluate only the latest answer. Be fair but critical and reference what the candidate actually said.
    Score each dimension from 0 to 10:
    - communication: clarity and structure
    - technical: knowledge depth appropriate for the role and seniority
    - behavioral: STAR structure (Situation, Task, Action, Result) where applicable
    - confidence: how assured the candidate sounds
    - engagement: enthusiasm and thoughtfulness
    Length guidelines: under {short} words is too brief, over {chatty} words is too verbose.
    Mark the answer off-topic only when it is unrelated to the question that was asked.
    Reply with a single JSON object with keys isChatty, isTooShort, isOffTopic, communicationScore,
    technicalScore, behavioralScore, confidenceScore, engagementScore, notes (one sentence),
    strengths, weaknesses, suggestions (short lists of strings).
    """
).strip()

_PROMPT = PromptTemplate.from_template(
    "{instructions}\n\n"
    "CONTEXT:\n"
    "- Role: {role}\n"
    "- Seniority: {seniority}\n"
    "- Question Count: {question_count}\n"
    "- Interview Phase: {phase}\n\n"
    "RECENT CONVERSATION:\n{recent_history}\n\n"
    "CANDIDATE'S LAST ANSWER (word count {words}):\n\"{answer}\"\n\n"
    "Return ONLY valid JSON."
)


class AnalyzerOutput(BaseModel):  # Structured assessment of one answer
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_chatty: bool
    is_too_short: bool
    is_off_topic: bool = False
    communication_score: float
    technical_score: float
    behavioral_score: float
    confidence_score: float
    engagement_score: float
    notes: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator(
        "communication_score",
        "technical_score",
        "behavioral_score",
        "confidence_score",
        "engagement_score",
        mode="before",
    )
    @classmethod
    def _clamp_score(cls, value: Any) -> float:  # Bound scores into the 0..10 scale
        try:
            numeric = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"score must be numeric, got {value!r}") from exc
        if not math.isfinite(numeric):
            raise ValueError(f"score must be finite, got {value!r}")
        return max(0.0, min(10.0, numeric))

    def scores(self) -> List[float]:
        return [
            self.communication_score,
            self.technical_score,
            self.behavioral_score,
            self.confidence_score,
            self.engagement_score,
        ]


class ResponseAnalyzer:  # Stage assessing the candidate's latest answer
    def __init__(self, model: LanguageModel, *, settings: Optional[Settings] = None) -> None:
        self._model = model
        self._settings = settings or default_settings

    def invoke(self, state: InterviewState, answer: str) -> AnalyzerOutput:
        words = word_count(answer)
        prompt = _PROMPT.format(
            instructions=ANALYZER_GUIDANCE.format(
                short=self._settings.SHORT_ANSWER_WORDS,
                chatty=self._settings.CHATTY_ANSWER_WORDS,
            ),
            role=state.role.label,
            seniority=state.seniority.value,
            question_count=state.question_count,
            phase=state.phase.value,
            recent_history=transcript(state.recent_history(6)) or "(First question)",
            words=words,
            answer=answer.strip(),
        )
        analysis, from_model = invoke_stage(
            ANALYZER_STAGE,
            session_id=state.session_id,
            model=self._model,
            prompt=prompt,
            schema=AnalyzerOutput,
            fallback=lambda: fallback_analysis(answer, self._settings),
            timeout_s=self._settings.STAGE_TIMEOUT_S,
            workers=self._settings.STAGE_WORKERS,
        )
        if not from_model:
            return analysis
        return self._apply_length_policy(analysis, words)

    def _apply_length_policy(self, analysis: AnalyzerOutput, words: int) -> AnalyzerOutput:  # Word-count thresholds always hold
        return analysis.model_copy(
            update={
                "is_too_short": analysis.is_too_short or words < self._settings.SHORT_ANSWER_WORDS,
                "is_chatty": analysis.is_chatty or words > self._settings.CHATTY_ANSWER_WORDS,
                "notes": one_line(analysis.notes) or "Response received.",
                "strengths": clean_items(analysis.strengths),
                "weaknesses": clean_items(analysis.weaknesses),
                "suggestions": clean_items(analysis.suggestions),
            }
        )


def fallback_analysis(answer: str, settings: Settings = default_settings) -> AnalyzerOutput:
    """Deterministic word-count heuristic used when the model path fails."""

    words = word_count(answer)
    too_short = words < settings.SHORT_ANSWER_WORDS
    chatty = words > settings.CHATTY_ANSWER_WORDS
    if too_short:
        notes = "Response was quite brief and may lack necessary detail."
        strengths: List[str] = []
        weaknesses = ["Answer too brief", "Missing key details"]
        suggestions = ["Provide more specific examples", "Add more detail to answers"]
    elif chatty:
        notes = "Response was verbose and could be more focused."
        strengths = ["Provided an answer"]
        weaknesses = ["Answer too verbose", "Could be more concise"]
        suggestions = ["Be more concise", "Focus on key points"]
    else:
        notes = "Response provided with reasonable detail."
        strengths = ["Provided an answer"]
        weaknesses = []
        suggestions = ["Continue with similar level of detail"]
    return AnalyzerOutput(
        is_chatty=chatty,
        is_too_short=too_short,
        is_off_topic=False,
        communication_score=NEUTRAL_SCORE,
        technical_score=NEUTRAL_SCORE,
        behavioral_score=NEUTRAL_SCORE,
        confidence_score=NEUTRAL_SCORE,
        engagement_score=NEUTRAL_SCORE,
        notes=notes,
        strengths=strengths,
        weaknesses=weaknesses,
        suggestions=suggestions,
    )


__all__ = ["ANALYZER_GUIDANCE", "AnalyzerOutput", "NEUTRAL_SCORE", "ResponseAnalyzer", "fallback_analysis"]
