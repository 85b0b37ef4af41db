from __future__ import annotations  # Flow decision engine choosing the next step of the interview

from enum import Enum
from textwrap import dedent
from typing import Any, List, Optional

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import DECISION_STAGE, Settings, settings as default_settings
from llm_gateway import LanguageModel
from ..models import ENGINEERING_ROLES, InterviewState
from .analyzer import AnalyzerOutput
from .stage import invoke_stage
from .toolkit import format_score, transcript


class NextAgent(str, Enum):
    INTERVIEWER = "interviewer"
    FEEDBACK = "feedback"


class NextIntent(str, Enum):
    ASK_BEHAVIORAL = "ask_behavioral"
    ASK_TECHNICAL = "ask_technical"
    ASK_ROLE_SPECIFIC = "ask_role_specific"
    PROBE_ANSWER = "probe_answer"
    ASK_CLOSING = "ask_closing"
    END_INTERVIEW = "end_interview"
    CONTINUE_CONVERSATION = "continue_conversation"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


FOCUS_STEER_BACK = "Steer the candidate back to the interview topic"
FOCUS_ELABORATE = "Ask open-ended questions that require elaboration"
FOCUS_CONCISE = "Ask focused, specific questions"
FOCUS_DEFAULT = "Continue naturally"

DECISION_GUIDANCE = dedent(  # Decision framework handed to the decision model
    """
    You are the orchestrator of an AI interview system. Decide what happens next.
    Ending: end after {max_questions} questions at the latest. End early only if the candidate is clearly
    struggling across the board. Never end because an answer was off-topic; steer the candidate back instead.
    Question type: behavioral/introductory for questions 1-2, technical or role-specific for questions 3-5,
    closing questions from question 6 on. Raise difficulty to hard only for a strong technical answer.
    Adapt: too brief -> open-ended prompts that need elaboration; too chatty -> focused, specific questions;
    low scores -> offer a hint; off-topic -> acknowledge and steer back.
    Reply with a single JSON object:
    {{"nextAgent": "interviewer" | "feedback",
      "nextIntent": "ask_behavioral" | "ask_technical" | "ask_role_specific" | "probe_answer" | "ask_closing" | "end_interview" | "continue_conversation",
      "metadata": {{"difficulty": "easy" | "medium" | "hard", "focusAreas": [string], "provideHint": boolean, "reasoning": string}},
      "shouldEnd": boolean}}
    """
).strip()

_PROMPT = PromptTemplate.from_template(
    "{instructions}\n\n"
    "CURRENT STATE:\n"
    "- Role: {role}\n"
    "- Seniority: {seniority}\n"
    "- Questions Asked: {question_count}\n"
    "- Phase: {phase}\n"
    "- Interaction Mode: {interaction_mode}\n\n"
    "LATEST ANALYSIS:\n"
    "- Is Chatty: {is_chatty}\n"
    "- Is Too Short: {is_too_short}\n"
    "- Is Off Topic: {is_off_topic}\n"
    "- Communication: {communication}/10\n"
    "- Technical: {technical}/10\n"
    "- Behavioral: {behavioral}/10\n"
    "- Confidence: {confidence}/10\n"
    "- Engagement: {engagement}/10\n"
    "- Recent Notes: {recent_notes}\n\n"
    "CONVERSATION SUMMARY:\n{summary}\n\n"
    "Return ONLY valid JSON."
)


class DecisionMetadata(BaseModel):  # Guidance forwarded to the question generator
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    difficulty: Difficulty = Difficulty.MEDIUM
    focus_areas: List[str] = Field(default_factory=list)
    provide_hint: bool = False
    reasoning: str = ""

    @field_validator("difficulty", mode="before")
    @classmethod
    def _default_difficulty(cls, value: Any) -> Any:
        return Difficulty.MEDIUM if value in (None, "") else value


class DecisionOutput(BaseModel):  # Routing decision for the next step
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    next_agent: NextAgent
    next_intent: NextIntent
    metadata: DecisionMetadata = Field(default_factory=DecisionMetadata)
    should_end: bool = False

    @field_validator("next_agent", mode="before")
    @classmethod
    def _end_means_feedback(cls, value: Any) -> Any:
        return NextAgent.FEEDBACK if value == "end" else value

    @property
    def ends_interview(self) -> bool:
        return self.should_end or self.next_agent is NextAgent.FEEDBACK


class FlowDecisionEngine:  # Stage deciding whether to continue and what to ask next
    def __init__(self, model: LanguageModel, *, settings: Optional[Settings] = None) -> None:
        self._model = model
        self._settings = settings or default_settings

    def invoke(self, state: InterviewState, analysis: AnalyzerOutput) -> DecisionOutput:
        prompt = _PROMPT.format(
            instructions=DECISION_GUIDANCE.format(max_questions=self._settings.MAX_QUESTIONS),
            role=state.role.label,
            seniority=state.seniority.value,
            question_count=state.question_count,
            phase=state.phase.value,
            interaction_mode=state.interaction_mode.value,
            is_chatty=analysis.is_chatty,
            is_too_short=analysis.is_too_short,
            is_off_topic=analysis.is_off_topic,
            communication=format_score(analysis.communication_score),
            technical=format_score(analysis.technical_score),
            behavioral=format_score(analysis.behavioral_score),
            confidence=format_score(analysis.confidence_score),
            engagement=format_score(analysis.engagement_score),
            recent_notes=" | ".join(state.analytics.notes[-3:]) or "(none)",
            summary=transcript(state.recent_history(self._settings.HISTORY_WINDOW), limit=150)
            or "(Interview just started)",
        )
        decision, from_model = invoke_stage(
            DECISION_STAGE,
            session_id=state.session_id,
            model=self._model,
            prompt=prompt,
            schema=DecisionOutput,
            fallback=lambda: decide_by_rules(state, analysis, self._settings),
            timeout_s=self._settings.STAGE_TIMEOUT_S,
            workers=self._settings.STAGE_WORKERS,
        )
        if not from_model:
            return decision
        return enforce_policy(decision, state, analysis, self._settings)


def decide_by_rules(
    state: InterviewState,
    analysis: AnalyzerOutput,
    settings: Settings = default_settings,
) -> DecisionOutput:
    """Deterministic decision policy; also the fallback when the model path fails."""

    count = state.question_count
    if count >= settings.MAX_QUESTIONS:
        return _end_decision("Interview completed with sufficient questions")
    if analysis.is_off_topic:
        decision = DecisionOutput(
            next_agent=NextAgent.INTERVIEWER,
            next_intent=NextIntent.CONTINUE_CONVERSATION,
            metadata=DecisionMetadata(
                difficulty=Difficulty.MEDIUM,
                focus_areas=[FOCUS_STEER_BACK],
                reasoning="Candidate went off-topic, steering back",
            ),
        )
        return _apply_overlays(decision, analysis, settings)
    if count <= 2:
        intent, difficulty = NextIntent.ASK_BEHAVIORAL, Difficulty.EASY
    elif count <= 5:
        intent = _mid_interview_intent(state)
        difficulty = Difficulty.HARD if analysis.technical_score > settings.HIGH_TECHNICAL_SCORE else Difficulty.MEDIUM
    else:
        intent, difficulty = NextIntent.ASK_CLOSING, Difficulty.EASY
    decision = DecisionOutput(
        next_agent=NextAgent.INTERVIEWER,
        next_intent=intent,
        metadata=DecisionMetadata(
            difficulty=difficulty,
            reasoning=f"Question {count + 1}: following standard interview progression",
        ),
    )
    return _apply_overlays(decision, analysis, settings)


def enforce_policy(
    decision: DecisionOutput,
    state: InterviewState,
    analysis: AnalyzerOutput,
    settings: Settings = default_settings,
) -> DecisionOutput:
    """Apply the non-negotiable rules to a model-produced decision."""

    if state.question_count >= settings.MAX_QUESTIONS:
        return _end_decision(decision.metadata.reasoning or "Question limit reached")
    if analysis.is_off_topic:
        focus = _merge_focus(decision.metadata.focus_areas, FOCUS_STEER_BACK)
        decision = decision.model_copy(
            update={
                "next_agent": NextAgent.INTERVIEWER,
                "next_intent": NextIntent.CONTINUE_CONVERSATION,
                "should_end": False,
                "metadata": decision.metadata.model_copy(update={"focus_areas": focus}),
            }
        )
        return _apply_overlays(decision, analysis, settings)
    if decision.ends_interview or decision.next_intent is NextIntent.END_INTERVIEW:
        return _end_decision(decision.metadata.reasoning or "Model ended the interview")
    metadata = decision.metadata
    if metadata.difficulty is Difficulty.HARD and analysis.technical_score <= settings.HIGH_TECHNICAL_SCORE:
        metadata = metadata.model_copy(update={"difficulty": Difficulty.MEDIUM})
    return _apply_overlays(decision.model_copy(update={"metadata": metadata}), analysis, settings)


def _apply_overlays(decision: DecisionOutput, analysis: AnalyzerOutput, settings: Settings) -> DecisionOutput:  # Length and low-score adaptations
    focus = list(decision.metadata.focus_areas)
    if analysis.is_too_short:
        focus = _merge_focus(focus, FOCUS_ELABORATE)
    if analysis.is_chatty:
        focus = _merge_focus(focus, FOCUS_CONCISE)
    if not focus:
        focus = [FOCUS_DEFAULT]
    provide_hint = decision.metadata.provide_hint or any(
        score < settings.LOW_SCORE_THRESHOLD for score in analysis.scores()
    )
    metadata = decision.metadata.model_copy(update={"focus_areas": focus, "provide_hint": provide_hint})
    return decision.model_copy(update={"metadata": metadata})


def _end_decision(reasoning: str) -> DecisionOutput:
    return DecisionOutput(
        next_agent=NextAgent.FEEDBACK,
        next_intent=NextIntent.END_INTERVIEW,
        metadata=DecisionMetadata(reasoning=reasoning),
        should_end=True,
    )


def _mid_interview_intent(state: InterviewState) -> NextIntent:  # Alternate technical and role-specific for engineering roles
    if state.role in ENGINEERING_ROLES and state.question_count % 2 == 0:
        return NextIntent.ASK_TECHNICAL
    return NextIntent.ASK_ROLE_SPECIFIC


def _merge_focus(focus: List[str], item: str) -> List[str]:
    cleaned = [entry for entry in focus if entry and entry != FOCUS_DEFAULT]
    if item not in cleaned:
        cleaned.append(item)
    return cleaned


__all__ = [
    "DECISION_GUIDANCE",
    "DecisionMetadata",
    "DecisionOutput",
    "Difficulty",
    "FOCUS_CONCISE",
    "FOCUS_DEFAULT",
    "FOCUS_ELABORATE",
    "FOCUS_STEER_BACK",
    "FlowDecisionEngine",
    "NextAgent",
    "NextIntent",
    "decide_by_rules",
    "enforce_policy",
]
