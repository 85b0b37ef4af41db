from __future__ import annotations  # Question generator producing the interviewer's next message

import zlib
from enum import Enum
from textwrap import dedent
from typing import Any, Dict, List, Optional

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import INTERVIEWER_STAGE, Settings, settings as default_settings
from llm_gateway import LanguageModel
from ..models import InteractionMode, InterviewState, Role
from .decision import DecisionOutput, NextIntent
from .stage import invoke_stage
from .toolkit import clamp_text, clean_items, one_line, transcript


INTERVIEWER_NAME = "Sarah"


class ExpectedLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


ROLE_CONTEXT: Dict[Role, str] = {
    Role.BACKEND: "Focus on: system design, databases, APIs, scalability, backend technologies (Node.js, Python, Java, etc.)",
    Role.FRONTEND: "Focus on: React/Angular/Vue, UI/UX, responsive design, state management, browser APIs",
    Role.FULLSTACK: "Focus on: both frontend and backend, how they connect, full application architecture",
    Role.SALES: "Focus on: sales techniques, customer relationships, handling objections, closing deals, metrics",
    Role.RETAIL: "Focus on: customer service, teamwork, handling difficult customers, retail operations",
    Role.PRODUCT_MANAGER: "Focus on: product strategy, stakeholder management, prioritization, metrics, user needs",
    Role.DATA_ANALYST: "Focus on: SQL, data visualization, statistical analysis, business insights, reporting",
    Role.MARKETING_MANAGER: "Focus on: marketing strategy, campaigns, analytics, brand management, ROI",
}

INTENT_INSTRUCTIONS: Dict[NextIntent, str] = {
    NextIntent.ASK_BEHAVIORAL: (
        'Ask a behavioral question that requires a detailed story. Use "Tell me about a time when..." format. '
        "Look for STAR structure (Situation, Task, Action, Result)."
    ),
    NextIntent.ASK_TECHNICAL: "Ask a technical question that tests their knowledge. Can be conceptual or practical.",
    NextIntent.ASK_ROLE_SPECIFIC: "Ask a question specific to their role that shows real-world understanding.",
    NextIntent.PROBE_ANSWER: "Follow up on what they just said. Ask for more detail, clarification, or a specific example.",
    NextIntent.ASK_CLOSING: "Ask if they have any questions for you, or provide a brief closing statement thanking them.",
    NextIntent.END_INTERVIEW: "Provide a warm closing statement thanking them for their time.",
    NextIntent.CONTINUE_CONVERSATION: (
        "Continue the conversation naturally. If the candidate was off-topic (check Focus Areas), "
        "politely steer them back to the interview topic."
    ),
}

FALLBACK_QUESTIONS: Dict[NextIntent, List[str]] = {
    NextIntent.ASK_BEHAVIORAL: [
        "Tell me about a time when you faced a significant challenge at work. How did you handle it?",
        "Can you describe a situation where you had to work with a difficult team member?",
        "Tell me about a project you're particularly proud of and why.",
    ],
    NextIntent.ASK_TECHNICAL: [
        "Which tools and technologies are you most comfortable using in your work as a {role}?",
        "Can you explain a complex concept from your {role} work in simple terms?",
        "When something goes wrong in your day-to-day work as a {role}, how do you track down the cause?",
    ],
    NextIntent.ASK_ROLE_SPECIFIC: [
        "What interests you most about working as a {role}?",
        "What do you think are the most important skills for a {role}?",
    ],
    NextIntent.PROBE_ANSWER: [
        "Could you walk me through a specific example of that?",
        "What was your own contribution there, and what was the outcome?",
    ],
    NextIntent.ASK_CLOSING: [
        "That's great, thank you. Do you have any questions for me?",
        "We're coming to the end of our time. Is there anything else you'd like to share?",
    ],
    NextIntent.END_INTERVIEW: [
        "Thank you so much for your time today. It was a pleasure speaking with you.",
    ],
    NextIntent.CONTINUE_CONVERSATION: [
        "Thanks for sharing that. Let's bring it back to the {role} role: what experience do you have that is most relevant here?",
        "I appreciate that. To stay on track, could you tell me how your background prepares you for a {role} position?",
    ],
}

OPENING_TEMPLATES = [
    "Hi! I'm {name}, and I'll be interviewing you today for the {role} position. "
    "Let's start with - tell me a bit about yourself and your background in {role}.",
    "Hello! Thanks for joining me today. I'm {name} and I'm excited to learn more about you. "
    "To get us started, could you walk me through your experience in {role}?",
    "Welcome! I'm {name}, your interviewer today. "
    "Let's dive in - tell me about your journey into {role} and what you're most passionate about.",
]

INTERVIEWER_GUIDANCE = dedent(  # Conversational rules for the interviewer model
    """
    1. Sound natural and human. You are having a conversation, not reading a script.
    2. Briefly acknowledge what the candidate just said before moving on.
    3. Keep it concise: {length_guideline}.
    4. Ask ONE clear question at a time.
    5. Voice mode is very conversational; chat mode is professional but warm.
    6. If providing a hint, do so naturally and encouragingly.
    Reply with a single JSON object:
    {{"message": string, "expectedLength": "short" | "medium" | "long", "keyPoints": [string]}}
    """
).strip()

_PROMPT = PromptTemplate.from_template(
    "You are {name}, an experienced and friendly interviewer conducting a {role} interview.\n\n"
    "CANDIDATE CONTEXT:\n"
    "- Role: {role}\n"
    "- Seniority Level: {seniority}\n"
    "- Question Number: {question_number}\n"
    "- Interview Phase: {phase}\n"
    "- Mode: {interaction_mode}\n\n"
    "YOUR TASK:\n{intent_instructions}\n\n"
    "ROLE-SPECIFIC CONTEXT:\n{role_context}\n\n"
    "ORCHESTRATOR GUIDANCE:\n"
    "- Difficulty: {difficulty}\n"
    "- Focus Areas: {focus_areas}\n"
    "- Provide Hint: {provide_hint}\n"
    "- Reasoning: {reasoning}\n\n"
    "RECENT CONVERSATION:\n{recent_history}\n\n"
    "CANDIDATE'S LAST ANSWER:\n{last_answer}\n\n"
    "INTERVIEWER GUIDELINES:\n{guidance}\n\n"
    "Return ONLY valid JSON."
)


class QuestionMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    expected_length: ExpectedLength = ExpectedLength.MEDIUM
    key_points: List[str] = Field(default_factory=list)


class QuestionReply(BaseModel):  # Shape of the interviewer model's JSON reply
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    expected_length: ExpectedLength = ExpectedLength.MEDIUM
    key_points: List[str] = Field(default_factory=list)

    @field_validator("message", mode="before")
    @classmethod
    def _require_message(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("message must be a non-empty string")
        return value.strip()

    @field_validator("expected_length", mode="before")
    @classmethod
    def _default_length(cls, value: Any) -> Any:
        return ExpectedLength.MEDIUM if value in (None, "") else value


class QuestionOutput(BaseModel):  # Next interviewer message plus the intent it answers
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = Field(min_length=1)
    question_type: NextIntent
    metadata: QuestionMetadata = Field(default_factory=QuestionMetadata)


class QuestionGenerator:  # Stage turning a routing decision into the next question
    def __init__(self, model: LanguageModel, *, settings: Optional[Settings] = None) -> None:
        self._model = model
        self._settings = settings or default_settings

    def invoke(self, state: InterviewState, decision: DecisionOutput) -> QuestionOutput:
        last = state.last_answer()
        metadata = decision.metadata
        prompt = _PROMPT.format(
            name=INTERVIEWER_NAME,
            role=state.role.label,
            seniority=state.seniority.value,
            question_number=state.question_count + 1,
            phase=state.phase.value,
            interaction_mode=state.interaction_mode.value,
            intent_instructions=INTENT_INSTRUCTIONS[decision.next_intent],
            role_context=ROLE_CONTEXT[state.role],
            difficulty=metadata.difficulty.value,
            focus_areas=", ".join(metadata.focus_areas) or "General interview flow",
            provide_hint=metadata.provide_hint,
            reasoning=metadata.reasoning or "(none)",
            recent_history=transcript(state.recent_history(self._settings.HISTORY_WINDOW), agent_label="You")
            or "(Interview just starting)",
            last_answer=clamp_text(last.content, limit=1200) if last else "(No previous answer - this is the opening)",
            guidance=INTERVIEWER_GUIDANCE.format(length_guideline=length_guideline(state.interaction_mode)),
        )
        reply, _ = invoke_stage(
            INTERVIEWER_STAGE,
            session_id=state.session_id,
            model=self._model,
            prompt=prompt,
            schema=QuestionReply,
            fallback=lambda: fallback_question(state, decision),
            timeout_s=self._settings.STAGE_TIMEOUT_S,
            workers=self._settings.STAGE_WORKERS,
        )
        return QuestionOutput(
            message=one_line(reply.message),
            question_type=decision.next_intent,
            metadata=QuestionMetadata(
                expected_length=reply.expected_length,
                key_points=clean_items(reply.key_points) or list(metadata.focus_areas),
            ),
        )


def length_guideline(mode: InteractionMode) -> str:
    if mode is InteractionMode.VOICE:
        return "2-3 sentences max (voice should be concise)"
    return "2-4 sentences (can be slightly longer for text)"


def fallback_question(state: InterviewState, decision: DecisionOutput) -> QuestionReply:
    """Pick a fixed question for the intent; same inputs always give the same text."""

    table = FALLBACK_QUESTIONS[decision.next_intent]
    template = table[state.question_count % len(table)]
    expected = ExpectedLength.LONG if decision.next_intent is NextIntent.ASK_BEHAVIORAL else ExpectedLength.MEDIUM
    return QuestionReply(
        message=template.format(role=state.role.label),
        expected_length=expected,
        key_points=list(decision.metadata.focus_areas),
    )


def opening_question(role: Role, session_id: str) -> str:
    """Greeting plus first question; the template is chosen from the session id."""

    index = zlib.crc32(session_id.encode("utf-8")) % len(OPENING_TEMPLATES)
    return OPENING_TEMPLATES[index].format(name=INTERVIEWER_NAME, role=role.label)


__all__ = [
    "ExpectedLength",
    "FALLBACK_QUESTIONS",
    "INTENT_INSTRUCTIONS",
    "OPENING_TEMPLATES",
    "QuestionGenerator",
    "QuestionMetadata",
    "QuestionOutput",
    "QuestionReply",
    "ROLE_CONTEXT",
    "fallback_question",
    "length_guideline",
    "opening_question",
]
