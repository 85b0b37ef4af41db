from __future__ import annotations  # Interview session state models

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):  # Job roles the interviewer can simulate
    BACKEND = "backend"
    FRONTEND = "frontend"
    FULLSTACK = "fullstack"
    SALES = "sales"
    RETAIL = "retail"
    PRODUCT_MANAGER = "product_manager"
    DATA_ANALYST = "data_analyst"
    MARKETING_MANAGER = "marketing_manager"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class Seniority(str, Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"


class InteractionMode(str, Enum):
    VOICE = "voice"
    CHAT = "chat"


class Phase(str, Enum):  # Interview phases, derived from the question count
    OPENING = "opening"
    MAIN = "main"
    CLOSING = "closing"
    ENDED = "ended"


class MessageType(str, Enum):
    QUESTION = "question"
    ANSWER = "answer"
    SYSTEM = "system"


class Sender(str, Enum):
    CANDIDATE = "candidate"
    AGENT = "agent"
    SYSTEM = "system"


ENGINEERING_ROLES = frozenset({Role.BACKEND, Role.FRONTEND, Role.FULLSTACK, Role.DATA_ANALYST})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):  # Single transcript entry
    type: MessageType
    sender: Sender
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class InterviewAnalytics(BaseModel):  # Running aggregate over the candidate's answers
    is_chatty: bool = False
    is_too_short: bool = False
    is_off_topic: bool = False
    communication_score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    technical_score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    behavioral_score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    engagement_score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    avg_answer_length: float = 0.0
    answer_count: int = Field(default=0, ge=0)
    notes: List[str] = Field(default_factory=list)

    def score_values(self, default: float = 5.0) -> List[float]:  # Latest five category scores, defaulting unknowns
        return [
            default if value is None else value
            for value in (
                self.communication_score,
                self.technical_score,
                self.behavioral_score,
                self.confidence_score,
                self.engagement_score,
            )
        ]

    def snapshot(self) -> Dict[str, object]:  # Compact view returned to callers after each turn
        return {
            "is_chatty": self.is_chatty,
            "is_too_short": self.is_too_short,
            "is_off_topic": self.is_off_topic,
            "communication_score": self.communication_score,
            "technical_score": self.technical_score,
            "behavioral_score": self.behavioral_score,
            "confidence_score": self.confidence_score,
            "engagement_score": self.engagement_score,
            "avg_answer_length": self.avg_answer_length,
        }


class InterviewState(BaseModel):  # Per-session state owned by the session store
    session_id: str
    role: Role
    seniority: Seniority = Seniority.MID
    interaction_mode: InteractionMode = InteractionMode.CHAT
    history: List[ConversationMessage] = Field(default_factory=list)
    analytics: InterviewAnalytics = Field(default_factory=InterviewAnalytics)
    phase: Phase = Phase.OPENING
    question_count: int = Field(default=0, ge=0)
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None

    @property
    def is_ended(self) -> bool:
        return self.phase is Phase.ENDED

    def candidate_answers(self) -> List[ConversationMessage]:
        return [message for message in self.history if message.sender is Sender.CANDIDATE]

    def last_answer(self) -> Optional[ConversationMessage]:
        for message in reversed(self.history):
            if message.sender is Sender.CANDIDATE:
                return message
        return None

    def recent_history(self, window: int) -> List[ConversationMessage]:
        if window <= 0:
            return []
        return list(self.history[-window:])

    def duration_minutes(self, now: Optional[datetime] = None) -> int:
        finish = self.end_time or now or utcnow()
        return max(0, round((finish - self.start_time).total_seconds() / 60))


class SessionStart(BaseModel):  # Result of starting a session
    session_id: str
    role: Role
    seniority: Seniority
    message: str
    phase: Phase


class TurnResult(BaseModel):  # Result of one submitted answer
    session_id: str
    message: str
    phase: Phase
    question_count: int
    should_end: bool
    analytics: Dict[str, object] = Field(default_factory=dict)


def phase_for_count(question_count: int) -> Phase:  # Pure phase function of the delivered question count
    if question_count <= 2:
        return Phase.OPENING
    if question_count <= 6:
        return Phase.MAIN
    return Phase.CLOSING


__all__ = [
    "ConversationMessage",
    "ENGINEERING_ROLES",
    "InteractionMode",
    "InterviewAnalytics",
    "InterviewState",
    "MessageType",
    "Phase",
    "Role",
    "Sender",
    "SessionStart",
    "Seniority",
    "TurnResult",
    "phase_for_count",
    "utcnow",
]
