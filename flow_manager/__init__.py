from __future__ import annotations  # Interview workflow state models and caller-facing errors

from .errors import InterviewError, InvariantViolation, NoResponses, SessionNotFound
from .models import (
    ConversationMessage,
    ENGINEERING_ROLES,
    InteractionMode,
    InterviewAnalytics,
    InterviewState,
    MessageType,
    Phase,
    Role,
    Sender,
    SessionStart,
    Seniority,
    TurnResult,
    phase_for_count,
)

__all__ = [
    "ConversationMessage",
    "ENGINEERING_ROLES",
    "InteractionMode",
    "InterviewAnalytics",
    "InterviewError",
    "InterviewState",
    "InvariantViolation",
    "MessageType",
    "NoResponses",
    "Phase",
    "Role",
    "Sender",
    "SessionNotFound",
    "SessionStart",
    "Seniority",
    "TurnResult",
    "phase_for_count",
]
