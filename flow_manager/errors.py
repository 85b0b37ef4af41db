from __future__ import annotations  # Caller-facing errors raised by the interview workflow


class InterviewError(RuntimeError):  # Base error surfaced at the workflow boundary
    pass


class SessionNotFound(InterviewError):  # Unknown or expired session id
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}. Please start a new interview.")
        self.session_id = session_id


class NoResponses(InterviewError):  # Evaluation requested before any candidate answer
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} has no candidate answers to evaluate.")
        self.session_id = session_id


class InvariantViolation(InterviewError):  # Operation not allowed in the session's current phase
    pass


__all__ = ["InterviewError", "InvariantViolation", "NoResponses", "SessionNotFound"]
