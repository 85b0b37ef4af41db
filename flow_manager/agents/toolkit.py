from __future__ import annotations  # Shared prompt helpers for interview stages

from typing import Iterable, Sequence

from ..models import ConversationMessage, MessageType, Sender


def word_count(text: str) -> int:
    return len(text.split()) if text else 0


def transcript(history: Sequence[ConversationMessage], *, agent_label: str = "Interviewer", limit: int | None = None) -> str:  # Render history as speaker-labelled lines
    lines = []
    for message in history:
        content = message.content.strip()
        if not content:
            continue
        if limit is not None:
            content = clamp_text(content, limit=limit)
        speaker = "Candidate" if message.sender is Sender.CANDIDATE else agent_label
        lines.append(f"{speaker}: {content}")
    return "\n".join(lines)


def numbered_transcript(history: Sequence[ConversationMessage]) -> str:  # Q1/A1 labelled transcript for the final evaluation
    if not history:
        return "(No conversation recorded)"
    lines = []
    question_no = 0
    for message in history:
        if message.sender is Sender.CANDIDATE:
            lines.append(f"A{max(question_no, 1)} [CANDIDATE]: {message.content.strip()}")
        elif message.type is MessageType.QUESTION:
            question_no += 1
            lines.append(f"Q{question_no} [INTERVIEWER]: {message.content.strip()}")
    return "\n\n".join(lines)


def clamp_text(text: str, limit: int = 600) -> str:  # Compact whitespace and clip length
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 1].rstrip() + "…"


def one_line(text: str) -> str:  # Collapse model prose onto a single line
    return " ".join(text.split())


def clean_items(items: Iterable[str], limit: int = 5) -> list[str]:  # Normalize model-supplied bullet items
    cleaned: list[str] = []
    for item in items:
        text = one_line(item)
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned[:limit]


def format_score(value: float | None) -> str:
    return "N/A" if value is None else f"{value:g}"


__all__ = [
    "clamp_text",
    "clean_items",
    "format_score",
    "numbered_transcript",
    "one_line",
    "transcript",
    "word_count",
]
