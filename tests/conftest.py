import json
import os
import sys
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import Settings
from flow_manager.agents import EvaluationGenerator, FlowDecisionEngine, QuestionGenerator, ResponseAnalyzer
from flow_manager.coordinator import Coordinator
from llm_gateway import LlmGatewayError
from services.sessions import InMemorySessionStore


class ScriptedModel:
    """Fake language model replaying queued replies; the last reply repeats."""

    def __init__(self, *replies: Any) -> None:
        self._replies: List[Any] = list(replies)
        self._guard = threading.Lock()
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        with self._guard:
            self.prompts.append(prompt)
            if not self._replies:
                raise LlmGatewayError("no scripted reply")
            reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt)
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


class FailingModel:
    def __init__(self) -> None:
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        raise LlmGatewayError("model service unavailable")


def analyzer_payload(**overrides: Any) -> dict:
    payload = {
        "isChatty": False,
        "isTooShort": False,
        "isOffTopic": False,
        "communicationScore": 6,
        "technicalScore": 6,
        "behavioralScore": 6,
        "confidenceScore": 6,
        "engagementScore": 6,
        "notes": "Solid answer with a concrete example.",
        "strengths": ["Concrete example"],
        "weaknesses": [],
        "suggestions": ["Quantify the outcome"],
    }
    payload.update(overrides)
    return payload


def decision_payload(**overrides: Any) -> dict:
    payload = {
        "nextAgent": "interviewer",
        "nextIntent": "ask_behavioral",
        "metadata": {"difficulty": "easy", "focusAreas": [], "provideHint": False, "reasoning": "warm up"},
        "shouldEnd": False,
    }
    payload.update(overrides)
    return payload


def question_payload(message: str = "Tell me about a system you designed end to end.") -> dict:
    return {"message": message, "expectedLength": "medium", "keyPoints": ["architecture"]}


def evaluation_payload(**overrides: Any) -> dict:
    payload = {
        "overallScore": 7,
        "scores": {
            "communication": 7,
            "technicalKnowledge": 7,
            "problemSolving": 6,
            "confidence": 7,
            "relevance": 8,
        },
        "strengths": ["Clear structure"],
        "improvements": ["Quantify impact"],
        "highlights": ["Caching design answer"],
        "redFlags": [],
        "overallFeedback": "A solid interview overall.",
        "recommendation": "HIRE",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def test_settings() -> Settings:
    return Settings(STAGE_TIMEOUT_S=2.0, SESSION_STORE="memory")


@pytest.fixture
def scripted() -> Callable[..., ScriptedModel]:
    return ScriptedModel


@pytest.fixture
def failing_model() -> FailingModel:
    return FailingModel()


@pytest.fixture
def payloads():
    class _Payloads:
        analyzer = staticmethod(analyzer_payload)
        decision = staticmethod(decision_payload)
        question = staticmethod(question_payload)
        evaluation = staticmethod(evaluation_payload)

    return _Payloads


@pytest.fixture
def make_coordinator(test_settings: Settings) -> Callable[..., Coordinator]:
    def _build(
        *,
        analyzer: Optional[Any] = None,
        decision: Optional[Any] = None,
        interviewer: Optional[Any] = None,
        evaluator: Optional[Any] = None,
        store: Optional[Any] = None,
        settings: Optional[Settings] = None,
        locks: Optional[Any] = None,
    ) -> Coordinator:
        active = settings or test_settings
        return Coordinator(
            store=store or InMemorySessionStore(),
            analyzer=ResponseAnalyzer(analyzer or FailingModel(), settings=active),
            decision_engine=FlowDecisionEngine(decision or FailingModel(), settings=active),
            interviewer=QuestionGenerator(interviewer or FailingModel(), settings=active),
            evaluator=EvaluationGenerator(evaluator or FailingModel(), settings=active),
            settings=active,
            locks=locks,
        )

    return _build
