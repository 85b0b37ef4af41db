from __future__ import annotations

from datetime import timedelta

import pytest

from flow_manager.agents import EvaluationGenerator, Recommendation, fallback_evaluation, recommendation_for
from flow_manager.agents.evaluator import round_half_up
from flow_manager.models import (
    ConversationMessage,
    InterviewAnalytics,
    InterviewState,
    MessageType,
    Role,
    Sender,
    utcnow,
)


def _state(count: int = 8, **analytics) -> InterviewState:
    start = utcnow() - timedelta(minutes=12)
    history = [
        ConversationMessage(type=MessageType.QUESTION, sender=Sender.AGENT, content="Tell me about yourself."),
        ConversationMessage(type=MessageType.ANSWER, sender=Sender.CANDIDATE, content="I build APIs."),
    ]
    return InterviewState(
        session_id="s-eval",
        role=Role.BACKEND,
        question_count=count,
        history=history,
        analytics=InterviewAnalytics(**analytics),
        start_time=start,
    )


@pytest.mark.parametrize(
    "score, expected",
    [
        (10, Recommendation.STRONG_HIRE),
        (8, Recommendation.STRONG_HIRE),
        (7, Recommendation.HIRE),
        (6, Recommendation.HIRE),
        (5, Recommendation.MAYBE),
        (4, Recommendation.MAYBE),
        (3, Recommendation.NO_HIRE),
        (1, Recommendation.NO_HIRE),
    ],
)
def test_recommendation_mapping(score, expected) -> None:
    assert recommendation_for(score) is expected


def test_round_half_up() -> None:
    assert round_half_up(6.5) == 7
    assert round_half_up(5.5) == 6
    assert round_half_up(5.4) == 5


def test_fallback_averages_latest_scores() -> None:
    state = _state(
        communication_score=8,
        technical_score=7,
        behavioral_score=5,
        confidence_score=7,
        engagement_score=6,
        notes=["first", "second", "third"],
    )
    reply = fallback_evaluation(state, 12)
    assert reply.overall_score == 7
    assert reply.scores.problem_solving == 5
    assert reply.highlights == ["second", "third"]
    assert "Completed the full interview, showing commitment" in reply.strengths
    assert "Demonstrated strong communication skills" in reply.strengths
    assert any("STAR" in item for item in reply.improvements)
    assert reply.red_flags == []


def test_fallback_missing_scores_count_as_neutral() -> None:
    reply = fallback_evaluation(_state(count=2, is_too_short=True), 3)
    assert reply.overall_score == 5
    assert reply.red_flags == ["Interview ended early"]
    assert reply.strengths == ["Participated in the interview"]
    assert any("elaborate" in item for item in reply.improvements)


def test_fallback_flags_verbosity() -> None:
    reply = fallback_evaluation(_state(is_chatty=True), 10)
    assert any("too verbose" in item for item in reply.improvements)


def test_generator_recomputes_recommendation(scripted, payloads, test_settings) -> None:
    model = scripted(payloads.evaluation(overallScore=8.6, recommendation="MAYBE"))
    report = EvaluationGenerator(model, settings=test_settings).invoke(_state())
    assert report.overall_score == 9
    assert report.recommendation is Recommendation.STRONG_HIRE
    assert not report.degraded
    assert report.duration_minutes == 12
    assert report.role is Role.BACKEND
    assert "Q1 [INTERVIEWER]" in model.prompts[0]


def test_generator_clamps_scores(scripted, payloads, test_settings) -> None:
    scores = {"communication": 14, "technicalKnowledge": 0, "problemSolving": 6, "confidence": 7, "relevance": 5}
    model = scripted(payloads.evaluation(overallScore=0, scores=scores))
    report = EvaluationGenerator(model, settings=test_settings).invoke(_state())
    assert report.overall_score == 1
    assert report.scores.communication == 10
    assert report.scores.technical_knowledge == 1
    assert report.recommendation is Recommendation.NO_HIRE


def test_generator_degrades_on_failure(failing_model, test_settings) -> None:
    report = EvaluationGenerator(failing_model, settings=test_settings).invoke(_state(technical_score=9))
    assert report.degraded
    assert report.recommendation in set(Recommendation)
    assert report.overall_feedback.startswith("You completed 8 questions")


@pytest.mark.parametrize("bad", ["nan", "inf"])
def test_generator_rejects_non_finite_scores(scripted, payloads, test_settings, bad) -> None:
    model = scripted(payloads.evaluation(overallScore=bad))
    report = EvaluationGenerator(model, settings=test_settings).invoke(_state())
    assert report.degraded
    assert 1 <= report.overall_score <= 10
