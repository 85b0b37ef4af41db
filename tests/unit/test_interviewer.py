from __future__ import annotations

import pytest

from flow_manager.agents import (
    DecisionMetadata,
    DecisionOutput,
    NextAgent,
    NextIntent,
    QuestionGenerator,
    fallback_question,
    opening_question,
)
from flow_manager.agents.interviewer import FALLBACK_QUESTIONS, OPENING_TEMPLATES, ExpectedLength
from flow_manager.models import InteractionMode, InterviewState, Role


def _state(count: int = 3, role: Role = Role.PRODUCT_MANAGER, mode: InteractionMode = InteractionMode.CHAT) -> InterviewState:
    return InterviewState(session_id="s-question", role=role, question_count=count, interaction_mode=mode)


def _decision(intent: NextIntent, focus=None) -> DecisionOutput:
    return DecisionOutput(
        next_agent=NextAgent.INTERVIEWER,
        next_intent=intent,
        metadata=DecisionMetadata(focus_areas=list(focus or [])),
    )


@pytest.mark.parametrize("intent", list(NextIntent))
def test_every_intent_has_a_fallback(intent) -> None:
    reply = fallback_question(_state(), _decision(intent))
    assert reply.message.strip()
    assert "{role}" not in reply.message


def test_fallback_is_deterministic_and_indexed_by_count() -> None:
    decision = _decision(NextIntent.ASK_TECHNICAL)
    first = fallback_question(_state(4), decision)
    again = fallback_question(_state(4), decision)
    assert first == again
    table = FALLBACK_QUESTIONS[NextIntent.ASK_TECHNICAL]
    assert first.message == table[4 % len(table)].format(role="product manager")


def test_fallback_substitutes_role_label() -> None:
    reply = fallback_question(_state(2), _decision(NextIntent.ASK_ROLE_SPECIFIC))
    assert "product manager" in reply.message


@pytest.mark.parametrize("role", [Role.SALES, Role.RETAIL])
def test_technical_fallback_fits_non_engineering_roles(role) -> None:
    for count in range(3):
        reply = fallback_question(_state(count, role=role), _decision(NextIntent.ASK_TECHNICAL))
        assert role.label in reply.message
        assert "{role}" not in reply.message


def test_fallback_expected_length() -> None:
    assert fallback_question(_state(), _decision(NextIntent.ASK_BEHAVIORAL)).expected_length is ExpectedLength.LONG
    assert fallback_question(_state(), _decision(NextIntent.ASK_CLOSING)).expected_length is ExpectedLength.MEDIUM


def test_generator_uses_model_reply(scripted, payloads, test_settings) -> None:
    model = scripted(payloads.question("How would you prioritise a roadmap with three competing launches?"))
    output = QuestionGenerator(model, settings=test_settings).invoke(
        _state(), _decision(NextIntent.ASK_ROLE_SPECIFIC, focus=["Ask focused, specific questions"])
    )
    assert output.message.startswith("How would you prioritise")
    assert output.question_type is NextIntent.ASK_ROLE_SPECIFIC
    assert output.metadata.key_points == ["architecture"]
    prompt = model.prompts[0]
    assert "Ask focused, specific questions" in prompt
    assert "product strategy" in prompt
    assert "2-4 sentences" in prompt


def test_voice_mode_prompt_is_shorter(scripted, payloads, test_settings) -> None:
    model = scripted(payloads.question())
    QuestionGenerator(model, settings=test_settings).invoke(
        _state(mode=InteractionMode.VOICE), _decision(NextIntent.ASK_BEHAVIORAL)
    )
    assert "2-3 sentences max" in model.prompts[0]


def test_blank_message_takes_fallback(scripted, test_settings) -> None:
    model = scripted({"message": "   ", "expectedLength": "short", "keyPoints": []})
    state = _state(count=5)
    output = QuestionGenerator(model, settings=test_settings).invoke(state, _decision(NextIntent.ASK_CLOSING))
    table = FALLBACK_QUESTIONS[NextIntent.ASK_CLOSING]
    assert output.message == table[5 % len(table)]


def test_failing_model_fallback_repeats(failing_model, test_settings) -> None:
    generator = QuestionGenerator(failing_model, settings=test_settings)
    decision = _decision(NextIntent.PROBE_ANSWER, focus=["Ask open-ended questions that require elaboration"])
    first = generator.invoke(_state(6), decision)
    second = generator.invoke(_state(6), decision)
    assert first.message == second.message
    assert first.metadata.key_points == ["Ask open-ended questions that require elaboration"]


def test_opening_question_is_stable_per_session() -> None:
    first = opening_question(Role.BACKEND, "session_abc")
    assert first == opening_question(Role.BACKEND, "session_abc")
    assert "backend" in first
    assert "Sarah" in first
    rendered = {opening_question(Role.SALES, f"session_{index}") for index in range(40)}
    assert 1 < len(rendered) <= len(OPENING_TEMPLATES)
