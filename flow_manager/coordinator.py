from __future__ import annotations  # Workflow coordinator sequencing the interview stages with LangGraph

import logging
import uuid
from pathlib import Path
from typing import Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from config import (
    ANALYZER_STAGE,
    DECISION_STAGE,
    EVALUATION_STAGE,
    INTERVIEWER_STAGE,
    Settings,
    load_config,
    resolve_routes,
    settings as default_settings,
)
from llm_gateway import GatewayModel, HttpClient
from observability import log_event
from services.sessions import SessionLocks, SessionStore, build_store
from .agents import (
    AnalyzerOutput,
    DecisionOutput,
    EvaluationGenerator,
    EvaluationOutput,
    FlowDecisionEngine,
    QuestionGenerator,
    QuestionOutput,
    ResponseAnalyzer,
    opening_question,
)
from .errors import InvariantViolation, NoResponses
from .models import (
    ConversationMessage,
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
    utcnow,
)


logger = logging.getLogger(__name__)

CLOSING_MESSAGE = (
    "Thank you so much for your time today! I have all the information I need. "
    "You can now view your detailed feedback."
)


class TurnState(TypedDict, total=False):  # Values flowing through one turn of the graph
    state: InterviewState
    answer: str
    analysis: AnalyzerOutput
    decision: DecisionOutput
    question: QuestionOutput


class Coordinator:
    """Runs interview sessions: one locked read-modify-write of the store per turn."""

    def __init__(
        self,
        *,
        store: SessionStore,
        analyzer: ResponseAnalyzer,
        decision_engine: FlowDecisionEngine,
        interviewer: QuestionGenerator,
        evaluator: EvaluationGenerator,
        settings: Optional[Settings] = None,
        locks: Optional[SessionLocks] = None,
    ) -> None:
        self._store = store
        self._analyzer = analyzer
        self._decision_engine = decision_engine
        self._interviewer = interviewer
        self._evaluator = evaluator
        self._settings = settings or default_settings
        self._locks = locks if locks is not None else SessionLocks()
        self._turn = self._build_turn_graph()

    @property
    def store(self) -> SessionStore:
        return self._store

    def start_session(
        self,
        role: Role | str,
        seniority: Seniority | str = Seniority.MID,
        interaction_mode: InteractionMode | str = InteractionMode.CHAT,
    ) -> SessionStart:
        role, seniority, interaction_mode = Role(role), Seniority(seniority), InteractionMode(interaction_mode)
        session_id = f"session_{uuid.uuid4().hex}"
        message = opening_question(role, session_id)
        state = InterviewState(
            session_id=session_id,
            role=role,
            seniority=seniority,
            interaction_mode=interaction_mode,
            history=[ConversationMessage(type=MessageType.QUESTION, sender=Sender.AGENT, content=message)],
            question_count=1,
            phase=phase_for_count(1),
        )
        self._store.create(session_id, state)
        log_event(
            "session_started",
            session_id,
            role=role.value,
            seniority=seniority.value,
            mode=interaction_mode.value,
        )
        return SessionStart(
            session_id=session_id,
            role=role,
            seniority=seniority,
            message=message,
            phase=state.phase,
        )

    def submit_answer(self, session_id: str, text: str) -> TurnResult:
        answer = (text or "").strip()
        if not answer:
            raise ValueError("Answer must not be empty")
        with self._locks.hold(session_id):
            stored = self._store.get(session_id)
            if stored.is_ended:
                raise InvariantViolation(f"Session {session_id} has already ended")
            working = stored.model_copy(deep=True)
            working.history.append(
                ConversationMessage(type=MessageType.ANSWER, sender=Sender.CANDIDATE, content=answer)
            )
            outcome = self._turn.invoke({"state": working, "answer": answer})
            final: InterviewState = outcome["state"]
            self._store.put(session_id, final)
        message = final.history[-1].content
        log_event(
            "turn_completed",
            session_id,
            question_count=final.question_count,
            phase=final.phase.value,
            intent=outcome["decision"].next_intent.value,
            should_end=final.is_ended,
        )
        if final.is_ended:
            log_event("session_ended", session_id, reason="decision", question_count=final.question_count)
        return TurnResult(
            session_id=session_id,
            message=message,
            phase=final.phase,
            question_count=final.question_count,
            should_end=final.is_ended,
            analytics=final.analytics.snapshot(),
        )

    def end_session(self, session_id: str) -> InterviewState:
        with self._locks.hold(session_id):
            state = self._store.get(session_id)
            if state.is_ended:
                return state
            _mark_ended(state)
            self._store.put(session_id, state)
        log_event("session_ended", session_id, reason="explicit", question_count=state.question_count)
        return state

    def generate_evaluation(self, session_id: str) -> EvaluationOutput:
        with self._locks.hold(session_id):
            state = self._store.get(session_id)
            if not state.candidate_answers():
                raise NoResponses(session_id)
            if not state.is_ended:
                _mark_ended(state)
            evaluation = self._evaluator.invoke(state)
            self._store.delete(session_id)
        log_event(
            "evaluation_generated",
            session_id,
            overall_score=evaluation.overall_score,
            recommendation=evaluation.recommendation.value,
            degraded=evaluation.degraded,
        )
        log_event("session_deleted", session_id, reason="evaluated")
        return evaluation

    def get_session(self, session_id: str) -> InterviewState:
        return self._store.get(session_id)

    def abort_session(self, session_id: str) -> None:
        with self._locks.hold(session_id):
            self._store.delete(session_id)
        log_event("session_deleted", session_id, reason="aborted")

    def session_ids(self) -> list[str]:
        return self._store.session_ids()

    def _build_turn_graph(self):  # analyze -> decide -> (ask | finish)
        graph = StateGraph(TurnState)
        graph.add_node("analyze", self._analyze)
        graph.add_node("decide", self._decide)
        graph.add_node("ask", self._ask)
        graph.add_node("finish", self._finish)
        graph.add_edge(START, "analyze")
        graph.add_edge("analyze", "decide")
        graph.add_conditional_edges("decide", self._route, {"ask": "ask", "finish": "finish"})
        graph.add_edge("ask", END)
        graph.add_edge("finish", END)
        return graph.compile()

    def _analyze(self, payload: TurnState) -> TurnState:
        state, answer = payload["state"], payload["answer"]
        analysis = self._analyzer.invoke(state, answer)
        state.analytics = merge_analysis(state.analytics, analysis, len(answer))
        return {"state": state, "analysis": analysis}

    def _decide(self, payload: TurnState) -> TurnState:
        decision = self._decision_engine.invoke(payload["state"], payload["analysis"])
        return {"decision": decision}

    def _route(self, payload: TurnState) -> str:
        if payload["decision"].ends_interview:
            return "finish"
        if payload["state"].question_count >= self._settings.MAX_QUESTIONS:
            logger.warning("Decision for %s ignored the question cap; ending", payload["state"].session_id)
            return "finish"
        return "ask"

    def _ask(self, payload: TurnState) -> TurnState:
        state = payload["state"]
        question = self._interviewer.invoke(state, payload["decision"])
        state.history.append(
            ConversationMessage(type=MessageType.QUESTION, sender=Sender.AGENT, content=question.message)
        )
        state.question_count += 1
        state.phase = phase_for_count(state.question_count)
        return {"state": state, "question": question}

    def _finish(self, payload: TurnState) -> TurnState:
        state = payload["state"]
        state.history.append(
            ConversationMessage(type=MessageType.SYSTEM, sender=Sender.AGENT, content=CLOSING_MESSAGE)
        )
        _mark_ended(state)
        return {"state": state}


def merge_analysis(analytics: InterviewAnalytics, analysis: AnalyzerOutput, answer_length: int) -> InterviewAnalytics:
    """Fold one analysis into the running analytics; the average is over characters."""

    count = analytics.answer_count + 1
    average = analytics.avg_answer_length + (answer_length - analytics.avg_answer_length) / count
    notes = list(analytics.notes)
    if analysis.notes:
        notes.append(analysis.notes)
    return analytics.model_copy(
        update={
            "is_chatty": analysis.is_chatty,
            "is_too_short": analysis.is_too_short,
            "is_off_topic": analysis.is_off_topic,
            "communication_score": analysis.communication_score,
            "technical_score": analysis.technical_score,
            "behavioral_score": analysis.behavioral_score,
            "confidence_score": analysis.confidence_score,
            "engagement_score": analysis.engagement_score,
            "avg_answer_length": average,
            "answer_count": count,
            "notes": notes,
        }
    )


def _mark_ended(state: InterviewState) -> None:
    state.phase = Phase.ENDED
    if state.end_time is None:
        state.end_time = utcnow()


def build_coordinator(
    settings: Optional[Settings] = None,
    *,
    config_path: Optional[Path] = None,
    client: Optional[HttpClient] = None,
    store: Optional[SessionStore] = None,
) -> Coordinator:
    """Wire a coordinator from the routing file and settings."""

    active = settings or default_settings
    cfg = load_config(Path(config_path or active.CONFIG_PATH))
    routes = resolve_routes(cfg)

    def model(stage: str) -> GatewayModel:
        return GatewayModel(routes[stage], client=client)

    return Coordinator(
        store=store or build_store(active.SESSION_STORE, active.CHECKPOINT_DIR),
        analyzer=ResponseAnalyzer(model(ANALYZER_STAGE), settings=active),
        decision_engine=FlowDecisionEngine(model(DECISION_STAGE), settings=active),
        interviewer=QuestionGenerator(model(INTERVIEWER_STAGE), settings=active),
        evaluator=EvaluationGenerator(model(EVALUATION_STAGE), settings=active),
        settings=active,
    )


__all__ = ["CLOSING_MESSAGE", "Coordinator", "TurnState", "build_coordinator", "merge_analysis"]
