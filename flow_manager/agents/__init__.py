from __future__ import annotations  # Stage exports for the interview workflow

from .analyzer import ANALYZER_GUIDANCE, AnalyzerOutput, ResponseAnalyzer, fallback_analysis
from .decision import (
    DECISION_GUIDANCE,
    DecisionMetadata,
    DecisionOutput,
    Difficulty,
    FlowDecisionEngine,
    NextAgent,
    NextIntent,
    decide_by_rules,
    enforce_policy,
)
from .evaluator import (
    EVALUATION_GUIDANCE,
    EvaluationGenerator,
    EvaluationOutput,
    Recommendation,
    ScoreBreakdown,
    fallback_evaluation,
    recommendation_for,
)
from .interviewer import (
    ExpectedLength,
    QuestionGenerator,
    QuestionMetadata,
    QuestionOutput,
    fallback_question,
    opening_question,
)
from .stage import StageCallFailure, invoke_stage

__all__ = [
    "ANALYZER_GUIDANCE",
    "AnalyzerOutput",
    "DECISION_GUIDANCE",
    "DecisionMetadata",
    "DecisionOutput",
    "Difficulty",
    "EVALUATION_GUIDANCE",
    "EvaluationGenerator",
    "EvaluationOutput",
    "ExpectedLength",
    "FlowDecisionEngine",
    "NextAgent",
    "NextIntent",
    "QuestionGenerator",
    "QuestionMetadata",
    "QuestionOutput",
    "Recommendation",
    "ResponseAnalyzer",
    "ScoreBreakdown",
    "StageCallFailure",
    "decide_by_rules",
    "enforce_policy",
    "fallback_analysis",
    "fallback_evaluation",
    "fallback_question",
    "invoke_stage",
    "opening_question",
    "recommendation_for",
]
