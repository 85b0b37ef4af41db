"""Configuration package for the interview workflow services."""
from .routes import (
    ANALYZER_STAGE,
    DECISION_STAGE,
    EVALUATION_STAGE,
    INTERVIEWER_STAGE,
    STAGE_KEYS,
    AppConfig,
    LlmRoute,
    load_config,
    resolve_routes,
)
from .settings import Settings, settings

__all__ = [
    "ANALYZER_STAGE",
    "AppConfig",
    "DECISION_STAGE",
    "EVALUATION_STAGE",
    "INTERVIEWER_STAGE",
    "LlmRoute",
    "STAGE_KEYS",
    "Settings",
    "load_config",
    "resolve_routes",
    "settings",
]
