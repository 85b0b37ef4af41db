from __future__ import annotations  # Configuration schema for LLM routing

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field


ANALYZER_STAGE = "stages.analyzer"  # Registry keys naming the four pipeline stages
DECISION_STAGE = "stages.decision"
INTERVIEWER_STAGE = "stages.interviewer"
EVALUATION_STAGE = "stages.evaluation"

STAGE_KEYS = (ANALYZER_STAGE, DECISION_STAGE, INTERVIEWER_STAGE, EVALUATION_STAGE)


class LlmRoute(BaseModel):  # LLM endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=0, ge=0)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class AppConfig(BaseModel):  # Application configuration root
    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_routes(cfg: AppConfig) -> Dict[str, LlmRoute]:  # Map every stage key to its configured route
    resolved: Dict[str, LlmRoute] = {}
    for target in STAGE_KEYS:
        if target not in cfg.registry:
            raise KeyError(f"Registry entry missing for '{target}'")
        route_id = cfg.registry[target]
        if route_id not in cfg.llm_routes:
            raise KeyError(f"Route '{route_id}' missing for '{target}'")
        resolved[target] = cfg.llm_routes[route_id]
    return resolved


__all__ = [
    "ANALYZER_STAGE",
    "AppConfig",
    "DECISION_STAGE",
    "EVALUATION_STAGE",
    "INTERVIEWER_STAGE",
    "LlmRoute",
    "STAGE_KEYS",
    "load_config",
    "resolve_routes",
]
