"""Pydantic schemas for the interview HTTP API."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flow_manager.models import InteractionMode, Phase, Role, Seniority


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartReq(CamelModel):
    role: Role
    seniority: Seniority = Seniority.MID
    interaction_mode: InteractionMode = InteractionMode.CHAT


class StartResp(CamelModel):
    session_id: str
    role: Role
    seniority: Seniority
    message: str
    phase: Phase
    question_count: int = 1


class AnswerReq(CamelModel):
    session_id: str
    message: str = Field(min_length=1)


class AnswerResp(CamelModel):
    session_id: str
    message: str
    phase: Phase
    question_count: int
    should_end: bool
    analytics: Dict[str, Optional[object]] = Field(default_factory=dict)


class SessionReq(CamelModel):
    session_id: str


class EndResp(CamelModel):
    session_id: str
    phase: Phase
    question_count: int
    end_time: Optional[datetime] = None


class SessionList(CamelModel):
    count: int
    session_ids: List[str] = Field(default_factory=list)


class RoleInfo(CamelModel):
    value: Role
    label: str
    engineering: bool


__all__ = [
    "AnswerReq",
    "AnswerResp",
    "EndResp",
    "RoleInfo",
    "SessionList",
    "SessionReq",
    "StartReq",
    "StartResp",
]
