from __future__ import annotations  # Shared stage invocation: timeout, schema validation and fallback

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config import settings
from llm_gateway import LanguageModel, LlmGatewayError, extract_json
from observability import log_event, span


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_EXECUTORS: Dict[int, ThreadPoolExecutor] = {}
_EXECUTOR_GUARD = threading.Lock()


class StageCallFailure(RuntimeError):  # Model call failed, timed out or returned unusable output
    def __init__(self, stage: str, reason: str) -> None:
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason


def _executor(workers: int) -> ThreadPoolExecutor:  # One shared pool per configured size
    with _EXECUTOR_GUARD:
        pool = _EXECUTORS.get(workers)
        if pool is None:
            pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"stage-{workers}")
            _EXECUTORS[workers] = pool
    return pool


def parse_reply(stage: str, schema: Type[T], content: str) -> T:  # Strictly validate a model reply against the stage schema
    if not content or not content.strip():
        raise StageCallFailure(stage, "empty reply")
    try:
        return schema.model_validate_json(extract_json(content))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise StageCallFailure(stage, f"invalid output: {_first_line(exc)}") from exc


def call_model(stage: str, model: LanguageModel, prompt: str, timeout_s: float, workers: Optional[int] = None) -> str:
    """Run ``generate()`` with a deadline.

    A call that misses the deadline keeps its worker until the gateway's own
    HTTP timeout returns; ``future.cancel()`` only drops calls still queued.
    """
    pool = _executor(settings.STAGE_WORKERS if workers is None else workers)
    future: Future[str] = pool.submit(model.generate, prompt)
    try:
        return future.result(timeout=timeout_s)
    except FutureTimeout as exc:
        future.cancel()
        raise StageCallFailure(stage, f"timed out after {timeout_s:.1f}s") from exc
    except LlmGatewayError as exc:
        raise StageCallFailure(stage, f"gateway error: {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        raise StageCallFailure(stage, f"{type(exc).__name__}: {exc}") from exc


def invoke_stage(
    stage: str,
    *,
    session_id: str,
    model: LanguageModel,
    prompt: str,
    schema: Type[T],
    fallback: Callable[[], T],
    timeout_s: Optional[float] = None,
    workers: Optional[int] = None,
) -> tuple[T, bool]:
    """Run one stage end to end.

    Returns the validated output and ``True`` when the model path succeeded,
    or the fallback output and ``False`` on any ``StageCallFailure``.
    """
    deadline = settings.STAGE_TIMEOUT_S if timeout_s is None else timeout_s
    with span(session_id, stage) as fields:
        try:
            reply = call_model(stage, model, prompt, deadline, workers)
            result = parse_reply(stage, schema, reply)
        except StageCallFailure as exc:
            logger.warning("Stage %s fell back for session %s: %s", stage, session_id, exc.reason)
            log_event("stage_fallback", session_id, level=logging.WARNING, stage=stage, reason=exc.reason)
            fields["outcome"] = "fallback"
            return fallback(), False
        fields["outcome"] = "model"
        return result, True


def _first_line(exc: Exception) -> str:
    text = str(exc).strip()
    line = text.splitlines()[0] if text else type(exc).__name__
    return line if len(line) <= 200 else line[:197] + "..."


__all__ = ["StageCallFailure", "call_model", "invoke_stage", "parse_reply"]
