"""Span helper for recording stage timings."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from .logger import log_event


@contextmanager
def span(session_id: str, stage: str) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block; callers may add fields (e.g. ``outcome``) to the yielded dict."""
    start = time.perf_counter()
    fields: Dict[str, Any] = {}
    try:
        yield fields
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        log_event("stage_completed", session_id, stage=stage, ms=elapsed_ms, **fields)


__all__ = ["span"]
