"""Session stores and per-session locking for interview state."""
from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Protocol

from flow_manager.errors import InvariantViolation, SessionNotFound
from flow_manager.models import InterviewState


class SessionStore(Protocol):
    """Keyed container of ``InterviewState``; no logic beyond get/put/delete."""

    def create(self, session_id: str, state: InterviewState) -> None: ...

    def get(self, session_id: str) -> InterviewState: ...

    def put(self, session_id: str, state: InterviewState) -> None: ...

    def delete(self, session_id: str) -> None: ...

    def exists(self, session_id: str) -> bool: ...

    def session_ids(self) -> List[str]: ...


class InMemorySessionStore:
    """Process-local store; hands out deep copies so callers never alias stored state."""

    def __init__(self) -> None:
        self._sessions: Dict[str, InterviewState] = {}
        self._guard = threading.Lock()

    def create(self, session_id: str, state: InterviewState) -> None:
        with self._guard:
            if session_id in self._sessions:
                raise InvariantViolation(f"Session already exists: {session_id}")
            self._sessions[session_id] = state.model_copy(deep=True)

    def get(self, session_id: str) -> InterviewState:
        with self._guard:
            state = self._sessions.get(session_id)
            if state is None:
                raise SessionNotFound(session_id)
            return state.model_copy(deep=True)

    def put(self, session_id: str, state: InterviewState) -> None:
        with self._guard:
            if session_id not in self._sessions:
                raise SessionNotFound(session_id)
            self._sessions[session_id] = state.model_copy(deep=True)

    def delete(self, session_id: str) -> None:
        with self._guard:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFound(session_id)

    def exists(self, session_id: str) -> bool:
        with self._guard:
            return session_id in self._sessions

    def session_ids(self) -> List[str]:
        with self._guard:
            return list(self._sessions)


class FileSessionStore:
    """One JSON checkpoint per session, written atomically via a temp file and rename."""

    def __init__(self, base_dir: str) -> None:
        self._base_dir = base_dir
        self._guard = threading.Lock()

    def _path(self, session_id: str) -> str:
        safe = "".join(ch for ch in session_id if ch.isalnum() or ch in "-_")
        if not safe:
            raise SessionNotFound(session_id)
        return os.path.join(self._base_dir, f"{safe}.json")

    def _write(self, path: str, state: InterviewState) -> None:
        os.makedirs(self._base_dir, exist_ok=True)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            handle.write(state.model_dump_json())
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)

    def create(self, session_id: str, state: InterviewState) -> None:
        path = self._path(session_id)
        with self._guard:
            if os.path.exists(path):
                raise InvariantViolation(f"Session already exists: {session_id}")
            self._write(path, state)

    def get(self, session_id: str) -> InterviewState:
        path = self._path(session_id)
        with self._guard:
            if not os.path.exists(path):
                raise SessionNotFound(session_id)
            with open(path, "r", encoding="utf-8") as handle:
                return InterviewState.model_validate_json(handle.read())

    def put(self, session_id: str, state: InterviewState) -> None:
        path = self._path(session_id)
        with self._guard:
            if not os.path.exists(path):
                raise SessionNotFound(session_id)
            self._write(path, state)

    def delete(self, session_id: str) -> None:
        path = self._path(session_id)
        with self._guard:
            if not os.path.exists(path):
                raise SessionNotFound(session_id)
            os.remove(path)

    def exists(self, session_id: str) -> bool:
        return os.path.exists(self._path(session_id))

    def session_ids(self) -> List[str]:
        if not os.path.isdir(self._base_dir):
            return []
        return sorted(name[:-5] for name in os.listdir(self._base_dir) if name.endswith(".json"))


class SessionLocks:
    """Registry of one lock per session id; distinct sessions never contend.

    Entries are refcounted and removed when the last holder releases.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._guard = threading.Lock()

    def _acquire_entry(self, session_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            self._holders[session_id] = self._holders.get(session_id, 0) + 1
        return lock

    def _release_entry(self, session_id: str) -> None:
        with self._guard:
            remaining = self._holders[session_id] - 1
            if remaining:
                self._holders[session_id] = remaining
            else:
                del self._holders[session_id]
                del self._locks[session_id]

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        lock = self._acquire_entry(session_id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(session_id)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def build_store(kind: str, checkpoint_dir: str) -> SessionStore:
    """Create the configured store backend (``memory`` or ``file``)."""

    if kind == "file":
        return FileSessionStore(checkpoint_dir)
    if kind == "memory":
        return InMemorySessionStore()
    raise ValueError(f"Unknown session store: {kind}")


__all__ = [
    "FileSessionStore",
    "InMemorySessionStore",
    "SessionLocks",
    "SessionStore",
    "build_store",
]
