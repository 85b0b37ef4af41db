from __future__ import annotations

import threading
import time

import pytest

from flow_manager.errors import InvariantViolation, SessionNotFound
from flow_manager.models import InterviewState, Role
from services.sessions import FileSessionStore, InMemorySessionStore, SessionLocks, build_store


def _state(session_id: str = "session_a") -> InterviewState:
    return InterviewState(session_id=session_id, role=Role.FRONTEND, question_count=1)


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    return build_store(request.param, str(tmp_path / "sessions"))


def test_create_get_put_delete(store) -> None:
    store.create("session_a", _state())
    loaded = store.get("session_a")
    assert loaded.role is Role.FRONTEND
    loaded.question_count = 4
    store.put("session_a", loaded)
    assert store.get("session_a").question_count == 4
    assert store.exists("session_a")
    assert store.session_ids() == ["session_a"]
    store.delete("session_a")
    assert not store.exists("session_a")


def test_unknown_session_raises(store) -> None:
    with pytest.raises(SessionNotFound):
        store.get("missing")
    with pytest.raises(SessionNotFound):
        store.put("missing", _state("missing"))
    with pytest.raises(SessionNotFound):
        store.delete("missing")


def test_duplicate_create_rejected(store) -> None:
    store.create("session_a", _state())
    with pytest.raises(InvariantViolation):
        store.create("session_a", _state())


def test_returned_state_is_a_copy(store) -> None:
    store.create("session_a", _state())
    loaded = store.get("session_a")
    loaded.question_count = 7
    assert store.get("session_a").question_count == 1


def test_file_store_writes_json_checkpoint(tmp_path) -> None:
    store = FileSessionStore(str(tmp_path))
    store.create("session_b", _state("session_b"))
    path = tmp_path / "session_b.json"
    assert path.exists()
    assert '"role":"frontend"' in path.read_text(encoding="utf-8")
    assert not (tmp_path / "session_b.json.tmp").exists()


def test_build_store_rejects_unknown_kind(tmp_path) -> None:
    with pytest.raises(ValueError):
        build_store("redis", str(tmp_path))
    assert isinstance(build_store("memory", str(tmp_path)), InMemorySessionStore)


def test_session_locks_serialize_same_id() -> None:
    locks = SessionLocks()
    active = []
    overlaps = []

    def worker() -> None:
        with locks.hold("same"):
            active.append(1)
            if len(active) > 1:
                overlaps.append(True)
            time.sleep(0.01)
            active.pop()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert overlaps == []


def test_session_locks_do_not_block_other_ids() -> None:
    locks = SessionLocks()
    entered = threading.Event()

    def worker() -> None:
        with locks.hold("second"):
            entered.set()

    with locks.hold("first"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join(timeout=1)
    assert entered.is_set()


def test_session_locks_release_entries() -> None:
    locks = SessionLocks()
    with locks.hold("first"):
        with pytest.raises(SessionNotFound):
            with locks.hold("missing"):
                raise SessionNotFound("missing")
        assert len(locks) == 1
    assert len(locks) == 0


def test_session_locks_keep_entry_while_contended() -> None:
    locks = SessionLocks()
    waiting = threading.Event()
    done = threading.Event()

    def worker() -> None:
        waiting.set()
        with locks.hold("same"):
            done.set()

    with locks.hold("same"):
        thread = threading.Thread(target=worker)
        thread.start()
        waiting.wait(timeout=1)
        time.sleep(0.01)
        assert not done.is_set()
    thread.join(timeout=1)
    assert done.is_set()
    assert len(locks) == 0
