import threading

from planning_poker.constants import RECOVERED_ROOM_NAME, ROOM_CODE_PATTERN
from planning_poker.store import RoomStore


def test_create_room_returns_code_and_empty_room(store):
    room_id = store.create_room("Sprint 1")
    assert ROOM_CODE_PATTERN.match(room_id)
    assert store.room_exists(room_id)
    snapshot = store.get_room_snapshot(room_id)
    assert snapshot.room.name == "Sprint 1"
    assert snapshot.participants == []
    assert snapshot.revealed is False
    assert snapshot.current_story is None
    assert snapshot.phase == "empty"


def test_created_codes_are_distinct(store):
    codes = {store.create_room(f"Room {i}") for i in range(50)}
    assert len(codes) == 50
    assert len(store) == 50


def test_code_collision_is_regenerated(clock):
    codes = iter(["AAAAAAAA", "AAAAAAAA", "BBBBBBBB"])
    store = RoomStore(clock=clock, code_factory=lambda: next(codes))
    assert store.create_room("first") == "AAAAAAAA"
    assert store.create_room("second") == "BBBBBBBB"


def test_unknown_room_lookups_do_not_raise(store):
    assert store.room_exists("NOPE1234") is False
    assert store.get_room_snapshot("NOPE1234") is None
    assert store.get_room_info("NOPE1234") is None


def test_recover_room_for_well_formed_missing_code(store):
    assert store.recover_room("ABCD1234") is True
    assert store.room_exists("ABCD1234")
    assert store.get_room_snapshot("ABCD1234").room.name == RECOVERED_ROOM_NAME


def test_recover_room_rejects_malformed_or_existing(store, room_id):
    assert store.recover_room("abcd1234") is False
    assert store.recover_room("ABC") is False
    assert store.recover_room("") is False
    assert store.recover_room(room_id) is False
    assert store.get_room_snapshot(room_id).room.name == "Sprint 1"


def test_delete_expired_removes_idle_rooms_only(store, clock):
    old = store.create_room("old")
    clock.advance(1000)
    fresh = store.create_room("fresh")
    clock.advance(801)

    removed = store.delete_expired()
    assert removed == [old]
    assert store.room_exists(old) is False
    assert store.room_exists(fresh) is True


def test_room_at_exact_ttl_is_kept(store, clock, room_id):
    clock.advance(store.ttl_sec)
    assert store.delete_expired() == []
    assert store.room_exists(room_id)


def test_room_exists_sweeps_lazily(store, clock, room_id):
    clock.advance(store.ttl_sec + 1)
    assert store.room_exists(room_id) is False
    assert room_id not in store.room_ids()


def test_activity_keeps_room_alive(store, engine, clock, room_id):
    clock.advance(1700)
    assert engine.join(room_id, "Alice", "s1") is not None
    clock.advance(1700)
    assert store.room_exists(room_id)
    clock.advance(101)
    assert store.room_exists(room_id) is False


def test_room_info(store, engine, room_id):
    engine.join(room_id, "Alice", "s1")
    info = store.get_room_info(room_id)
    assert info.room_id == room_id
    assert info.participant_count == 1
    assert info.revealed is False
    assert info.exists is True


class GatedLock:
    """Wraps a room lock so a test can pause a thread just before acquiring it."""

    def __init__(self, inner):
        self.inner = inner
        self.waiting = threading.Event()
        self.proceed = threading.Event()

    def __enter__(self):
        self.waiting.set()
        self.proceed.wait(5)
        return self.inner.__enter__()

    def __exit__(self, *exc):
        return self.inner.__exit__(*exc)

    def acquire(self, blocking=True):
        return self.inner.acquire(blocking)

    def release(self):
        self.inner.release()


def test_lock_waiter_does_not_share_recovered_room(store, clock, room_id):
    gate = GatedLock(store._locks[room_id])
    store._locks[room_id] = gate
    seen = []
    inside = threading.Event()

    def worker():
        with store.lock(room_id) as room:
            seen.append(room)
            inside.set()

    thread = threading.Thread(target=worker)
    thread.start()
    assert gate.waiting.wait(5)

    # Reaped and recovered while the worker is between lookup and acquire
    clock.advance(store.ttl_sec + 1)
    assert store.delete_expired() == [room_id]
    assert store.recover_room(room_id) is True
    recovered = store._rooms[room_id]

    with store.lock(room_id) as room:
        assert room is recovered
        gate.proceed.set()
        assert not inside.wait(0.2)

    thread.join(5)
    assert inside.is_set()
    assert seen == [recovered]


def test_delete_expired_skips_room_locked_by_another_thread(store, clock, room_id):
    holding = threading.Event()
    release = threading.Event()

    def hold():
        with store.lock(room_id):
            holding.set()
            release.wait(5)

    thread = threading.Thread(target=hold)
    thread.start()
    assert holding.wait(5)
    clock.advance(store.ttl_sec + 1)
    try:
        assert store.delete_expired() == []
        assert room_id in store.room_ids()
    finally:
        release.set()
        thread.join(5)

    assert store.delete_expired() == [room_id]
