import pytest
from fastapi.testclient import TestClient

from planning_poker.app import create_app
from planning_poker.config import Config
from planning_poker.engine import RoomSessionEngine
from planning_poker.store import RoomStore


class TestConfig(Config):
    ENABLE_REAPER = False
    ROOM_TTL_SEC = 1800
    VOTING_DURATION_SEC = 300
    DUPLICATE_JOIN_WINDOW_SEC = 1.0
    LOG_LEVEL = "DEBUG"
    LOG_FILE = None


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    async def broadcast(self, channel, event, payload):
        self.events.append((channel, event, payload))

    def names(self):
        return [event for _, event, _ in self.events]


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return RoomStore(ttl_sec=TestConfig.ROOM_TTL_SEC, clock=clock)


@pytest.fixture()
def engine(store):
    return RoomSessionEngine(store)


@pytest.fixture()
def room_id(store):
    return store.create_room("Sprint 1")


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def api_app(clock, broadcaster):
    return create_app(TestConfig, clock=clock, broadcaster=broadcaster)


@pytest.fixture()
def client(api_app):
    with TestClient(api_app) as test_client:
        yield test_client


@pytest.fixture()
def ws_app(clock):
    # Real WebSocket hub instead of the recorder
    return create_app(TestConfig, clock=clock)


@pytest.fixture()
def ws_client(ws_app):
    with TestClient(ws_app) as test_client:
        yield test_client
