"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/fakes required for testing multiple layers.
"""

import json
from typing import Any, Callable, Generator, Optional
from unittest.mock import Mock

import pytest
import requests
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ledger_sync.api.client import RemoteClient
from ledger_sync.api.signer import RequestSigner
from ledger_sync.db.schema import Base
from ledger_sync.services.auth_session import AuthSessionCache
from ledger_sync.services.pending_queue import PendingWriteQueue

TEST_URL = "https://ledger.example/exec"
TEST_SECRET = "test-secret"
TEST_EMAIL = "player@example.com"
APP_VERSION = "2.0.58"

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.close()


# --- FAKES ----
class InMemoryStore:
    """Mock the KeyValueStore using a dictionary."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    """threading.Timer stand-in: fires only on demand."""

    def __init__(self, interval: float, function: Callable, args: tuple = ()) -> None:
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function(*self.args)


class FakeTimers:
    """Timer factory that records every timer it creates."""

    def __init__(self) -> None:
        self.created: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable, args: tuple = ()) -> FakeTimer:
        timer = FakeTimer(interval, function, args)
        self.created.append(timer)
        return timer


def make_response(
    status: int = 200, body: Any = None, text: Optional[str] = None
) -> Mock:
    """Minimal requests.Response double: status_code, text, json()."""
    if text is None:
        text = json.dumps(body) if body is not None else ""
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.text = text
    response.json.side_effect = lambda: json.loads(text)
    return response


# --- FIXTURES ----
@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def respond() -> Callable[..., Mock]:
    return make_response


@pytest.fixture
def http() -> Mock:
    """requests.Session double; set `http.request.return_value` / `side_effect` in the test."""
    return Mock(spec=requests.Session)


@pytest.fixture
def session_cache(memory_store: InMemoryStore, clock: FakeClock) -> AuthSessionCache:
    """Auth session that is logged in as TEST_EMAIL."""
    cache = AuthSessionCache(memory_store, clock=clock)
    cache.save(TEST_EMAIL, "editor")
    return cache


@pytest.fixture
def queue(memory_store: InMemoryStore) -> PendingWriteQueue:
    counter = iter(range(1, 10_000))
    return PendingWriteQueue(
        memory_store,
        clock=lambda: "2024-01-01T02:00:00.000Z",
        id_factory=lambda: f"pending-{next(counter)}",
    )


@pytest.fixture
def on_expired() -> Mock:
    return Mock()


@pytest.fixture
def client(http: Mock, session_cache: AuthSessionCache, on_expired: Mock) -> RemoteClient:
    return RemoteClient(
        base_url=TEST_URL,
        signer=RequestSigner(TEST_SECRET),
        session=session_cache,
        app_version=APP_VERSION,
        http=http,
        on_session_expired=on_expired,
    )
