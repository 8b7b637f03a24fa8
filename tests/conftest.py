import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import pytest
from fastapi.testclient import TestClient

from appforge.app import create_app
from appforge.auth.sessions import CredentialSessionManager
from appforge.config import Settings
from appforge.infra.kv_store import MemoryKVStore

SECRET = "test-secret"
# Low KDF cost keeps the suite fast; production default is exercised in test_passwords.
FAST_ITERATIONS = 1_000


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock) -> MemoryKVStore:
    return MemoryKVStore(clock=clock)


@pytest.fixture()
def manager(store) -> CredentialSessionManager:
    return CredentialSessionManager(store, SECRET, iterations=FAST_ITERATIONS)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        secret_key=SECRET,
        session_ttl=7 * 24 * 3600,
        store_path=None,
        min_password_length=8,
        host="127.0.0.1",
        port=8000,
        reload=False,
        log_level="INFO",
    )


@pytest.fixture()
def client(manager, settings) -> TestClient:
    return TestClient(create_app(manager=manager, settings=settings))
