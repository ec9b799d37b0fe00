"""Shared pytest fixtures."""

from collections.abc import Callable, Iterator
from contextlib import ExitStack
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pyotp
import pytest
from fastapi.testclient import TestClient

from parishsite import utils
from parishsite.app import App
from parishsite.config import Config
from parishsite.core.storage import KeyValueStore, MemoryStorage, Storage
from parishsite.errors import StorageUnavailableError
from parishsite.web.server import create_fastapi_app

ADMIN_PASSWORD = "correct horse battery"
TOTP_SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"
SESSION_SECRET = "test-session-secret-0123456789"


class FakeClock:
    """Controllable replacement for parishsite.utils.now."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FailingStore(KeyValueStore):
    """Store whose every operation fails as if the database were down."""

    async def get(self, key: str) -> dict[str, Any] | None:
        raise StorageUnavailableError("store down")

    async def set(self, key: str, value: dict[str, Any], expires_at: datetime) -> None:
        raise StorageUnavailableError("store down")

    async def delete(self, key: str) -> None:
        raise StorageUnavailableError("store down")

    async def expire(self, key: str, expires_at: datetime, value: dict[str, Any] | None = None) -> bool:
        raise StorageUnavailableError("store down")

    async def increment(self, key: str, expires_at: datetime) -> tuple[int, datetime]:
        raise StorageUnavailableError("store down")

    async def purge_expired(self) -> int:
        raise StorageUnavailableError("store down")


class FailingStorage(Storage):
    def collection(self, name: str) -> KeyValueStore:
        return FailingStore()


class SessionsDownStorage(Storage):
    """In-memory storage whose session collection is unavailable."""

    def __init__(self) -> None:
        self._memory = MemoryStorage()

    def collection(self, name: str) -> KeyValueStore:
        if name == "sessions":
            return FailingStore()
        return self._memory.collection(name)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """Freeze time at a fixed instant; tests move it with clock.advance()."""
    fake = FakeClock(datetime(2026, 1, 5, 12, 0, 0, tzinfo=UTC))
    monkeypatch.setattr(utils, "now", fake)
    return fake


@pytest.fixture
def totp() -> pyotp.TOTP:
    return pyotp.TOTP(TOTP_SECRET)


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    path = tmp_path / "content"
    path.mkdir()
    return path


@pytest.fixture
def config(content_dir: Path) -> Config:
    return Config(
        _env_file=None,
        session_secret_key=SESSION_SECRET,
        admin_password=ADMIN_PASSWORD,
        admin_totp_secret=TOTP_SECRET,
        content_path=str(content_dir),
        login_rate_limit_attempts=5,
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def app(config: Config, storage: MemoryStorage) -> App:
    return App(config, storage)


@pytest.fixture
def client(app: App, config: Config) -> Iterator[TestClient]:
    """HTTP client whose requests look same-origin to the origin guard."""
    fastapi_app = create_fastapi_app(app, config)
    with TestClient(fastapi_app, follow_redirects=False, headers={"Origin": "http://testserver"}) as test_client:
        yield test_client


@pytest.fixture
def admin_password() -> str:
    return ADMIN_PASSWORD


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def sessions_down_storage() -> SessionsDownStorage:
    return SessionsDownStorage()


@pytest.fixture
def make_client(config: Config, storage: MemoryStorage) -> Iterator[Callable[..., TestClient]]:
    """Build extra clients with config overrides or another storage backend."""
    with ExitStack() as stack:

        def factory(backend: Storage | None = None, **overrides: Any) -> TestClient:
            client_config = config.model_copy(update=overrides)
            fastapi_app = create_fastapi_app(App(client_config, backend if backend is not None else storage), client_config)
            test_client = TestClient(fastapi_app, follow_redirects=False, headers={"Origin": "http://testserver"})
            return stack.enter_context(test_client)

        yield factory
