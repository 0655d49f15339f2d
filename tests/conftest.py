# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from bistro.core.config import AuthConfig, Config, EnvSettings, WebSecurityConfig
from bistro.main import create_app

ADMIN_PASSWORD = "correct-horse-battery"
SESSION_SECRET = "test-session-secret"
START_MS = 1_760_000_000_000


class FakeClock:
    """Manually advanced clock in epoch milliseconds."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    def advance_minutes(self, minutes: float) -> None:
        self.now += int(minutes * 60 * 1000)


def flip_char(token: str, index: int | None = None) -> str:
    """Return *token* with one character (the middle one by default) replaced."""
    i = len(token) // 2 if index is None else index
    replacement = "A" if token[i] != "A" else "B"
    return token[:i] + replacement + token[i + 1 :]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def config() -> Config:
    return Config(
        auth=AuthConfig(),
        web_security=WebSecurityConfig(https_enabled=False),
        env=EnvSettings(
            admin_secret=ADMIN_PASSWORD,
            admin_password_hash="",
            session_secret=SESSION_SECRET,
            app_env="test",
        ),
        db_path=":memory:",
    )


@pytest.fixture()
def client(config: Config, clock: FakeClock) -> Iterator[TestClient]:
    app = create_app(config, clock=clock, log_dir=None)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin_client(client: TestClient) -> TestClient:
    """A client holding a valid admin session cookie."""
    response = client.post("/api/admin/auth/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return client
