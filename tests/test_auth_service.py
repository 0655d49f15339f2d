from __future__ import annotations

import pytest

from bistro.core.config import Config
from bistro.core.constants import ErrorKind
from bistro.core.messages import format_time_remaining, message
from bistro.services.auth import AuthService

from conftest import ADMIN_PASSWORD, FakeClock

IP = "198.51.100.20"


@pytest.fixture()
def service(config: Config, clock: FakeClock) -> AuthService:
    return AuthService.from_config(config, clock=clock)


def test_successful_login_issues_valid_token(service: AuthService) -> None:
    outcome = service.login(IP, ADMIN_PASSWORD)
    assert outcome.success is True
    assert outcome.error is None
    assert service.validate_session(outcome.token) is not None


def test_failed_login_outcomes(service: AuthService) -> None:
    outcome = service.login(IP, "wrong")
    assert outcome.error is ErrorKind.INVALID_CREDENTIALS
    assert outcome.remaining_attempts == 4
    assert outcome.token is None

    outcome = service.login(IP, None)
    assert outcome.error is ErrorKind.VALIDATION_ERROR
    assert outcome.remaining_attempts == 3


def test_locked_out_login_reports_retry_after(service: AuthService, clock: FakeClock) -> None:
    for _ in range(5):
        service.login(IP, "wrong")
    clock.advance_minutes(5)

    outcome = service.login(IP, ADMIN_PASSWORD)
    assert outcome.error is ErrorKind.RATE_LIMITED
    assert outcome.retry_after_ms == 10 * 60 * 1000


def test_cleanup_expired_attempts(service: AuthService, clock: FakeClock) -> None:
    service.login(IP, "wrong")
    clock.advance_minutes(11)
    assert service.cleanup_expired_attempts() == 1


@pytest.mark.parametrize(
    ("ms", "he", "en"),
    [
        (1, "דקה אחת", "1 minute"),
        (60_000, "דקה אחת", "1 minute"),
        (60_001, "שתי דקות", "2 minutes"),
        (15 * 60_000, "15 דקות", "15 minutes"),
    ],
)
def test_time_remaining_rounds_up(ms: int, he: str, en: str) -> None:
    assert format_time_remaining(ms) == he
    assert format_time_remaining(ms, "en") == en


def test_unknown_locale_falls_back_to_hebrew() -> None:
    assert message("unauthenticated", "fr") == message("unauthenticated", "he")
