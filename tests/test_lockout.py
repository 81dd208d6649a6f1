from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from src.core import lockout
from src.core.lockout import LoginThrottle, build_login_key, is_locked, lockout_minutes

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class _FakeAttemptRepo:
    def __init__(self, session):  # noqa: ANN001
        self.saved: list[tuple[str, dict]] = []
        self.cleared: list[str] = []
        self.stale_args: tuple | None = None

    async def get(self, key):  # noqa: ANN001
        return None

    async def save(self, key, **values):  # noqa: ANN001, ANN003
        self.saved.append((key, values))

    async def clear(self, key):  # noqa: ANN001
        self.cleared.append(key)

    async def delete_stale(self, now, updated_before):  # noqa: ANN001
        self.stale_args = (now, updated_before)
        return 3


@pytest.mark.parametrize(
    ("attempts", "minutes"),
    [(0, 0), (4, 0), (5, 15), (7, 15), (8, 60), (11, 60), (12, 240), (40, 240)],
)
def test_lockout_minutes_escalates(attempts: int, minutes: int) -> None:
    assert lockout_minutes(attempts) == minutes


def test_build_login_key_hashes_ip_and_email() -> None:
    key = build_login_key("10.0.0.1", "a@b.co")

    assert len(key) == 64
    assert "a@b.co" not in key
    assert key == build_login_key("10.0.0.1", "a@b.co")
    assert key != build_login_key("10.0.0.2", "a@b.co")


def test_is_locked() -> None:
    assert is_locked(None, NOW) is False
    assert is_locked(SimpleNamespace(locked_until=None), NOW) is False
    assert is_locked(SimpleNamespace(locked_until=NOW + timedelta(minutes=1)), NOW) is True
    assert is_locked(SimpleNamespace(locked_until=NOW - timedelta(minutes=1)), NOW) is False
    assert is_locked(SimpleNamespace(locked_until=(NOW + timedelta(minutes=1)).replace(tzinfo=None)), NOW) is True


@pytest.mark.asyncio
async def test_first_failure_starts_counter_without_lock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lockout, "LoginAttemptRepository", _FakeAttemptRepo)
    monkeypatch.setattr(lockout, "utcnow", lambda: NOW)
    throttle = LoginThrottle(object())

    attempts = await throttle.register_failure("k", None)

    assert attempts == 1
    key, values = throttle.repository.saved[0]
    assert key == "k"
    assert values["attempts"] == 1
    assert values["first_attempt_at"] == NOW
    assert values["locked_until"] is None


@pytest.mark.asyncio
async def test_fifth_failure_locks_for_fifteen_minutes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lockout, "LoginAttemptRepository", _FakeAttemptRepo)
    monkeypatch.setattr(lockout, "utcnow", lambda: NOW)
    throttle = LoginThrottle(object())
    first = NOW - timedelta(minutes=3)

    attempts = await throttle.register_failure("k", SimpleNamespace(attempts=4, first_attempt_at=first))

    _, values = throttle.repository.saved[0]
    assert attempts == 5
    assert values["first_attempt_at"] == first
    assert values["locked_until"] == NOW + timedelta(minutes=15)


@pytest.mark.asyncio
async def test_clear_and_purge_stale(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lockout, "LoginAttemptRepository", _FakeAttemptRepo)
    throttle = LoginThrottle(object())

    await throttle.clear("k")
    purged = await throttle.purge_stale(NOW)

    assert throttle.repository.cleared == ["k"]
    assert purged == 3
    assert throttle.repository.stale_args == (NOW, NOW - timedelta(days=1))
