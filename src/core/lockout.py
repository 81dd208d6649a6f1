from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.login_attempts import LoginAttemptRepository
from src.core.security.tokens import sha256_hex
from src.models.base import utcnow
from src.models.login_attempt import LoginAttempt


@dataclass(frozen=True, slots=True)
class LockoutStep:
    threshold: int
    minutes: int


LOCKOUT_STEPS: tuple[LockoutStep, ...] = (
    LockoutStep(threshold=5, minutes=15),
    LockoutStep(threshold=8, minutes=60),
    LockoutStep(threshold=12, minutes=240),
)

# Rows untouched for this long are removed by the cleanup job.
STALE_ATTEMPT_AGE = timedelta(days=1)


def lockout_minutes(attempts: int) -> int:
    minutes = 0
    for step in LOCKOUT_STEPS:
        if attempts >= step.threshold:
            minutes = step.minutes
    return minutes


def build_login_key(ip: str, email: str) -> str:
    return sha256_hex(f"{ip}|{email}")


def is_locked(row: LoginAttempt | None, now: datetime) -> bool:
    if row is None or row.locked_until is None:
        return False
    locked_until = row.locked_until
    if locked_until.tzinfo is None:
        locked_until = locked_until.replace(tzinfo=timezone.utc)
    return locked_until > now


class LoginThrottle:
    def __init__(self, session: AsyncSession) -> None:
        self.repository = LoginAttemptRepository(session)

    async def current(self, key: str) -> LoginAttempt | None:
        return await self.repository.get(key)

    async def register_failure(self, key: str, previous: LoginAttempt | None) -> int:
        now = utcnow()
        attempts = int(previous.attempts if previous else 0) + 1
        minutes = lockout_minutes(attempts)
        await self.repository.save(
            key,
            attempts=attempts,
            first_attempt_at=previous.first_attempt_at if previous else now,
            locked_until=now + timedelta(minutes=minutes) if minutes > 0 else None,
            updated_at=now,
        )
        return attempts

    async def clear(self, key: str) -> None:
        await self.repository.clear(key)

    async def purge_stale(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return await self.repository.delete_stale(now, now - STALE_ATTEMPT_AGE)
