from __future__ import annotations

import bcrypt

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input.
_BCRYPT_MAX_BYTES = 72


class PasswordHashError(ValueError):
    pass


def _encode(password: str) -> bytes:
    return str(password).encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    def __init__(self, rounds: int = 12) -> None:
        if not 4 <= rounds <= 31:
            raise PasswordHashError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds
        self._dummy_hash: bytes | None = None

    def hash(self, password: str) -> str:
        if not password:
            raise PasswordHashError("Password must not be empty")
        digest = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds))
        return digest.decode("utf-8")

    def verify(self, password: str, password_hash: str | None) -> bool:
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            return False

    def burn(self, password: str) -> None:
        """Spend the same work as a real check when there is no stored hash."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"bunker-dummy-password", bcrypt.gensalt(rounds=self.rounds))
        bcrypt.checkpw(_encode(password or "x"), self._dummy_hash)
