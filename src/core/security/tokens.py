from __future__ import annotations

import hashlib
import secrets


def sha256_hex(value: str | bytes) -> str:
    data = value if isinstance(value, bytes) else str(value).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def random_token(n_bytes: int = 32) -> str:
    return secrets.token_urlsafe(n_bytes)


def tokens_match(expected: str | None, provided: str | None) -> bool:
    if not expected or not provided:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))
