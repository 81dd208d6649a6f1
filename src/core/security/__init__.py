from src.core.security.dependencies import get_password_hasher
from src.core.security.passwords import PasswordHasher, PasswordHashError
from src.core.security.tokens import random_token, sha256_hex, tokens_match

__all__ = [
    "PasswordHashError",
    "PasswordHasher",
    "get_password_hasher",
    "random_token",
    "sha256_hex",
    "tokens_match",
]
