from src.core.config import settings
from src.core.security.passwords import PasswordHasher

_hashers: dict[int, PasswordHasher] = {}


def get_password_hasher() -> PasswordHasher:
    rounds = int(settings.bcrypt_rounds)
    if rounds not in _hashers:
        _hashers[rounds] = PasswordHasher(rounds)
    return _hashers[rounds]
