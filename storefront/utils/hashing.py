# storefront/utils/hashing.py
from typing import Optional

import bcrypt

BCRYPT_ROUNDS = 12
# bcrypt only uses the first 72 bytes; newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
