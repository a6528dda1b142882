"""Password hashing (bcrypt).

Learn: bcrypt embeds its salt and cost in the hash string, so only the
hash is stored. BCRYPT_ROUNDS=12 makes every guess cost ~250ms, which is
what makes offline brute force of a leaked users table slow.
"""

import bcrypt

MIN_PASSWORD_LENGTH = 8
BCRYPT_ROUNDS = 12

# bcrypt ignores everything past 72 bytes
_BCRYPT_MAX_BYTES = 72


def _prepare(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_prepare(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """True if `password` matches; a malformed stored hash never matches."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_prepare(password), password_hash.encode("utf-8"))
    except ValueError:
        return False
