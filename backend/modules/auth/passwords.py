"""Password hashing with bcrypt."""

import bcrypt


BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt. Two calls never return the same hash."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
