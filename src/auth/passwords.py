import bcrypt as bcrypt_lib


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password or kiosk PIN using bcrypt."""
    return bcrypt_lib.hashpw(password.encode(), bcrypt_lib.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Verify password against hash. A missing or malformed hash never verifies."""
    if not password_hash:
        return False
    try:
        return bcrypt_lib.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False
