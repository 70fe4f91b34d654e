from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from src.auth.context import TokenClaims
from src.config import settings


def create_access_token(claims: TokenClaims, expires_minutes: int | None = None) -> str:
    """Create a signed JWT session token."""
    now = datetime.now(timezone.utc)
    minutes = settings.jwt_expiration_minutes if expires_minutes is None else expires_minutes
    payload = claims.to_payload()
    payload["exp"] = now + timedelta(minutes=minutes)
    payload["iat"] = now
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims | None:
    """Decode and validate a JWT. Returns claims or None if invalid or expired."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    try:
        return TokenClaims.from_payload(payload)
    except ValueError:
        return None
