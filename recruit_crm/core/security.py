"""Session token signing and verification.

Tokens are HS256 JWTs carried in the session cookie. Verification accepts the
current secret and, during a rotation window, JWT_SECRET_PREVIOUS.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from recruit_crm.core.config import settings

ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionClaims:
    user_id: UUID
    role: str
    token_version: int


def create_session_token(user_id: UUID, role: str, token_version: int) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def _decode_with_rotation(token: str) -> dict:
    errors = []
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.InvalidSignatureError as exc:
            errors.append(exc)
    raise errors[-1]


def decode_session_token(token: str) -> SessionClaims:
    """
    Verify a session token and return its claims.

    Raises:
        jwt.InvalidTokenError: bad signature under every accepted secret,
            expired, or malformed claims
    """
    payload = _decode_with_rotation(token)
    try:
        return SessionClaims(
            user_id=UUID(str(payload["sub"])),
            role=str(payload.get("role", "")),
            token_version=int(payload.get("token_version", 0)),
        )
    except (TypeError, ValueError) as exc:
        raise jwt.InvalidTokenError("Malformed session claims") from exc
