"""FastAPI dependencies: database session, cookie session, role gates, CSRF."""

from typing import Collection, Generator

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from recruit_crm.core.security import decode_session_token
from recruit_crm.db.enums import Role
from recruit_crm.db.models import User
from recruit_crm.db.session import SessionLocal
from recruit_crm.schemas.auth import UserSession

COOKIE_NAME = "recruit_crm_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the user behind the session cookie.

    The token must verify, name an existing active user, and carry that
    user's current token_version (bumping it revokes every session).

    Raises:
        HTTPException 401
    """
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_session_token(token)
    except jwt.InvalidTokenError:
        raise _unauthorized("Invalid session")

    user = db.get(User, claims.user_id)
    if user is None or not user.is_active:
        raise _unauthorized("Invalid session")
    if user.token_version != claims.token_version:
        raise _unauthorized("Session revoked")
    return user


def get_current_session(request: Request, db: Session = Depends(get_db)) -> UserSession:
    """
    Session context for endpoints.

    The role comes from the user row, not the token, so role changes apply
    immediately.

    Raises:
        HTTPException 401: not authenticated
        HTTPException 403: role unknown to this service
    """
    user = get_current_user(request, db)
    if not Role.has_value(user.role):
        raise HTTPException(status_code=403, detail=f"Unknown role '{user.role}'")

    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


def require_roles(allowed_roles: Collection[Role]):
    """Dependency factory: the session's role must be in allowed_roles (403 otherwise)."""

    def dependency(request: Request, db: Session = Depends(get_db)) -> UserSession:
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session

    return dependency


def require_csrf_header(request: Request) -> None:
    """Reject state-changing requests without the CSRF header (403)."""
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )
