"""Session JWT authentication and usage gating for FastAPI."""

from datetime import UTC, datetime, timedelta

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from agent_manager.core.config import get_settings
from agent_manager.db.base import get_session_factory
from agent_manager.db.models.user import User
from agent_manager.domain.usage_gate import evaluate_usage
from agent_manager.services.usage_stats import count_generations

_bearer_scheme = HTTPBearer(auto_error=False)


def create_session_token(user_id: str, now: datetime | None = None) -> str:
    """Sign a session token identifying ``user_id``."""
    settings = get_settings()
    now = now or datetime.now(UTC)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expiry_days),
    }
    return pyjwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> str:
    """Verify a session token and return the user id.

    Raises ``HTTPException(401)`` on any validation failure.
    """
    settings = get_settings()
    try:
        payload = pyjwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub or not isinstance(sub, str):
        raise HTTPException(status_code=401, detail="Token missing sub claim")
    return sub


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> User:
    """FastAPI dependency that resolves the session token to a User.

    The token is read from the session cookie first, then the Authorization header.
    The returned User has its subscription eagerly loaded.

    Usage::

        @router.get("/protected")
        async def protected(user: User = Depends(require_auth)):
            ...
    """
    settings = get_settings()
    token = request.cookies.get(settings.session_cookie_name)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    user_id = decode_session_token(token)

    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(
            select(User).options(selectinload(User.subscription)).where(User.id == user_id)
        )
        user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(status_code=401, detail="User not found")

    # Set user_id on request state for downstream use (error handlers, audit logging)
    request.state.user_id = user.id
    return user


async def require_generation_access(user: User = Depends(require_auth)) -> User:
    """FastAPI dependency enforcing the free tier: one generation, then an active subscription.

    Returns a structured HTTP 403 when the free generation is used up.
    """
    factory = get_session_factory()
    async with factory() as session:
        generation_count = await count_generations(session, user.id)
    status = user.subscription.status if user.subscription else None

    decision = evaluate_usage(generation_count, status)
    if not decision.allowed:
        raise HTTPException(
            status_code=403,
            detail={
                "code": decision.reason,
                "error": "Free tier limit reached",
                "message": "You have used your free generation. Please subscribe to continue.",
                "requiresSubscription": True,
            },
        )
    return user
