"""Auth routes: Google OAuth login, session cookie, current user."""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import select

from agent_manager.api.deps import get_google_oauth_client
from agent_manager.core.auth import create_session_token, require_auth
from agent_manager.core.config import get_settings
from agent_manager.core.exceptions import OAuthError
from agent_manager.core.google_oauth import GoogleOAuthClient, GoogleProfile
from agent_manager.db.base import get_session_factory
from agent_manager.db.models.generation import GenerationRecord
from agent_manager.db.models.user import User
from agent_manager.domain.usage_gate import has_active_subscription
from agent_manager.schemas.account import GenerationItem, SubscriptionSummary, UserSummary
from agent_manager.schemas.agents import CamelModel
from agent_manager.services.usage_stats import count_generations

logger = structlog.get_logger(__name__)

router = APIRouter()

RECENT_GENERATIONS_LIMIT = 10


class GoogleUrlResponse(CamelModel):
    url: str


class MeResponse(CamelModel):
    user: UserSummary
    subscription: SubscriptionSummary | None
    has_subscription: bool
    generations_used: int
    recent_generations: list[GenerationItem]


class MessageResponse(CamelModel):
    message: str


async def upsert_google_user(profile: GoogleProfile) -> User:
    """Find the user by email (linking the Google id) or create one."""
    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(select(User).where(User.email == profile.email))
        user = result.scalar_one_or_none()

        if user is None:
            user = User(
                email=profile.email,
                google_id=profile.sub,
                name=profile.name,
                picture=profile.picture,
            )
            session.add(user)
            logger.info("user_created", email=profile.email)
        else:
            if not user.google_id:
                user.google_id = profile.sub
            user.name = profile.name or user.name
            user.picture = profile.picture or user.picture

        await session.commit()
        return user


@router.get("/google/url", response_model=GoogleUrlResponse)
async def google_auth_url(oauth: GoogleOAuthClient = Depends(get_google_oauth_client)):
    return GoogleUrlResponse(url=oauth.authorization_url())


@router.get("/google/callback")
async def google_callback(
    code: str | None = None,
    oauth: GoogleOAuthClient = Depends(get_google_oauth_client),
):
    """Exchange the code, sign a session token and redirect back to the frontend."""
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    settings = get_settings()
    try:
        profile = await oauth.exchange_code(code)
        user = await upsert_google_user(profile)
    except OAuthError as exc:
        logger.warning("google_oauth_failed", error=str(exc))
        return RedirectResponse(f"{settings.frontend_url}/?auth=error", status_code=302)
    except Exception as exc:
        logger.error("google_callback_failed", error=str(exc), error_type=type(exc).__name__, exc_info=True)
        return RedirectResponse(f"{settings.frontend_url}/?auth=error", status_code=302)

    response = RedirectResponse(f"{settings.frontend_url}/?auth=success", status_code=302)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_session_token(user.id),
        max_age=settings.jwt_expiry_days * 24 * 60 * 60,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
    )
    logger.info("user_logged_in", user_id=user.id)
    return response


@router.get("/me", response_model=MeResponse)
async def get_current_user(user: User = Depends(require_auth)):
    factory = get_session_factory()
    async with factory() as session:
        generations_used = await count_generations(session, user.id)
        result = await session.execute(
            select(GenerationRecord)
            .where(GenerationRecord.user_id == user.id)
            .order_by(GenerationRecord.created_at.desc())
            .limit(RECENT_GENERATIONS_LIMIT)
        )
        recent = result.scalars().all()

    subscription = user.subscription
    return MeResponse(
        user=UserSummary.model_validate(user),
        subscription=SubscriptionSummary.from_model(subscription),
        has_subscription=has_active_subscription(subscription.status if subscription else None),
        generations_used=generations_used,
        recent_generations=[GenerationItem.model_validate(g) for g in recent],
    )


@router.post("/logout", response_model=MessageResponse)
async def logout():
    settings = get_settings()
    response = JSONResponse(content={"message": "Logged out successfully"})
    response.delete_cookie(settings.session_cookie_name)
    return response
