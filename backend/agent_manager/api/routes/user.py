"""User routes: profile with usage breakdown, paged generation history."""

import math
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from agent_manager.core.auth import require_auth
from agent_manager.db.base import get_session_factory
from agent_manager.db.models.generation import GenerationRecord
from agent_manager.db.models.user import User
from agent_manager.domain.usage_gate import can_generate
from agent_manager.schemas.account import GenerationItem, SubscriptionSummary, UserSummary
from agent_manager.schemas.agents import CamelModel
from agent_manager.services.usage_stats import count_by, count_generations

router = APIRouter()


class UsageBreakdown(CamelModel):
    total: int
    weekly: int
    monthly: int
    by_provider: dict[str, int]
    by_agent_type: dict[str, int]


class ProfileResponse(CamelModel):
    user: UserSummary
    subscription: SubscriptionSummary | None
    usage: UsageBreakdown
    can_generate: bool


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class GenerationsPage(CamelModel):
    generations: list[GenerationItem]
    pagination: Pagination


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: User = Depends(require_auth)):
    now = datetime.now(UTC)

    factory = get_session_factory()
    async with factory() as session:
        total = await count_generations(session, user.id)
        weekly = await count_generations(session, user.id, since=now - timedelta(days=7))
        monthly = await count_generations(session, user.id, since=now - timedelta(days=30))
        by_provider = await count_by(session, user.id, GenerationRecord.ai_provider)
        by_agent_type = await count_by(session, user.id, GenerationRecord.agent_type)

    subscription = user.subscription
    return ProfileResponse(
        user=UserSummary.model_validate(user),
        subscription=SubscriptionSummary.from_model(subscription),
        usage=UsageBreakdown(
            total=total,
            weekly=weekly,
            monthly=monthly,
            by_provider=by_provider,
            by_agent_type=by_agent_type,
        ),
        can_generate=can_generate(total, subscription.status if subscription else None),
    )


@router.get("/generations", response_model=GenerationsPage)
async def list_generations(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(require_auth),
):
    """Newest-first generation history."""
    factory = get_session_factory()
    async with factory() as session:
        total = await count_generations(session, user.id)
        result = await session.execute(
            select(GenerationRecord)
            .where(GenerationRecord.user_id == user.id)
            .order_by(GenerationRecord.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        records = result.scalars().all()

    return GenerationsPage(
        generations=[GenerationItem.model_validate(r) for r in records],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )
