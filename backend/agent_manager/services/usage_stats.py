"""Read-only generation counts used by gating, status and profile endpoints."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agent_manager.db.models.generation import GenerationRecord


async def count_generations(session: AsyncSession, user_id: str, since: datetime | None = None) -> int:
    """Number of GenerationRecords for ``user_id``, optionally only those created at/after ``since``."""
    stmt = select(func.count(GenerationRecord.id)).where(GenerationRecord.user_id == user_id)
    if since is not None:
        stmt = stmt.where(GenerationRecord.created_at >= since)
    return await session.scalar(stmt) or 0


async def count_by(session: AsyncSession, user_id: str, column) -> dict[str, int]:
    """Group the user's generations by ``column`` (ai_provider or agent_type)."""
    result = await session.execute(
        select(column, func.count(GenerationRecord.id))
        .where(GenerationRecord.user_id == user_id)
        .group_by(column)
    )
    return {key: count for key, count in result.all()}
