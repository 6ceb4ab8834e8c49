"""AI routes: agent generation, grounded advice, saved agent exports."""

from datetime import datetime

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import ConfigDict, Field
from sqlalchemy import select

from agent_manager.api.deps import get_orchestrator, get_usage_monitor
from agent_manager.core.auth import require_auth, require_generation_access
from agent_manager.core.exceptions import InvalidRequestError, ProviderError
from agent_manager.db.base import get_session_factory
from agent_manager.db.models.generation import AGENT_TYPE_MAX_LENGTH, GenerationRecord
from agent_manager.db.models.user import User
from agent_manager.domain.providers import AgentType, AIProvider
from agent_manager.domain.usage_gate import evaluate_history_access
from agent_manager.schemas.agents import AgentConfig, CamelModel
from agent_manager.services.generation_service import GenerationOrchestrator
from agent_manager.services.usage_monitor import UsageAlertMonitor

logger = structlog.get_logger(__name__)

router = APIRouter()


# ── Request / Response schemas ──────────────────────────────────────


class GenerateRequest(CamelModel):
    description: str = ""
    agent_type: str = AgentType.CUSTOM.value


class GenerateResponse(CamelModel):
    agent: AgentConfig
    provider: str


class AdviceRequest(CamelModel):
    prompt: str = ""


class AdviceResponse(CamelModel):
    advice: str


class SaveAgentRequest(CamelModel):
    agent_name: str = Field(default="", max_length=255)
    agent_type: str = AgentType.CUSTOM.value
    ai_provider: str = AIProvider.GEMINI.value
    file_content: str = ""
    description: str = ""


class SaveAgentResponse(CamelModel):
    id: str
    file_size_bytes: int


class SavedAgentSummary(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent_name: str | None
    agent_type: str
    ai_provider: str
    description: str
    created_at: datetime
    file_size_bytes: int | None


class SavedAgentDetail(SavedAgentSummary):
    file_content: str | None


class MyAgentsResponse(CamelModel):
    agents: list[SavedAgentSummary]
    has_access: bool
    requires_annual_plan: bool


# ── Helpers ─────────────────────────────────────────────────────────


async def _record_generation(user_id: str, agent_type: str, provider: str, description: str) -> GenerationRecord:
    factory = get_session_factory()
    async with factory() as session:
        record = GenerationRecord(
            user_id=user_id,
            agent_type=_stored_agent_type(agent_type),
            ai_provider=provider,
            description=description,
        )
        session.add(record)
        await session.commit()
        return record


def _stored_agent_type(agent_type: str) -> str:
    # Unknown tags route to the default vendor; only the stored copy is bounded
    return agent_type[:AGENT_TYPE_MAX_LENGTH]


def _history_access(user: User):
    subscription = user.subscription
    return evaluate_history_access(
        subscription.plan if subscription else None,
        subscription.status if subscription else None,
    )


# ── Endpoints ───────────────────────────────────────────────────────


@router.post("/generate", response_model=GenerateResponse)
async def generate_agent(
    body: GenerateRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_generation_access),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    monitor: UsageAlertMonitor = Depends(get_usage_monitor),
):
    """Generate an agent configuration with the vendor routed for ``agentType``."""
    try:
        result = await orchestrator.generate(body.description, body.agent_type)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ProviderError as exc:
        logger.error(
            "generate_agent_failed",
            user_id=user.id,
            agent_type=body.agent_type,
            provider=str(exc.provider),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise HTTPException(status_code=500, detail="Failed to generate agent configuration")

    await _record_generation(user.id, body.agent_type, result.provider.value, body.description.strip())
    background_tasks.add_task(monitor.check_and_alert_high_usage, user.id)

    logger.info(
        "agent_generated",
        user_id=user.id,
        agent_type=body.agent_type,
        provider=result.provider.value,
        fell_back=result.fell_back,
    )
    return GenerateResponse(agent=result.agent, provider=result.provider.value)


@router.post("/advice", response_model=AdviceResponse)
async def get_advice(
    body: AdviceRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_generation_access),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    monitor: UsageAlertMonitor = Depends(get_usage_monitor),
):
    """Search-grounded advice for the Architect agent."""
    try:
        advice = await orchestrator.get_grounded_advice(body.prompt)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ProviderError as exc:
        logger.error("get_advice_failed", user_id=user.id, error=str(exc), error_type=type(exc).__name__)
        raise HTTPException(status_code=500, detail="Failed to get advice")

    await _record_generation(user.id, AgentType.ARCHITECT.value, AIProvider.GEMINI.value, body.prompt.strip())
    background_tasks.add_task(monitor.check_and_alert_high_usage, user.id)

    return AdviceResponse(advice=advice)


@router.post("/save-agent", response_model=SaveAgentResponse)
async def save_agent(
    body: SaveAgentRequest,
    user: User = Depends(require_auth),
):
    """Attach exported file content to the user's latest unsaved generation of this type.

    A predefined template exported without a prior generation gets a new record.
    """
    if not body.agent_name.strip() or not body.file_content:
        raise HTTPException(status_code=400, detail="agentName and fileContent are required")
    if body.ai_provider not in {p.value for p in AIProvider}:
        raise HTTPException(status_code=400, detail=f"Unknown aiProvider: {body.ai_provider}")

    agent_type = _stored_agent_type(body.agent_type)
    file_size_bytes = len(body.file_content.encode("utf-8"))

    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(
            select(GenerationRecord)
            .where(
                GenerationRecord.user_id == user.id,
                GenerationRecord.agent_type == agent_type,
                GenerationRecord.file_content.is_(None),
            )
            .order_by(GenerationRecord.created_at.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = GenerationRecord(
                user_id=user.id,
                agent_type=agent_type,
                ai_provider=body.ai_provider,
                description=body.description,
            )
            session.add(record)
        elif body.description:
            record.description = body.description

        record.agent_name = body.agent_name.strip()
        record.file_content = body.file_content
        record.file_size_bytes = file_size_bytes
        await session.commit()

    logger.info("agent_saved", user_id=user.id, generation_id=record.id, file_size_bytes=file_size_bytes)
    return SaveAgentResponse(id=record.id, file_size_bytes=file_size_bytes)


@router.get("/my-agents", response_model=MyAgentsResponse)
async def list_my_agents(user: User = Depends(require_auth)):
    """List saved agents. Historical retrieval is an annual-plan entitlement."""
    if not _history_access(user).allowed:
        return MyAgentsResponse(agents=[], has_access=False, requires_annual_plan=True)

    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(
            select(GenerationRecord)
            .where(
                GenerationRecord.user_id == user.id,
                GenerationRecord.file_content.is_not(None),
            )
            .order_by(GenerationRecord.created_at.desc())
        )
        records = result.scalars().all()

    return MyAgentsResponse(
        agents=[SavedAgentSummary.model_validate(r) for r in records],
        has_access=True,
        requires_annual_plan=False,
    )


@router.get("/agent/{generation_id}", response_model=SavedAgentDetail)
async def get_agent(generation_id: str, user: User = Depends(require_auth)):
    """Full content of one saved agent, for download."""
    decision = _history_access(user)
    if not decision.allowed:
        raise HTTPException(
            status_code=403,
            detail={
                "code": decision.reason,
                "error": "Annual subscription required to download historical agents",
                "requiresUpgrade": True,
            },
        )

    factory = get_session_factory()
    async with factory() as session:
        record = await session.get(GenerationRecord, generation_id)

    if record is None or record.user_id != user.id:
        raise HTTPException(status_code=404, detail="Agent not found")

    return SavedAgentDetail.model_validate(record)
