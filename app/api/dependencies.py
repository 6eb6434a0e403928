"""
Shared FastAPI dependencies for the summons API.

Process-wide collaborators (template registry, generation provider,
section locks) are created once; repositories are bound to the
request's database session.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.config import settings
from app.core.database import get_db
from app.domain.registry.template_registry import (
    InMemoryTemplateRegistry,
    load_default_registry,
)
from app.domain.repositories.postgres_summons_repository import (
    PostgresCaseRepository,
    PostgresSummonsRepository,
)
from app.domain.services.generation_invoker import GenerationInvoker
from app.domain.services.section_lock import SectionLockRegistry
from app.domain.services.summons_workflow_service import SummonsWorkflowService
from app.llm.providers.base import GenerationProvider
from app.llm.providers.flow_runner import FlowRunProvider
from seed.registry import DEFAULT_TEMPLATE_ID

logger = logging.getLogger(__name__)


@lru_cache
def get_template_registry() -> InMemoryTemplateRegistry:
    """Template registry loaded from seed data."""
    return load_default_registry()


@lru_cache
def get_generation_provider() -> GenerationProvider:
    """Flow-runner provider configured from settings."""
    if not settings.GENERATION_API_KEY:
        logger.warning("GENERATION_API_KEY is not set; generation calls will be rejected upstream")
    return FlowRunProvider(
        api_key=settings.GENERATION_API_KEY or "",
        base_url=settings.GENERATION_API_URL,
        worker_id=settings.GENERATION_WORKER_ID,
        timeout=settings.GENERATION_TIMEOUT_SECONDS,
        connect_timeout=settings.GENERATION_CONNECT_TIMEOUT_SECONDS,
    )


@lru_cache
def get_section_locks() -> SectionLockRegistry:
    """Process-wide per-section locks."""
    return SectionLockRegistry()


async def get_workflow_service(
    db: AsyncSession = Depends(get_db),
) -> SummonsWorkflowService:
    """Workflow service bound to the request's session."""
    return SummonsWorkflowService(
        summons_repo=PostgresSummonsRepository(db),
        case_repo=PostgresCaseRepository(db),
        templates=get_template_registry(),
        invoker=GenerationInvoker(
            get_generation_provider(),
            timeout_seconds=settings.GENERATION_TIMEOUT_SECONDS,
        ),
        locks=get_section_locks(),
        default_template_id=DEFAULT_TEMPLATE_ID,
    )
