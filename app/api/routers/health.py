"""
Probes for the summons drafting API.

/health answers without touching anything. /health/ready checks the
database, the loaded summons templates and whether the generation
capability has credentials.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.api.dependencies import get_template_registry
from app.core.config import settings
from app.core.database import get_db
from app.domain.registry.template_registry import InMemoryTemplateRegistry

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
async def liveness_check():
    return {"status": "healthy"}


async def _database_state(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness: database unreachable: {e}", exc_info=True)
        return "disconnected"
    return "connected"


@router.get("/health/ready", status_code=status.HTTP_200_OK)
async def readiness_check(
    response: Response,
    db: AsyncSession = Depends(get_db),
    templates: InMemoryTemplateRegistry = Depends(get_template_registry),
) -> Dict[str, Any]:
    """
    Ready when the database answers and at least one summons template
    is registered. Missing generation credentials are reported but do
    not fail the probe; review and assembly still work without them.
    """
    database = await _database_state(db)
    loaded = templates.list_templates()

    ready = database == "connected" and bool(loaded)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "not_ready",
        "database": database,
        "templates": {t.template_id: t.version for t in loaded},
        "generation": "configured" if settings.GENERATION_API_KEY else "missing_api_key",
    }
