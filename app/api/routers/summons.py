"""
Summons API Routes - section-by-section drafting of a court summons.

Flow per section: generate -> (approve | reject -> generate ...).
Once every section is approved, assemble renders the final text.
Domain errors are mapped to HTTP by the global exception handlers.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import get_workflow_service
from app.domain.models.summons import Section, Summons
from app.domain.services.summons_workflow_service import SummonsWorkflowService

router = APIRouter(prefix="/api/summons", tags=["summons"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class CreateSummonsRequest(BaseModel):
    """Request to start a summons for a case."""
    case_id: str = Field(..., min_length=1, description="Case the summons is drafted for")
    template_id: Optional[str] = Field(None, description="Template override (default template if omitted)")
    user_fields: Dict[str, Any] = Field(default_factory=dict, description="Values for [field] placeholders")


class GenerateSectionRequest(BaseModel):
    """Request to generate or regenerate a section."""
    user_fields: Dict[str, Any] = Field(default_factory=dict, description="Field values and party overrides")
    user_feedback: Optional[str] = Field(None, description="Reviewer feedback for this attempt")


class RejectSectionRequest(BaseModel):
    """Request to send a section back with feedback."""
    feedback: str = Field(..., description="What must change; must not be empty")


class AssembleRequest(BaseModel):
    """Request to render the final summons."""
    user_fields: Dict[str, Any] = Field(default_factory=dict, description="Values for [field] placeholders")


class SectionResponse(BaseModel):
    """Section state."""
    id: UUID
    summons_id: UUID
    section_key: str
    section_name: str
    step_order: int
    kind: str
    status: str
    generated_text: Optional[str] = None
    user_feedback: Optional[str] = None
    generation_count: int
    warnings: Optional[List[str]] = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_section(cls, section: Section) -> "SectionResponse":
        return cls(
            id=section.id,
            summons_id=section.summons_id,
            section_key=section.section_key,
            section_name=section.section_name,
            step_order=section.step_order,
            kind=section.kind.value,
            status=section.status.value,
            generated_text=section.generated_text,
            user_feedback=section.user_feedback,
            generation_count=section.generation_count,
            warnings=section.warnings,
            updated_at=section.updated_at,
        )


class SummonsResponse(BaseModel):
    """Summons state."""
    id: UUID
    case_id: str
    template_id: str
    template_version: str
    status: str
    user_fields: Dict[str, Any]
    assembled_text: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_summons(cls, summons: Summons) -> "SummonsResponse":
        return cls(
            id=summons.id,
            case_id=summons.case_id,
            template_id=summons.template_id,
            template_version=summons.template_version,
            status=summons.status.value,
            user_fields=summons.user_fields,
            assembled_text=summons.assembled_text,
            created_at=summons.created_at,
            updated_at=summons.updated_at,
        )


class SummonsDetailResponse(SummonsResponse):
    """Summons with its sections."""
    sections: List[SectionResponse] = []


# =============================================================================
# ROUTES
# =============================================================================

@router.post("", response_model=SummonsDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_summons(
    request: CreateSummonsRequest,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """Start a summons; fixed sections are approved immediately."""
    summons, sections = await service.create_summons(
        case_id=request.case_id,
        template_id=request.template_id,
        user_fields=request.user_fields,
    )
    response = SummonsDetailResponse(**SummonsResponse.from_summons(summons).model_dump())
    response.sections = [SectionResponse.from_section(s) for s in sections]
    return response


@router.get("/{summons_id}", response_model=SummonsDetailResponse)
async def get_summons(
    summons_id: UUID,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """Get a summons with its sections in step order."""
    summons = await service.get_summons(summons_id)
    sections = await service.list_sections(summons_id)
    response = SummonsDetailResponse(**SummonsResponse.from_summons(summons).model_dump())
    response.sections = [SectionResponse.from_section(s) for s in sections]
    return response


@router.get("/{summons_id}/sections", response_model=List[SectionResponse])
async def list_sections(
    summons_id: UUID,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """List sections in step order."""
    sections = await service.list_sections(summons_id)
    return [SectionResponse.from_section(s) for s in sections]


@router.post("/{summons_id}/sections/{section_key}/generate", response_model=SectionResponse)
async def generate_section(
    summons_id: UUID,
    section_key: str,
    request: Optional[GenerateSectionRequest] = None,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """
    Generate or regenerate one section.

    Blocks for the whole generation round trip, which may take minutes.
    """
    request = request or GenerateSectionRequest()
    section = await service.generate(
        summons_id,
        section_key,
        user_fields=request.user_fields,
        user_feedback=request.user_feedback,
    )
    return SectionResponse.from_section(section)


@router.post("/{summons_id}/sections/{section_key}/approve", response_model=SectionResponse)
async def approve_section(
    summons_id: UUID,
    section_key: str,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """Approve a drafted section."""
    section = await service.approve(summons_id, section_key)
    return SectionResponse.from_section(section)


@router.post("/{summons_id}/sections/{section_key}/reject", response_model=SectionResponse)
async def reject_section(
    summons_id: UUID,
    section_key: str,
    request: RejectSectionRequest,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """Send a drafted section back with feedback."""
    section = await service.reject(summons_id, section_key, request.feedback)
    return SectionResponse.from_section(section)


@router.post("/{summons_id}/assemble", response_model=SummonsResponse)
async def assemble_summons(
    summons_id: UUID,
    request: Optional[AssembleRequest] = None,
    service: SummonsWorkflowService = Depends(get_workflow_service),
):
    """Render the final summons once every section is approved."""
    request = request or AssembleRequest()
    summons = await service.assemble(summons_id, user_fields=request.user_fields)
    return SummonsResponse.from_summons(summons)
