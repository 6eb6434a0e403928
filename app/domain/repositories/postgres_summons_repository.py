"""
PostgreSQL implementations of the summons and case repositories.

IMPORTANT: Does NOT commit. Caller owns transaction (see get_db).
"""

import logging
from datetime import datetime, UTC
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.models.case import AnalysisORM, CaseORM
from app.api.models.summons import SummonsORM, SummonsSectionORM
from app.domain.exceptions import ConcurrentModificationError, NotFoundError
from app.domain.models.summons import (
    AnalysisRecord,
    CaseRecord,
    Section,
    SectionKind,
    SectionStatus,
    Summons,
    SummonsStatus,
)
from app.domain.services.section_state import DURABLE_STATUSES

logger = logging.getLogger(__name__)


# =============================================================================
# CONVERSIONS
# =============================================================================

def _orm_to_summons(row: SummonsORM) -> Summons:
    """Convert ORM SummonsORM to Summons domain model."""
    return Summons(
        id=row.id,
        case_id=row.case_id,
        template_id=row.template_id,
        template_version=row.template_version,
        user_fields=dict(row.user_fields or {}),
        status=SummonsStatus(row.status),
        assembled_text=row.assembled_text,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _summons_to_orm(summons: Summons, row: Optional[SummonsORM] = None) -> SummonsORM:
    """Convert Summons to ORM SummonsORM."""
    if row is None:
        row = SummonsORM(id=summons.id, created_at=summons.created_at)
    row.case_id = summons.case_id
    row.template_id = summons.template_id
    row.template_version = summons.template_version
    row.user_fields = dict(summons.user_fields) if summons.user_fields else None
    row.status = summons.status.value
    row.assembled_text = summons.assembled_text
    row.updated_at = summons.updated_at
    return row


def _orm_to_section(row: SummonsSectionORM) -> Section:
    """Convert ORM SummonsSectionORM to Section domain model."""
    status = SectionStatus(row.status or SectionStatus.PENDING.value)
    return Section(
        id=row.id,
        summons_id=row.summons_id,
        section_key=row.section_key,
        section_name=row.section_name,
        step_order=row.step_order,
        generation_capability_ref=row.flow_name,
        feedback_capability_ref=row.feedback_flow_name,
        kind=SectionKind(row.kind or SectionKind.GENERIC.value),
        placeholder_key=row.placeholder_key,
        status=status,
        generated_text=row.generated_text,
        user_feedback=row.user_feedback,
        generation_count=row.generation_count or 0,
        warnings=list(row.warnings_json) if row.warnings_json else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _section_to_orm(section: Section, row: Optional[SummonsSectionORM] = None) -> SummonsSectionORM:
    """Convert Section to ORM SummonsSectionORM."""
    if row is None:
        row = SummonsSectionORM(
            id=section.id,
            summons_id=section.summons_id,
            section_key=section.section_key,
            section_name=section.section_name,
            step_order=section.step_order,
            kind=section.kind.value,
            placeholder_key=section.placeholder_key,
            flow_name=section.generation_capability_ref,
            feedback_flow_name=section.feedback_capability_ref,
            created_at=section.created_at,
        )
    row.status = section.status.value
    row.generated_text = section.generated_text
    row.user_feedback = section.user_feedback
    row.generation_count = section.generation_count
    row.warnings_json = list(section.warnings) if section.warnings else None
    row.updated_at = section.updated_at
    return row


def _orm_to_case(row: CaseORM) -> CaseRecord:
    return CaseRecord(
        id=row.id,
        title=row.title or "",
        description=row.description,
        category=row.category,
        claim_amount=float(row.claim_amount) if row.claim_amount is not None else None,
        claimant_name=row.claimant_name,
        claimant_address=row.claimant_address,
        claimant_city=row.claimant_city,
        counterparty_name=row.counterparty_name,
        counterparty_address=row.counterparty_address,
        counterparty_city=row.counterparty_city,
        counterparty_type=row.counterparty_type,
        user_role=row.user_role or "EISER",
    )


def _orm_to_analysis(row: AnalysisORM) -> AnalysisRecord:
    return AnalysisRecord(
        id=row.id,
        case_id=row.case_id,
        version=row.version or 1,
        analysis_json=row.analysis_json,
        procedure_context=row.procedure_context,
        legal_advice_json=row.legal_advice_json,
        created_at=row.created_at,
    )


# =============================================================================
# REPOSITORIES
# =============================================================================

class PostgresSummonsRepository:
    """PostgreSQL repository via ORM. Does NOT commit internally."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_summons_with_sections(
        self, summons: Summons, sections: List[Section]
    ) -> Summons:
        self.db.add(_summons_to_orm(summons))
        for section in sections:
            self.db.add(_section_to_orm(section))
        await self.db.flush()
        return summons

    async def get_summons(self, summons_id: UUID) -> Optional[Summons]:
        result = await self.db.execute(
            select(SummonsORM).where(SummonsORM.id == summons_id)
        )
        row = result.scalar_one_or_none()
        return _orm_to_summons(row) if row else None

    async def save_summons(self, summons: Summons) -> Summons:
        result = await self.db.execute(
            select(SummonsORM).where(SummonsORM.id == summons.id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("Summons", summons.id)
        summons.updated_at = datetime.now(UTC)
        _summons_to_orm(summons, row)
        await self.db.flush()
        return summons

    async def list_sections(self, summons_id: UUID) -> List[Section]:
        result = await self.db.execute(
            select(SummonsSectionORM)
            .where(SummonsSectionORM.summons_id == summons_id)
            .order_by(SummonsSectionORM.step_order)
        )
        return [_orm_to_section(r) for r in result.scalars().all()]

    async def get_section(self, summons_id: UUID, section_key: str) -> Optional[Section]:
        result = await self.db.execute(
            select(SummonsSectionORM).where(
                SummonsSectionORM.summons_id == summons_id,
                SummonsSectionORM.section_key == section_key,
            )
        )
        row = result.scalar_one_or_none()
        return _orm_to_section(row) if row else None

    async def save_section(
        self,
        section: Section,
        expected_generation_count: Optional[int] = None,
    ) -> Section:
        """
        Write the section's review state in one UPDATE.

        With expected_generation_count the UPDATE is conditional on the
        stored count, so of two racing attempts only one can land. An
        approved row is never moved back to another status.
        """
        if section.status not in DURABLE_STATUSES:
            raise ValueError(f"{section.status.value} is not a durable section status")

        section.updated_at = datetime.now(UTC)
        stmt = (
            update(SummonsSectionORM)
            .where(
                SummonsSectionORM.summons_id == section.summons_id,
                SummonsSectionORM.section_key == section.section_key,
            )
            .values(
                status=section.status.value,
                generated_text=section.generated_text,
                user_feedback=section.user_feedback,
                generation_count=section.generation_count,
                warnings_json=list(section.warnings) if section.warnings else None,
                updated_at=section.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        if expected_generation_count is not None:
            stmt = stmt.where(SummonsSectionORM.generation_count == expected_generation_count)
        if section.status != SectionStatus.APPROVED:
            stmt = stmt.where(SummonsSectionORM.status != SectionStatus.APPROVED.value)

        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            existing = await self.get_section(section.summons_id, section.section_key)
            if existing is None:
                raise NotFoundError("Section", section.section_key)
            if existing.status == SectionStatus.APPROVED:
                reason = "section was approved in the meantime"
            else:
                reason = (
                    f"expected generation_count {expected_generation_count}, "
                    f"found {existing.generation_count}"
                )
            logger.warning(f"Conditional update refused for {section.section_key}: {reason}")
            raise ConcurrentModificationError(section.summons_id, section.section_key, reason)
        return section


class PostgresCaseRepository:
    """Read-only access to cases and analyses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_case(self, case_id: str) -> Optional[CaseRecord]:
        result = await self.db.execute(select(CaseORM).where(CaseORM.id == case_id))
        row = result.scalar_one_or_none()
        return _orm_to_case(row) if row else None

    async def get_latest_completed_analysis(self, case_id: str) -> Optional[AnalysisRecord]:
        result = await self.db.execute(
            select(AnalysisORM)
            .where(
                AnalysisORM.case_id == case_id,
                AnalysisORM.analysis_json.is_not(None),
            )
            .order_by(AnalysisORM.version.desc(), AnalysisORM.created_at.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _orm_to_analysis(row) if row else None
