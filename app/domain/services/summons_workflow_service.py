"""
Summons Workflow Service - the section-by-section drafting loop.

Operations:
1. create_summons  - snapshot a template into a summons and its sections
2. generate        - ground, invoke, normalize and store one section draft
3. approve         - accept a draft
4. reject          - send a draft back with feedback
5. assemble        - render the final text once every section is approved

A generation attempt writes the section store exactly once, after the
round trip succeeded. Failures before that point (validation, upstream)
leave committed state untouched, so callers may simply retry.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from app.core.logging import LogContext
from app.domain.exceptions import NotFoundError
from app.domain.models.summons import (
    CaseRecord,
    Section,
    SectionStatus,
    Summons,
)
from app.domain.registry.template_registry import InMemoryTemplateRegistry
from app.domain.repositories.summons_repository import CaseRepository, SummonsRepository
from app.domain.services import section_state
from app.domain.services.content_normalizer import ContentNormalizer
from app.domain.services.context_assembler import ContextAssembler
from app.domain.services.document_assembler import DocumentAssembler
from app.domain.services.generation_invoker import GenerationInvoker
from app.domain.services.section_lock import SectionLockRegistry

logger = logging.getLogger(__name__)


class SummonsWorkflowService:
    """Coordinates section generation, review and final assembly."""

    def __init__(
        self,
        summons_repo: SummonsRepository,
        case_repo: CaseRepository,
        templates: InMemoryTemplateRegistry,
        invoker: GenerationInvoker,
        context_assembler: Optional[ContextAssembler] = None,
        normalizer: Optional[ContentNormalizer] = None,
        document_assembler: Optional[DocumentAssembler] = None,
        locks: Optional[SectionLockRegistry] = None,
        default_template_id: Optional[str] = None,
    ):
        self.summons_repo = summons_repo
        self.case_repo = case_repo
        self.templates = templates
        self.invoker = invoker
        self.context_assembler = context_assembler or ContextAssembler()
        self.normalizer = normalizer or ContentNormalizer()
        self.document_assembler = document_assembler or DocumentAssembler()
        self.locks = locks or SectionLockRegistry()
        self.default_template_id = default_template_id

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_summons(self, summons_id: UUID) -> Summons:
        summons = await self.summons_repo.get_summons(summons_id)
        if summons is None:
            raise NotFoundError("Summons", summons_id)
        return summons

    async def list_sections(self, summons_id: UUID) -> List[Section]:
        await self.get_summons(summons_id)
        return await self.summons_repo.list_sections(summons_id)

    async def _get_section(self, summons_id: UUID, section_key: str) -> Section:
        section = await self.summons_repo.get_section(summons_id, section_key)
        if section is None:
            raise NotFoundError("Section", section_key)
        return section

    async def _get_case(self, case_id: str) -> CaseRecord:
        case = await self.case_repo.get_case(case_id)
        if case is None:
            raise NotFoundError("Case", case_id)
        return case

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_summons(
        self,
        case_id: str,
        template_id: Optional[str] = None,
        user_fields: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Summons, List[Section]]:
        """
        Start a summons for a case from a template snapshot.

        Raises:
            NotFoundError: Unknown case or template
        """
        await self._get_case(case_id)
        template = self.templates.get_template(template_id or self.default_template_id)

        summons = Summons.create(
            case_id=case_id,
            template_id=template.template_id,
            template_version=template.version,
            user_fields=user_fields,
        )
        sections = [Section.from_definition(summons.id, d) for d in template.sections]
        await self.summons_repo.create_summons_with_sections(summons, sections)

        logger.info(
            f"Created summons {summons.id} for case {case_id} from "
            f"{template.template_id} v{template.version} ({len(sections)} sections)"
        )
        return summons, sections

    # =========================================================================
    # GENERATE
    # =========================================================================

    async def generate(
        self,
        summons_id: UUID,
        section_key: str,
        user_fields: Optional[Dict[str, Any]] = None,
        user_feedback: Optional[str] = None,
    ) -> Section:
        """
        Generate (or regenerate) one section draft.

        Raises:
            NotFoundError: Summons, section or case absent
            ValidationError: Missing analysis, missing jurisdiction
                localities, no capability, or the section is approved
            ConcurrentModificationError: Another operation on this section
                is in flight, a newer draft landed first, or it was approved
            UpstreamError: Round trip failed; nothing was written
        """
        with LogContext(summons_id=str(summons_id), section_key=section_key):
            async with self.locks.hold(summons_id, section_key):
                summons = await self.get_summons(summons_id)
                section = await self._get_section(summons_id, section_key)
                case = await self._get_case(summons.case_id)

                section_state.validate_section_transition(
                    section.status, SectionStatus.GENERATING
                )

                analysis = await self.case_repo.get_latest_completed_analysis(case.id)
                sections = await self.summons_repo.list_sections(summons_id)

                fields = dict(summons.user_fields)
                fields.update(user_fields or {})

                context = self.context_assembler.assemble(
                    case=case,
                    analysis=analysis,
                    sections=sections,
                    target=section,
                    user_feedback=user_feedback,
                    user_fields=fields,
                )

                expected_count = section.generation_count
                previous_status = section_state.begin_generation(section)
                logger.info(
                    f"Section {section_key}: {previous_status.value} -> generating "
                    f"(attempt {expected_count + 1})"
                )

                try:
                    result = await self.invoker.invoke(section, context, user_feedback)
                except Exception:
                    section_state.abort_generation(section, previous_status)
                    logger.info(
                        f"Section {section_key}: generation failed, "
                        f"status stays {previous_status.value}"
                    )
                    raise

                normalized = self.normalizer.normalize(result.raw)
                if normalized.degraded:
                    logger.warning(
                        f"Section {section_key} composed via {normalized.rule} rule"
                    )

                section_state.complete_generation(
                    section, normalized.text, normalized.warnings, user_feedback
                )
                saved = await self.summons_repo.save_section(
                    section, expected_generation_count=expected_count
                )

                if user_fields:
                    summons.user_fields = fields
                    await self.summons_repo.save_summons(summons)

                logger.info(
                    f"Section {section_key}: generating -> draft "
                    f"(generation_count={saved.generation_count}, rule={normalized.rule})"
                )
                return saved

    # =========================================================================
    # REVIEW
    # =========================================================================

    async def approve(self, summons_id: UUID, section_key: str) -> Section:
        """
        Approve a drafted section. Approving twice is a no-op.

        Raises:
            NotFoundError: Summons or section absent
            ValidationError: Section is not a draft
            ConcurrentModificationError: The section is being regenerated,
                or a newer draft landed since it was read
        """
        with LogContext(summons_id=str(summons_id), section_key=section_key):
            async with self.locks.hold(summons_id, section_key):
                await self.get_summons(summons_id)
                section = await self._get_section(summons_id, section_key)

                if not section_state.approve(section):
                    logger.info(f"Section {section_key} already approved")
                    return section
                saved = await self.summons_repo.save_section(
                    section, expected_generation_count=section.generation_count
                )
                logger.info(f"Section {section_key}: draft -> approved")
                return saved

    async def reject(
        self,
        summons_id: UUID,
        section_key: str,
        feedback: Optional[str],
    ) -> Section:
        """
        Reject a drafted section with reviewer feedback.

        Raises:
            NotFoundError: Summons or section absent
            ValidationError: Empty feedback, or section is not a draft
            ConcurrentModificationError: The section is being regenerated,
                or a newer draft landed since it was read
        """
        with LogContext(summons_id=str(summons_id), section_key=section_key):
            async with self.locks.hold(summons_id, section_key):
                await self.get_summons(summons_id)
                section = await self._get_section(summons_id, section_key)

                section_state.reject(section, feedback)
                saved = await self.summons_repo.save_section(
                    section, expected_generation_count=section.generation_count
                )
                logger.info(f"Section {section_key}: draft -> needs_changes")
                return saved

    # =========================================================================
    # ASSEMBLE
    # =========================================================================

    async def assemble(
        self,
        summons_id: UUID,
        user_fields: Optional[Dict[str, Any]] = None,
    ) -> Summons:
        """
        Render the final summons text.

        Raises:
            NotFoundError: Summons or its template absent
            ValidationError: A section is not approved
        """
        summons = await self.get_summons(summons_id)
        sections = await self.summons_repo.list_sections(summons_id)
        template = self.templates.get_template(summons.template_id, summons.template_version)

        with LogContext(summons_id=str(summons_id)):
            self.document_assembler.assemble(summons, template.raw_text, sections, user_fields)
            saved = await self.summons_repo.save_summons(summons)
            logger.info(f"Summons {summons_id}: in_progress -> ready")
            return saved
