"""
Tests for SummonsWorkflowService.

Runs the full drafting loop against in-memory repositories and a mock
generation provider.
"""

import asyncio
import json
import pytest
from uuid import uuid4

from app.domain.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from app.domain.models.summons import (
    AnalysisRecord,
    CaseRecord,
    SectionDefinition,
    SectionKind,
    SectionStatus,
    SummonsStatus,
)
from app.domain.registry.template_registry import InMemoryTemplateRegistry, SummonsTemplate
from app.domain.repositories.in_memory_summons_repository import InMemoryCaseRepository
from app.domain.services.document_assembler import PLACEHOLDER_PATTERN
from app.domain.services.generation_invoker import GenerationInvoker
from app.domain.services.summons_workflow_service import SummonsWorkflowService
from app.llm.models import GenerationResult, LLMError
from app.llm.providers.mock import MockGenerationProvider


CASE_ID = "case-001"


async def _generate_and_approve(service, summons_id, key):
    section = await service.generate(summons_id, key)
    await service.approve(summons_id, key)
    return section


class GatedProvider:
    """Provider whose round trip waits until the test releases it."""

    provider_name = "gated"

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def run(self, request, timeout=None):
        self.started.set()
        await self.release.wait()
        return GenerationResult(
            raw={"result": {"vaststaande_feiten": ["Eén feit."]}},
            capability_ref=request.capability_ref,
        )


async def _first_draft(service, provider, summons_id, key):
    provider.release.set()
    await service.generate(summons_id, key)
    provider.release.clear()
    provider.started.clear()


# =============================================================================
# TESTS: create_summons
# =============================================================================

class TestCreateSummons:
    """Tests for create_summons."""

    @pytest.mark.asyncio
    async def test_creates_pending_sections(self, workflow_service):
        """Verify every template section starts pending in step order."""
        summons, sections = await workflow_service.create_summons(CASE_ID)

        assert summons.status == SummonsStatus.IN_PROGRESS
        assert summons.template_version == "1.0"
        assert [s.section_key for s in sections] == ["bevoegdheid", "feiten", "vorderingen"]
        assert all(s.status == SectionStatus.PENDING for s in sections)

    @pytest.mark.asyncio
    async def test_unknown_case(self, workflow_service):
        """Verify an unknown case is NotFound."""
        with pytest.raises(NotFoundError):
            await workflow_service.create_summons("no-such-case")

    @pytest.mark.asyncio
    async def test_unknown_template(self, workflow_service):
        """Verify an unknown template is NotFound."""
        with pytest.raises(NotFoundError):
            await workflow_service.create_summons(CASE_ID, template_id="onbekend")

    @pytest.mark.asyncio
    async def test_fixed_section_is_created_approved(
        self, summons_repo, case_repo, mock_provider
    ):
        """Verify fixed sections skip generation entirely."""
        registry = InMemoryTemplateRegistry()
        registry.register(SummonsTemplate(
            template_id="met_aanzegging",
            name="Met aanzegging",
            version="2.0",
            raw_text="{aanzegging}\n\n{feiten}",
            sections=[
                SectionDefinition("aanzegging", "Aanzegging", 1, kind=SectionKind.FIXED,
                                  fixed_text="Vaste tekst."),
                SectionDefinition("feiten", "Feiten", 2, "DV_Feiten.flow", kind=SectionKind.FACTS),
            ],
        ))
        service = SummonsWorkflowService(
            summons_repo, case_repo, registry, GenerationInvoker(mock_provider, 5.0),
            default_template_id="met_aanzegging",
        )

        summons, sections = await service.create_summons(CASE_ID)

        fixed = sections[0]
        assert fixed.status == SectionStatus.APPROVED
        assert fixed.generated_text == "Vaste tekst."
        assert fixed.generation_count == 1

        await _generate_and_approve(service, summons.id, "feiten")
        ready = await service.assemble(summons.id)

        assert ready.assembled_text.startswith("Vaste tekst.\n\nEiser legt de volgende feiten")
        assert [c.capability_ref for c in mock_provider.calls] == ["DV_Feiten.flow"]


# =============================================================================
# TESTS: generate
# =============================================================================

class TestGenerate:
    """Tests for generate."""

    @pytest.mark.asyncio
    async def test_first_generation(self, workflow_service, summons_repo):
        """Verify a pending section becomes a draft with count 1."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        section = await workflow_service.generate(summons.id, "bevoegdheid")

        assert section.status == SectionStatus.DRAFT
        assert section.generation_count == 1
        assert section.generated_text.startswith("De kantonrechter is bevoegd")
        stored = summons_repo.raw_section(summons.id, "bevoegdheid")
        assert stored.status == SectionStatus.DRAFT
        assert stored.generated_text == section.generated_text

    @pytest.mark.asyncio
    async def test_context_carries_only_approved_prior_sections(
        self, workflow_service, mock_provider
    ):
        """Verify each section sees exactly the approved sections before it."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        await _generate_and_approve(workflow_service, summons.id, "bevoegdheid")
        await _generate_and_approve(workflow_service, summons.id, "feiten")
        await workflow_service.generate(summons.id, "vorderingen")

        prior = [json.loads(c.variables["previous_sections"]) for c in mock_provider.calls]
        assert [len(p) for p in prior] == [0, 1, 2]
        assert [p["section_key"] for p in prior[2]] == ["bevoegdheid", "feiten"]

    @pytest.mark.asyncio
    async def test_draft_is_not_prior_context(self, workflow_service, mock_provider):
        """Verify an unapproved earlier draft is left out."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        await workflow_service.generate(summons.id, "bevoegdheid")
        await workflow_service.generate(summons.id, "feiten")

        assert json.loads(mock_provider.last_call().variables["previous_sections"]) == []

    @pytest.mark.asyncio
    async def test_regeneration_increments_once_per_attempt(
        self, workflow_service, mock_provider
    ):
        """Verify each successful attempt adds exactly one to the count."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        first = await workflow_service.generate(summons.id, "feiten")
        await workflow_service.reject(summons.id, "feiten", "Noem de leverdatum.")
        second = await workflow_service.generate(
            summons.id, "feiten", user_feedback="Noem de leverdatum."
        )

        assert first.generation_count == 1
        assert second.generation_count == 2
        assert second.status == SectionStatus.DRAFT
        variables = mock_provider.last_call().variables
        assert variables["is_regeneration"] is True
        assert variables["user_feedback"] == "Noem de leverdatum."
        assert variables["previous_text"] == first.generated_text

    @pytest.mark.asyncio
    async def test_warnings_are_stored(self, workflow_service):
        """Verify upstream warnings are kept on the section."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        section = await workflow_service.generate(summons.id, "vorderingen")

        assert section.warnings == ["Bedrag buitengerechtelijke kosten niet onderbouwd."]
        assert section.generated_text.startswith("PRIMAIR\n1. Gedaagde te veroordelen")

    @pytest.mark.asyncio
    async def test_user_fields_are_merged_and_kept(self, workflow_service, summons_repo):
        """Verify fields given with a generation are stored on the summons."""
        summons, _ = await workflow_service.create_summons(
            CASE_ID, user_fields={"naam gedaagde": "Fietsen B.V."}
        )

        await workflow_service.generate(
            summons.id, "bevoegdheid", user_fields={"woonplaats gedaagde": "Utrecht"}
        )

        stored = await summons_repo.get_summons(summons.id)
        assert stored.user_fields == {
            "naam gedaagde": "Fietsen B.V.",
            "woonplaats gedaagde": "Utrecht",
        }

    @pytest.mark.asyncio
    async def test_approved_section_cannot_regenerate(self, workflow_service):
        """Verify approved is terminal."""
        summons, _ = await workflow_service.create_summons(CASE_ID)
        await _generate_and_approve(workflow_service, summons.id, "bevoegdheid")

        with pytest.raises(ValidationError):
            await workflow_service.generate(summons.id, "bevoegdheid")

    @pytest.mark.asyncio
    async def test_unknown_summons_and_section(self, workflow_service):
        """Verify unknown identifiers are NotFound."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        with pytest.raises(NotFoundError):
            await workflow_service.generate(uuid4(), "feiten")
        with pytest.raises(NotFoundError):
            await workflow_service.generate(summons.id, "onbekend")

    @pytest.mark.asyncio
    async def test_upstream_failure_leaves_state_unchanged(
        self, workflow_service, mock_provider, summons_repo
    ):
        """Verify a failed round trip writes nothing and can be retried."""
        summons, _ = await workflow_service.create_summons(CASE_ID)
        first = await workflow_service.generate(summons.id, "feiten")
        mock_provider.set_error_on_next(LLMError.api_error("Service unavailable", 503))

        with pytest.raises(UpstreamError) as exc_info:
            await workflow_service.generate(summons.id, "feiten")

        assert exc_info.value.retryable is True
        stored = summons_repo.raw_section(summons.id, "feiten")
        assert stored.status == SectionStatus.DRAFT
        assert stored.generation_count == 1
        assert stored.generated_text == first.generated_text

        retried = await workflow_service.generate(summons.id, "feiten")
        assert retried.generation_count == 2

    @pytest.mark.asyncio
    async def test_missing_analysis(self, summons_repo, template_registry, mock_provider):
        """Verify generation without a completed analysis is refused."""
        cases = InMemoryCaseRepository()
        cases.add_case(CaseRecord(id=CASE_ID))
        cases.add_analysis(AnalysisRecord(id="pending", case_id=CASE_ID, analysis_json=None))
        service = SummonsWorkflowService(
            summons_repo, cases, template_registry, GenerationInvoker(mock_provider, 5.0),
            default_template_id="test_dagvaarding",
        )
        summons, _ = await service.create_summons(CASE_ID)

        with pytest.raises(ValidationError) as exc_info:
            await service.generate(summons.id, "feiten")

        assert exc_info.value.missing_fields == ["analysis"]
        assert mock_provider.call_count == 0
        assert summons_repo.raw_section(summons.id, "feiten").status == SectionStatus.PENDING

    @pytest.mark.asyncio
    async def test_jurisdiction_missing_claimant_locality(
        self, summons_repo, template_registry, mock_provider, analysis_factory
    ):
        """Verify the missing claimant locality is named and nothing is sent."""
        cases = InMemoryCaseRepository()
        cases.add_case(CaseRecord(id=CASE_ID))
        cases.add_analysis(AnalysisRecord(
            id="a1", case_id=CASE_ID,
            analysis_json=analysis_factory(claimant_place=None, defendant_place="Utrecht"),
        ))
        service = SummonsWorkflowService(
            summons_repo, cases, template_registry, GenerationInvoker(mock_provider, 5.0),
            default_template_id="test_dagvaarding",
        )
        summons, _ = await service.create_summons(CASE_ID)

        with pytest.raises(ValidationError) as exc_info:
            await service.generate(summons.id, "bevoegdheid")

        assert exc_info.value.missing_fields == ["woonplaats eiser"]
        assert mock_provider.call_count == 0

    @pytest.mark.asyncio
    async def test_named_locality_field_unblocks_jurisdiction(
        self, summons_repo, template_registry, mock_provider, analysis_factory
    ):
        """Verify supplying the field the guard names lets generation proceed."""
        cases = InMemoryCaseRepository()
        cases.add_case(CaseRecord(id=CASE_ID))
        cases.add_analysis(AnalysisRecord(
            id="a1", case_id=CASE_ID,
            analysis_json=analysis_factory(claimant_place=None, defendant_place="Utrecht"),
        ))
        service = SummonsWorkflowService(
            summons_repo, cases, template_registry, GenerationInvoker(mock_provider, 5.0),
            default_template_id="test_dagvaarding",
        )
        summons, _ = await service.create_summons(
            CASE_ID, user_fields={"woonplaats eiser": "Amsterdam"}
        )

        section = await service.generate(summons.id, "bevoegdheid")

        assert section.status == SectionStatus.DRAFT
        assert mock_provider.call_count == 1

    @pytest.mark.asyncio
    async def test_overlapping_attempt_is_refused(
        self, summons_repo, case_repo, template_registry
    ):
        """Verify a second attempt on a generating section fails fast."""
        started = asyncio.Event()
        release = asyncio.Event()

        class SlowProvider:
            provider_name = "slow"

            async def run(self, request, timeout=None):
                started.set()
                await release.wait()
                return GenerationResult(
                    raw={"result": {"vaststaande_feiten": ["Eén feit."]}},
                    capability_ref=request.capability_ref,
                )

        service = SummonsWorkflowService(
            summons_repo, case_repo, template_registry,
            GenerationInvoker(SlowProvider(), 5.0),
            default_template_id="test_dagvaarding",
        )
        summons, _ = await service.create_summons(CASE_ID)

        first = asyncio.create_task(service.generate(summons.id, "feiten"))
        await started.wait()

        with pytest.raises(ConcurrentModificationError):
            await service.generate(summons.id, "feiten")

        release.set()
        section = await first
        assert section.generation_count == 1
        assert section.generated_text == "1. Eén feit."


# =============================================================================
# TESTS: approve / reject
# =============================================================================

class TestReview:
    """Tests for approve and reject."""

    @pytest.mark.asyncio
    async def test_approve_is_idempotent(self, workflow_service, summons_repo):
        """Verify approving twice succeeds and changes nothing."""
        summons, _ = await workflow_service.create_summons(CASE_ID)
        draft = await workflow_service.generate(summons.id, "feiten")

        first = await workflow_service.approve(summons.id, "feiten")
        second = await workflow_service.approve(summons.id, "feiten")

        assert first.status == second.status == SectionStatus.APPROVED
        assert second.generated_text == draft.generated_text
        assert second.generation_count == 1

    @pytest.mark.asyncio
    async def test_approve_pending_fails(self, workflow_service):
        """Verify a section without a draft cannot be approved."""
        summons, _ = await workflow_service.create_summons(CASE_ID)

        with pytest.raises(ValidationError):
            await workflow_service.approve(summons.id, "feiten")

    @pytest.mark.asyncio
    async def test_reject_with_empty_feedback(self, workflow_service, summons_repo):
        """Verify empty feedback is refused and state is unchanged."""
        summons, _ = await workflow_service.create_summons(CASE_ID)
        await workflow_service.generate(summons.id, "feiten")

        with pytest.raises(ValidationError):
            await workflow_service.reject(summons.id, "feiten", "   ")

        assert summons_repo.raw_section(summons.id, "feiten").status == SectionStatus.DRAFT

    @pytest.mark.asyncio
    async def test_reject_stores_feedback(self, workflow_service):
        """Verify rejection keeps the feedback and needs changes."""
        summons, _ = await workflow_service.create_summons(CASE_ID)
        await workflow_service.generate(summons.id, "feiten")

        section = await workflow_service.reject(summons.id, "feiten", "Korter.")

        assert section.status == SectionStatus.NEEDS_CHANGES
        assert section.user_feedback == "Korter."

    @pytest.mark.asyncio
    async def test_review_refused_while_regenerating(
        self, summons_repo, case_repo, template_registry
    ):
        """Verify approve and reject fail fast while a regeneration is in flight."""
        provider = GatedProvider()
        service = SummonsWorkflowService(
            summons_repo, case_repo, template_registry, GenerationInvoker(provider, 5.0),
            default_template_id="test_dagvaarding",
        )
        summons, _ = await service.create_summons(CASE_ID)
        await _first_draft(service, provider, summons.id, "feiten")

        regeneration = asyncio.create_task(service.generate(summons.id, "feiten"))
        await provider.started.wait()

        with pytest.raises(ConcurrentModificationError):
            await service.approve(summons.id, "feiten")
        with pytest.raises(ConcurrentModificationError):
            await service.reject(summons.id, "feiten", "Korter.")

        provider.release.set()
        section = await regeneration

        assert section.status == SectionStatus.DRAFT
        assert section.generation_count == 2
        approved = await service.approve(summons.id, "feiten")
        assert approved.status == SectionStatus.APPROVED
        assert summons_repo.raw_section(summons.id, "feiten").generation_count == 2

    @pytest.mark.asyncio
    async def test_approval_survives_late_regeneration(
        self, summons_repo, case_repo, template_registry, mock_provider
    ):
        """Verify a draft landing after another worker approved is refused."""
        provider = GatedProvider()
        drafter = SummonsWorkflowService(
            summons_repo, case_repo, template_registry, GenerationInvoker(provider, 5.0),
            default_template_id="test_dagvaarding",
        )
        # Separate lock registry, as in another process
        reviewer = SummonsWorkflowService(
            summons_repo, case_repo, template_registry, GenerationInvoker(mock_provider, 5.0),
            default_template_id="test_dagvaarding",
        )
        summons, _ = await drafter.create_summons(CASE_ID)
        await _first_draft(drafter, provider, summons.id, "feiten")

        regeneration = asyncio.create_task(drafter.generate(summons.id, "feiten"))
        await provider.started.wait()
        approved = await reviewer.approve(summons.id, "feiten")
        provider.release.set()

        with pytest.raises(ConcurrentModificationError):
            await regeneration

        stored = summons_repo.raw_section(summons.id, "feiten")
        assert approved.status == SectionStatus.APPROVED
        assert stored.status == SectionStatus.APPROVED
        assert stored.generation_count == 1
        assert stored.generated_text == "1. Eén feit."


# =============================================================================
# TESTS: assemble
# =============================================================================

class TestAssemble:
    """Tests for assemble."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, workflow_service, summons_repo):
        """Verify three approved sections assemble into placeholder-free text."""
        summons, _ = await workflow_service.create_summons(
            CASE_ID,
            user_fields={"naam gedaagde": "Fietsen B.V.", "woonplaats gedaagde": "Utrecht"},
        )
        for key in ("bevoegdheid", "feiten", "vorderingen"):
            await _generate_and_approve(workflow_service, summons.id, key)

        ready = await workflow_service.assemble(summons.id, {"datum": "19 oktober 2026"})

        assert ready.status == SummonsStatus.READY
        assert PLACEHOLDER_PATTERN.search(ready.assembled_text) is None
        assert "DAGVAARDING aan Fietsen B.V. te Utrecht" in ready.assembled_text
        assert "Betwiste feiten:\n- Of de fiets bij levering gebreken had." in ready.assembled_text
        stored = await summons_repo.get_summons(summons.id)
        assert stored.assembled_text == ready.assembled_text

    @pytest.mark.asyncio
    async def test_unapproved_sections_block(self, workflow_service, summons_repo):
        """Verify assembly names the unapproved sections and writes nothing."""
        summons, _ = await workflow_service.create_summons(CASE_ID)
        await _generate_and_approve(workflow_service, summons.id, "bevoegdheid")
        await workflow_service.generate(summons.id, "feiten")

        with pytest.raises(ValidationError) as exc_info:
            await workflow_service.assemble(summons.id)

        assert exc_info.value.missing_fields == ["feiten", "vorderingen"]
        stored = await summons_repo.get_summons(summons.id)
        assert stored.status == SummonsStatus.IN_PROGRESS
        assert stored.assembled_text is None

    @pytest.mark.asyncio
    async def test_unknown_summons(self, workflow_service):
        """Verify assembling an unknown summons is NotFound."""
        with pytest.raises(NotFoundError):
            await workflow_service.assemble(uuid4())
