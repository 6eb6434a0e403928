"""Tests for summons repository implementations."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from app.api.models.case import AnalysisORM, CaseORM
from app.api.models.summons import SummonsSectionORM
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
from app.domain.repositories.in_memory_summons_repository import (
    InMemoryCaseRepository,
    InMemorySummonsRepository,
)
from app.domain.repositories.postgres_summons_repository import (
    PostgresSummonsRepository,
    _orm_to_analysis,
    _orm_to_case,
    _orm_to_section,
    _orm_to_summons,
    _section_to_orm,
    _summons_to_orm,
)


def _summons():
    return Summons.create("case-001", "dagvaarding_kanton", "1.0", {"datum": "vandaag"})


def _section(summons, key="feiten", order=1, **kwargs):
    return Section(
        id=uuid4(),
        summons_id=summons.id,
        section_key=key,
        section_name=key.title(),
        step_order=order,
        generation_capability_ref="DV_Feiten.flow",
        kind=SectionKind.FACTS,
        **kwargs,
    )


# =============================================================================
# TESTS: In-memory summons repository
# =============================================================================

class TestInMemorySummonsRepository:
    """Tests for InMemorySummonsRepository."""

    @pytest.mark.asyncio
    async def test_create_and_list_in_step_order(self):
        """Sections come back ordered by step_order."""
        repo = InMemorySummonsRepository()
        summons = _summons()
        await repo.create_summons_with_sections(
            summons, [_section(summons, "b", 2), _section(summons, "a", 1)]
        )

        sections = await repo.list_sections(summons.id)

        assert [s.section_key for s in sections] == ["a", "b"]
        assert (await repo.get_summons(summons.id)).user_fields == {"datum": "vandaag"}

    @pytest.mark.asyncio
    async def test_returned_objects_are_copies(self):
        """Mutating a loaded section does not change committed state."""
        repo = InMemorySummonsRepository()
        summons = _summons()
        await repo.create_summons_with_sections(summons, [_section(summons)])

        loaded = await repo.get_section(summons.id, "feiten")
        loaded.status = SectionStatus.DRAFT

        assert repo.raw_section(summons.id, "feiten").status == SectionStatus.PENDING

    @pytest.mark.asyncio
    async def test_optimistic_check(self):
        """A stale expected count is refused."""
        repo = InMemorySummonsRepository()
        summons = _summons()
        await repo.create_summons_with_sections(summons, [_section(summons)])
        section = await repo.get_section(summons.id, "feiten")
        section.status = SectionStatus.DRAFT
        section.generated_text = "tekst"
        section.generation_count = 1
        await repo.save_section(section, expected_generation_count=0)

        with pytest.raises(ConcurrentModificationError):
            await repo.save_section(section, expected_generation_count=0)

    @pytest.mark.asyncio
    async def test_generating_is_never_stored(self):
        """The transient status cannot be persisted."""
        repo = InMemorySummonsRepository()
        summons = _summons()
        await repo.create_summons_with_sections(summons, [_section(summons)])
        section = await repo.get_section(summons.id, "feiten")
        section.status = SectionStatus.GENERATING

        with pytest.raises(ValueError):
            await repo.save_section(section)

    @pytest.mark.asyncio
    async def test_approved_section_is_not_overwritten(self):
        """A stored approval cannot be replaced by a later draft."""
        repo = InMemorySummonsRepository()
        summons = _summons()
        await repo.create_summons_with_sections(
            summons, [_section(summons, status=SectionStatus.APPROVED, generation_count=1)]
        )
        late_draft = await repo.get_section(summons.id, "feiten")
        late_draft.status = SectionStatus.DRAFT
        late_draft.generated_text = "nieuwe tekst"

        with pytest.raises(ConcurrentModificationError):
            await repo.save_section(late_draft, expected_generation_count=1)

        assert repo.raw_section(summons.id, "feiten").status == SectionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_missing_rows(self):
        """Saving unknown rows is NotFound; reading them is None."""
        repo = InMemorySummonsRepository()
        summons = _summons()

        assert await repo.get_summons(summons.id) is None
        assert await repo.get_section(summons.id, "feiten") is None
        with pytest.raises(NotFoundError):
            await repo.save_summons(summons)
        with pytest.raises(NotFoundError):
            await repo.save_section(_section(summons))


class TestInMemoryCaseRepository:
    """Tests for InMemoryCaseRepository."""

    @pytest.mark.asyncio
    async def test_latest_completed_analysis(self):
        """The highest completed version wins; incomplete ones are skipped."""
        repo = InMemoryCaseRepository()
        repo.add_analysis(AnalysisRecord(id="a1", case_id="c", version=1, analysis_json={"x": 1}))
        repo.add_analysis(AnalysisRecord(id="a2", case_id="c", version=2, analysis_json={"x": 2}))
        repo.add_analysis(AnalysisRecord(id="a3", case_id="c", version=3, analysis_json=None))

        latest = await repo.get_latest_completed_analysis("c")

        assert latest.id == "a2"

    @pytest.mark.asyncio
    async def test_no_analysis(self):
        """No completed analysis yields None."""
        repo = InMemoryCaseRepository()
        repo.add_case(CaseRecord(id="c"))

        assert await repo.get_latest_completed_analysis("c") is None
        assert (await repo.get_case("c")).id == "c"


# =============================================================================
# TESTS: ORM conversion
# =============================================================================

class TestSummonsConversion:
    """Tests for ORM <-> domain model conversion."""

    def test_summons_round_trip(self):
        """Convert Summons to ORM and back."""
        summons = _summons()
        summons.status = SummonsStatus.READY
        summons.assembled_text = "Eindtekst"

        restored = _orm_to_summons(_summons_to_orm(summons))

        assert restored.id == summons.id
        assert restored.status == SummonsStatus.READY
        assert restored.assembled_text == "Eindtekst"
        assert restored.user_fields == {"datum": "vandaag"}

    def test_section_to_orm_maps_capability_columns(self):
        """Capability references land in the flow name columns."""
        summons = _summons()
        section = _section(summons, warnings=["let op"])
        section.feedback_capability_ref = "DV_Feiten_Feedback.flow"

        row = _section_to_orm(section)

        assert row.flow_name == "DV_Feiten.flow"
        assert row.feedback_flow_name == "DV_Feiten_Feedback.flow"
        assert row.kind == "facts"
        assert row.status == "pending"
        assert row.warnings_json == ["let op"]

    def test_orm_to_section_defaults(self):
        """Null columns map to domain defaults."""
        row = SummonsSectionORM(
            id=uuid4(),
            summons_id=uuid4(),
            section_key="feiten",
            section_name="Feiten",
            step_order=1,
            kind=None,
            status=None,
            generation_count=None,
            warnings_json=None,
        )

        section = _orm_to_section(row)

        assert section.status == SectionStatus.PENDING
        assert section.kind == SectionKind.GENERIC
        assert section.generation_count == 0
        assert section.warnings is None

    def test_case_and_analysis_conversion(self):
        """Case and analysis rows convert to read-only records."""
        case = _orm_to_case(CaseORM(
            id="c", title=None, claim_amount=1200, claimant_city="Amsterdam", user_role=None,
        ))
        analysis = _orm_to_analysis(AnalysisORM(
            id="a", case_id="c", version=None, analysis_json={"facts": {}},
            created_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
        ))

        assert case.title == ""
        assert case.claim_amount == 1200.0
        assert case.user_role == "EISER"
        assert analysis.version == 1
        assert analysis.analysis_json == {"facts": {}}


class TestPostgresSaveSection:
    """Tests for the conditional section UPDATE."""

    @pytest.mark.asyncio
    async def test_update_applied(self):
        """A matching row count returns the section."""
        db = MagicMock()
        db.execute = AsyncMock(return_value=MagicMock(rowcount=1))
        repo = PostgresSummonsRepository(db)
        section = _section(_summons(), status=SectionStatus.DRAFT, generation_count=1)

        saved = await repo.save_section(section, expected_generation_count=0)

        assert saved is section
        db.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_count_is_conflict(self):
        """No updated row with an existing section is a conflict."""
        summons = _summons()
        section = _section(summons, status=SectionStatus.DRAFT, generation_count=2)
        existing = _section_to_orm(_section(summons, generation_count=2))
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = existing
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[MagicMock(rowcount=0), lookup])
        repo = PostgresSummonsRepository(db)

        with pytest.raises(ConcurrentModificationError):
            await repo.save_section(section, expected_generation_count=1)

    @pytest.mark.asyncio
    async def test_missing_row_is_not_found(self):
        """No updated row and no section is NotFound."""
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = None
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[MagicMock(rowcount=0), lookup])
        repo = PostgresSummonsRepository(db)

        with pytest.raises(NotFoundError):
            await repo.save_section(_section(_summons(), status=SectionStatus.DRAFT))

    @pytest.mark.asyncio
    async def test_generating_refused_before_query(self):
        """The transient status never reaches the database."""
        db = MagicMock()
        db.execute = AsyncMock()
        repo = PostgresSummonsRepository(db)

        with pytest.raises(ValueError):
            await repo.save_section(_section(_summons(), status=SectionStatus.GENERATING))

        db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_approval_update_excludes_approved_rows(self):
        """A draft write is conditional on the row not being approved."""
        db = MagicMock()
        db.execute = AsyncMock(return_value=MagicMock(rowcount=1))
        repo = PostgresSummonsRepository(db)

        await repo.save_section(
            _section(_summons(), status=SectionStatus.DRAFT, generation_count=2),
            expected_generation_count=1,
        )

        stmt = db.execute.await_args.args[0]
        assert "summons_sections.status !=" in str(stmt)

    @pytest.mark.asyncio
    async def test_approved_row_is_conflict(self):
        """No updated row because the section was approved is a conflict."""
        summons = _summons()
        existing = _section_to_orm(
            _section(summons, status=SectionStatus.APPROVED, generation_count=1)
        )
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = existing
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[MagicMock(rowcount=0), lookup])
        repo = PostgresSummonsRepository(db)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            await repo.save_section(
                _section(summons, status=SectionStatus.DRAFT, generation_count=2),
                expected_generation_count=1,
            )

        assert "approved in the meantime" in str(exc_info.value)
