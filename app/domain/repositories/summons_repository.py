"""
Repository protocols for summons, sections and their case inputs.

Key design rules:
- Repository does NOT commit (caller owns transaction)
- Domain dataclasses in and out (no ORM dependency)
- Section writes carry an optional optimistic check on generation_count
"""

from typing import List, Optional, Protocol, runtime_checkable
from uuid import UUID

from app.domain.models.summons import AnalysisRecord, CaseRecord, Section, Summons


@runtime_checkable
class SummonsRepository(Protocol):
    """Storage for summons and their sections."""

    async def create_summons_with_sections(
        self, summons: Summons, sections: List[Section]
    ) -> Summons:
        """Persist a new summons together with its full section set."""
        ...

    async def get_summons(self, summons_id: UUID) -> Optional[Summons]:
        ...

    async def save_summons(self, summons: Summons) -> Summons:
        """Update summons status, fields and assembled text."""
        ...

    async def list_sections(self, summons_id: UUID) -> List[Section]:
        """All sections of a summons, ordered by step_order."""
        ...

    async def get_section(self, summons_id: UUID, section_key: str) -> Optional[Section]:
        ...

    async def save_section(
        self,
        section: Section,
        expected_generation_count: Optional[int] = None,
    ) -> Section:
        """
        Persist a section's review state.

        Raises:
            ConcurrentModificationError: If expected_generation_count is
                given and no longer matches the stored value
        """
        ...


@runtime_checkable
class CaseRepository(Protocol):
    """Read access to the case and its analyses."""

    async def get_case(self, case_id: str) -> Optional[CaseRecord]:
        ...

    async def get_latest_completed_analysis(self, case_id: str) -> Optional[AnalysisRecord]:
        """Highest-version analysis that carries a result, or None."""
        ...
