"""
In-memory summons and case repositories for testing.

Stored objects are copied on the way in and out so callers can never
mutate committed state without saving it.
"""

import copy
from datetime import datetime, UTC
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from app.domain.exceptions import ConcurrentModificationError, NotFoundError
from app.domain.models.summons import (
    AnalysisRecord,
    CaseRecord,
    Section,
    SectionStatus,
    Summons,
)
from app.domain.services.section_state import DURABLE_STATUSES


class InMemorySummonsRepository:
    """In-memory implementation of SummonsRepository."""

    def __init__(self):
        self._summons: Dict[UUID, Summons] = {}
        self._sections: Dict[Tuple[UUID, str], Section] = {}

    async def create_summons_with_sections(
        self, summons: Summons, sections: List[Section]
    ) -> Summons:
        self._summons[summons.id] = copy.deepcopy(summons)
        for section in sections:
            self._sections[(summons.id, section.section_key)] = copy.deepcopy(section)
        return copy.deepcopy(summons)

    async def get_summons(self, summons_id: UUID) -> Optional[Summons]:
        summons = self._summons.get(summons_id)
        return copy.deepcopy(summons) if summons else None

    async def save_summons(self, summons: Summons) -> Summons:
        if summons.id not in self._summons:
            raise NotFoundError("Summons", summons.id)
        summons.updated_at = datetime.now(UTC)
        self._summons[summons.id] = copy.deepcopy(summons)
        return summons

    async def list_sections(self, summons_id: UUID) -> List[Section]:
        sections = [
            copy.deepcopy(s) for (sid, _), s in self._sections.items() if sid == summons_id
        ]
        sections.sort(key=lambda s: s.step_order)
        return sections

    async def get_section(self, summons_id: UUID, section_key: str) -> Optional[Section]:
        section = self._sections.get((summons_id, section_key))
        return copy.deepcopy(section) if section else None

    async def save_section(
        self,
        section: Section,
        expected_generation_count: Optional[int] = None,
    ) -> Section:
        key = (section.summons_id, section.section_key)
        stored = self._sections.get(key)
        if stored is None:
            raise NotFoundError("Section", section.section_key)
        if (
            expected_generation_count is not None
            and stored.generation_count != expected_generation_count
        ):
            raise ConcurrentModificationError(
                section.summons_id,
                section.section_key,
                f"expected generation_count {expected_generation_count}, "
                f"found {stored.generation_count}",
            )
        if section.status not in DURABLE_STATUSES:
            raise ValueError(f"{section.status.value} is not a durable section status")
        if stored.status == SectionStatus.APPROVED and section.status != SectionStatus.APPROVED:
            raise ConcurrentModificationError(
                section.summons_id,
                section.section_key,
                "section was approved in the meantime",
            )

        section.updated_at = datetime.now(UTC)
        self._sections[key] = copy.deepcopy(section)
        return section

    # Test helpers

    def raw_section(self, summons_id: UUID, section_key: str) -> Optional[Section]:
        """The stored object itself, for asserting on committed state."""
        return self._sections.get((summons_id, section_key))


class InMemoryCaseRepository:
    """In-memory implementation of CaseRepository."""

    def __init__(self):
        self._cases: Dict[str, CaseRecord] = {}
        self._analyses: Dict[str, List[AnalysisRecord]] = {}

    def add_case(self, case: CaseRecord) -> CaseRecord:
        self._cases[case.id] = case
        return case

    def add_analysis(self, analysis: AnalysisRecord) -> AnalysisRecord:
        self._analyses.setdefault(analysis.case_id, []).append(analysis)
        return analysis

    async def get_case(self, case_id: str) -> Optional[CaseRecord]:
        return self._cases.get(case_id)

    async def get_latest_completed_analysis(self, case_id: str) -> Optional[AnalysisRecord]:
        completed = [a for a in self._analyses.get(case_id, []) if a.analysis_json]
        if not completed:
            return None
        return max(completed, key=lambda a: (a.version, a.created_at))
