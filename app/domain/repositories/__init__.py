"""
Summons Repositories.

Provides storage implementations for summons, sections and the case
data they are grounded on.
"""

from app.domain.repositories.summons_repository import (
    CaseRepository,
    SummonsRepository,
)
from app.domain.repositories.in_memory_summons_repository import (
    InMemoryCaseRepository,
    InMemorySummonsRepository,
)
from app.domain.repositories.postgres_summons_repository import (
    PostgresCaseRepository,
    PostgresSummonsRepository,
)

__all__ = [
    "CaseRepository",
    "SummonsRepository",
    "InMemoryCaseRepository",
    "InMemorySummonsRepository",
    "PostgresCaseRepository",
    "PostgresSummonsRepository",
]
