"""Domain models for the summons drafting engine."""

from .summons import (
    AnalysisRecord,
    CaseRecord,
    Section,
    SectionDefinition,
    SectionKind,
    SectionStatus,
    Summons,
    SummonsStatus,
)

__all__ = [
    "AnalysisRecord",
    "CaseRecord",
    "Section",
    "SectionDefinition",
    "SectionKind",
    "SectionStatus",
    "Summons",
    "SummonsStatus",
]
