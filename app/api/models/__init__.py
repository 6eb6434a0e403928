"""
ORM models for the summons engine.
"""
from app.api.models.summons import SummonsORM, SummonsSectionORM
from app.api.models.case import CaseORM, AnalysisORM
__all__ = [
    'SummonsORM',
    'SummonsSectionORM',
    'CaseORM',
    'AnalysisORM',
]
