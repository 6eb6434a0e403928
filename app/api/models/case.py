"""
Case and analysis ORM models (read-only).

These tables are owned by the case intake service; the summons engine
only reads the party data and the latest completed analysis.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped
from sqlalchemy.sql import func

from app.core.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class CaseORM(Base):
    __tablename__ = "cases"

    id: Mapped[str] = Column(String(64), primary_key=True)
    title: Mapped[str] = Column(Text, nullable=False)
    category: Mapped[Optional[str]] = Column(String(100))
    description: Mapped[Optional[str]] = Column(Text)
    claim_amount: Mapped[Optional[Decimal]] = Column(Numeric(10, 2))

    claimant_name: Mapped[Optional[str]] = Column(Text)
    claimant_address: Mapped[Optional[str]] = Column(Text)
    claimant_city: Mapped[Optional[str]] = Column(String(200))

    counterparty_type: Mapped[Optional[str]] = Column(String(50))
    counterparty_name: Mapped[Optional[str]] = Column(Text)
    counterparty_address: Mapped[Optional[str]] = Column(Text)
    counterparty_city: Mapped[Optional[str]] = Column(String(200))

    user_role: Mapped[str] = Column(String(20), nullable=False, default="EISER")


class AnalysisORM(Base):
    __tablename__ = "analyses"

    id: Mapped[str] = Column(String(64), primary_key=True)
    case_id: Mapped[str] = Column(String(64), nullable=False, index=True)
    version: Mapped[int] = Column(Integer, nullable=False, default=1)
    analysis_json: Mapped[Optional[Dict[str, Any]]] = Column(JSONType)
    procedure_context: Mapped[Optional[Dict[str, Any]]] = Column(JSONType)
    legal_advice_json: Mapped[Optional[Dict[str, Any]]] = Column(JSONType)
    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
