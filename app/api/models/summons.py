"""
Summons ORM models - persisted summons and their sections.

A summons row snapshots the template it was created from; its sections
are created once from that snapshot and keep their step order for life.
Only durable section statuses are ever written (`generating` is an
in-memory state of one attempt).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import (
    JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, CheckConstraint, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, relationship
from sqlalchemy.sql import func

from app.core.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class SummonsORM(Base):
    """A summons under assembly."""

    __tablename__ = "summons"

    id: Mapped[UUID] = Column(Uuid(as_uuid=True), primary_key=True)

    case_id: Mapped[str] = Column(String(64), nullable=False, index=True)

    # =========================================================================
    # TEMPLATE SNAPSHOT
    # =========================================================================

    template_id: Mapped[str] = Column(String(100), nullable=False)
    template_version: Mapped[str] = Column(String(20), nullable=False)

    user_fields: Mapped[Optional[Dict[str, Any]]] = Column(JSONType, nullable=True)

    status: Mapped[str] = Column(
        String(20),
        nullable=False,
        default="in_progress",
        doc="in_progress | ready",
    )
    assembled_text: Mapped[Optional[str]] = Column(Text, nullable=True)

    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    sections: Mapped[List["SummonsSectionORM"]] = relationship(
        "SummonsSectionORM",
        back_populates="summons",
        cascade="all, delete-orphan",
        order_by="SummonsSectionORM.step_order",
    )

    __table_args__ = (
        CheckConstraint("status IN ('in_progress', 'ready')", name="ck_summons_status"),
    )

    def __repr__(self) -> str:
        return f"<SummonsORM {self.id} case={self.case_id} status={self.status}>"


class SummonsSectionORM(Base):
    """One drafted and reviewed section of a summons."""

    __tablename__ = "summons_sections"

    id: Mapped[UUID] = Column(Uuid(as_uuid=True), primary_key=True)

    summons_id: Mapped[UUID] = Column(
        Uuid(as_uuid=True),
        ForeignKey("summons.id", ondelete="CASCADE"),
        nullable=False,
    )

    # =========================================================================
    # DEFINITION (fixed at creation)
    # =========================================================================

    section_key: Mapped[str] = Column(String(100), nullable=False)
    section_name: Mapped[str] = Column(Text, nullable=False)
    step_order: Mapped[int] = Column(Integer, nullable=False)
    kind: Mapped[str] = Column(String(30), nullable=False, default="generic")
    placeholder_key: Mapped[Optional[str]] = Column(String(100), nullable=True)
    flow_name: Mapped[Optional[str]] = Column(
        String(200), nullable=True, doc="Default generation capability"
    )
    feedback_flow_name: Mapped[Optional[str]] = Column(
        String(200), nullable=True, doc="Capability used when feedback is given"
    )

    # =========================================================================
    # REVIEW STATE
    # =========================================================================

    status: Mapped[str] = Column(String(20), nullable=False, default="pending")
    generated_text: Mapped[Optional[str]] = Column(Text, nullable=True)
    user_feedback: Mapped[Optional[str]] = Column(Text, nullable=True)
    generation_count: Mapped[int] = Column(Integer, nullable=False, default=0)
    warnings_json: Mapped[Optional[List[str]]] = Column(JSONType, nullable=True)

    created_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    summons: Mapped["SummonsORM"] = relationship("SummonsORM", back_populates="sections")

    __table_args__ = (
        UniqueConstraint("summons_id", "section_key", name="uq_summons_sections_key"),
        Index("idx_summons_sections_order", "summons_id", "step_order"),
        CheckConstraint(
            "status IN ('pending', 'generating', 'draft', 'approved', 'needs_changes')",
            name="ck_summons_sections_status",
        ),
        CheckConstraint("generation_count >= 0", name="ck_summons_sections_count"),
    )

    def __repr__(self) -> str:
        return f"<SummonsSectionORM {self.section_key} status={self.status}>"
