"""
Summons domain models.

A Summons is the court filing under assembly; it owns an ordered set of
Sections that are drafted one at a time and gated by human review.
These are the persistence-agnostic views of the records, separate from
the SQLAlchemy ORM models.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


class SummonsStatus(str, Enum):
    """Summons status values."""
    IN_PROGRESS = "in_progress"
    READY = "ready"


class SectionStatus(str, Enum):
    """Section lifecycle states."""
    PENDING = "pending"
    GENERATING = "generating"
    DRAFT = "draft"
    APPROVED = "approved"
    NEEDS_CHANGES = "needs_changes"


class SectionKind(str, Enum):
    """
    Content kind of a section.

    Drives guards (jurisdiction needs localities), capability overrides
    (defenses use a feedback-specialized capability) and fixed sections
    that bypass generation.
    """
    JURISDICTION = "jurisdiction"
    FACTS = "facts"
    LEGAL_GROUNDS = "legal_grounds"
    DEFENSES = "defenses"
    CLAIMS = "claims"
    FIXED = "fixed"
    GENERIC = "generic"


@dataclass
class SectionDefinition:
    """One section entry of a template snapshot."""
    section_key: str
    section_name: str
    step_order: int
    generation_capability_ref: Optional[str] = None
    feedback_capability_ref: Optional[str] = None
    kind: SectionKind = SectionKind.GENERIC
    fixed_text: Optional[str] = None
    placeholder_key: Optional[str] = None

    @property
    def target_placeholder(self) -> str:
        """The {...} placeholder this section fills in the template."""
        return self.placeholder_key or self.section_key

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SectionDefinition":
        """Build from a registry/seed dict (camelCase or snake_case keys)."""
        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls(
            section_key=pick("section_key", "sectionKey"),
            section_name=pick("section_name", "sectionName"),
            step_order=int(pick("step_order", "stepOrder")),
            generation_capability_ref=pick(
                "generation_capability_ref", "generationCapabilityRef", "flowName"
            ),
            feedback_capability_ref=pick(
                "feedback_capability_ref", "feedbackCapabilityRef", "feedbackFlowName"
            ),
            kind=SectionKind(pick("kind", default=SectionKind.GENERIC.value)),
            fixed_text=pick("fixed_text", "fixedText"),
            placeholder_key=pick("placeholder_key", "placeholderKey", "aiFieldKey"),
        )


@dataclass
class Summons:
    """A multi-section filing started from one template snapshot."""
    id: UUID
    case_id: str
    template_id: str
    template_version: str
    user_fields: Dict[str, Any] = field(default_factory=dict)
    status: SummonsStatus = SummonsStatus.IN_PROGRESS
    assembled_text: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        case_id: str,
        template_id: str,
        template_version: str,
        user_fields: Optional[Dict[str, Any]] = None,
    ) -> "Summons":
        """Create a new summons with generated ID."""
        return cls(
            id=uuid4(),
            case_id=case_id,
            template_id=template_id,
            template_version=template_version,
            user_fields=dict(user_fields or {}),
        )


@dataclass
class Section:
    """One independently drafted and reviewed subdivision of a Summons."""
    id: UUID
    summons_id: UUID
    section_key: str
    section_name: str
    step_order: int
    generation_capability_ref: Optional[str] = None
    feedback_capability_ref: Optional[str] = None
    kind: SectionKind = SectionKind.GENERIC
    placeholder_key: Optional[str] = None
    status: SectionStatus = SectionStatus.PENDING
    generated_text: Optional[str] = None
    user_feedback: Optional[str] = None
    generation_count: int = 0
    warnings: Optional[List[str]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def target_placeholder(self) -> str:
        return self.placeholder_key or self.section_key

    @property
    def is_approved(self) -> bool:
        return self.status == SectionStatus.APPROVED

    @classmethod
    def from_definition(
        cls,
        summons_id: UUID,
        definition: SectionDefinition,
    ) -> "Section":
        """
        Create the section row for a template definition.

        Fixed sections are created approved with their fixed text and a
        generation count of 1; they never reach the generation capability.
        """
        section = cls(
            id=uuid4(),
            summons_id=summons_id,
            section_key=definition.section_key,
            section_name=definition.section_name,
            step_order=definition.step_order,
            generation_capability_ref=definition.generation_capability_ref,
            feedback_capability_ref=definition.feedback_capability_ref,
            kind=definition.kind,
            placeholder_key=definition.placeholder_key,
        )
        if definition.kind == SectionKind.FIXED:
            section.status = SectionStatus.APPROVED
            section.generated_text = definition.fixed_text or ""
            section.generation_count = 1
        return section


@dataclass
class CaseRecord:
    """
    Read-only view of a case (external collaborator).

    Per-case overrides of party names and localities take precedence
    over what the analysis found.
    """
    id: str
    title: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    claim_amount: Optional[float] = None
    claimant_name: Optional[str] = None
    claimant_address: Optional[str] = None
    claimant_city: Optional[str] = None
    counterparty_name: Optional[str] = None
    counterparty_address: Optional[str] = None
    counterparty_city: Optional[str] = None
    counterparty_type: Optional[str] = None
    user_role: str = "EISER"


@dataclass
class AnalysisRecord:
    """A completed legal analysis of a case (external collaborator)."""
    id: str
    case_id: str
    version: int = 1
    analysis_json: Optional[Dict[str, Any]] = None
    procedure_context: Optional[Dict[str, Any]] = None
    legal_advice_json: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
