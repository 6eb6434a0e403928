"""
Context Assembler - grounding payload for one section generation attempt.

Builds, from already-committed state only:
1. The case record and resolved party names/localities
2. The latest completed analysis in canonical shape
3. Approved sections ordered strictly before the target section
4. Reviewer feedback and, for regenerations, the previous text

The jurisdiction locality guard lives here: assembly fails before any
network call when a jurisdiction section cannot name both localities.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.domain.exceptions import ValidationError
from app.domain.models.summons import (
    AnalysisRecord,
    CaseRecord,
    Section,
    SectionKind,
    SectionStatus,
)
from app.domain.services.analysis_parser import ParsedAnalysis, parse_analysis
from app.domain.services.section_state import is_regeneration

logger = logging.getLogger(__name__)

CLAIMANT_LOCALITY_FIELD = "woonplaats eiser"
DEFENDANT_LOCALITY_FIELD = "woonplaats gedaagde"

# Request-level override keys, in lookup order
CLAIMANT_NAME_KEYS = ("eiser_naam", "claimant_name")
CLAIMANT_PLACE_KEYS = (
    CLAIMANT_LOCALITY_FIELD, "woonplaats_eiser", "eiser_plaats", "eiser_woonplaats", "claimant_city",
)
DEFENDANT_NAME_KEYS = ("gedaagde_naam", "defendant_name")
DEFENDANT_PLACE_KEYS = (
    DEFENDANT_LOCALITY_FIELD, "woonplaats_gedaagde", "gedaagde_plaats", "gedaagde_woonplaats",
    "defendant_city",
)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class PartyInfo:
    """Resolved party names and localities (None when unknown)."""
    claimant_name: Optional[str] = None
    claimant_place: Optional[str] = None
    defendant_name: Optional[str] = None
    defendant_place: Optional[str] = None

    def missing_localities(self) -> List[str]:
        missing = []
        if not self.claimant_place:
            missing.append(CLAIMANT_LOCALITY_FIELD)
        if not self.defendant_place:
            missing.append(DEFENDANT_LOCALITY_FIELD)
        return missing

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "claimant_name": self.claimant_name,
            "claimant_place": self.claimant_place,
            "defendant_name": self.defendant_name,
            "defendant_place": self.defendant_place,
        }


@dataclass
class PriorSection:
    """An approved, earlier-ordered section exposed as grounding."""
    section_key: str
    section_name: str
    step_order: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section_key": self.section_key,
            "section_name": self.section_name,
            "step_order": self.step_order,
            "text": self.text,
        }


@dataclass
class GenerationContext:
    """The grounding payload for one generation attempt."""
    summons_id: str
    section_key: str
    section_name: str
    step_order: int
    kind: SectionKind
    case: Dict[str, Any]
    analysis: ParsedAnalysis
    parties: PartyInfo
    prior_sections: List[PriorSection] = field(default_factory=list)
    prior_sections_text: str = ""
    user_feedback: str = ""
    is_regeneration: bool = False
    previous_text: Optional[str] = None
    user_fields: Dict[str, Any] = field(default_factory=dict)

    def to_variables(self) -> Dict[str, Any]:
        """
        Flatten into launch variables for the generation capability.

        Structured values are JSON-encoded; the capability reads text.
        """
        variables: Dict[str, Any] = {
            "summons_id": self.summons_id,
            "section_key": self.section_key,
            "section_name": self.section_name,
            "step_order": self.step_order,
            "case_details": json.dumps(self.case, ensure_ascii=False, default=str),
            "analysis_json": json.dumps(self.analysis.to_dict(), ensure_ascii=False),
            "parties": json.dumps(self.parties.to_dict(), ensure_ascii=False),
            "eiser_naam": self.parties.claimant_name or "",
            "eiser_woonplaats": self.parties.claimant_place or "",
            "gedaagde_naam": self.parties.defendant_name or "",
            "gedaagde_woonplaats": self.parties.defendant_place or "",
            "is_kantonzaak": self.analysis.simplified_procedure_eligible,
            "previous_sections": json.dumps(
                [s.to_dict() for s in self.prior_sections], ensure_ascii=False
            ),
            "previous_sections_text": self.prior_sections_text,
            "user_feedback": self.user_feedback,
            "is_regeneration": self.is_regeneration,
            "user_fields": json.dumps(self.user_fields, ensure_ascii=False, default=str),
        }
        if self.is_regeneration:
            variables["previous_text"] = self.previous_text or ""
        return variables


# =============================================================================
# PURE HELPERS
# =============================================================================

def _first_value(source: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_present(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def resolve_parties(
    case: CaseRecord,
    analysis: ParsedAnalysis,
    overrides: Optional[Dict[str, Any]] = None,
) -> PartyInfo:
    """
    Resolve party names and localities.

    Precedence: explicit request override, then the per-case override
    stored on the case, then the value embedded in the analysis, else None.
    """
    overrides = overrides or {}
    return PartyInfo(
        claimant_name=_first_present(
            _first_value(overrides, CLAIMANT_NAME_KEYS),
            case.claimant_name,
            analysis.claimant_name,
        ),
        claimant_place=_first_present(
            _first_value(overrides, CLAIMANT_PLACE_KEYS),
            case.claimant_city,
            analysis.claimant_place,
        ),
        defendant_name=_first_present(
            _first_value(overrides, DEFENDANT_NAME_KEYS),
            case.counterparty_name,
            analysis.defendant_name,
        ),
        defendant_place=_first_present(
            _first_value(overrides, DEFENDANT_PLACE_KEYS),
            case.counterparty_city,
            analysis.defendant_place,
        ),
    )


def select_prior_sections(sections: List[Section], target: Section) -> List[PriorSection]:
    """
    Approved sections with step_order strictly below the target's.

    Ordered by step_order. Drafts and in-flight sections never leak in.
    """
    prior = [
        s for s in sections
        if s.step_order < target.step_order
        and s.status == SectionStatus.APPROVED
        and s.section_key != target.section_key
    ]
    prior.sort(key=lambda s: s.step_order)
    return [
        PriorSection(
            section_key=s.section_key,
            section_name=s.section_name,
            step_order=s.step_order,
            text=s.generated_text or "",
        )
        for s in prior
    ]


def format_prior_sections(prior: List[PriorSection]) -> str:
    """Concatenate prior sections into one human-readable block."""
    blocks = []
    for section in prior:
        header = f"=== {section.step_order}. {section.section_name} ({section.section_key}) ==="
        blocks.append(f"{header}\n{section.text.strip()}")
    return "\n\n".join(blocks)


def case_summary(case: CaseRecord) -> Dict[str, Any]:
    """The case fields forwarded to the capability."""
    return {
        "id": case.id,
        "title": case.title,
        "description": case.description,
        "category": case.category,
        "claim_amount": case.claim_amount,
        "claimant_address": case.claimant_address,
        "counterparty_address": case.counterparty_address,
        "counterparty_type": case.counterparty_type,
        "user_role": case.user_role,
    }


# =============================================================================
# CONTEXT ASSEMBLER
# =============================================================================

class ContextAssembler:
    """Builds the grounding payload for a section generation attempt."""

    def assemble(
        self,
        case: CaseRecord,
        analysis: Optional[AnalysisRecord],
        sections: List[Section],
        target: Section,
        user_feedback: Optional[str] = None,
        user_fields: Optional[Dict[str, Any]] = None,
    ) -> GenerationContext:
        """
        Assemble the context for `target`.

        Args:
            case: The owning case
            analysis: Latest completed analysis (None if none exists)
            sections: All sections of the same summons, as committed
            target: The section about to be generated
            user_feedback: Reviewer feedback for this attempt
            user_fields: Caller-supplied fields, also used as party overrides

        Raises:
            ValidationError: No completed analysis, or a jurisdiction
                section without both party localities
        """
        if analysis is None:
            raise ValidationError(
                "A completed case analysis is required before generating sections",
                errors=["no completed analysis for case"],
                missing_fields=["analysis"],
            )

        parsed = parse_analysis(analysis.analysis_json, analysis.procedure_context)
        fields = dict(user_fields or {})
        parties = resolve_parties(case, parsed, fields)

        if target.kind == SectionKind.JURISDICTION:
            missing = parties.missing_localities()
            if missing:
                logger.info(
                    f"Jurisdiction context for {target.section_key} is missing {missing}"
                )
                raise ValidationError(
                    f"Missing locality data for jurisdiction section: {', '.join(missing)}",
                    missing_fields=missing,
                )

        prior = select_prior_sections(sections, target)
        regeneration = is_regeneration(target)

        context = GenerationContext(
            summons_id=str(target.summons_id),
            section_key=target.section_key,
            section_name=target.section_name,
            step_order=target.step_order,
            kind=target.kind,
            case=case_summary(case),
            analysis=parsed,
            parties=parties,
            prior_sections=prior,
            prior_sections_text=format_prior_sections(prior),
            user_feedback=user_feedback or "",
            is_regeneration=regeneration,
            previous_text=target.generated_text if regeneration else None,
            user_fields=fields,
        )

        logger.debug(
            f"Assembled context for {target.section_key}: "
            f"{len(prior)} prior section(s), regeneration={regeneration}"
        )
        return context
