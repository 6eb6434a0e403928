"""
Section state machine.

Defines the valid states and transitions for summons sections.
Pure module: no dependencies on DB, providers or handlers.

    pending -> generating -> draft -> approved | needs_changes
    draft -> generating, needs_changes -> generating   (regeneration loop)

`generating` is transient: it lives on the in-memory Section for the
duration of one attempt and is never written to the store, so a failed
or interrupted attempt leaves the durable status untouched.
"""

from typing import List, Optional

from app.domain.exceptions import InvalidSectionTransitionError, ValidationError
from app.domain.models.summons import Section, SectionStatus

SECTION_VALID_TRANSITIONS = {
    SectionStatus.PENDING: [SectionStatus.GENERATING],
    # A stale generating marker (legacy rows) may always be superseded
    SectionStatus.GENERATING: [SectionStatus.DRAFT, SectionStatus.GENERATING],
    SectionStatus.DRAFT: [
        SectionStatus.APPROVED,
        SectionStatus.NEEDS_CHANGES,
        SectionStatus.GENERATING,
    ],
    SectionStatus.NEEDS_CHANGES: [SectionStatus.GENERATING],
    SectionStatus.APPROVED: [],  # Terminal state
}

DURABLE_STATUSES = frozenset({
    SectionStatus.PENDING,
    SectionStatus.DRAFT,
    SectionStatus.APPROVED,
    SectionStatus.NEEDS_CHANGES,
})


def valid_targets(current: SectionStatus) -> List[SectionStatus]:
    """Statuses reachable from the current one."""
    return list(SECTION_VALID_TRANSITIONS.get(current, []))


def validate_section_transition(current: SectionStatus, target: SectionStatus) -> bool:
    """
    Validate a section state transition.

    Args:
        current: Current state
        target: Desired target state

    Returns:
        True if the transition is valid

    Raises:
        InvalidSectionTransitionError: If the transition is not allowed
    """
    targets = valid_targets(current)
    if target not in targets:
        raise InvalidSectionTransitionError(
            current.value, target.value, [t.value for t in targets]
        )
    return True


def is_regeneration(section: Section) -> bool:
    """True when the section already carries generated text."""
    return section.generation_count > 0 and bool(section.generated_text)


def begin_generation(section: Section) -> SectionStatus:
    """
    Move a section into `generating`.

    Returns the durable status the section had before, so a failed
    attempt can be rolled back in memory.
    """
    previous = section.status
    validate_section_transition(previous, SectionStatus.GENERATING)
    section.status = SectionStatus.GENERATING
    return previous


def abort_generation(section: Section, previous: SectionStatus) -> None:
    """Restore the durable status after a failed attempt."""
    section.status = previous


def complete_generation(
    section: Section,
    text: str,
    warnings: Optional[List[str]],
    feedback: Optional[str],
) -> None:
    """
    Record a successful generation: `generating -> draft`.

    generation_count increments exactly once per successful attempt.
    """
    validate_section_transition(section.status, SectionStatus.DRAFT)
    section.status = SectionStatus.DRAFT
    section.generated_text = text
    section.generation_count += 1
    section.warnings = list(warnings) if warnings else None
    if feedback:
        section.user_feedback = feedback


def approve(section: Section) -> bool:
    """
    Approve a drafted section: `draft -> approved`.

    Approving an already-approved section is a no-op.

    Returns:
        True if the section changed, False for the idempotent case
    """
    if section.status == SectionStatus.APPROVED:
        return False
    validate_section_transition(section.status, SectionStatus.APPROVED)
    section.status = SectionStatus.APPROVED
    return True


def reject(section: Section, feedback: Optional[str]) -> None:
    """
    Reject a drafted section with feedback: `draft -> needs_changes`.

    The feedback is stored verbatim.

    Raises:
        ValidationError: If feedback is empty or whitespace
    """
    if feedback is None or not feedback.strip():
        raise ValidationError(
            "Feedback is required to reject a section",
            errors=["feedback must not be empty"],
        )
    validate_section_transition(section.status, SectionStatus.NEEDS_CHANGES)
    section.status = SectionStatus.NEEDS_CHANGES
    section.user_feedback = feedback
