"""
Document Assembler - final summons text from approved sections.

Substitutes both placeholder families of the template text in a single
pass, so text inserted for one placeholder is never itself scanned for
placeholders:

- `[key]`  -> caller-supplied field value
- `{key}`  -> approved generated text of the section filling `key`

Unbound placeholders become the empty string.
"""

import logging
import re
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from app.domain.exceptions import ValidationError
from app.domain.models.summons import Section, Summons, SummonsStatus

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\[([^\]\n]*)\]|\{([^}\n]*)\}")


def _field_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def unapproved_sections(sections: List[Section]) -> List[Section]:
    """Sections that still block assembly, in step order."""
    return sorted(
        (s for s in sections if not s.is_approved),
        key=lambda s: s.step_order,
    )


def render_template(
    raw_text: str,
    user_fields: Dict[str, Any],
    section_texts: Dict[str, str],
) -> str:
    """
    Substitute every placeholder in `raw_text`.

    Args:
        raw_text: Template text
        user_fields: Values for `[key]` placeholders
        section_texts: Values for `{key}` placeholders

    Returns:
        Text with no placeholder left
    """
    fields = {str(k).strip(): v for k, v in user_fields.items()}

    def substitute(match: re.Match) -> str:
        user_key, generated_key = match.group(1), match.group(2)
        if user_key is not None:
            return _field_text(fields.get(user_key.strip()))
        return section_texts.get(generated_key.strip(), "")

    return PLACEHOLDER_PATTERN.sub(substitute, raw_text or "")


class DocumentAssembler:
    """Renders the final summons once every section is approved."""

    def assemble(
        self,
        summons: Summons,
        raw_text: str,
        sections: List[Section],
        user_fields: Optional[Dict[str, Any]] = None,
    ) -> Summons:
        """
        Render the summons text and mark the summons ready.

        Field values supplied here override those stored on the summons.

        Raises:
            ValidationError: If any section is not approved
        """
        blocking = unapproved_sections(sections)
        if blocking:
            raise ValidationError(
                f"{len(blocking)} section(s) must be approved before assembly",
                errors=[f"{s.section_key}: {s.status.value}" for s in blocking],
                missing_fields=[s.section_key for s in blocking],
            )

        fields = dict(summons.user_fields)
        fields.update(user_fields or {})

        section_texts: Dict[str, str] = {}
        for section in sorted(sections, key=lambda s: s.step_order):
            text = section.generated_text or ""
            section_texts[section.target_placeholder] = text
            section_texts.setdefault(section.section_key, text)

        summons.assembled_text = render_template(raw_text, fields, section_texts)
        summons.user_fields = fields
        summons.status = SummonsStatus.READY
        summons.updated_at = datetime.now(UTC)

        logger.info(
            f"Assembled summons {summons.id} from {len(sections)} section(s), "
            f"{len(summons.assembled_text)} characters"
        )
        return summons
