"""
Summons Template Registry - template snapshots and their section sets.

A template is raw filing text with two placeholder families:

- `[key]`  user-fillable fields, bound from the summons' user_fields
- `{key}`  generated fields, bound from approved section text

plus the ordered section definitions that fill the generated fields.
A summons snapshots the template id and version at creation time.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.domain.exceptions import NotFoundError
from app.domain.models.summons import SectionDefinition, SectionKind

logger = logging.getLogger(__name__)

USER_FIELD_PATTERN = re.compile(r"\[([^\]\n]*)\]")
GENERATED_FIELD_PATTERN = re.compile(r"\{([^}\n]*)\}")


# =============================================================================
# PARSING
# =============================================================================

@dataclass
class ParsedField:
    """One placeholder key and where it occurs in the template text."""
    key: str
    occurrences: int = 0
    positions: List[int] = field(default_factory=list)


@dataclass
class ParsedTemplate:
    """Placeholders found in a template, in first-occurrence order."""
    user_fields: List[ParsedField] = field(default_factory=list)
    generated_fields: List[ParsedField] = field(default_factory=list)

    @property
    def user_keys(self) -> List[str]:
        return [f.key for f in self.user_fields]

    @property
    def generated_keys(self) -> List[str]:
        return [f.key for f in self.generated_fields]


def _collect(pattern: re.Pattern, text: str) -> List[ParsedField]:
    by_key: Dict[str, ParsedField] = {}
    for match in pattern.finditer(text):
        key = match.group(1).strip()
        parsed = by_key.setdefault(key, ParsedField(key=key))
        parsed.occurrences += 1
        parsed.positions.append(match.start())
    return list(by_key.values())


def parse_template_text(text: str) -> ParsedTemplate:
    """Find every `[user]` and `{generated}` placeholder in `text`."""
    text = text or ""
    return ParsedTemplate(
        user_fields=_collect(USER_FIELD_PATTERN, text),
        generated_fields=_collect(GENERATED_FIELD_PATTERN, text),
    )


def validate_parsed_template(parsed: ParsedTemplate) -> List[str]:
    """
    Check placeholder sanity.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if not parsed.user_fields and not parsed.generated_fields:
        errors.append("Template contains no placeholders")

    if any(not key for key in parsed.user_keys):
        errors.append("Template contains an empty [ ] placeholder")
    if any(not key for key in parsed.generated_keys):
        errors.append("Template contains an empty { } placeholder")

    overlap = sorted(set(k for k in parsed.user_keys if k) & set(parsed.generated_keys))
    for key in overlap:
        errors.append(f"Placeholder '{key}' is used as both a user field and a generated field")
    return errors


def validate_section_definitions(sections: List[SectionDefinition]) -> List[str]:
    """
    Check a template's section set.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    seen_keys = set()
    previous_order: Optional[int] = None

    for definition in sections:
        if definition.section_key in seen_keys:
            errors.append(f"Duplicate section key: {definition.section_key}")
        seen_keys.add(definition.section_key)

        if previous_order is not None and definition.step_order <= previous_order:
            errors.append(
                f"Section {definition.section_key} step_order {definition.step_order} "
                f"does not follow {previous_order}"
            )
        previous_order = definition.step_order

        if definition.kind == SectionKind.FIXED:
            if not definition.fixed_text:
                errors.append(f"Fixed section {definition.section_key} has no fixed text")
        elif not definition.generation_capability_ref:
            errors.append(f"Section {definition.section_key} has no generation capability")

    return errors


# =============================================================================
# TEMPLATE
# =============================================================================

@dataclass
class SummonsTemplate:
    """A versioned summons template snapshot."""
    template_id: str
    name: str
    version: str
    raw_text: str
    sections: List[SectionDefinition] = field(default_factory=list)

    def parse(self) -> ParsedTemplate:
        return parse_template_text(self.raw_text)

    def validate(self) -> List[str]:
        """All template errors: placeholders, section set, and their binding."""
        parsed = self.parse()
        errors = validate_parsed_template(parsed) + validate_section_definitions(self.sections)
        generated = set(parsed.generated_keys)
        for definition in self.sections:
            if definition.target_placeholder not in generated:
                errors.append(
                    f"Section {definition.section_key} fills "
                    f"{{{definition.target_placeholder}}} which is not in the template text"
                )
        return errors

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SummonsTemplate":
        return cls(
            template_id=data["template_id"],
            name=data.get("name", data["template_id"]),
            version=str(data.get("version", "1.0")),
            raw_text=data["raw_text"],
            sections=[SectionDefinition.from_dict(s) for s in data.get("sections", [])],
        )


class TemplateValidationError(ValueError):
    """Raised when registering a template that fails validation."""

    def __init__(self, template_id: str, errors: List[str]):
        self.template_id = template_id
        self.errors = errors
        super().__init__(f"Template {template_id} is invalid: {'; '.join(errors)}")


# =============================================================================
# REGISTRY
# =============================================================================

class InMemoryTemplateRegistry:
    """Template registry keyed by (template_id, version)."""

    def __init__(self):
        self._templates: Dict[str, Dict[str, SummonsTemplate]] = {}
        self._latest: Dict[str, str] = {}

    def register(self, template: SummonsTemplate) -> None:
        """
        Register a template version; the last registered version is the default.

        Raises:
            TemplateValidationError: If the template fails validation
        """
        errors = template.validate()
        if errors:
            raise TemplateValidationError(template.template_id, errors)
        self._templates.setdefault(template.template_id, {})[template.version] = template
        self._latest[template.template_id] = template.version
        logger.info(
            f"Registered template {template.template_id} v{template.version} "
            f"({len(template.sections)} sections)"
        )

    def get_template(self, template_id: str, version: Optional[str] = None) -> SummonsTemplate:
        """
        Get a template by id, optionally pinned to a version.

        Raises:
            NotFoundError: Unknown template or version
        """
        versions = self._templates.get(template_id)
        if not versions:
            raise NotFoundError("Template", template_id)
        resolved = version or self._latest[template_id]
        template = versions.get(resolved)
        if template is None:
            raise NotFoundError("Template", f"{template_id}@{resolved}")
        return template

    def list_templates(self) -> List[SummonsTemplate]:
        return [self.get_template(template_id) for template_id in sorted(self._templates)]


def load_default_registry() -> InMemoryTemplateRegistry:
    """Registry populated with the seeded templates."""
    from seed.registry.summons_templates import SUMMONS_TEMPLATES

    registry = InMemoryTemplateRegistry()
    for data in SUMMONS_TEMPLATES:
        registry.register(SummonsTemplate.from_dict(data))
    return registry
