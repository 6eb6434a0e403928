"""
Summons Template Registry.

Usage:
    from app.domain.registry import load_default_registry

    registry = load_default_registry()
    template = registry.get_template("dagvaarding_kanton")
"""

from app.domain.registry.template_registry import (
    InMemoryTemplateRegistry,
    ParsedField,
    ParsedTemplate,
    SummonsTemplate,
    TemplateValidationError,
    load_default_registry,
    parse_template_text,
    validate_parsed_template,
    validate_section_definitions,
)

__all__ = [
    "InMemoryTemplateRegistry",
    "ParsedField",
    "ParsedTemplate",
    "SummonsTemplate",
    "TemplateValidationError",
    "load_default_registry",
    "parse_template_text",
    "validate_parsed_template",
    "validate_section_definitions",
]
