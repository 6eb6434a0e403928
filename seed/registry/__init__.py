"""
Seed data for the summons template registry.

Usage:
    from seed.registry import SUMMONS_TEMPLATES, DEFAULT_TEMPLATE_ID
"""

from seed.registry.summons_templates import DEFAULT_TEMPLATE_ID, SUMMONS_TEMPLATES

__all__ = [
    "DEFAULT_TEMPLATE_ID",
    "SUMMONS_TEMPLATES",
]
