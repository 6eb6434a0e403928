"""Generation providers module."""

from app.llm.providers.base import GenerationProvider, BaseGenerationProvider
from app.llm.providers.flow_runner import FlowRunProvider
from app.llm.providers.mock import MockGenerationProvider, MockCall

__all__ = [
    "GenerationProvider",
    "BaseGenerationProvider",
    "FlowRunProvider",
    "MockGenerationProvider",
    "MockCall",
]
