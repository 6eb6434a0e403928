"""Generation capability boundary for the summons drafting engine."""

from app.llm.models import (
    GenerationRequest,
    GenerationResult,
    LLMError,
    LLMException,
)
from app.llm.providers.base import GenerationProvider, BaseGenerationProvider
from app.llm.providers.flow_runner import FlowRunProvider
from app.llm.providers.mock import MockGenerationProvider, MockCall

__all__ = [
    # Models
    "GenerationRequest",
    "GenerationResult",
    "LLMError",
    "LLMException",
    # Providers
    "GenerationProvider",
    "BaseGenerationProvider",
    "FlowRunProvider",
    "MockGenerationProvider",
    "MockCall",
]
