"""Generation provider base protocol."""

from abc import ABC, abstractmethod
from typing import Optional, Protocol, runtime_checkable

from app.llm.models import GenerationRequest, GenerationResult


@runtime_checkable
class GenerationProvider(Protocol):
    """Protocol for generation capability providers."""

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'flow_runner', 'mock')."""
        ...

    async def run(
        self,
        request: GenerationRequest,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """
        Run one generation capability to completion.

        Args:
            request: Capability reference and launch variables
            timeout: Round-trip bound in seconds (provider default if None)

        Returns:
            GenerationResult carrying the decoded response envelope

        Raises:
            LLMException: On provider errors
        """
        ...


class BaseGenerationProvider(ABC):
    """Base class for generation providers with common functionality."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        ...

    @abstractmethod
    async def run(
        self,
        request: GenerationRequest,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """Run a capability."""
        ...
