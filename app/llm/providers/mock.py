"""Mock generation provider for testing."""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.llm.models import GenerationRequest, GenerationResult, LLMError, LLMException
from app.llm.providers.base import BaseGenerationProvider


@dataclass
class MockCall:
    """Record of a mock generation call."""
    request: GenerationRequest
    timeout: Optional[float]
    timestamp: float = field(default_factory=time.time)

    @property
    def capability_ref(self) -> str:
        return self.request.capability_ref

    @property
    def variables(self) -> Dict[str, Any]:
        return self.request.variables


class MockGenerationProvider(BaseGenerationProvider):
    """Mock generation provider for testing without network calls."""

    def __init__(
        self,
        default_response: Any = None,
        responses: Optional[Dict[str, Any]] = None,
        response_fn: Optional[Callable[[GenerationRequest], Any]] = None,
        latency_ms: float = 100.0,
    ):
        """
        Initialize mock provider.

        Args:
            default_response: Envelope returned when no capability matches
            responses: Dict mapping capability refs to envelopes
            response_fn: Custom function producing an envelope per request
            latency_ms: Simulated latency
        """
        self._default_response = default_response if default_response is not None else {
            "result": {"text": "Mock response"}
        }
        self._responses = responses or {}
        self._response_fn = response_fn
        self._latency_ms = latency_ms
        self._calls: List[MockCall] = []
        self._error_on_next: Optional[LLMError] = None

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def calls(self) -> List[MockCall]:
        """Get list of all calls made to this provider."""
        return self._calls

    @property
    def call_count(self) -> int:
        """Get number of calls made."""
        return len(self._calls)

    def last_call(self) -> Optional[MockCall]:
        """Get the most recent call."""
        return self._calls[-1] if self._calls else None

    def set_error_on_next(self, error: LLMError) -> None:
        """Configure an error to be raised on the next call."""
        self._error_on_next = error

    def set_response(self, capability_ref: str, response: Any) -> None:
        """Set the envelope returned for a capability."""
        self._responses[capability_ref] = response

    def clear_calls(self) -> None:
        """Clear call history."""
        self._calls.clear()

    async def run(
        self,
        request: GenerationRequest,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """Generate mock result."""
        self._calls.append(MockCall(request=request, timeout=timeout))

        if self._error_on_next:
            error = self._error_on_next
            self._error_on_next = None
            raise LLMException(error)

        return GenerationResult(
            raw=self._get_response(request),
            capability_ref=request.capability_ref,
            latency_ms=self._latency_ms,
            thread_id=f"mock-thread-{len(self._calls)}",
        )

    def _get_response(self, request: GenerationRequest) -> Any:
        """Determine response based on configuration."""
        if self._response_fn:
            return self._response_fn(request)
        if request.capability_ref in self._responses:
            return self._responses[request.capability_ref]
        return self._default_response
