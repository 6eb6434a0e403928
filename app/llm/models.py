"""Generation capability boundary models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class GenerationRequest:
    """A run request for one generation capability (flow)."""
    capability_ref: str
    variables: Dict[str, Any] = field(default_factory=dict)
    worker_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Request body for the flow-run API."""
        payload: Dict[str, Any] = {
            "variables": self.variables,
            "workflow": self.capability_ref,
        }
        if self.worker_id:
            payload["workerId"] = self.worker_id
        return payload


@dataclass
class GenerationResult:
    """
    Response from a generation capability.

    `raw` is the decoded envelope; its shape depends on the section
    kind and is interpreted only by the content normalizer.
    """
    raw: Any
    capability_ref: str
    latency_ms: float = 0.0
    thread_id: Optional[str] = None
    billing_cost: Optional[float] = None


@dataclass
class LLMError:
    """Error from a generation provider."""
    error_type: str
    message: str
    retryable: bool = False
    status_code: Optional[int] = None
    request_id: Optional[str] = None
    retry_after_seconds: Optional[float] = None

    @classmethod
    def rate_limit(
        cls,
        message: str,
        request_id: Optional[str] = None,
        retry_after_seconds: Optional[float] = None,
    ) -> "LLMError":
        """Create a rate limit error."""
        return cls(
            error_type="rate_limit",
            message=message,
            retryable=True,
            status_code=429,
            request_id=request_id,
            retry_after_seconds=retry_after_seconds,
        )

    @classmethod
    def timeout(cls, message: str) -> "LLMError":
        """Create a timeout error."""
        return cls(
            error_type="timeout",
            message=message,
            retryable=True,
        )

    @classmethod
    def api_error(
        cls,
        message: str,
        status_code: int,
        request_id: Optional[str] = None,
        retry_after_seconds: Optional[float] = None,
    ) -> "LLMError":
        """Create an API error."""
        return cls(
            error_type="api_error",
            message=message,
            retryable=status_code >= 500 or status_code == 0,
            status_code=status_code,
            request_id=request_id,
            retry_after_seconds=retry_after_seconds,
        )

    @classmethod
    def invalid_response(cls, message: str) -> "LLMError":
        """Create an error for a response body that is not JSON."""
        return cls(
            error_type="invalid_response",
            message=message,
            retryable=False,
        )


class LLMException(Exception):
    """Exception wrapping provider errors."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)
