"""
Summons engine exceptions.

Raised by the section workflow and its collaborators; each carries
enough detail for an actionable API response.
"""

from typing import Any, Dict, List, Optional


class SummonsEngineError(Exception):
    """Base exception for all summons engine errors."""

    error_kind = "summons_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "error": self.error_kind,
            "message": self.message,
        }


class NotFoundError(SummonsEngineError):
    """Raised when a case, analysis, summons, section or template is absent."""

    error_kind = "not_found"

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["entity"] = self.entity
        data["identifier"] = str(self.identifier)
        return data


class ValidationError(SummonsEngineError):
    """
    Raised when an operation's preconditions are not met.

    This typically means:
    - No completed analysis to ground generation on
    - Party localities missing for a jurisdiction section
    - Empty feedback on reject
    - Sections not yet approved at assembly time
    """

    error_kind = "validation_error"

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        missing_fields: Optional[List[str]] = None,
    ):
        self.errors = list(errors or [])
        self.missing_fields = list(missing_fields or [])
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        if self.missing_fields:
            data["missing_fields"] = self.missing_fields
        return data


class InvalidSectionTransitionError(ValidationError):
    """Raised when an invalid section state transition is attempted."""

    def __init__(self, current: str, target: str, valid_targets: List[str]):
        self.current = current
        self.target = target
        self.valid_targets = valid_targets
        super().__init__(
            f"Invalid section transition: {current} -> {target}. "
            f"Valid targets from {current}: {valid_targets}",
            errors=[f"{current} -> {target}"],
        )


class ConcurrentModificationError(ValidationError):
    """Raised when another attempt on the same section is in flight or won the race."""

    error_kind = "conflict"

    def __init__(self, summons_id: Any, section_key: str, detail: str = ""):
        self.summons_id = summons_id
        self.section_key = section_key
        message = f"Section {section_key} of summons {summons_id} was modified concurrently"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class UpstreamError(SummonsEngineError):
    """
    Raised when the generation round trip fails or times out.

    No section state has been written when this is raised, so the
    caller may simply retry.
    """

    error_kind = "upstream_error"

    def __init__(
        self,
        message: str,
        capability_ref: Optional[str] = None,
        retryable: bool = True,
        status_code: Optional[int] = None,
        retry_after_seconds: Optional[float] = None,
    ):
        self.capability_ref = capability_ref
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["capability_ref"] = self.capability_ref
        data["retryable"] = self.retryable
        if self.retry_after_seconds is not None:
            data["retry_after_seconds"] = self.retry_after_seconds
        return data
