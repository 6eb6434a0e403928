"""
Generation Invoker - one bounded round trip to a section's capability.

Chooses the capability for the section (feedback-specialized for the
defenses section when feedback was given), submits the assembled
context as launch variables, and maps every transport/provider failure
to UpstreamError. Nothing is persisted here.
"""

import asyncio
import logging
from typing import Optional

from app.core.config import settings
from app.domain.exceptions import UpstreamError, ValidationError
from app.domain.models.summons import Section, SectionKind
from app.domain.services.context_assembler import GenerationContext
from app.llm.models import GenerationRequest, GenerationResult, LLMException
from app.llm.providers.base import GenerationProvider

logger = logging.getLogger(__name__)

# Outer bound on top of the provider's own HTTP timeout
_TIMEOUT_GRACE_SECONDS = 5.0


def select_capability(section: Section, user_feedback: Optional[str]) -> str:
    """
    Pick the capability reference for this attempt.

    Feedback on a defenses section routes to its feedback-specialized
    capability; every other attempt uses the section's default.

    Raises:
        ValidationError: If no capability is configured for the section
    """
    has_feedback = bool(user_feedback and user_feedback.strip())
    if (
        has_feedback
        and section.kind == SectionKind.DEFENSES
        and section.feedback_capability_ref
    ):
        return section.feedback_capability_ref

    if not section.generation_capability_ref:
        raise ValidationError(
            f"No generation capability configured for section {section.section_key}",
            errors=[f"section {section.section_key} has no capability reference"],
        )
    return section.generation_capability_ref


class GenerationInvoker:
    """Submits grounding payloads to the generation capability."""

    def __init__(
        self,
        provider: GenerationProvider,
        timeout_seconds: Optional[float] = None,
        worker_id: Optional[str] = None,
    ):
        """
        Args:
            provider: Generation provider (flow runner or mock)
            timeout_seconds: Round-trip bound; defaults to configuration
            worker_id: Optional worker identifier sent with each run
        """
        self.provider = provider
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.GENERATION_TIMEOUT_SECONDS
        )
        self.worker_id = worker_id

    async def invoke(
        self,
        section: Section,
        context: GenerationContext,
        user_feedback: Optional[str] = None,
    ) -> GenerationResult:
        """
        Run the section's capability with the assembled context.

        Raises:
            ValidationError: No capability configured (before any network call)
            UpstreamError: Round trip failed or exceeded the timeout
        """
        capability_ref = select_capability(section, user_feedback)
        request = GenerationRequest(
            capability_ref=capability_ref,
            variables=context.to_variables(),
            worker_id=self.worker_id,
        )

        logger.info(
            f"Invoking {capability_ref} for section {section.section_key} "
            f"(timeout {self.timeout_seconds:.0f}s)"
        )

        try:
            result = await asyncio.wait_for(
                self.provider.run(request, timeout=self.timeout_seconds),
                timeout=self.timeout_seconds + _TIMEOUT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Generation for {section.section_key} via {capability_ref} timed out"
            )
            raise UpstreamError(
                f"Generation timed out after {self.timeout_seconds:.0f}s",
                capability_ref=capability_ref,
                retryable=True,
            )
        except LLMException as e:
            logger.error(
                f"Generation for {section.section_key} via {capability_ref} failed: "
                f"{e.error.error_type}: {e.error.message}",
                exc_info=True,
            )
            raise UpstreamError(
                f"Generation failed: {e.error.message}",
                capability_ref=capability_ref,
                retryable=e.error.retryable,
                status_code=e.error.status_code,
                retry_after_seconds=e.error.retry_after_seconds,
            ) from e

        logger.info(
            f"Generation for {section.section_key} returned in {result.latency_ms:.0f}ms"
        )
        return result
