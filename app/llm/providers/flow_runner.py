"""Hosted flow-runner generation provider."""

import time
import logging
from typing import Optional

import httpx

from app.llm.models import GenerationRequest, GenerationResult, LLMError, LLMException
from app.llm.providers.base import BaseGenerationProvider


logger = logging.getLogger(__name__)


class FlowRunProvider(BaseGenerationProvider):
    """
    Runs named flows on a hosted agent runner and waits for the result.

    One HTTP round trip per run: the runner executes the flow named by
    the capability reference with the given launch variables and answers
    with the flow's output envelope.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        worker_id: Optional[str] = None,
        timeout: float = 600.0,
        connect_timeout: float = 10.0,
    ):
        """
        Initialize provider.

        Args:
            api_key: Bearer token for the runner
            base_url: Full URL of the run endpoint
            worker_id: Agent/worker the flows belong to
            timeout: Default round-trip timeout in seconds
            connect_timeout: Connect timeout in seconds
        """
        self._api_key = api_key
        self._base_url = base_url
        self._worker_id = worker_id
        self._timeout = timeout
        self._connect_timeout = connect_timeout

    @property
    def provider_name(self) -> str:
        return "flow_runner"

    def _retry_after(self, response: httpx.Response) -> Optional[float]:
        value = response.headers.get("retry-after")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    async def run(
        self,
        request: GenerationRequest,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """Run a flow via the runner API."""
        if request.worker_id is None and self._worker_id:
            request.worker_id = self._worker_id

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        round_trip = timeout if timeout is not None else self._timeout

        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(round_trip, connect=self._connect_timeout)
            ) as client:
                response = await client.post(
                    self._base_url,
                    json=request.to_payload(),
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            raise LLMException(LLMError.timeout(
                f"Flow {request.capability_ref} timed out after {round_trip:.0f}s: {e}"
            ))
        except httpx.RequestError as e:
            raise LLMException(LLMError.api_error(f"Request failed: {e}", 0))

        latency_ms = (time.perf_counter() - start_time) * 1000
        request_id = response.headers.get("x-request-id")

        if response.status_code == 429:
            raise LLMException(LLMError.rate_limit(
                "Rate limit exceeded",
                request_id=request_id,
                retry_after_seconds=self._retry_after(response),
            ))

        if response.status_code >= 400:
            try:
                error_body = response.json() if response.content else {}
            except ValueError:
                error_body = {}
            error_msg = response.text
            if isinstance(error_body, dict):
                error_obj = error_body.get("error")
                if isinstance(error_obj, dict):
                    error_msg = error_obj.get("message", error_msg)
                elif isinstance(error_obj, str):
                    error_msg = error_obj
            raise LLMException(LLMError.api_error(
                error_msg, response.status_code, request_id=request_id
            ))

        try:
            data = response.json()
        except ValueError as e:
            raise LLMException(LLMError.invalid_response(
                f"Flow {request.capability_ref} returned a non-JSON body: {e}"
            ))

        if isinstance(data, dict) and data.get("success") is False:
            raise LLMException(LLMError.api_error(
                f"Flow {request.capability_ref} failed: {data.get('error') or 'unknown error'}",
                response.status_code,
                request_id=request_id,
            ))

        logger.info(
            f"Flow {request.capability_ref} completed in {latency_ms:.0f}ms"
        )

        thread_id = data.get("threadId") if isinstance(data, dict) else None
        billing_cost = data.get("billingCost") if isinstance(data, dict) else None

        return GenerationResult(
            raw=data,
            capability_ref=request.capability_ref,
            latency_ms=latency_ms,
            thread_id=thread_id,
            billing_cost=billing_cost if isinstance(billing_cost, (int, float)) else None,
        )
