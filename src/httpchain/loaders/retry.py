"""Resubmission of requests that came back with a non-2xx response."""

from __future__ import annotations

import logging

from httpchain.foundation.concurrency import cancellable_sleep
from httpchain.http import HTTPRequest, HTTPResult, request_of, response_of

from .backoff import Backoff
from .base import Loader

logger = logging.getLogger("httpchain.loaders")


class RetryLoader(Loader):
    """Resubmit retryable requests whose response status is not 2xx.

    Only results that carry a response are considered, so connectivity
    failures (which never have one) pass straight through. A request is
    resubmitted while ``can_retry`` is set and its ``retry_count`` is below
    ``max_retry_count``; each resubmission goes through this stage's own
    ``load`` so cancellation is rechecked.

    Args:
        max_retry_count: Upper bound on resubmissions per request (0..255)
        backoff: Optional delay strategy applied before each resubmission
    """

    def __init__(self, max_retry_count: int = 1, backoff: Backoff | None = None) -> None:
        super().__init__()
        if not 0 <= max_retry_count <= 255:
            raise ValueError("max_retry_count must be within 0..255")
        self.max_retry_count = max_retry_count
        self.backoff = backoff

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        result = await self.forward(request)

        response = response_of(result)
        if response is None or response.is_status_code_valid:
            return result

        attempted = request_of(result)
        if not attempted.can_retry or attempted.retry_count >= self.max_retry_count:
            return result

        attempt = attempted.retry_count
        if self.backoff is not None:
            await cancellable_sleep(self.backoff.delay(attempt))
        logger.info(
            "Retrying %s %s after status %d (attempt %d/%d)",
            attempted.method.value, attempted.url, response.status_code, attempt + 1, self.max_retry_count,
            extra={"request_id": str(attempted.identifier)},
        )
        return await self.load(attempted.replace(retry_count=attempt + 1))

    def __repr__(self) -> str:
        return f"RetryLoader(max_retry_count={self.max_retry_count})"
