"""Request/response tracing stage."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from httpchain.foundation.config import get_settings
from httpchain.http import HTTPRequest, HTTPResult, describe_result

from .base import Loader

logger = logging.getLogger("httpchain.loaders")


class LoggingLoader(Loader):
    """Log each request before forwarding and its result afterwards, at DEBUG.

    Values of sensitive headers are masked in both descriptions.

    Args:
        log: Logger to write to (defaults to httpchain.loaders)
        redact_headers: Header names to mask (settings default:
            Authorization, Cookie, Proxy-Authorization)
    """

    def __init__(
        self,
        log: logging.Logger | None = None,
        redact_headers: Iterable[str] | None = None,
    ) -> None:
        super().__init__()
        self.log = log or logger
        names = redact_headers if redact_headers is not None else get_settings().logging.redact_headers
        self.redact_headers = frozenset(h.lower() for h in names)

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        if not self.log.isEnabledFor(logging.DEBUG):
            return await self.forward(request)
        request_id = str(request.identifier)
        self.log.debug("LOADING REQUEST\n%s", request.describe(self.redact_headers), extra={"request_id": request_id})
        result = await self.forward(request)
        self.log.debug(
            "RECEIVED RESULT\n%s", describe_result(result, self.redact_headers), extra={"request_id": request_id}
        )
        return result
