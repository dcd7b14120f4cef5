"""Request rewriting stage."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

from httpchain.http import HTTPRequest, HTTPResult

from .base import Loader

RequestModifier = Callable[[HTTPRequest], HTTPRequest | Awaitable[HTTPRequest]]


class ModifierLoader(Loader):
    """Apply ``modifier`` to every request and forward the result.

    The modifier may be sync or async.

    Example:
        >>> ModifierLoader(lambda r: r.with_header("X-Client", "ios"))
    """

    def __init__(self, modifier: RequestModifier) -> None:
        super().__init__()
        self.modifier = modifier

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        modified = self.modifier(request)
        if inspect.isawaitable(modified):
            modified = await modified
        return await self.forward(modified)
