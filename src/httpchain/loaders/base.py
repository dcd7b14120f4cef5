"""Loader base class and chain composition.

A loader receives an ``HTTPRequest`` and returns an ``HTTPResult``. Stages are
wired into a singly-linked chain once, by ``LoaderChain``; each stage may
transform the request, short-circuit with a result, or forward downstream and
post-process what comes back.

Every stage checks the ambient cancellation signal (see
``httpchain.foundation.concurrency``) before doing anything else.

Example:
    >>> chain = LoaderChain([EnvironmentLoader(prod), RetryLoader(2), TransportLoader()])
    >>> result = await chain.load(HTTPRequest.get("/users/42"))
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from httpchain.foundation.concurrency import is_cancelled
from httpchain.foundation.errors import Err, HTTPError, HTTPErrorCode, LoaderConfigurationError
from httpchain.http import HTTPRequest, HTTPResult


@runtime_checkable
class SupportsLoad(Protocol):
    """Anything that turns a request into a result: a stage or a whole chain."""

    async def load(self, request: HTTPRequest) -> HTTPResult: ...


class Loader(ABC):
    """One stage of a loader chain.

    Override ``resolve`` to add behavior; call ``forward`` to pass a request
    to the next stage. The default ``resolve`` forwards unchanged.

    Terminal stages set ``terminal = True`` and must be last in a chain.
    """

    terminal: bool = False

    def __init__(self) -> None:
        self._next: Loader | None = None
        self._wired = False

    @property
    def next(self) -> Loader | None:
        """The successor stage, if any."""
        return self._next

    async def load(self, request: HTTPRequest) -> HTTPResult:
        if is_cancelled():
            return Err(HTTPError(HTTPErrorCode.CANCELLED, request))
        return await self.resolve(request)

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        return await self.forward(request)

    async def forward(self, request: HTTPRequest) -> HTTPResult:
        """Hand the request to the successor; no successor means nothing can connect."""
        if self._next is None:
            return Err(HTTPError(HTTPErrorCode.CANNOT_CONNECT, request))
        return await self._next.load(request)

    def _attach(self, successor: Loader | None) -> None:
        if self._wired:
            raise LoaderConfigurationError(
                f"{type(self).__name__} is already part of a chain; stages cannot be shared"
            )
        if successor is not None and self.terminal:
            raise LoaderConfigurationError(f"{type(self).__name__} must be the last stage of a chain")
        self._next = successor
        self._wired = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class LoaderChain:
    """An ordered, immutable sequence of wired loader stages.

    Args:
        stages: Stages in traversal order (first = outermost)

    Raises:
        LoaderConfigurationError: If ``stages`` is empty, a stage is already
            wired into another chain, or a terminal stage is not last.
    """

    __slots__ = ("_stages",)

    def __init__(self, stages: Iterable[Loader]) -> None:
        ordered = tuple(stages)
        if not ordered:
            raise LoaderConfigurationError("A loader chain needs at least one stage")
        if len({id(s) for s in ordered}) != len(ordered):
            raise LoaderConfigurationError("The same stage appears more than once in a chain")
        for index, stage in enumerate(ordered):
            if stage._wired:
                raise LoaderConfigurationError(
                    f"{type(stage).__name__} is already part of a chain; stages cannot be shared"
                )
            if stage.terminal and index != len(ordered) - 1:
                raise LoaderConfigurationError(f"{type(stage).__name__} must be the last stage of a chain")
        successor: Loader | None = None
        for stage in reversed(ordered):
            stage._attach(successor)
            successor = stage
        self._stages = ordered

    @property
    def stages(self) -> tuple[Loader, ...]:
        return self._stages

    @property
    def head(self) -> Loader:
        return self._stages[0]

    async def load(self, request: HTTPRequest) -> HTTPResult:
        return await self.head.load(request)

    def __len__(self) -> int:
        return len(self._stages)

    def __repr__(self) -> str:
        return " -> ".join(repr(s) for s in self._stages)
