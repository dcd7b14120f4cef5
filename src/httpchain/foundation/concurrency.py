"""Ambient cancellation for request traversals.

A ``CancelScope`` binds itself to the current context while entered, so every
loader in a chain can check ``is_cancelled()`` without the signal being passed
through each call. The terminal loader also races the in-flight transport call
against the scope, so cancelling aborts network I/O promptly.

Example:
    >>> async with CancelScope(timeout=5.0) as scope:
    ...     result = await chain.load(request)
    >>> scope.cancel_called
    False
"""

from __future__ import annotations

import asyncio
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType

_current_scope: ContextVar[CancelScope | None] = ContextVar("httpchain_cancel_scope", default=None)


@dataclass
class CancelScope:
    """Cancellation scope for fine-grained control.

    Cancelling sets a flag that loaders observe at their head; it does not
    cancel the enclosing task. Supports an optional timeout after which the
    scope cancels itself.
    """

    timeout: float | None = None
    _cancel_called: bool = field(default=False, repr=False)
    _event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _timeout_task: asyncio.Task[None] | None = field(default=None, repr=False)
    _token: Token[CancelScope | None] | None = field(default=None, repr=False)

    @property
    def cancel_called(self) -> bool:
        """Whether cancellation was requested."""
        return self._cancel_called

    def cancel(self) -> None:
        self._cancel_called = True
        self._event.set()

    async def wait(self) -> None:
        """Block until the scope is cancelled."""
        await self._event.wait()

    async def __aenter__(self) -> CancelScope:
        self._token = _current_scope.set(self)
        if self.timeout is not None:
            self._timeout_task = asyncio.create_task(self._timeout_handler())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool:
        if self._timeout_task:
            self._timeout_task.cancel()
            try:
                await self._timeout_task
            except asyncio.CancelledError:
                pass
        if self._token is not None:
            _current_scope.reset(self._token)
            self._token = None
        return False

    async def _timeout_handler(self) -> None:
        assert self.timeout is not None
        await asyncio.sleep(self.timeout)
        self.cancel()


def current_scope() -> CancelScope | None:
    """Innermost CancelScope bound to the current context, if any."""
    return _current_scope.get()


def is_cancelled() -> bool:
    """Whether the ambient cancellation signal is set.

    True when the innermost scope was cancelled, or when the running asyncio
    task has a pending cancellation request.
    """
    scope = _current_scope.get()
    if scope is not None and scope.cancel_called:
        return True
    try:
        task = asyncio.current_task()
    except RuntimeError:
        return False
    return task is not None and task.cancelling() > 0


async def cancellable_sleep(delay: float) -> None:
    """Sleep for ``delay`` seconds, waking early if the ambient scope is cancelled."""
    scope = _current_scope.get()
    if scope is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(scope.wait(), timeout=delay)
    except TimeoutError:
        pass
