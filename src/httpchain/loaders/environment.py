"""Fill in host, port, path prefix and default headers from a ServerEnvironment."""

from __future__ import annotations

from httpchain.http import HTTPRequest, HTTPResult, ServerEnvironment
from httpchain.http.request import has_header

from .base import Loader


class EnvironmentLoader(Loader):
    """Resolve requests against a server environment.

    The request's own ``server_environment`` option wins over the one given
    here. Only what the request leaves unset is filled in: host when missing
    or empty, port when missing, and each environment header when the request
    has no header of that name (compared case-insensitively). The path prefix
    is added unless the path already starts with it, so passing a request
    through twice changes nothing.

    Args:
        environment: Fallback environment for requests without the option
    """

    def __init__(self, environment: ServerEnvironment | None = None) -> None:
        super().__init__()
        self.environment = environment

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        environment = request.server_environment or self.environment
        if environment is None:
            return await self.forward(request)
        return await self.forward(await self.apply(request, environment))

    @staticmethod
    async def apply(request: HTTPRequest, environment: ServerEnvironment) -> HTTPRequest:
        """The copy of ``request`` resolved against ``environment``."""
        changes: dict[str, object] = {}
        if not request.host:
            changes["host"] = environment.host
        if request.port is None and environment.port is not None:
            changes["port"] = environment.port

        path = environment.apply_prefix(request.path)
        if path != request.path:
            changes["path"] = path

        extra = {
            name: value
            for name, value in (await environment.resolve_headers()).items()
            if not has_header(request.headers, name)
        }
        if extra:
            changes["headers"] = {**request.headers, **extra}

        return request.replace(**changes) if changes else request

    def __repr__(self) -> str:
        host = self.environment.host if self.environment else None
        return f"EnvironmentLoader(host={host!r})"
