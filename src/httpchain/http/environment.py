"""Server environment definitions used by EnvironmentLoader."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

HeaderProvider = Callable[[], Mapping[str, str] | Awaitable[Mapping[str, str]]]


class ServerEnvironment(BaseModel):
    """A backend environment: host, path prefix, default headers and port.

    Headers come from the static ``headers`` mapping, overlaid with whatever
    ``header_provider`` returns at request time (sync or async). Use the
    provider for values that change, such as access tokens.

    Example:
        >>> prod = ServerEnvironment(host="api.example.com", path_prefix="v1")
        >>> prod.path_prefix
        '/v1'
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        arbitrary_types_allowed=True,
        revalidate_instances="never",
    )

    host: str = Field(min_length=1)
    path_prefix: str = "/"
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    header_provider: HeaderProvider | None = Field(default=None, exclude=True, repr=False)
    port: int | None = Field(default=None, ge=1, le=65535)

    @field_validator("path_prefix", mode="before")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        """Make sure the prefix starts with a /."""
        if not isinstance(v, str):
            return v
        return v if v.startswith("/") else f"/{v}"

    async def resolve_headers(self) -> dict[str, str]:
        """Static headers merged with the provider's current values."""
        resolved = dict(self.headers)
        if self.header_provider is not None:
            provided = self.header_provider()
            if inspect.isawaitable(provided):
                provided = await provided
            resolved.update(provided)
        return resolved

    def owns_path(self, path: str) -> bool:
        """Whether ``path`` already carries this environment's prefix."""
        prefix = self.path_prefix.rstrip("/")
        return not prefix or path == prefix or path.startswith(f"{prefix}/")

    def apply_prefix(self, path: str) -> str:
        if self.owns_path(path):
            return path
        if not path:
            return self.path_prefix
        return f"{self.path_prefix.rstrip('/')}/{path.lstrip('/')}"

    def __hash__(self) -> int:
        return hash((self.host, self.path_prefix, self.port))
