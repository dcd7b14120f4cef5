"""Per-request options keyed by capability.

An ``OptionsBag`` carries out-of-band settings (auth mode, cache policy,
environment override, mock behavior) without widening ``HTTPRequest``'s
fixed fields. Each ``Capability`` declares its name, its default value and the
type its stored values must have; lookups of unset or wrongly-typed entries
fall back to the default and never raise.

Example:
    >>> bag = OptionsBag()
    >>> bag.get(CACHE_METHOD)
    NeverCache(kind='never')
    >>> bag = bag.with_value(CACHE_METHOD, CacheWithLimit(seconds=60))
    >>> bag.get(CACHE_METHOD).seconds
    60.0

Adding a capability of your own:
    >>> TENANT = Capability("tenant", default="public", value_type=str)
    >>> request = request.with_option(TENANT, "acme")
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Annotated, Any, Generic, Literal, TypeVar, Union

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, PositiveFloat

from .environment import ServerEnvironment

V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class Capability(Generic[V]):
    """A typed, independently-defaulted slot in an OptionsBag.

    Capabilities compare by name, so two declarations with the same name
    address the same slot.
    """

    name: str
    default: V
    value_type: type | tuple[type, ...]

    def accepts(self, value: object) -> bool:
        return isinstance(value, self.value_type)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Capability) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)


class OptionsBag:
    """Immutable capability-keyed heterogeneous store.

    Changes produce a new bag, so copies of a request can share one safely.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, object] | None = None) -> None:
        self._values: Mapping[str, object] = MappingProxyType(dict(values or {}))

    def get(self, capability: Capability[V]) -> V:
        """Stored value for the capability, or its default when unset or mistyped."""
        value = self._values.get(capability.name, _MISSING)
        if value is _MISSING or not capability.accepts(value):
            return capability.default
        return value  # type: ignore[return-value]

    def with_value(self, capability: Capability[V], value: V) -> OptionsBag:
        """New bag with any prior value for the capability replaced."""
        return OptionsBag({**self._values, capability.name: value})

    def without(self, capability: Capability[Any]) -> OptionsBag:
        return OptionsBag({k: v for k, v in self._values.items() if k != capability.name})

    def __contains__(self, capability: Capability[Any]) -> bool:
        return capability.name in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        return dict(self._values) == dict(other._values) if isinstance(other, OptionsBag) else NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"OptionsBag({dict(self._values)!r})"


_MISSING = object()


# ─────────────────────────────────────────────────────────────────────────────
# Built-in capability values
# ─────────────────────────────────────────────────────────────────────────────

class AuthMethod(StrEnum):
    """Whether a request should carry user credentials."""
    USER_AUTH = "user_auth"
    NO_AUTH = "no_auth"


_FROZEN = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")


class NeverCache(BaseModel):
    model_config = _FROZEN
    kind: Literal["never"] = "never"


class CacheWithLimit(BaseModel):
    """Cache for a fixed number of seconds from the time of writing."""
    model_config = _FROZEN
    kind: Literal["with_limit"] = "with_limit"
    seconds: PositiveFloat


class CacheUntilDate(BaseModel):
    """Cache until an absolute, timezone-aware moment."""
    model_config = _FROZEN
    kind: Literal["until_date"] = "until_date"
    expires_at: AwareDatetime


class CacheWithoutExpiry(BaseModel):
    """Cache with the loader's default lifetime (one day unless configured)."""
    model_config = _FROZEN
    kind: Literal["without_expiry"] = "without_expiry"


CacheMethod = Annotated[
    Union[NeverCache, CacheWithLimit, CacheUntilDate, CacheWithoutExpiry],
    Field(discriminator="kind"),
]
CACHE_METHOD_TYPES = (NeverCache, CacheWithLimit, CacheUntilDate, CacheWithoutExpiry)


class NoMock(BaseModel):
    model_config = _FROZEN
    kind: Literal["none"] = "none"


class MockFile(BaseModel):
    """Answer with the contents of a local file."""
    model_config = _FROZEN
    kind: Literal["file"] = "file"
    path: Path


class MockJSON(BaseModel):
    """Answer with literal JSON text."""
    model_config = _FROZEN
    kind: Literal["json"] = "json"
    text: str


class MockValue(BaseModel):
    """Answer with a value serialized to JSON (any orjson-serializable value or pydantic model)."""
    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)
    kind: Literal["value"] = "value"
    value: Any


MockLoadMethod = Annotated[
    Union[NoMock, MockFile, MockJSON, MockValue],
    Field(discriminator="kind"),
]
MOCK_LOAD_METHOD_TYPES = (NoMock, MockFile, MockJSON, MockValue)


AUTH_METHOD: Capability[AuthMethod] = Capability("auth_method", AuthMethod.USER_AUTH, AuthMethod)
CACHE_METHOD: Capability[CacheMethod] = Capability("cache_method", NeverCache(), CACHE_METHOD_TYPES)
SERVER_ENVIRONMENT: Capability[ServerEnvironment | None] = Capability(
    "server_environment", None, ServerEnvironment
)
MOCK_LOAD_METHOD: Capability[MockLoadMethod] = Capability("mock_load_method", NoMock(), MOCK_LOAD_METHOD_TYPES)
