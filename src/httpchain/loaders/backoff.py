"""Delay strategies between RetryLoader resubmissions.

Attempt numbers are 0-indexed: the delay before the first resubmission is
``delay(0)``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@runtime_checkable
class Backoff(Protocol):
    """Computes the pause before the next resubmission."""

    def delay(self, attempt: int) -> float: ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponential backoff with optional jitter.

    Delay = min(base * (multiplier ^ attempt), max_delay) * jitter

    Attributes:
        base: Initial delay in seconds (default: 0.5)
        max_delay: Maximum delay cap in seconds (default: 10.0)
        multiplier: Exponential growth factor (default: 2.0)
        jitter: Randomize each delay within 0.5-1.5x (default: True)
    """

    base: float = 0.5
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        d = min(self.base * (self.multiplier ** attempt), self.max_delay)
        return d * (0.5 + random.random()) if self.jitter else d


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    """Fixed delay between resubmissions."""

    delay_seconds: float = 1.0

    def delay(self, attempt: int) -> float:
        return self.delay_seconds
