"""Result type for fallible upstream lookups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from ..errors import UpstreamFailure

T = TypeVar("T")


@dataclass(slots=True)
class Outcome(Generic[T]):
    """Either a value or the upstream failure that prevented it."""

    value: T | None = None
    error: UpstreamFailure | None = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: UpstreamFailure) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value
