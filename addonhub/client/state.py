from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

PENDING = "pending"
ERROR = "error"
SUCCESS = "success"


@dataclass(frozen=True)
class FetchState(Generic[T]):
    """Result of one screen fetch: pending, failed with a message, or loaded."""

    status: str = PENDING
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls) -> "FetchState[Any]":
        return cls(status=PENDING)

    @classmethod
    def success(cls, data: T) -> "FetchState[T]":
        return cls(status=SUCCESS, data=data)

    @classmethod
    def failure(cls, message: str) -> "FetchState[Any]":
        return cls(status=ERROR, error=message)

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    @property
    def is_error(self) -> bool:
        return self.status == ERROR

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS
