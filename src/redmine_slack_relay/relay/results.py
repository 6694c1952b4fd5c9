"""Result types shared by the Redmine and Slack clients.

Clients never raise for remote failures. They return an `ApiResult` holding
either the success payload or a structured `ApiError`, and the caller decides
what a failure means for the current cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

# Longest response body kept on an ApiError; Redmine error pages can be large HTML.
_MAX_BODY = 2000


@dataclass(frozen=True, slots=True)
class ApiError:
    """A failed remote call.

    kind is one of:
    - "transport": connection/timeout error, no response received
    - "http": a response with a non-success status code
    - "malformed": a successful response whose body has an unexpected shape
    """

    kind: str
    url: str
    body: str = ""
    status: int | None = None

    def __post_init__(self) -> None:
        if len(self.body) > _MAX_BODY:
            object.__setattr__(self, "body", self.body[:_MAX_BODY] + "...")

    def __str__(self) -> str:
        status = f" {self.status}" if self.status is not None else ""
        detail = f": {self.body}" if self.body else ""
        return f"{self.kind} error{status} for {self.url}{detail}"


@dataclass(frozen=True, slots=True)
class ApiResult(Generic[T]):
    value: T | None = None
    error: ApiError | None = None

    @classmethod
    def success(cls, value: T | None = None) -> ApiResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ApiError) -> ApiResult[T]:
        return cls(error=error)
