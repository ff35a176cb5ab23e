"""
Result type for the request pipeline.

A pipeline call either succeeds with a decoded value, is answered by the
remote service with a non-2xx status, or never gets an answer at all.
Call sites decide how to promote each outcome.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ResultKind(str, Enum):
    """Outcome of a pipeline call."""

    OK = "ok"
    NOT_FOUND = "not_found"  # remote answered with a non-2xx status
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class GedResult:
    """Outcome of one GED request."""

    kind: ResultKind
    value: Any = None
    status_code: Optional[int] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls, value: Any, status_code: Optional[int] = None) -> "GedResult":
        return cls(ResultKind.OK, value=value, status_code=status_code)

    @classmethod
    def not_found(cls, status_code: int, detail: Optional[str] = None) -> "GedResult":
        return cls(ResultKind.NOT_FOUND, status_code=status_code, detail=detail)

    @classmethod
    def transport_error(cls, detail: str) -> "GedResult":
        return cls(ResultKind.TRANSPORT_ERROR, detail=detail)

    @property
    def is_ok(self) -> bool:
        return self.kind is ResultKind.OK

    @property
    def is_not_found(self) -> bool:
        return self.kind is ResultKind.NOT_FOUND

    @property
    def is_transport_error(self) -> bool:
        return self.kind is ResultKind.TRANSPORT_ERROR
