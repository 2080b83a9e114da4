"""
Operation Results

Lifecycle operations return either Ok(value) or Err(kind, detail) instead of
raising for expected failures (bad input, taken codes, missing or expired
links). The HTTP status for each kind is decided at the API boundary.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from shortlinks.core.exceptions import ErrorKind, URLShortenerException

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    detail: str

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_exception(cls, exc: URLShortenerException) -> "Err":
        return cls(kind=exc.kind, detail=exc.detail)


Result = Union[Ok[T], Err]
