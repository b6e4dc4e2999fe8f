# gatepass/utils/result.py
"""
Discriminated result values returned by every fallible engine operation.
Business failures come back as Err(...) instead of being raised, so the API
layer can map them 1:1 to HTTP responses.
"""

from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E
    ok: ClassVar[bool] = False


Result = Union[Ok[T], Err[E]]
