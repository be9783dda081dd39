from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Holds a one-element list so threadpool copies of the context share the total.
_query_time_ms: ContextVar[list[float] | None] = ContextVar("laptrack_query_time_ms", default=None)


@contextmanager
def track_query_time() -> Iterator[None]:
    """Accumulate time spent in SQL cursor execution for the current request."""
    token = _query_time_ms.set([0.0])
    try:
        yield
    finally:
        _query_time_ms.reset(token)


def is_tracking() -> bool:
    return _query_time_ms.get() is not None


def add_query_time(delta_ms: float) -> None:
    current = _query_time_ms.get()
    if current is None:
        return
    current[0] += delta_ms


def get_query_time_ms() -> float | None:
    current = _query_time_ms.get()
    return current[0] if current is not None else None
