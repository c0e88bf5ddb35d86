from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


class DbTimer:
    """Statement time accumulated for the current request.

    The timer object is shared with tasks and worker threads spawned from the
    request, which see a copy of the context but the same timer.
    """

    def __init__(self) -> None:
        self.elapsed_ms = 0.0


_db_timer: ContextVar[DbTimer | None] = ContextVar("cuadre_db_timer", default=None)


@contextmanager
def measure_db_time() -> Iterator[DbTimer]:
    timer = DbTimer()
    token = _db_timer.set(timer)
    try:
        yield timer
    finally:
        _db_timer.reset(token)


def add_db_time(delta_ms: float) -> None:
    timer = _db_timer.get()
    if timer is None:
        return
    timer.elapsed_ms += delta_ms


def is_measuring() -> bool:
    return _db_timer.get() is not None
