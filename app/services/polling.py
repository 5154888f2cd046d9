"""Bounded fixed-interval polling."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def poll_until(
    check: Callable[[int], Optional[T]],
    *,
    attempts: int,
    interval_seconds: float,
    sleep: Callable[[float], object] | None = None,
    cancel_event: threading.Event | None = None,
    deadline_seconds: float | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> tuple[Optional[T], int]:
    """Call ``check(attempt)`` until it returns a value or the budget runs out.

    The first attempt runs immediately and is never skipped; later attempts
    wait ``interval_seconds`` first and are dropped once ``deadline_seconds``
    have elapsed. Returns the check result (``None`` when
    exhausted or cancelled) and the number of attempts made.
    """

    cancel_event = cancel_event or threading.Event()
    if sleep is None:
        # Waiting on the event lets another thread cut the wait short.
        sleep = cancel_event.wait
    started = clock()
    made = 0
    for attempt in range(max(attempts, 0)):
        if attempt > 0:
            sleep(interval_seconds)
        if cancel_event.is_set():
            break
        if attempt > 0 and deadline_seconds is not None and clock() - started > deadline_seconds:
            break
        made += 1
        result = check(attempt)
        if result is not None:
            return result, made
    return None, made
