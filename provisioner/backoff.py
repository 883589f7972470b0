"""
backoff.py

Responsibility: bounded exponential backoff for polling an eventually-consistent resource.

`poll_until` calls a check until it reports success, sleeping between attempts
with delays that start at `initial_delay`, grow by `multiplier` and are capped at
`max_delay`. Once `deadline` seconds have elapsed after a failed check, it raises
`PollTimeout`. The check may raise to abort immediately.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterator


class PollTimeout(RuntimeError):
    def __init__(self, elapsed: float, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempts in {elapsed:.1f}s")
        self.elapsed = elapsed
        self.attempts = attempts


@dataclass(frozen=True)
class BackoffPolicy:
    initial_delay: float = 0.4
    multiplier: float = 2.0
    max_delay: float = 2.0
    deadline: float = 30.0

    def delays(self) -> Iterator[float]:
        delay = self.initial_delay
        while True:
            yield min(delay, self.max_delay)
            delay = min(delay * self.multiplier, self.max_delay)


def poll_until(
    check: Callable[[], bool],
    policy: BackoffPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """
    Run `check` until it returns True. Returns the number of attempts made.
    """
    start = clock()
    attempts = 0
    for delay in policy.delays():
        attempts += 1
        if check():
            return attempts
        elapsed = clock() - start
        if elapsed >= policy.deadline:
            raise PollTimeout(elapsed, attempts)
        sleep(delay)
    raise AssertionError("unreachable")  # delays() is infinite
