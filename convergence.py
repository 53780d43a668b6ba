# convergence.py
"""
Reply settling detection.

The chat page never announces that a reply is finished: the answer streams into
the last message block and simply stops growing. ``wait_for_settled`` polls a
read-only accessor and accepts a value once it has stayed identical for
``settle`` seconds, or gives up after ``ceiling`` seconds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

DEFAULT_INTERVAL = 0.15
DEFAULT_SETTLE = 2.0
DEFAULT_CEILING = 50.0

Accessor = Callable[[], Optional[str]]


@dataclass(frozen=True)
class StabilitySample:
    value: Optional[str]
    observed_at: float


@dataclass(frozen=True)
class ConvergenceResult:
    value: Optional[str]
    elapsed: float

    @property
    def timed_out(self) -> bool:
        return self.value is None

    @classmethod
    def settled(cls, value: str, elapsed: float) -> "ConvergenceResult":
        return cls(value=value, elapsed=elapsed)

    @classmethod
    def timeout(cls, elapsed: float) -> "ConvergenceResult":
        return cls(value=None, elapsed=elapsed)


def sample_values(
    accessor: Accessor,
    interval: float = DEFAULT_INTERVAL,
    ceiling: float = DEFAULT_CEILING,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[StabilitySample]:
    """
    Yield one sample immediately and then one every ``interval`` seconds until
    more than ``ceiling`` seconds have passed since the first call.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    start = clock()
    while True:
        now = clock()
        if now - start > ceiling:
            return
        yield StabilitySample(value=accessor(), observed_at=now)
        sleep(interval)


def wait_for_settled(
    accessor: Accessor,
    *,
    baseline: Optional[str] = None,
    settle: float = DEFAULT_SETTLE,
    ceiling: float = DEFAULT_CEILING,
    interval: float = DEFAULT_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ConvergenceResult:
    """
    Poll ``accessor`` until its value differs from ``baseline`` and then holds
    still for ``settle`` seconds.

    Empty values and values equal to ``baseline`` count as "no reply yet", so a
    page that still shows the previous answer never settles on it.
    """
    start = clock()
    last_value: Optional[str] = None
    last_changed_at = start

    for sample in sample_values(accessor, interval, ceiling, clock=clock, sleep=sleep):
        value = sample.value
        if not value or value == baseline:
            continue
        if value != last_value:
            last_value = value
            last_changed_at = sample.observed_at
            continue
        if sample.observed_at - last_changed_at >= settle:
            return ConvergenceResult.settled(value, sample.observed_at - start)

    return ConvergenceResult.timeout(clock() - start)
