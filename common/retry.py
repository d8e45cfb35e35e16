# common/retry.py
# -*- coding: utf-8 -*-
"""
Bounded retry policy with a fixed delay.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator


@dataclass(frozen=True)
class RetryPolicy:
    """
    A fixed number of attempts separated by a fixed delay.

    Iterate over `attempts()` and break out on success; the loop ends after
    `max_attempts` iterations. The delay is only slept between attempts,
    never before the first or after the last. `sleep` is injectable so tests
    can run with a fake clock.
    """

    max_attempts: int
    delay_seconds: float
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    def attempts(self) -> Iterator[int]:
        """Yield attempt numbers 1..max_attempts, sleeping between them."""
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1 and self.delay_seconds:
                self.sleep(self.delay_seconds)
            yield attempt
