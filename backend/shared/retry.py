"""
Shared retry policy for outbound calls.

One policy object describes how many attempts a call gets and how long to
wait between them. The default curve is exponential: 1s, 2s, 4s, ... capped
at max_delay.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt (0-based)."""
        return min(self.base_delay * (self.backoff_factor**attempt), self.max_delay)

    def call(self, func: Callable[[], T], description: str = "call") -> T:
        """
        Run func until it succeeds or attempts are exhausted.

        Exceptions outside retry_on propagate immediately. After the last
        attempt the final exception is re-raised unchanged.
        """
        for attempt in range(self.max_attempts):
            try:
                return func()
            except self.retry_on as e:
                if attempt >= self.max_attempts - 1:
                    raise
                wait_time = self.delay_for(attempt)
                print(
                    f"  ⚠ {description} attempt {attempt + 1} failed: {e}. Retrying in {wait_time:g}s..."
                )
                self.sleep(wait_time)

        raise RuntimeError("Unreachable code: all retry attempts exhausted")


NO_RETRY = RetryPolicy(max_attempts=1)
