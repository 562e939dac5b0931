"""
Comment submission throttle.

A client-side style UX guard, not a security control: it lives in memory per
comment session and only slows down honest double submits.
"""

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from inkpost.core.exceptions.exceptions import RateLimitExceededError


def _validate_limit_params(min_interval_seconds: float, max_submissions: int, window_seconds: float) -> None:
    """Validate limiter numeric parameters."""
    if min_interval_seconds < 0:
        raise ValueError("min_interval_seconds must not be negative")
    if max_submissions <= 0:
        raise ValueError("max_submissions must be greater than 0")
    if window_seconds <= 0:
        raise ValueError("window_seconds must be greater than 0")


@dataclass
class SubmissionLimitConfig:
    """
    Submission limit configuration.

    Attributes:
        min_interval_seconds: Minimum gap between two accepted submissions (0 disables the gate)
        max_submissions: Accepted submissions allowed inside the trailing window
        window_seconds: Length of the trailing window
    """

    min_interval_seconds: float = 60.0
    max_submissions: int = 3
    window_seconds: float = 60.0

    def __post_init__(self) -> None:
        _validate_limit_params(
            min_interval_seconds=self.min_interval_seconds,
            max_submissions=self.max_submissions,
            window_seconds=self.window_seconds,
        )


class SubmissionRateLimiter:
    """
    Sliding-window limiter for comment and reply submissions.

    Two independent rules are evaluated before a write:
      1. the time since the last accepted submission must be at least
         `min_interval_seconds`;
      2. fewer than `max_submissions` submissions may have been accepted in
         the trailing `window_seconds`.

    With the default 60s gate and 3-per-60s window, rule 1 already prevents a
    second submission inside any window, so rule 2 only matters once the gate
    is lowered (e.g. min_interval_seconds=0 allows a burst of 3).

    Usage:
        limiter = SubmissionRateLimiter()
        limiter.check()      # raises RateLimitExceededError, mutates nothing
        ... write ...
        limiter.record()     # only after the write succeeded
    """

    def __init__(
        self,
        config: Optional[SubmissionLimitConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or SubmissionLimitConfig()
        self._clock = clock
        self._accepted: Deque[float] = deque()
        self.count = 0
        self.last_submit: Optional[float] = None
        self._rejected = 0

    def _prune(self, now: float) -> None:
        window = self.config.window_seconds
        while self._accepted and now - self._accepted[0] >= window:
            self._accepted.popleft()

    def check(self, now: Optional[float] = None) -> None:
        """Raise RateLimitExceededError if a submission at `now` must be refused."""
        now = self._clock() if now is None else now

        if self.last_submit is not None:
            elapsed = now - self.last_submit
            if elapsed < self.config.min_interval_seconds:
                self._rejected += 1
                wait = self.config.min_interval_seconds - elapsed
                raise RateLimitExceededError(
                    f"Submitting too fast, please try again in {math.ceil(wait)} seconds",
                    retry_after=wait,
                )

        self._prune(now)
        if len(self._accepted) >= self.config.max_submissions:
            self._rejected += 1
            wait = self._accepted[0] + self.config.window_seconds - now
            raise RateLimitExceededError(
                f"At most {self.config.max_submissions} comments can be submitted "
                f"per {self.config.window_seconds:g} seconds",
                retry_after=wait,
            )

    def allow(self, now: Optional[float] = None) -> bool:
        """Non-raising variant of check()."""
        try:
            self.check(now)
        except RateLimitExceededError:
            return False
        return True

    def record(self, now: Optional[float] = None) -> None:
        """Register an accepted submission."""
        now = self._clock() if now is None else now
        self._accepted.append(now)
        self.count += 1
        self.last_submit = now

    def reset(self) -> None:
        """Forget all accepted submissions."""
        self._accepted.clear()
        self.count = 0
        self.last_submit = None
        self._rejected = 0

    def get_stats(self) -> dict:
        return {
            "count": self.count,
            "last_submit": self.last_submit,
            "in_window": len(self._accepted),
            "rejected": self._rejected,
        }
