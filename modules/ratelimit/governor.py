"""
Fixed-window request counters.

One counter per (endpoint class, key), where the key is a source address
or an identity subject depending on the endpoint class. Increment and
check happen under one lock so a burst of concurrent requests cannot
slip past the limit.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from shared.exceptions import RateLimitExceededError

from .models import EndpointClass, RateLimitPolicy

logger = logging.getLogger(__name__)

PRUNE_EVERY = 1000


@dataclass
class _Window:
    started_at: float
    count: int = 0


class AbuseGovernor:
    """
    In-process rate limiter for sensitive entry points.

    Counters live in process memory, so limits apply per worker process.
    With several uvicorn workers each one grants the full budget; such
    deployments should move the windows to shared counters (a Redis
    INCR/EXPIRE key per window) so every worker draws on one budget.
    """

    def __init__(
        self,
        policies: dict[EndpointClass, RateLimitPolicy],
        clock: Callable[[], float] = time.monotonic,
    ):
        self._policies = dict(policies)
        self._clock = clock
        self._windows: dict[tuple[EndpointClass, str], _Window] = {}
        self._lock = threading.Lock()
        self._hits_since_prune = 0

    def policy(self, endpoint_class: EndpointClass) -> RateLimitPolicy:
        return self._policies[endpoint_class]

    def hit(self, endpoint_class: EndpointClass, key: str) -> None:
        """
        Count one request and reject it if the window is already full.

        Rejected requests are not counted.

        Raises:
            RateLimitExceededError: The limit for this window is reached
        """
        policy = self._policies[endpoint_class]
        with self._lock:
            now = self._clock()
            window = self._current_window(endpoint_class, key, policy, now)
            if window.count >= policy.limit:
                retry_after = self._retry_after(window, policy, now)
            else:
                window.count += 1
                retry_after = 0
            self._maybe_prune(now)

        if retry_after:
            self._reject(endpoint_class, key, retry_after)

    def check(self, endpoint_class: EndpointClass, key: str) -> None:
        """
        Reject if the window is full, without counting this request.

        Used for the authentication-failure counter, which only grows when
        verification actually fails.

        Raises:
            RateLimitExceededError: The limit for this window is reached
        """
        policy = self._policies[endpoint_class]
        with self._lock:
            now = self._clock()
            window = self._windows.get((endpoint_class, key))
            if window is None or now - window.started_at >= policy.window_seconds:
                return
            if window.count < policy.limit:
                return
            retry_after = self._retry_after(window, policy, now)
        self._reject(endpoint_class, key, retry_after)

    def count(self, endpoint_class: EndpointClass, key: str) -> int:
        """Hits counted in the current window."""
        policy = self._policies[endpoint_class]
        with self._lock:
            window = self._windows.get((endpoint_class, key))
            if window is None or self._clock() - window.started_at >= policy.window_seconds:
                return 0
            return window.count

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _current_window(
        self,
        endpoint_class: EndpointClass,
        key: str,
        policy: RateLimitPolicy,
        now: float,
    ) -> _Window:
        window = self._windows.get((endpoint_class, key))
        if window is None or now - window.started_at >= policy.window_seconds:
            window = _Window(started_at=now)
            self._windows[(endpoint_class, key)] = window
        return window

    @staticmethod
    def _retry_after(window: _Window, policy: RateLimitPolicy, now: float) -> int:
        return max(1, math.ceil(window.started_at + policy.window_seconds - now))

    def _maybe_prune(self, now: float) -> None:
        self._hits_since_prune += 1
        if self._hits_since_prune < PRUNE_EVERY:
            return
        self._hits_since_prune = 0
        expired = [
            counter_key
            for counter_key, window in self._windows.items()
            if now - window.started_at >= self._policies[counter_key[0]].window_seconds
        ]
        for counter_key in expired:
            del self._windows[counter_key]

    @staticmethod
    def _reject(endpoint_class: EndpointClass, key: str, retry_after: int) -> None:
        logger.warning(
            f"rate_limited class={endpoint_class.value} key={key} retry_after={retry_after}",
            extra={"event": "rate_limited", "endpoint_class": endpoint_class.value},
        )
        raise RateLimitExceededError(retry_after=retry_after)
