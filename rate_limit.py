"""Leaky-bucket rate limiting for outbound API calls.

Each class of endpoint (Spotify API, YouTube Data API, YouTube Music search)
gets its own bucket so that a slow search budget never holds up playlist
inserts. The buckets live on a RateLimits instance owned by the HTTP layer.
"""

import threading
import time
from dataclasses import dataclass

from errors import RateLimitInternalError
from log_setup import get_logger

SPOTIFY_PER_SECOND = 10
YOUTUBE_PER_SECOND = 10
YOUTUBE_SEARCH_PER_SECOND = 1

# Float drift tolerance when comparing the drained level against capacity.
_EPSILON = 1e-9

log = get_logger("ratelimit")


class LeakyBucket:
    """A bucket that fills by one unit per admitted call and drains at a constant rate.

    A call is admitted while the bucket has room for one more unit. The lock is
    held only for the accounting step; callers sleep and run their operation
    without it.
    """

    def __init__(self, capacity, per_second, *, name="bucket",
                 clock=time.monotonic, sleep=time.sleep, lock_timeout=None):
        if capacity < 1:
            raise ValueError(f"Bucket capacity must be >= 1, got {capacity}")
        if per_second <= 0:
            raise ValueError(f"Bucket rate must be positive, got {per_second}")

        self.name = name
        self.capacity = capacity
        self.per_second = float(per_second)
        self.level = 0.0

        self._clock = clock
        self._sleep = sleep
        self._lock_timeout = -1 if lock_timeout is None else lock_timeout
        self._lock = threading.Lock()
        self._last = clock()

    def _drain(self, now):
        elapsed = max(0.0, now - self._last)
        self.level = max(0.0, self.level - elapsed * self.per_second)
        self._last = now

    def try_acquire(self):
        """Consume one unit if possible.

        Returns 0.0 when the call is admitted, otherwise the number of seconds
        until a unit frees up. Never sleeps.
        """
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise RateLimitInternalError(f"Could not lock rate limit bucket '{self.name}'")
        try:
            self._drain(self._clock())
            if self.level + 1 <= self.capacity + _EPSILON:
                self.level = min(float(self.capacity), self.level + 1)
                return 0.0
            return (self.level + 1 - self.capacity) / self.per_second
        finally:
            self._lock.release()

    def acquire(self):
        """Block until the bucket admits one call."""
        while True:
            delay = self.try_acquire()
            if delay <= 0:
                return
            log.debug(f"Bucket '{self.name}' is full. Sleeping for {delay * 1000:.0f} milliseconds")
            self._sleep(delay)

    def run(self, operation, *args, **kwargs):
        """Wait for the bucket, then call operation exactly once and return its result."""
        self.acquire()
        return operation(*args, **kwargs)


@dataclass
class RateLimits:
    """One bucket per endpoint class, shared by every caller of that class."""

    spotify: LeakyBucket
    youtube: LeakyBucket
    youtube_search: LeakyBucket

    @classmethod
    def default(cls, **bucket_kwargs):
        return cls(
            spotify=LeakyBucket(SPOTIFY_PER_SECOND, SPOTIFY_PER_SECOND, name="spotify", **bucket_kwargs),
            youtube=LeakyBucket(YOUTUBE_PER_SECOND, YOUTUBE_PER_SECOND, name="youtube", **bucket_kwargs),
            youtube_search=LeakyBucket(
                YOUTUBE_SEARCH_PER_SECOND, YOUTUBE_SEARCH_PER_SECOND, name="youtube_search", **bucket_kwargs,
            ),
        )
