"""
Token bucket rate limiting for remote API requests.
"""

import logging
import threading
import time


class RateLimiter:
    """
    Thread-safe token bucket.

    Holds up to ``requests_per_minute`` tokens and refills at
    ``requests_per_minute / 60`` tokens per second. Callers that find the
    bucket empty wait for the next token; requests are never dropped.
    """

    def __init__(self, requests_per_minute, clock=time.monotonic, sleep=time.sleep):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        self.logger = logging.getLogger(__name__)
        self.capacity = float(requests_per_minute)
        self.refill_rate = requests_per_minute / 60.0  # tokens per second
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = self.capacity
        self._last_refill = clock()

    @property
    def available_tokens(self):
        with self._lock:
            self._refill()
            return self._tokens

    def _refill(self):
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
            self._last_refill = now

    def try_acquire(self):
        """Take a token if one is available right now."""
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def time_until_available(self):
        """Seconds until the next token can be taken (0.0 if one is ready)."""
        with self._lock:
            self._refill()
            missing = 1.0 - self._tokens
        return max(0.0, missing / self.refill_rate)

    def acquire(self, stop_event=None):
        """
        Block until a token is available and take it.

        Args:
            stop_event: Optional threading.Event; waiting is abandoned once it is set

        Returns:
            True when a token was taken, False if stop_event interrupted the wait
        """
        waited = 0.0
        while True:
            if stop_event is not None and stop_event.is_set():
                return False
            if self.try_acquire():
                if waited > 0:
                    self.logger.info(f"Rate limit: waited {waited:.1f}s for a request slot")
                return True

            wait_time = self.time_until_available()
            # Another thread may take the token first, so re-check after waiting
            wait_time = max(wait_time, 0.01)
            self.logger.debug(f"Rate limit reached, waiting {wait_time:.2f}s")
            if stop_event is not None:
                if stop_event.wait(wait_time):
                    return False
            else:
                self._sleep(wait_time)
            waited += wait_time
