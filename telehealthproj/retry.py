# telehealthproj/retry.py
"""
Bounded retry policy.

Used where a row created asynchronously by another writer (for example the
profile created alongside a new user) may not be ready when the client first
tries to update it.
"""
import logging
import time

logger = logging.getLogger(__name__)


def fixed_backoff(delay):
    """Backoff that waits the same number of seconds before every retry."""
    def backoff(attempt):
        return delay
    return backoff


def exponential_backoff(base, factor=2.0, maximum=None):
    def backoff(attempt):
        delay = base * (factor ** (attempt - 1))
        if maximum is not None:
            delay = min(delay, maximum)
        return delay
    return backoff


class RetryPolicy:
    """
    Calls a function until it succeeds or ``max_attempts`` is reached.

    ``backoff(attempt)`` gives the pause in seconds after failed attempt
    number ``attempt`` (1-based). No pause follows the last attempt. When all
    attempts fail, ``fallback(last_error)`` is returned if a fallback was
    given, otherwise the last error is re-raised.
    """

    def __init__(self, max_attempts, backoff, fallback=None, retry_on=(Exception,), sleep=None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.fallback = fallback
        self.retry_on = retry_on
        self.sleep = sleep

    def run(self, fn, *args, **kwargs):
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn(*args, **kwargs)
            except self.retry_on as e:
                last_error = e
                logger.warning(f"[RetryPolicy] Attempt {attempt}/{self.max_attempts} of {getattr(fn, '__name__', fn)} failed: {e}")
                if attempt < self.max_attempts:
                    (self.sleep or time.sleep)(self.backoff(attempt))

        if self.fallback is not None:
            return self.fallback(last_error)
        raise last_error
