"""
HTTP pacing utilities for HN Digest.
"""
import asyncio
import time
import logging
from collections import defaultdict
from urllib.parse import urlparse

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_DELAY = 1.0  # seconds between requests to the same host


def host_of(url: str) -> str:
    return urlparse(url).netloc.lower()


class RateLimiter:
    """
    Per-host rate limiter so no site sees requests closer together than the base delay.
    Hosts that keep failing get a growing delay, which shrinks again on success.
    """
    def __init__(self, base_delay: float = DEFAULT_DELAY, max_backoff: float = 60.0,
                 failure_threshold: int = 3):
        self.base_delay = base_delay
        self.last_requests = defaultdict(lambda: 0.0)
        self.locks = defaultdict(asyncio.Lock)
        self.failure_counts = defaultdict(int)
        self.backoff_times = defaultdict(lambda: self.base_delay)
        self.max_backoff = max_backoff
        self.failure_threshold = failure_threshold

    async def acquire(self, host: str):
        """
        Wait until a request to ``host`` is allowed.

        Args:
            host: The host to rate limit
        """
        async with self.locks[host]:
            last = self.last_requests[host]
            if last:
                wait_time = max(self.base_delay, self.backoff_times[host]) - (time.monotonic() - last)
                if wait_time > 0:
                    logger.debug(f"Rate limiting {host}, waiting {wait_time:.2f}s")
                    await asyncio.sleep(wait_time)

            self.last_requests[host] = time.monotonic()

    def report_success(self, host: str):
        """
        Report a successful request to a host.
        This will gradually reduce the backoff time for the host.

        Args:
            host: The host that had a successful request
        """
        self.failure_counts[host] = 0
        if self.backoff_times[host] > self.base_delay:
            self.backoff_times[host] = max(self.base_delay, self.backoff_times[host] * 0.8)

    def report_failure(self, host: str):
        """
        Report a failed request to a host.
        This will increase the backoff time for the host.

        Args:
            host: The host that had a failed request
        """
        self.failure_counts[host] += 1

        if self.failure_counts[host] >= self.failure_threshold:
            current = max(self.backoff_times[host], self.base_delay, 1.0)
            self.backoff_times[host] = min(self.max_backoff, current * 2.0)
            logger.warning(
                f"Increased backoff for {host} to {self.backoff_times[host]:.2f}s "
                f"after {self.failure_counts[host]} failures"
            )
