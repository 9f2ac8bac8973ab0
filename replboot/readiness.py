"""
Bounded polling.

ReadinessProbe calls a condition until it returns True or the deadline has
passed, sleeping a fixed interval between attempts. There is no backoff. A
single slow condition call is not interrupted, so the total wait can exceed
the deadline by up to one interval plus the duration of the last call.
"""

import logging
import time
from typing import Callable, Optional

from replboot.errors import ProbeTimeoutError

logger = logging.getLogger(__name__)


class ReadinessProbe:
    def __init__(
        self,
        interval_seconds: float = 5,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        self.interval_seconds = interval_seconds
        self.clock = clock or time.monotonic
        self.sleep = sleep or time.sleep

    def wait_until(
        self,
        deadline_seconds: float,
        condition: Callable[[], bool],
        description: str = "condition",
        interval_seconds: Optional[float] = None
    ) -> int:
        """
        Block until `condition()` is truthy.

        Args:
            deadline_seconds: Stop retrying once this much time has elapsed
            condition: Zero-argument callable; exceptions propagate to the caller
            description: Label used in log lines and the timeout message
            interval_seconds: Override the probe's default sleep between attempts

        Returns:
            Number of attempts it took

        Raises:
            ProbeTimeoutError: Deadline elapsed without a successful attempt
        """
        interval = self.interval_seconds if interval_seconds is None else interval_seconds
        started = self.clock()
        attempts = 0

        while True:
            attempts += 1
            if condition():
                logger.debug(f"{description}: ready after {attempts} attempt(s)")
                return attempts

            elapsed = self.clock() - started
            if elapsed >= deadline_seconds:
                logger.debug(f"{description}: giving up after {elapsed:.1f}s")
                raise ProbeTimeoutError(
                    f"{description} not ready after {deadline_seconds}s",
                    elapsed=elapsed,
                    attempts=attempts,
                )

            logger.debug(f"{description}: not ready ({elapsed:.0f}/{deadline_seconds}s), retrying in {interval}s")
            self.sleep(interval)
