"""
Readiness Gate

Holds back the first initialization step until the cluster's writer
instance has been active for a minimum settling delay. Right after creation
the administrative interface of a serverless cluster can reject requests
("HttpEndpoint is not enabled"), so after the delay the gate also polls an
optional probe with exponential backoff until it reports the cluster ready.

The gate is one-shot: once it has fired, later calls return the same
proceed signal without waiting or probing again.
"""

import logging
import time
from typing import Callable, Optional

from .errors import ReadinessTimeoutError
from .models import ProceedSignal, WriterActiveMarker

logger = logging.getLogger(__name__)

DEFAULT_MIN_DELAY_SECONDS = 60.0
DEFAULT_MAX_WAIT_SECONDS = 900.0


class ReadinessGate:
    """One-shot readiness gate for a freshly created cluster."""

    def __init__(
        self,
        min_delay: float = DEFAULT_MIN_DELAY_SECONDS,
        probe: Optional[Callable[[], bool]] = None,
        max_wait: float = DEFAULT_MAX_WAIT_SECONDS,
        initial_backoff: float = 5.0,
        max_backoff: float = 30.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_delay < 0 or max_wait < 0:
            raise ValueError("min_delay and max_wait must not be negative")

        self.min_delay = min_delay
        self.probe = probe
        self.max_wait = max_wait
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._clock = clock
        self._sleep = sleep
        self._signal: Optional[ProceedSignal] = None
        self._attempts = 0

    @property
    def fired(self) -> bool:
        return self._signal is not None

    def poll(self, marker: WriterActiveMarker) -> bool:
        """
        Check readiness without blocking.

        Args:
            marker: Time the writer instance became active

        Returns:
            True once the gate has fired
        """
        if self._signal is not None:
            return True

        elapsed = self._clock() - marker.activated_at
        self._check_deadline(elapsed)

        if elapsed < self.min_delay:
            logger.info(f"Waiting for settling delay: {elapsed:.0f}s of {self.min_delay:.0f}s elapsed")
            return False

        if not self._probe_ready():
            return False

        self._fire(marker)
        return True

    def await_ready(self, marker: WriterActiveMarker) -> ProceedSignal:
        """
        Block until the gate fires.

        Args:
            marker: Time the writer instance became active

        Returns:
            The proceed signal

        Raises:
            ReadinessTimeoutError: If the cluster is not ready within max_wait
        """
        if self._signal is not None:
            return self._signal

        remaining = self.min_delay - (self._clock() - marker.activated_at)
        if remaining > 0:
            logger.info(f"Waiting {remaining:.0f}s for the cluster endpoint to settle")
            self._sleep(remaining)

        backoff = self.initial_backoff
        while True:
            elapsed = self._clock() - marker.activated_at
            self._check_deadline(elapsed)

            if self._probe_ready():
                return self._fire(marker)

            if elapsed >= self.max_wait:
                raise ReadinessTimeoutError(
                    f"Cluster not ready after {self._attempts} probe attempts (limit {self.max_wait:.0f}s)"
                )

            wait = min(backoff, self.max_wait - elapsed)
            logger.info(f"Cluster not ready yet, retrying in {wait:.0f}s")
            self._sleep(wait)
            backoff = min(backoff * 2, self.max_backoff)

    def _probe_ready(self) -> bool:
        if self.probe is None:
            return True

        self._attempts += 1
        return bool(self.probe())

    def _check_deadline(self, elapsed: float) -> None:
        if elapsed > self.max_wait:
            raise ReadinessTimeoutError(
                f"Cluster not ready {elapsed:.0f}s after the writer became active "
                f"(limit {self.max_wait:.0f}s, {self._attempts} probe attempts)"
            )

    def _fire(self, marker: WriterActiveMarker) -> ProceedSignal:
        self._signal = ProceedSignal(marker=marker, ready_at=self._clock(), probe_attempts=self._attempts)
        logger.info(f"Readiness gate fired after {self._attempts} probe attempts")
        return self._signal
