"""Bounded polling for asynchronous ACME state transitions."""

import time
from collections.abc import Callable
from datetime import UTC, datetime

from ddnscert._logging import get_logger
from ddnscert.exceptions import PollingTimeout
from ddnscert.models import Status

logger = get_logger(__name__)

DEFAULT_INTERVAL = 3.0  # seconds
DEFAULT_MAX_ATTEMPTS = 50


def now_utc() -> datetime:
    return datetime.now(UTC)


class Poller:
    """Wait until something reaches a terminal status.

    Shared by order completion, challenge completion and DNS propagation
    checks, so retry policy is defined here only.

    Args:
        max_attempts: Status reads before giving up.
        interval: Seconds to sleep when no retry instant is known.
        sleep: Sleep function (replaced in tests).
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = now_utc,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.interval = interval
        self._sleep = sleep
        self._clock = clock

    def wait(
        self,
        get_status: Callable[[], Status],
        update: Callable[[], datetime | None] | None = None,
    ) -> Status:
        """Poll until get_status() returns VALID or INVALID.

        Args:
            get_status: Returns the current status of the driven object.
            update: Refreshes the driven object and may return the instant
                the server asked us to retry at. When omitted, every retry
                waits the default interval.

        Returns:
            The terminal status.

        Raises:
            PollingTimeout: If max_attempts reads never saw a terminal status.
        """
        for attempt in range(1, self.max_attempts + 1):
            status = get_status()
            if status.is_terminal:
                return status

            retry_at = update() if update is not None else None
            delay = self._delay_until(retry_at)
            logger.debug(
                "Status not final yet",
                extra={"status": str(status), "attempt": attempt, "delay": delay},
            )
            self._sleep(delay)

        raise PollingTimeout(self.max_attempts)

    def _delay_until(self, retry_at: datetime | None) -> float:
        if retry_at is None:
            return self.interval
        return max(0.0, (retry_at - self._clock()).total_seconds())
