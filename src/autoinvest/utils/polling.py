"""Polling helpers shared by gateway health checks and order fill waits."""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PollOutcome:
    """Result of a poll loop.

    Attributes:
        met: Predicate returned True before the deadline
        timed_out: Deadline passed without the predicate being met
        attempts: Number of predicate evaluations
        last_error: Last exception raised by the predicate, if any
    """

    met: bool
    timed_out: bool
    attempts: int
    last_error: Optional[Exception] = None


def poll_until(
    predicate: Callable[[], bool],
    interval: float,
    timeout: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollOutcome:
    """Evaluate ``predicate`` until it returns True or ``timeout`` elapses.

    The first evaluation happens immediately. Exceptions raised by the
    predicate are logged and count as "not yet"; they never escape the loop.

    Args:
        predicate: Zero-argument callable returning True when done
        interval: Seconds to sleep between evaluations
        timeout: Overall deadline in seconds
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        PollOutcome describing how the loop ended

    Example:
        >>> outcome = poll_until(client.check_health, interval=1.0, timeout=30.0)
        >>> if outcome.timed_out:
        ...     print("gateway never answered")
    """
    deadline = clock() + timeout
    attempts = 0
    last_error = None

    while clock() < deadline:
        attempts += 1
        try:
            if predicate():
                return PollOutcome(
                    met=True, timed_out=False, attempts=attempts, last_error=last_error
                )
        except Exception as e:
            last_error = e
            logger.warning("Poll attempt %d failed: %s", attempts, e)

        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))

    logger.debug("Polling timed out after %d attempts (%.1fs)", attempts, timeout)
    return PollOutcome(met=False, timed_out=True, attempts=attempts, last_error=last_error)
