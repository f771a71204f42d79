# src/meshup/lib/readiness.py
"""Bounded fixed-interval polling for asynchronous host side effects."""
import logging
import time
from typing import Callable, Optional, TypeVar

from meshup.lib.domain import ReadinessCondition

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], None]


def poll(
    fetch: Callable[[], Optional[T]],
    condition: ReadinessCondition,
    sleep: Sleep = time.sleep,
) -> Optional[T]:
    """
    Evaluate ``fetch`` until it returns a truthy value or attempts run out.

    ``fetch`` is called at most ``condition.max_attempts`` times with
    ``condition.interval`` seconds between calls; there is no sleep after the
    final attempt.

    Returns:
        The first truthy value, or None on timeout
    """
    for attempt in range(1, condition.max_attempts + 1):
        value = fetch()
        if value:
            logger.debug(f"{condition.description or 'condition'} ready after {attempt} attempt(s)")
            return value
        if attempt < condition.max_attempts:
            logger.debug(
                f"Waiting for {condition.description or 'condition'}... "
                f"({attempt}/{condition.max_attempts})"
            )
            sleep(condition.interval)

    logger.debug(f"{condition.description or 'condition'} not ready after {condition.max_attempts} attempts")
    return None


def wait_for(
    predicate: Callable[[], bool],
    condition: ReadinessCondition,
    sleep: Sleep = time.sleep,
) -> bool:
    """Block until ``predicate`` holds; False on timeout"""
    return poll(lambda: predicate() or None, condition, sleep) is not None
