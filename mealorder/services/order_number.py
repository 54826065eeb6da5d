import logging
import random
import time
from typing import Awaitable, Callable

from mealorder.core.config import ORDER_NUMBER_MAX_ATTEMPTS
from mealorder.core.errors import ConflictError

log = logging.getLogger("mealorder.order_number")

ORDER_NUMBER_PREFIX = "ORD"

_rng = random.SystemRandom()


def candidate_order_number() -> str:
    """ORD + last six digits of the millisecond clock + four random digits."""
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = f"{_rng.randrange(10000):04d}"
    return f"{ORDER_NUMBER_PREFIX}{timestamp}{suffix}"


async def generate_order_number(
    is_taken: Callable[[str], Awaitable[bool]],
    max_attempts: int = ORDER_NUMBER_MAX_ATTEMPTS,
) -> str:
    """
    Draws candidates until ``is_taken`` reports a free one.

    The scheme is not collision-free by construction, so uniqueness comes from
    the check. After ``max_attempts`` collisions a ConflictError is raised.
    """
    for attempt in range(1, max_attempts + 1):
        candidate = candidate_order_number()
        if not await is_taken(candidate):
            return candidate
        log.warning(f"Order number {candidate} already in use (attempt {attempt}/{max_attempts}).")

    raise ConflictError("Could not allocate a unique order number, please retry")
