"""Backoff scheduling for the REST fallback path."""
import random
from typing import Optional

TRANSIENT_STATUS_CODES = frozenset({429})


def is_transient_status(status_code: int) -> bool:
    """429 and any 5xx are worth retrying; other 4xx are not."""
    return status_code in TRANSIENT_STATUS_CODES or 500 <= status_code <= 599


def backoff_delay(
    attempt: int,
    base_delay: float = 0.5,
    max_delay: float = 15.0,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Seconds to wait before retry number `attempt` (0-based).

    Exponential growth (base * 2**attempt) plus jitter in [0, base), capped at max_delay.
    """
    rng = rng or random
    exponential = base_delay * (2 ** attempt)
    jitter = rng.uniform(0, base_delay)
    return min(max_delay, exponential + jitter)
