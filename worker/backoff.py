"""
Exponential backoff with full jitter.

delay = uniform(0, min(cap, base * 2 ** retry_count))

Full jitter spreads retries from concurrent callers instead of having them
hammer a recovering API in lockstep.
"""

import random
from typing import Optional

DEFAULT_BASE = 2.0
DEFAULT_CAP = 60.0


def calculate_delay(
    retry_count: int,
    base: float = DEFAULT_BASE,
    cap: float = DEFAULT_CAP,
    jitter_seed: Optional[int] = None,
) -> float:
    """
    Calculate the delay before the next retry attempt.

    Args:
        retry_count: Zero-based retry number (0 = first retry)
        base: Base delay in seconds
        cap: Upper bound on the delay in seconds
        jitter_seed: Optional seed for deterministic jitter (tests)

    Returns:
        Delay in seconds within [0, min(cap, base * 2 ** retry_count)]
    """
    rng = random.Random(jitter_seed) if jitter_seed is not None else random
    # Clamp the exponent so very large retry counts cannot overflow
    ceiling = min(cap, base * (2 ** min(retry_count, 32)))
    return rng.uniform(0, ceiling)


__all__ = ['calculate_delay', 'DEFAULT_BASE', 'DEFAULT_CAP']
