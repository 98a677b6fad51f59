from __future__ import annotations

"""Walk-in arrival model for load generation.

Walk-ins are modelled as a Poisson process with rate λ customers per minute,
so the gaps between arrivals are i.i.d. Exponential(λ). Businesses think in
customers per minute; the generator sleeps in seconds, so we convert here.
"""

import random


def sample_interarrival_seconds(*, rate_per_minute: float, rng: random.Random | None = None) -> float:
    """Sample the gap (seconds) until the next walk-in joins.

    Args:
        rate_per_minute: λ, average joins per minute. Must be > 0.
        rng: optional RNG (useful for deterministic tests).

    Returns:
        A positive float number of seconds.
    """
    if rate_per_minute <= 0:
        raise ValueError("rate_per_minute must be > 0")

    r = rng or random
    return float(r.expovariate(rate_per_minute / 60.0))
