from __future__ import annotations

# Wait time helpers.
#
# We estimate how long a waiting customer still has to wait from their
# position and the queue's per-customer service time:
#   estimated_wait_minutes = (position - 1) * estimated_service_minutes
#
# The customer at the front is next, so their estimate is zero.


def estimate_wait_minutes(*, position: int, estimated_service_minutes: int) -> int:
    """Estimate the remaining wait for a Waiting customer.

    Args:
        position: 1-based rank among Waiting customers (>= 1).
        estimated_service_minutes: configured minutes per customer (> 0).

    Returns:
        Non-negative whole minutes.
    """
    if position < 1:
        raise ValueError("position must be >= 1")
    if estimated_service_minutes <= 0:
        raise ValueError("estimated_service_minutes must be > 0")

    return (position - 1) * estimated_service_minutes
