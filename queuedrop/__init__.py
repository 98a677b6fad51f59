"""Walk-in queue management with live position updates (MQTT-based).

The core is the `Queue` aggregate: an ordered waitlist whose customers move
Waiting -> Called -> Served / NoShow (or Removed), guarded by optimistic
concurrency on every save. Around it:
- a Queue Manager service that runs operations and fans out notifications
- an auto-expiry sweeper that turns stale calls into no-shows
- customer and staff clients, plus a walk-in generator for load testing

Run `python -m queuedrop.app -h` for the entrypoints.
"""

from .aggregate import Queue
from .errors import ErrorCode, ErrorResponse, QueueStateError, Result
from .manager import QueueManager
from .models import CustomerStatus, QueueCustomer
from .notifications import InMemoryChannel, NearFrontMode, QueueUpdateKind
from .repository import InMemoryQueueRepository
from .settings import QueueSettings
from .sweeper import AutoExpirySweeper

__all__ = [
    "AutoExpirySweeper",
    "CustomerStatus",
    "ErrorCode",
    "ErrorResponse",
    "InMemoryChannel",
    "InMemoryQueueRepository",
    "NearFrontMode",
    "Queue",
    "QueueCustomer",
    "QueueManager",
    "QueueSettings",
    "QueueStateError",
    "QueueUpdateKind",
    "Result",
]
