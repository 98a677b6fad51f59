"""Notification fan-out.

Every successful queue mutation yields a batch of addressed events:

- customer scoped (`PositionChanged`, `Called`, `StatusChanged`, `NearFront`),
  delivered only to the holder of that customer's token;
- queue scoped (`QueueUpdated`), delivered to whoever watches the queue
  (typically staff).

A batch is derived from one post-mutation snapshot and stamped with the
version that snapshot was saved as. Receivers drop anything older than the
last version they have seen, which keeps each customer's view monotonic
even when batches arrive out of order or more than once.

Batches are handed to a `NotificationChannel` only after the save succeeds.
Transport, retries and deduplication are the channel's business.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Protocol, Union

from .aggregate import Queue
from .models import CustomerStatus, QueueCustomer


class QueueUpdateKind(str, Enum):
    CUSTOMER_JOINED = "CustomerJoined"
    CUSTOMER_CALLED = "CustomerCalled"
    CUSTOMER_SERVED = "CustomerServed"
    CUSTOMER_NO_SHOW = "CustomerNoShow"
    CUSTOMER_REMOVED = "CustomerRemoved"
    SETTINGS_CHANGED = "SettingsChanged"


class NearFrontMode(str, Enum):
    ONCE = "once"  # edge-triggered: once per crossing of the threshold
    ALWAYS = "always"  # level-triggered: on every evaluation at or under it


# -------------------- events --------------------


@dataclass(frozen=True)
class PositionChanged:
    customer_token: str
    position: int

    type: ClassVar[str] = "position_changed"
    scope: ClassVar[str] = "customer"

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "customer_token": self.customer_token, "position": self.position}


@dataclass(frozen=True)
class Called:
    customer_token: str
    message: str | None = None

    type: ClassVar[str] = "called"
    scope: ClassVar[str] = "customer"

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "customer_token": self.customer_token, "message": self.message}


@dataclass(frozen=True)
class StatusChanged:
    customer_token: str
    status: CustomerStatus

    type: ClassVar[str] = "status_changed"
    scope: ClassVar[str] = "customer"

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "customer_token": self.customer_token, "status": self.status.value}


@dataclass(frozen=True)
class NearFront:
    customer_token: str
    position: int

    type: ClassVar[str] = "near_front"
    scope: ClassVar[str] = "customer"

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "customer_token": self.customer_token, "position": self.position}


@dataclass(frozen=True)
class QueueUpdated:
    queue_id: str
    update_kind: QueueUpdateKind

    type: ClassVar[str] = "queue_updated"
    scope: ClassVar[str] = "queue"

    def to_message(self) -> dict[str, Any]:
        return {"type": self.type, "update_kind": self.update_kind.value}


Event = Union[PositionChanged, Called, StatusChanged, NearFront, QueueUpdated]
CustomerEvent = Union[PositionChanged, Called, StatusChanged, NearFront]


@dataclass(frozen=True)
class EventBatch:
    """All events of one committed mutation."""

    queue_id: str
    version: int
    events: tuple[Event, ...] = ()

    def for_customer(self, token: str) -> list[CustomerEvent]:
        return [e for e in self.events if e.scope == "customer" and e.customer_token == token]  # type: ignore[union-attr]

    def for_queue(self) -> list[QueueUpdated]:
        return [e for e in self.events if isinstance(e, QueueUpdated)]

    def to_message(self, event: Event) -> dict[str, Any]:
        msg = event.to_message()
        msg["queue_id"] = self.queue_id
        msg["version"] = self.version
        return msg


# -------------------- derivation --------------------


@dataclass(frozen=True)
class Change:
    """What a mutation did, as far as notifications care.

    `kind` is None for mutations nobody watches (e.g. saving a push
    subscription). `customer` is the record whose status changed, if any.
    """

    kind: QueueUpdateKind | None
    customer: QueueCustomer | None = None


_STATUS_KINDS = {
    QueueUpdateKind.CUSTOMER_SERVED,
    QueueUpdateKind.CUSTOMER_NO_SHOW,
    QueueUpdateKind.CUSTOMER_REMOVED,
}


@dataclass
class NotificationFanOut:
    near_front_mode: NearFrontMode = NearFrontMode.ONCE

    def derive(
        self,
        before: Mapping[str, int],
        queue: Queue,
        change: Change,
        now: datetime,
    ) -> list[Event]:
        """Compute the events for one mutation.

        `before` is `queue.waiting_positions()` taken before the mutation;
        `queue` is the mutated, not yet saved aggregate. Near-front memory is
        written into `queue` so it commits with the same save.
        """
        events: list[Event] = []

        customer = change.customer
        if customer is not None:
            if change.kind is QueueUpdateKind.CUSTOMER_CALLED:
                events.append(Called(customer.token, queue.settings.called_message))
            elif change.kind in _STATUS_KINDS:
                events.append(StatusChanged(customer.token, customer.status))

        after = queue.waiting_positions()
        for customer_id, position in after.items():
            if before.get(customer_id) != position:
                events.append(PositionChanged(_token(queue, customer_id), position))

        events.extend(self._near_front(queue, after, now))

        if change.kind is not None:
            events.append(QueueUpdated(queue.id, change.kind))
        return events

    def _near_front(self, queue: Queue, positions: Mapping[str, int], now: datetime) -> list[Event]:
        threshold = queue.settings.near_front_threshold
        out: list[Event] = []
        for customer_id, position in positions.items():
            c = queue.get_customer(customer_id)
            if c is None:
                continue
            if threshold > 0 and position <= threshold:
                if self.near_front_mode is NearFrontMode.ALWAYS:
                    out.append(NearFront(c.token, position))
                elif c.near_front_notified_at is None:
                    out.append(NearFront(c.token, position))
                    queue.mark_customer_near_front_notified(customer_id, now)
            elif c.near_front_notified_at is not None:
                # back above the threshold: re-arm
                queue.clear_customer_near_front_notified(customer_id)
        return out


def _token(queue: Queue, customer_id: str) -> str:
    c = queue.get_customer(customer_id)
    assert c is not None
    return c.token


# -------------------- channels --------------------


class NotificationChannel(Protocol):
    def publish(self, batch: EventBatch) -> None: ...


@dataclass
class InMemoryChannel:
    """Keeps every published batch; handy for embedding and tests."""

    batches: list[EventBatch] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def publish(self, batch: EventBatch) -> None:
        with self._lock:
            self.batches.append(batch)

    def events_for(self, token: str) -> list[CustomerEvent]:
        with self._lock:
            return [e for b in self.batches for e in b.for_customer(token)]

    def queue_updates(self, queue_id: str) -> list[QueueUpdateKind]:
        with self._lock:
            return [e.update_kind for b in self.batches if b.queue_id == queue_id for e in b.for_queue()]

    def last_position(self, token: str) -> int | None:
        positions = [e.position for e in self.events_for(token) if isinstance(e, PositionChanged)]
        return positions[-1] if positions else None
