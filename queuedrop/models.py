"""Queue customer record and its status machine.

    Waiting --call--> Called --serve--> Served
                      Called --no-show--> NoShow
    Waiting/Called --remove--> Removed

Served, NoShow and Removed are terminal. Records are never deleted; terminal
ones stay in the queue for history and recent-activity counts.

A `QueueCustomer` is owned by its `Queue`. Only the aggregate calls the
underscore transition methods, after checking the transition itself; the
guards here only catch bypassed invariants.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from .errors import QueueStateError

TokenFactory = Callable[[], str]

MAX_NAME_LENGTH = 100


class CustomerStatus(str, Enum):
    WAITING = "Waiting"
    CALLED = "Called"
    SERVED = "Served"
    NO_SHOW = "NoShow"
    REMOVED = "Removed"

    @property
    def is_terminal(self) -> bool:
        return self in (CustomerStatus.SERVED, CustomerStatus.NO_SHOW, CustomerStatus.REMOVED)


ALLOWED_TRANSITIONS: dict[CustomerStatus, frozenset[CustomerStatus]] = {
    CustomerStatus.WAITING: frozenset({CustomerStatus.CALLED, CustomerStatus.REMOVED}),
    CustomerStatus.CALLED: frozenset(
        {CustomerStatus.SERVED, CustomerStatus.NO_SHOW, CustomerStatus.REMOVED}
    ),
    CustomerStatus.SERVED: frozenset(),
    CustomerStatus.NO_SHOW: frozenset(),
    CustomerStatus.REMOVED: frozenset(),
}


def can_transition(current: CustomerStatus, target: CustomerStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def generate_token() -> str:
    """URL-safe opaque token with 128 bits of entropy."""
    return secrets.token_urlsafe(16)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class QueueCustomer:
    id: str
    token: str
    name: str
    join_sequence: int
    joined_at: datetime
    status: CustomerStatus = CustomerStatus.WAITING
    called_at: datetime | None = None
    served_at: datetime | None = None  # also set on NoShow
    removed_at: datetime | None = None
    phone_number: str | None = None
    party_size: int | None = None
    notes: str | None = None
    push_subscription: str | None = None  # opaque to the core
    near_front_notified_at: datetime | None = None

    @property
    def join_order(self) -> tuple[datetime, int]:
        """FIFO sort key: join timestamp, ties broken by insertion sequence."""
        return (self.joined_at, self.join_sequence)

    # -------------------- transitions (aggregate only) --------------------

    def _transition(self, target: CustomerStatus) -> None:
        if not can_transition(self.status, target):
            raise QueueStateError(
                f"customer {self.id}: illegal transition {self.status.value} -> {target.value}"
            )
        self.status = target

    def _mark_called(self, called_at: datetime) -> None:
        self._transition(CustomerStatus.CALLED)
        self.called_at = called_at

    def _mark_served(self, served_at: datetime) -> None:
        self._transition(CustomerStatus.SERVED)
        self.served_at = served_at

    def _mark_no_show(self, timestamp: datetime) -> None:
        self._transition(CustomerStatus.NO_SHOW)
        self.served_at = timestamp

    def _mark_removed(self, removed_at: datetime | None) -> None:
        self._transition(CustomerStatus.REMOVED)
        self.removed_at = removed_at

    # -------------------- serialization --------------------

    def to_dict(self, *, include_token: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "joined_at": self.joined_at.isoformat(),
            "called_at": self.called_at.isoformat() if self.called_at else None,
            "party_size": self.party_size,
            "notes": self.notes,
            "phone_number": self.phone_number,
        }
        if include_token:
            data["token"] = self.token
        return data
