from __future__ import annotations

# The Queue aggregate.
#
# A Queue owns its customers and settings. Every change to a customer goes
# through a Queue method, which checks the business rules first and reports
# failures as `Result` values. Nothing here reads a clock: every timestamp is
# supplied by the caller.
#
# Positions are never stored. A Waiting customer's position is
# 1 + the number of Waiting customers ahead of them in join order.

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from . import errors
from .errors import Result
from .models import (
    MAX_NAME_LENGTH,
    CustomerStatus,
    QueueCustomer,
    TokenFactory,
    generate_token,
    new_id,
)
from .settings import DEFAULT_SETTINGS, QueueSettings


def normalize_slug(slug: str) -> str:
    return slug.strip().lower()


@dataclass
class Queue:
    """Aggregate root: the ordered waitlist of one queue."""

    id: str
    business_id: str
    name: str
    slug: str
    created_at: datetime
    is_active: bool = True
    is_paused: bool = False
    settings: QueueSettings = DEFAULT_SETTINGS
    version: int = 0  # set by the repository on load/save
    _customers: list[QueueCustomer] = field(default_factory=list, repr=False)
    _next_sequence: int = 1

    @classmethod
    def create(cls, *, business_id: str, name: str, slug: str, created_at: datetime) -> Queue:
        if not name or not name.strip():
            raise ValueError("queue name is required")
        if not slug or not slug.strip():
            raise ValueError("queue slug is required")
        return cls(
            id=new_id(),
            business_id=business_id,
            name=name.strip(),
            slug=normalize_slug(slug),
            created_at=created_at,
        )

    # -------------------- read views --------------------

    @property
    def customers(self) -> tuple[QueueCustomer, ...]:
        """Every customer ever added, terminal ones included."""
        return tuple(self._customers)

    def get_customer(self, customer_id: str) -> QueueCustomer | None:
        for c in self._customers:
            if c.id == customer_id:
                return c
        return None

    def get_customer_by_token(self, token: str) -> QueueCustomer | None:
        for c in self._customers:
            if c.token == token:
                return c
        return None

    def waiting_customers(self) -> list[QueueCustomer]:
        """Waiting customers in FIFO order."""
        waiting = [c for c in self._customers if c.status is CustomerStatus.WAITING]
        waiting.sort(key=lambda c: c.join_order)
        return waiting

    def called_customers(self) -> list[QueueCustomer]:
        called = [c for c in self._customers if c.status is CustomerStatus.CALLED]
        called.sort(key=lambda c: c.join_order)
        return called

    def active_customers(self) -> list[QueueCustomer]:
        """Staff view: Waiting customers first, then Called ones."""
        return self.waiting_customers() + self.called_customers()

    def waiting_positions(self) -> dict[str, int]:
        """customer id -> position, for every Waiting customer, from one snapshot."""
        return {c.id: i for i, c in enumerate(self.waiting_customers(), start=1)}

    def get_customer_position(self, customer_id: str) -> int | None:
        """1-based rank, or None when the customer is unknown or not Waiting.

        Recomputed on every call: any other customer's transition can shift it.
        """
        return self.waiting_positions().get(customer_id)

    def get_waiting_count(self) -> int:
        return sum(1 for c in self._customers if c.status is CustomerStatus.WAITING)

    def get_called_count(self) -> int:
        return sum(1 for c in self._customers if c.status is CustomerStatus.CALLED)

    def get_served_count(self, since: datetime) -> int:
        return sum(
            1
            for c in self._customers
            if c.status is CustomerStatus.SERVED and c.served_at is not None and c.served_at >= since
        )

    def is_call_expired(self, customer_id: str, now: datetime) -> bool:
        """True when a Called customer has waited at least the no-show timeout."""
        c = self.get_customer(customer_id)
        if c is None or c.status is not CustomerStatus.CALLED:
            return False
        if c.called_at is None:
            raise errors.QueueStateError(f"customer {c.id} is Called without a call timestamp")
        return now - c.called_at >= timedelta(minutes=self.settings.no_show_timeout_minutes)

    def expired_called_customers(self, now: datetime) -> list[QueueCustomer]:
        return [c for c in self.called_customers() if self.is_call_expired(c.id, now)]

    # -------------------- customer operations --------------------

    def add_customer(
        self,
        name: str,
        joined_at: datetime,
        phone_number: str | None = None,
        party_size: int | None = None,
        notes: str | None = None,
        *,
        token_factory: TokenFactory = generate_token,
    ) -> Result[QueueCustomer]:
        clean_name = name.strip() if isinstance(name, str) else ""
        if not clean_name or len(clean_name) > MAX_NAME_LENGTH:
            return Result.failure(errors.invalid_name())
        if party_size is not None and (
            isinstance(party_size, bool) or not isinstance(party_size, int) or party_size < 1
        ):
            return Result.failure(errors.bad_request("party_size must be a positive integer"))

        if not self.is_active:
            return Result.failure(errors.not_active())
        if self.is_paused and not self.settings.allow_join_when_paused:
            return Result.failure(errors.paused())

        limit = self.settings.max_capacity
        if limit is not None and self.get_waiting_count() + self.get_called_count() >= limit:
            return Result.failure(errors.capacity_exceeded(limit))

        taken = {c.token for c in self._customers}
        token = token_factory()
        while token in taken:
            token = token_factory()

        customer = QueueCustomer(
            id=new_id(),
            token=token,
            name=clean_name,
            join_sequence=self._next_sequence,
            joined_at=joined_at,
            phone_number=phone_number,
            party_size=party_size,
            notes=notes,
        )
        self._next_sequence += 1
        self._customers.append(customer)
        return Result.success(customer)

    def call_next(self, called_at: datetime) -> Result[QueueCustomer]:
        """Call the Waiting customer who joined first."""
        if not self.is_active:
            return Result.failure(errors.not_active())

        waiting = self.waiting_customers()
        if not waiting:
            return Result.failure(errors.empty())

        customer = waiting[0]
        customer._mark_called(called_at)
        return Result.success(customer)

    def mark_served(self, customer_id: str, served_at: datetime) -> Result[QueueCustomer]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return Result.failure(errors.customer_not_found(customer_id))
        if customer.status is not CustomerStatus.CALLED:
            return Result.failure(
                errors.invalid_transition(
                    f"Only called customers can be marked served (status is {customer.status.value})."
                )
            )
        customer._mark_served(served_at)
        return Result.success(customer)

    def mark_no_show(self, customer_id: str, timestamp: datetime) -> Result[QueueCustomer]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return Result.failure(errors.customer_not_found(customer_id))
        if customer.status is not CustomerStatus.CALLED:
            return Result.failure(
                errors.invalid_transition(
                    f"Only called customers can be marked no-show (status is {customer.status.value})."
                )
            )
        customer._mark_no_show(timestamp)
        return Result.success(customer)

    def remove_customer(self, customer_id: str, removed_at: datetime | None = None) -> Result[QueueCustomer]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return Result.failure(errors.customer_not_found(customer_id))
        if customer.status.is_terminal:
            return Result.failure(
                errors.invalid_transition(
                    f"Cannot remove a customer who is already {customer.status.value}."
                )
            )
        customer._mark_removed(removed_at)
        return Result.success(customer)

    def set_customer_push_subscription(self, customer_id: str, subscription: str | None) -> Result[QueueCustomer]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return Result.failure(errors.customer_not_found(customer_id))
        customer.push_subscription = subscription
        return Result.success(customer)

    def mark_customer_near_front_notified(self, customer_id: str, timestamp: datetime) -> Result[QueueCustomer]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return Result.failure(errors.customer_not_found(customer_id))
        customer.near_front_notified_at = timestamp
        return Result.success(customer)

    def clear_customer_near_front_notified(self, customer_id: str) -> Result[QueueCustomer]:
        customer = self.get_customer(customer_id)
        if customer is None:
            return Result.failure(errors.customer_not_found(customer_id))
        customer.near_front_notified_at = None
        return Result.success(customer)

    # -------------------- queue operations --------------------

    def update_settings(self, settings: QueueSettings) -> Result[QueueSettings]:
        """Replace settings wholesale. Existing positions are untouched."""
        problem = settings.validate()
        if problem is not None:
            return Result.failure(problem)
        self.settings = settings
        return Result.success(settings)

    def rename(self, name: str) -> Result[str]:
        clean = name.strip() if isinstance(name, str) else ""
        if not clean:
            return Result.failure(errors.bad_request("queue name is required"))
        self.name = clean
        return Result.success(clean)

    def update_slug(self, slug: str) -> Result[str]:
        clean = normalize_slug(slug) if isinstance(slug, str) else ""
        if not clean:
            return Result.failure(errors.bad_request("queue slug is required"))
        self.slug = clean
        return Result.success(clean)

    def activate(self) -> None:
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False

    def pause(self) -> None:
        self.is_paused = True

    def resume(self) -> None:
        self.is_paused = False

    def summary(self) -> dict[str, object]:
        return {
            "queue_id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "is_paused": self.is_paused,
            "waiting_count": self.get_waiting_count(),
            "called_count": self.get_called_count(),
            "version": self.version,
        }
