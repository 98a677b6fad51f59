from __future__ import annotations

# The Queue Manager runs every queue operation end to end.
#
# IMPORTANT: This file contains two layers:
# 1) `QueueManager` (pure logic over a repository and a channel, easy to unit test)
# 2) `MqttQueueManagerService` + `main()` (integration with the MQTT broker)
#
# Every mutation follows the same path:
#   load -> operation on the aggregate -> derive events -> version-guarded save -> publish
# A version conflict is handed back to the caller; nothing here retries.

import argparse
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TYPE_CHECKING

from . import errors
from .aggregate import Queue, normalize_slug
from .errors import ErrorResponse, Result
from .models import CustomerStatus, QueueCustomer, TokenFactory, generate_token
from .notifications import (
    Change,
    EventBatch,
    NearFrontMode,
    NotificationChannel,
    NotificationFanOut,
    QueueUpdateKind,
)
from .repository import QueueRepository
from .service_time import estimate_wait_minutes
from .settings import QueueSettings

if TYPE_CHECKING:
    from .mqtt_client import MqttClient
    from .sweeper import AutoExpirySweeper

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Operation = Callable[[Queue, datetime], Result[Any]]

RECENT_ACTIVITY_WINDOW = timedelta(minutes=30)
DEFAULT_CALLED_MESSAGE = "You've been called! Please proceed."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JoinReceipt:
    queue_id: str
    queue_name: str
    customer_id: str
    token: str
    position: int
    welcome_message: str | None = None

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "joined",
            "queue_id": self.queue_id,
            "queue_name": self.queue_name,
            "customer_id": self.customer_id,
            "token": self.token,
            "position": self.position,
            "welcome_message": self.welcome_message,
        }


@dataclass(frozen=True)
class PositionView:
    """What a customer sees when they look up their token."""

    queue_id: str
    queue_name: str
    status: CustomerStatus
    position: int | None
    estimated_wait_minutes: int | None
    recent_activity: int  # customers served in the last 30 minutes
    welcome_message: str | None
    called_message: str | None
    version: int

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "position",
            "queue_id": self.queue_id,
            "queue_name": self.queue_name,
            "status": self.status.value,
            "position": self.position,
            "estimated_wait_minutes": self.estimated_wait_minutes,
            "recent_activity": self.recent_activity,
            "welcome_message": self.welcome_message,
            "called_message": self.called_message,
            "version": self.version,
        }


class QueueManager:
    """Core application logic (testable without MQTT)."""

    def __init__(
        self,
        repository: QueueRepository,
        channel: NotificationChannel,
        *,
        clock: Clock = utc_now,
        token_factory: TokenFactory = generate_token,
        near_front_mode: NearFrontMode = NearFrontMode.ONCE,
    ) -> None:
        self.repository = repository
        self._channel = channel
        self._clock = clock
        self._token_factory = token_factory
        self._fanout = NotificationFanOut(near_front_mode=near_front_mode)

    def now(self) -> datetime:
        return self._clock()

    # -------------------- queue lifecycle --------------------

    def create_queue(
        self,
        *,
        business_id: str,
        name: str,
        slug: str,
        settings: QueueSettings | None = None,
    ) -> Result[Queue]:
        try:
            queue = Queue.create(business_id=business_id, name=name, slug=slug, created_at=self.now())
        except ValueError as e:
            return Result.failure(errors.bad_request(str(e)))
        if self._queues_with_slug(queue.slug, business_id):
            return Result.failure(errors.slug_taken(queue.slug))
        if settings is not None:
            applied = queue.update_settings(settings)
            if not applied.ok:
                return Result.failure(applied.error)  # type: ignore[arg-type]
        added = self.repository.add(queue)
        if not added.ok:
            return Result.failure(added.error)  # type: ignore[arg-type]
        return Result.success(queue)

    def find_queue_id_by_slug(self, slug: str, business_id: str | None = None) -> str | None:
        """Resolve a slug to a queue id.

        Slugs are unique per business only. Without a business id, a slug
        shared by several businesses is ambiguous and raises ValueError.
        """
        matches = self._queues_with_slug(normalize_slug(slug), business_id)
        if len(matches) > 1:
            raise ValueError(f"queue slug {normalize_slug(slug)!r} is ambiguous; pass a business_id")
        return matches[0] if matches else None

    def list_queues(self) -> list[dict[str, object]]:
        out = []
        for queue_id in self.repository.list_queue_ids(active_only=False):
            loaded = self.repository.load(queue_id)
            if loaded is not None:
                out.append(loaded[0].summary())
        return out

    def rename_queue(self, queue_id: str, name: str) -> Result[str]:
        return self._mutate(queue_id, lambda q, _now: q.rename(name), QueueUpdateKind.SETTINGS_CHANGED)

    def update_queue_slug(self, queue_id: str, slug: str) -> Result[str]:
        def op(queue: Queue, _now: datetime) -> Result[str]:
            wanted = normalize_slug(slug) if isinstance(slug, str) else ""
            if any(qid != queue.id for qid in self._queues_with_slug(wanted, queue.business_id)):
                return Result.failure(errors.slug_taken(wanted))
            return queue.update_slug(slug)

        return self._mutate(queue_id, op, QueueUpdateKind.SETTINGS_CHANGED)

    def update_settings(self, queue_id: str, settings: QueueSettings) -> Result[QueueSettings]:
        return self._mutate(queue_id, lambda q, _now: q.update_settings(settings), QueueUpdateKind.SETTINGS_CHANGED)

    def pause_queue(self, queue_id: str) -> Result[None]:
        return self._mutate(queue_id, _toggle(Queue.pause), QueueUpdateKind.SETTINGS_CHANGED)

    def resume_queue(self, queue_id: str) -> Result[None]:
        return self._mutate(queue_id, _toggle(Queue.resume), QueueUpdateKind.SETTINGS_CHANGED)

    def activate_queue(self, queue_id: str) -> Result[None]:
        return self._mutate(queue_id, _toggle(Queue.activate), QueueUpdateKind.SETTINGS_CHANGED)

    def deactivate_queue(self, queue_id: str) -> Result[None]:
        return self._mutate(queue_id, _toggle(Queue.deactivate), QueueUpdateKind.SETTINGS_CHANGED)

    # -------------------- customer-facing --------------------

    def join_queue(
        self,
        queue_id: str,
        name: str,
        *,
        phone_number: str | None = None,
        party_size: int | None = None,
        notes: str | None = None,
    ) -> Result[JoinReceipt]:
        def op(queue: Queue, now: datetime) -> Result[QueueCustomer]:
            return queue.add_customer(
                name,
                now,
                phone_number=phone_number,
                party_size=party_size,
                notes=notes,
                token_factory=self._fresh_token,
            )

        receipt: dict[str, Any] = {}

        def capture(queue: Queue, customer: QueueCustomer) -> None:
            receipt["queue"] = queue
            receipt["position"] = queue.get_customer_position(customer.id)

        result = self._mutate(queue_id, op, QueueUpdateKind.CUSTOMER_JOINED, on_commit=capture)
        if not result.ok:
            return Result.failure(result.error)  # type: ignore[arg-type]

        customer: QueueCustomer = result.value
        queue: Queue = receipt["queue"]
        return Result.success(
            JoinReceipt(
                queue_id=queue.id,
                queue_name=queue.name,
                customer_id=customer.id,
                token=customer.token,
                position=receipt["position"],
                welcome_message=queue.settings.welcome_message,
            )
        )

    def get_position(self, token: str) -> Result[PositionView]:
        queue_id = self.repository.find_queue_id_by_token(token)
        loaded = self.repository.load(queue_id) if queue_id is not None else None
        customer = loaded[0].get_customer_by_token(token) if loaded is not None else None
        if loaded is None or customer is None:
            return Result.failure(errors.token_not_found())

        queue, version = loaded
        now = self.now()
        position = queue.get_customer_position(customer.id)
        wait = (
            estimate_wait_minutes(
                position=position, estimated_service_minutes=queue.settings.estimated_service_minutes
            )
            if position is not None
            else None
        )
        called_message = None
        if customer.status is CustomerStatus.CALLED:
            called_message = queue.settings.called_message or DEFAULT_CALLED_MESSAGE

        return Result.success(
            PositionView(
                queue_id=queue.id,
                queue_name=queue.name,
                status=customer.status,
                position=position,
                estimated_wait_minutes=wait,
                recent_activity=queue.get_served_count(now - RECENT_ACTIVITY_WINDOW),
                welcome_message=queue.settings.welcome_message,
                called_message=called_message,
                version=version,
            )
        )

    def save_push_subscription(self, token: str, subscription: str | None) -> Result[QueueCustomer]:
        queue_id = self.repository.find_queue_id_by_token(token)
        if queue_id is None:
            return Result.failure(errors.token_not_found())

        def op(queue: Queue, _now: datetime) -> Result[QueueCustomer]:
            customer = queue.get_customer_by_token(token)
            if customer is None:
                return Result.failure(errors.token_not_found())
            return queue.set_customer_push_subscription(customer.id, subscription)

        return self._mutate(queue_id, op, None)

    # -------------------- staff-facing --------------------

    def call_next(self, queue_id: str) -> Result[QueueCustomer]:
        return self._mutate(queue_id, lambda q, now: q.call_next(now), QueueUpdateKind.CUSTOMER_CALLED)

    def mark_served(self, queue_id: str, customer_id: str) -> Result[QueueCustomer]:
        return self._mutate(
            queue_id, lambda q, now: q.mark_served(customer_id, now), QueueUpdateKind.CUSTOMER_SERVED
        )

    def mark_no_show(self, queue_id: str, customer_id: str) -> Result[QueueCustomer]:
        return self._mutate(
            queue_id, lambda q, now: q.mark_no_show(customer_id, now), QueueUpdateKind.CUSTOMER_NO_SHOW
        )

    def remove_customer(self, queue_id: str, customer_id: str) -> Result[QueueCustomer]:
        return self._mutate(
            queue_id, lambda q, now: q.remove_customer(customer_id, now), QueueUpdateKind.CUSTOMER_REMOVED
        )

    def list_customers(self, queue_id: str) -> Result[list[QueueCustomer]]:
        loaded = self.repository.load(queue_id)
        if loaded is None:
            return Result.failure(errors.queue_not_found(queue_id))
        return Result.success(loaded[0].active_customers())

    # -------------------- auto-expiry --------------------

    def expire_if_due(self, queue_id: str, customer_id: str, now: datetime | None = None) -> Result[bool]:
        """Mark a Called customer no-show if their call has timed out.

        Evaluated against a fresh load: a customer who has meanwhile been
        served, removed or already expired is left alone (result False).
        """
        now = now or self.now()
        loaded = self.repository.load(queue_id)
        if loaded is None:
            return Result.failure(errors.queue_not_found(queue_id))
        queue, version = loaded
        if not queue.is_active or not queue.is_call_expired(customer_id, now):
            return Result.success(False)

        before = queue.waiting_positions()
        marked = queue.mark_no_show(customer_id, now)
        if not marked.ok:
            return Result.failure(marked.error)  # type: ignore[arg-type]
        committed = self._commit(
            queue, version, before, Change(QueueUpdateKind.CUSTOMER_NO_SHOW, marked.value), now
        )
        if not committed.ok:
            return Result.failure(committed.error)  # type: ignore[arg-type]
        return Result.success(True)

    # -------------------- internals --------------------

    def _queues_with_slug(self, slug: str, business_id: str | None) -> list[str]:
        found = []
        for queue_id in self.repository.list_queue_ids(active_only=False):
            loaded = self.repository.load(queue_id)
            if loaded is None:
                continue
            queue = loaded[0]
            if queue.slug == slug and (business_id is None or queue.business_id == business_id):
                found.append(queue_id)
        return found

    def _fresh_token(self) -> str:
        # Tokens are unique across every queue, not just within one.
        token = self._token_factory()
        while self.repository.find_queue_id_by_token(token) is not None:
            token = self._token_factory()
        return token

    def _mutate(
        self,
        queue_id: str,
        operation: Operation,
        kind: QueueUpdateKind | None,
        *,
        on_commit: Callable[[Queue, Any], None] | None = None,
    ) -> Result[Any]:
        loaded = self.repository.load(queue_id)
        if loaded is None:
            return Result.failure(errors.queue_not_found(queue_id))
        queue, version = loaded

        now = self.now()
        before = queue.waiting_positions()
        result = operation(queue, now)
        if not result.ok:
            return result

        subject = result.value if isinstance(result.value, QueueCustomer) else None
        committed = self._commit(queue, version, before, Change(kind, subject), now)
        if not committed.ok:
            return Result.failure(committed.error)  # type: ignore[arg-type]
        if on_commit is not None:
            on_commit(queue, result.value)
        return result

    def _commit(
        self,
        queue: Queue,
        version: int,
        before: dict[str, int],
        change: Change,
        now: datetime,
    ) -> Result[int]:
        events = self._fanout.derive(before, queue, change, now)
        saved = self.repository.save(queue, version)
        if not saved.ok:
            logger.info("save rejected for queue %s: %s", queue.id, saved.error)
            return saved
        self._publish(EventBatch(queue_id=queue.id, version=saved.value, events=tuple(events)))  # type: ignore[arg-type]
        return saved

    def _publish(self, batch: EventBatch) -> None:
        if not batch.events:
            return
        try:
            self._channel.publish(batch)
        except Exception:
            # The mutation is already committed; delivery is the channel's problem.
            logger.exception(
                "failed to publish %d events for queue %s v%d", len(batch.events), batch.queue_id, batch.version
            )


def _toggle(method: Callable[[Queue], None]) -> Operation:
    def op(queue: Queue, _now: datetime) -> Result[None]:
        method(queue)
        return Result.success(None)

    return op


class MqttQueueManagerService:
    """MQTT adapter around the QueueManager business logic."""

    def __init__(
        self,
        *,
        mqtt: MqttClient,
        manager: QueueManager,
        namespace: str = "queuedrop/v1",
        sweeper: AutoExpirySweeper | None = None,
    ) -> None:
        # Local imports so unit tests can import QueueManager without paho-mqtt.
        from .mqtt_topics import customer_requests, staff_requests

        self.mqtt = mqtt
        self.namespace = namespace
        self.manager = manager
        self.sweeper = sweeper

        self._customer_topic = customer_requests(namespace)
        self._staff_topic = staff_requests(namespace)

        self._customer_handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "join_queue": self._join_queue,
            "get_position": self._get_position,
            "save_push_subscription": self._save_push_subscription,
        }
        self._staff_handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "call_next": self._call_next,
            "mark_served": self._mark_served,
            "mark_no_show": self._mark_no_show,
            "remove_customer": self._remove_customer,
            "update_settings": self._update_settings,
            "rename_queue": self._rename_queue,
            "update_queue_slug": self._update_queue_slug,
            "pause_queue": self._pause_queue,
            "resume_queue": self._resume_queue,
            "list_customers": self._list_customers,
            "list_queues": self._list_queues,
        }

    def start(self, *, sweep_every: float = 30.0) -> None:
        self.mqtt.subscribe(self._customer_topic)
        self.mqtt.subscribe(self._staff_topic)
        self.mqtt.add_handler(self._handle_message)
        if self.sweeper is not None:
            self.sweeper.start(interval=sweep_every)

    def stop(self) -> None:
        """Stop the sweeper. Call before disconnecting MQTT."""
        if self.sweeper is not None:
            self.sweeper.stop()

    def _reply(self, reply_to: str, corr_id: str | None, message: dict[str, Any]) -> None:
        msg = dict(message)
        if corr_id is not None:
            msg["corr_id"] = corr_id
        self.mqtt.publish(reply_to, msg)

    def _handle_message(self, topic: str, msg: dict[str, Any]) -> None:
        if topic == self._customer_topic:
            handlers = self._customer_handlers
        elif topic == self._staff_topic:
            handlers = self._staff_handlers
        else:
            return

        corr_id = msg.get("corr_id") if isinstance(msg.get("corr_id"), str) else None
        reply_to = msg.get("reply_to") if isinstance(msg.get("reply_to"), str) else None
        if not reply_to:
            return

        mtype = msg.get("type")
        handler = handlers.get(mtype) if isinstance(mtype, str) else None
        if handler is None:
            self._reply(reply_to, corr_id, errors.bad_request(f"unknown request type {mtype!r}").to_message())
            return

        try:
            reply = handler(msg)
        except (TypeError, ValueError) as e:
            reply = errors.bad_request(str(e))
        except errors.QueueStateError:
            logger.exception("%s request failed on inconsistent queue state", mtype)
            reply = errors.internal_error()

        if isinstance(reply, ErrorResponse):
            logger.info("rejected %s request: %s", mtype, reply)
            reply = reply.to_message()
        self._reply(reply_to, corr_id, reply)

    # -------------------- customer requests --------------------

    def _join_queue(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        queue_id = self._resolve_queue(msg)
        if queue_id is None:
            return errors.queue_not_found(str(msg.get("queue_id") or msg.get("queue_slug") or ""))
        result = self.manager.join_queue(
            queue_id,
            str(msg.get("name", "")),
            phone_number=_opt_str(msg.get("phone_number")),
            party_size=msg.get("party_size"),
            notes=_opt_str(msg.get("notes")),
        )
        return result.value.to_message() if result.ok else result.error  # type: ignore[union-attr,return-value]

    def _get_position(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        token = _required(msg, "token")
        result = self.manager.get_position(token)
        return result.value.to_message() if result.ok else result.error  # type: ignore[union-attr,return-value]

    def _save_push_subscription(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        token = _required(msg, "token")
        subscription = msg.get("subscription")
        if isinstance(subscription, dict):
            subscription = json.dumps(subscription, separators=(",", ":"))
        result = self.manager.save_push_subscription(token, _opt_str(subscription))
        if not result.ok:
            return result.error  # type: ignore[return-value]
        return {"type": "subscription_saved"}

    # -------------------- staff requests --------------------

    def _call_next(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        result = self.manager.call_next(_required(msg, "queue_id"))
        if not result.ok:
            return result.error  # type: ignore[return-value]
        return {"type": "customer_called", "customer": result.value.to_dict(include_token=True)}  # type: ignore[union-attr]

    def _mark_served(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        return self._customer_reply(
            self.manager.mark_served(_required(msg, "queue_id"), _required(msg, "customer_id"))
        )

    def _mark_no_show(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        return self._customer_reply(
            self.manager.mark_no_show(_required(msg, "queue_id"), _required(msg, "customer_id"))
        )

    def _remove_customer(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        return self._customer_reply(
            self.manager.remove_customer(_required(msg, "queue_id"), _required(msg, "customer_id"))
        )

    def _update_settings(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        raw = msg.get("settings")
        if not isinstance(raw, dict):
            return errors.bad_request("settings object required")
        result = self.manager.update_settings(_required(msg, "queue_id"), QueueSettings.from_dict(raw))
        if not result.ok:
            return result.error  # type: ignore[return-value]
        return {"type": "settings_updated", "settings": result.value.to_dict()}  # type: ignore[union-attr]

    def _rename_queue(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        result = self.manager.rename_queue(_required(msg, "queue_id"), _required(msg, "name"))
        return {"type": "queue_renamed", "name": result.value} if result.ok else result.error  # type: ignore[return-value]

    def _update_queue_slug(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        result = self.manager.update_queue_slug(_required(msg, "queue_id"), _required(msg, "slug"))
        return {"type": "queue_slug_updated", "slug": result.value} if result.ok else result.error  # type: ignore[return-value]

    def _pause_queue(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        result = self.manager.pause_queue(_required(msg, "queue_id"))
        return {"type": "queue_paused"} if result.ok else result.error  # type: ignore[return-value]

    def _resume_queue(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        result = self.manager.resume_queue(_required(msg, "queue_id"))
        return {"type": "queue_resumed"} if result.ok else result.error  # type: ignore[return-value]

    def _list_customers(self, msg: dict[str, Any]) -> dict[str, Any] | ErrorResponse:
        queue_id = _required(msg, "queue_id")
        result = self.manager.list_customers(queue_id)
        if not result.ok:
            return result.error  # type: ignore[return-value]
        return {
            "type": "customers",
            "queue_id": queue_id,
            "customers": [c.to_dict() for c in result.value],  # type: ignore[union-attr]
        }

    def _list_queues(self, _msg: dict[str, Any]) -> dict[str, Any]:
        return {"type": "queues", "queues": self.manager.list_queues()}

    # -------------------- helpers --------------------

    def _resolve_queue(self, msg: dict[str, Any]) -> str | None:
        queue_id = msg.get("queue_id")
        if isinstance(queue_id, str) and queue_id:
            return queue_id
        slug = msg.get("queue_slug")
        if isinstance(slug, str) and slug:
            return self.manager.find_queue_id_by_slug(slug, _opt_str(msg.get("business_id")))
        return None

    @staticmethod
    def _customer_reply(result: Result[QueueCustomer]) -> dict[str, Any] | ErrorResponse:
        if not result.ok:
            return result.error  # type: ignore[return-value]
        customer = result.value
        return {"type": "customer_updated", "customer_id": customer.id, "status": customer.status.value}  # type: ignore[union-attr]


def _required(msg: dict[str, Any], key: str) -> str:
    value = msg.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} required")
    return value


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def main() -> None:
    # Import MQTT dependencies only when running the real service.
    from .mqtt_channel import MqttNotificationChannel
    from .mqtt_client import MqttClient
    from .repository import InMemoryQueueRepository
    from .sweeper import AutoExpirySweeper

    parser = argparse.ArgumentParser(description="Queue Manager (MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default="queuedrop/v1")
    parser.add_argument(
        "--sweep-every",
        type=float,
        default=30.0,
        help="seconds between auto-expiry sweeps of called customers",
    )
    parser.add_argument(
        "--near-front-mode",
        choices=[m.value for m in NearFrontMode],
        default=NearFrontMode.ONCE.value,
        help="notify near-front once per crossing, or on every update",
    )
    parser.add_argument(
        "--demo-queue",
        metavar="SLUG",
        default=None,
        help="create an empty queue with this slug at startup",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    mqtt_client = MqttClient(client_id="queuedrop-manager", host=args.mqtt_host, port=args.mqtt_port)
    mqtt_client.start()

    manager = QueueManager(
        InMemoryQueueRepository(),
        MqttNotificationChannel(mqtt=mqtt_client, namespace=args.namespace),
        near_front_mode=NearFrontMode(args.near_front_mode),
    )
    if args.demo_queue:
        created = manager.create_queue(business_id="demo", name=args.demo_queue.title(), slug=args.demo_queue)
        queue = created.unwrap()
        print(f"[manager] demo queue {queue.slug} id={queue.id}")

    service = MqttQueueManagerService(
        mqtt=mqtt_client,
        manager=manager,
        namespace=args.namespace,
        sweeper=AutoExpirySweeper(manager),
    )
    service.start(sweep_every=args.sweep_every)

    print(f"[manager] connected to MQTT {args.mqtt_host}:{args.mqtt_port}, namespace={args.namespace}")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()
        mqtt_client.stop()


if __name__ == "__main__":
    main()
