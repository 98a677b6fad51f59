from __future__ import annotations

# Customer client.
#
# A customer process:
# - connects to the broker
# - joins a queue (or looks up an existing token)
# - optionally watches its own event stream until it is called or leaves
#
# The token returned by `join_queue` is the customer's only credential.

import argparse
import time
from typing import Any

from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, customer_events, customer_requests, customer_responses

_FINAL_STATUSES = {"Served", "NoShow", "Removed"}


class CustomerView:
    """Latest state a customer has seen.

    Events may arrive twice or out of order. Anything computed from an older
    queue version than the newest one already applied is ignored, so the
    displayed position never moves backwards in time.
    """

    def __init__(self) -> None:
        self.version = 0
        self.position: int | None = None
        self.status = "Waiting"
        self.called_message: str | None = None
        self.near_front = False

    def apply(self, event: dict[str, Any]) -> bool:
        """Apply one event; returns False if it was stale and dropped."""
        version = int(event.get("version", 0))
        if version < self.version:
            return False
        self.version = version

        etype = event.get("type")
        if etype == "position_changed":
            self.position = int(event["position"])
        elif etype == "near_front":
            self.near_front = True
        elif etype == "called":
            self.status = "Called"
            self.position = None
            self.called_message = event.get("message")
        elif etype == "status_changed":
            self.status = str(event["status"])
            self.position = None
        return True

    @property
    def done(self) -> bool:
        return self.status == "Called" or self.status in _FINAL_STATUSES


def _connect(mqtt_host: str, mqtt_port: int, namespace: str, label: str) -> tuple[MqttClient, str]:
    # Use a unique client id so many customers can run concurrently.
    client_id = f"customer-{label}-{int(time.time() * 1000)}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()
    reply_topic = customer_responses(client_id, namespace)
    mqtt.subscribe(reply_topic)
    return mqtt, reply_topic


def join_queue(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    name: str,
    queue_id: str | None = None,
    queue_slug: str | None = None,
    party_size: int | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    mqtt, reply_topic = _connect(mqtt_host, mqtt_port, namespace, name)
    message: dict[str, Any] = {"type": "join_queue", "name": name}
    if queue_id:
        message["queue_id"] = queue_id
    if queue_slug:
        message["queue_slug"] = queue_slug
    if party_size is not None:
        message["party_size"] = party_size
    if notes:
        message["notes"] = notes
    try:
        return mqtt.request(
            request_topic=customer_requests(namespace),
            response_topic=reply_topic,
            message=message,
            timeout=5.0,
        )
    finally:
        mqtt.stop()


def get_position(*, mqtt_host: str, mqtt_port: int, namespace: str, token: str) -> dict[str, Any]:
    mqtt, reply_topic = _connect(mqtt_host, mqtt_port, namespace, "lookup")
    try:
        return mqtt.request(
            request_topic=customer_requests(namespace),
            response_topic=reply_topic,
            message={"type": "get_position", "token": token},
            timeout=5.0,
        )
    finally:
        mqtt.stop()


def watch(*, mqtt_host: str, mqtt_port: int, namespace: str, token: str, label: str) -> CustomerView:
    """Print this customer's events until they are called or leave the queue."""
    view = CustomerView()
    client_id = f"customer-watch-{int(time.time() * 1000)}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    topic = customer_events(token, namespace)

    def on_event(t: str, msg: dict[str, Any]) -> None:
        if t != topic or not view.apply(msg):
            return
        if msg.get("type") == "position_changed":
            print(f"[customer {label}] position {view.position}")
        elif msg.get("type") == "near_front":
            print(f"[customer {label}] almost your turn (position {msg.get('position')})")
        elif msg.get("type") == "called":
            print(f"[customer {label}] called: {view.called_message or 'please proceed'}")
        else:
            print(f"[customer {label}] status {view.status}")

    mqtt.add_handler(on_event)
    mqtt.start()
    mqtt.subscribe(topic)
    try:
        while not view.done:
            time.sleep(0.2)
    except KeyboardInterrupt:
        pass
    finally:
        mqtt.stop()
    return view


def main() -> None:
    parser = argparse.ArgumentParser(description="Customer client (MQTT)")
    parser.add_argument("--name", help="join the queue under this name")
    parser.add_argument("--token", help="look up an existing place in line instead of joining")
    parser.add_argument("--queue-id", default=None)
    parser.add_argument("--queue-slug", default=None)
    parser.add_argument("--party-size", type=int, default=None)
    parser.add_argument("--notes", default=None)
    parser.add_argument("--watch", action="store_true", help="follow live updates until called")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    args = parser.parse_args()

    if not args.name and not args.token:
        parser.error("one of --name or --token is required")

    if args.token:
        token = args.token
        label = token[:6]
        resp = get_position(
            mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace, token=token
        )
        if resp.get("type") != "position":
            print(f"[customer {label}] error: {resp}")
            return
        print(f"[customer {label}] status {resp['status']}, position {resp['position']}")
    else:
        label = args.name
        resp = join_queue(
            mqtt_host=args.mqtt_host,
            mqtt_port=args.mqtt_port,
            namespace=args.namespace,
            name=args.name,
            queue_id=args.queue_id,
            queue_slug=args.queue_slug,
            party_size=args.party_size,
            notes=args.notes,
        )
        if resp.get("type") != "joined":
            print(f"[customer {label}] error: {resp}")
            return
        token = resp["token"]
        print(f"[customer {label}] joined {resp['queue_name']} at position {resp['position']} (token {token})")

    if args.watch:
        watch(mqtt_host=args.mqtt_host, mqtt_port=args.mqtt_port, namespace=args.namespace, token=token, label=label)


if __name__ == "__main__":
    main()
