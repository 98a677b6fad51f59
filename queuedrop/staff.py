from __future__ import annotations

# Staff console.
#
# One command per invocation, mirroring what a front-desk dashboard does:
# - list queues / list customers
# - call the next customer
# - mark a called customer served or no-show
# - remove a customer
# - pause, resume, or change queue settings
#
# A `version_conflict` reply means another staff member (or the auto-expiry
# sweeper) changed the queue first. The console reloads by simply sending the
# request again, up to --retries times.

import argparse
import json
import time
from typing import Any

from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, staff_requests, staff_responses

ACTIONS = (
    "list-queues",
    "list",
    "call-next",
    "serve",
    "no-show",
    "remove",
    "pause",
    "resume",
    "settings",
)


def build_request(action: str, *, queue_id: str | None, customer_id: str | None, settings: dict | None) -> dict[str, Any]:
    """Translate a console action into a staff request message."""
    if action == "list-queues":
        return {"type": "list_queues"}
    if not queue_id:
        raise ValueError(f"{action} needs --queue-id")

    simple = {
        "list": "list_customers",
        "call-next": "call_next",
        "pause": "pause_queue",
        "resume": "resume_queue",
    }
    if action in simple:
        return {"type": simple[action], "queue_id": queue_id}

    per_customer = {"serve": "mark_served", "no-show": "mark_no_show", "remove": "remove_customer"}
    if action in per_customer:
        if not customer_id:
            raise ValueError(f"{action} needs --customer-id")
        return {"type": per_customer[action], "queue_id": queue_id, "customer_id": customer_id}

    if action == "settings":
        if settings is None:
            raise ValueError("settings needs --settings JSON")
        return {"type": "update_settings", "queue_id": queue_id, "settings": settings}

    raise ValueError(f"unknown action {action!r}")


def send_staff_request(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    staff_id: str,
    message: dict[str, Any],
    retries: int = 3,
) -> dict[str, Any]:
    client_id = f"staff-{staff_id}-{int(time.time() * 1000)}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()

    reply_topic = staff_responses(client_id, namespace)
    mqtt.subscribe(reply_topic)

    try:
        resp: dict[str, Any] = {}
        for _attempt in range(max(1, retries)):
            resp = mqtt.request(
                request_topic=staff_requests(namespace),
                response_topic=reply_topic,
                message=message,
                timeout=5.0,
            )
            if resp.get("code") != "version_conflict":
                break
        return resp
    finally:
        mqtt.stop()


def format_reply(resp: dict[str, Any]) -> str:
    rtype = resp.get("type")
    if rtype == "error":
        return f"error {resp.get('code')}: {resp.get('message')}"
    if rtype == "customer_called":
        c = resp["customer"]
        return f"called {c['name']} (id={c['id']}, party={c.get('party_size')})"
    if rtype == "customers":
        lines = [f"{c['status']:<8} {c['name']:<24} {c['id']}" for c in resp["customers"]]
        return "\n".join(lines) if lines else "(no active customers)"
    if rtype == "queues":
        lines = [
            f"{q['slug']:<16} waiting={q['waiting_count']:<4} called={q['called_count']:<4} "
            f"{'paused ' if q['is_paused'] else ''}{q['queue_id']}"
            for q in resp["queues"]
        ]
        return "\n".join(lines) if lines else "(no queues)"
    return json.dumps(resp)


def main() -> None:
    parser = argparse.ArgumentParser(description="Staff console (MQTT)")
    parser.add_argument("action", choices=ACTIONS)
    parser.add_argument("--queue-id", default=None)
    parser.add_argument("--customer-id", default=None)
    parser.add_argument("--settings", default=None, help='JSON object, e.g. {"no_show_timeout_minutes": 10}')
    parser.add_argument("--staff-id", default="desk")
    parser.add_argument("--retries", type=int, default=3, help="resend on version_conflict")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    args = parser.parse_args()

    settings = json.loads(args.settings) if args.settings else None
    try:
        message = build_request(args.action, queue_id=args.queue_id, customer_id=args.customer_id, settings=settings)
    except ValueError as e:
        parser.error(str(e))

    resp = send_staff_request(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        staff_id=args.staff_id,
        message=message,
        retries=args.retries,
    )
    print(f"[staff {args.staff_id}] {format_reply(resp)}")


if __name__ == "__main__":
    main()
