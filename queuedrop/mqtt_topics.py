"""MQTT topic helpers.

We keep topic construction in one place so the manager and its clients agree
on naming.

Topic layout under a configurable namespace (default: `queuedrop/v1`):

Request/response:
- `<ns>/customers/requests`
    join a queue, look up a position, save a push subscription.
- `<ns>/customers/responses/<client_id>`
- `<ns>/staff/requests`
    call next, mark served / no-show, remove, update settings, list.
- `<ns>/staff/responses/<client_id>`

Event streams (published after each committed mutation):
- `<ns>/customers/<token>/events`
    Events addressed to one customer. Knowing the token is the credential.
- `<ns>/queues/<queue_id>/events`
    Queue-level updates for staff dashboards.
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "queuedrop/v1"


def customer_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/customers/requests"


def customer_responses(client_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/customers/responses/{client_id}"


def staff_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/staff/requests"


def staff_responses(client_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/staff/responses/{client_id}"


def customer_events(token: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Per-customer event stream (position, called, status, near-front)."""
    return f"{namespace}/customers/{token}/events"


def queue_events(queue_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Per-queue event stream (`queue_updated`)."""
    return f"{namespace}/queues/{queue_id}/events"
