import logging

from queuedrop.errors import QueueStateError
from queuedrop.manager import MqttQueueManagerService, QueueManager
from queuedrop.mqtt_channel import MqttNotificationChannel
from queuedrop.mqtt_topics import customer_events, customer_requests, queue_events, staff_requests
from queuedrop.notifications import EventBatch, PositionChanged, QueueUpdated, QueueUpdateKind

NS = "test/v1"


class FakeMqtt:
    """In-process stand-in for MqttClient."""

    def __init__(self) -> None:
        self.published = []
        self.subscribed = []
        self.handlers = []

    def subscribe(self, topic, *, qos=1):
        self.subscribed.append(topic)

    def add_handler(self, handler):
        self.handlers.append(handler)

    def publish(self, topic, message, *, qos=0):
        self.published.append((topic, message, qos))


def _service(manager):
    mqtt = FakeMqtt()
    service = MqttQueueManagerService(mqtt=mqtt, manager=manager, namespace=NS)
    service.start()
    return service, mqtt


def _send(service, mqtt, topic, message):
    msg = {**message, "corr_id": "c1", "reply_to": "replies/me"}
    for h in mqtt.handlers:
        h(topic, msg)
    reply_topic, reply, _qos = mqtt.published[-1]
    assert reply_topic == "replies/me"
    assert reply["corr_id"] == "c1"
    return reply


def test_start_subscribes_request_topics(manager):
    _, mqtt = _service(manager)
    assert customer_requests(NS) in mqtt.subscribed
    assert staff_requests(NS) in mqtt.subscribed


def test_join_and_lookup_over_mqtt(manager, queue_id):
    service, mqtt = _service(manager)

    joined = _send(service, mqtt, customer_requests(NS), {"type": "join_queue", "queue_slug": "main", "name": "Ada"})
    assert joined["type"] == "joined"
    assert joined["position"] == 1

    pos = _send(service, mqtt, customer_requests(NS), {"type": "get_position", "token": joined["token"]})
    assert pos["type"] == "position"
    assert pos["status"] == "Waiting"
    assert pos["position"] == 1


def test_staff_flow_over_mqtt(manager, queue_id):
    service, mqtt = _service(manager)
    manager.join_queue(queue_id, "Ada").unwrap()

    called = _send(service, mqtt, staff_requests(NS), {"type": "call_next", "queue_id": queue_id})
    assert called["type"] == "customer_called"
    customer_id = called["customer"]["id"]
    assert called["customer"]["token"]

    served = _send(
        service, mqtt, staff_requests(NS), {"type": "mark_served", "queue_id": queue_id, "customer_id": customer_id}
    )
    assert served == {"type": "customer_updated", "customer_id": customer_id, "status": "Served", "corr_id": "c1"}

    again = _send(service, mqtt, staff_requests(NS), {"type": "call_next", "queue_id": queue_id})
    assert again["type"] == "error"
    assert again["code"] == "empty"


def test_update_settings_over_mqtt(manager, queue_id):
    service, mqtt = _service(manager)
    ok = _send(
        service,
        mqtt,
        staff_requests(NS),
        {"type": "update_settings", "queue_id": queue_id, "settings": {"max_capacity": 5, "welcome_message": "  hi "}},
    )
    assert ok["settings"]["max_capacity"] == 5
    assert ok["settings"]["welcome_message"] == "hi"

    bad = _send(
        service,
        mqtt,
        staff_requests(NS),
        {"type": "update_settings", "queue_id": queue_id, "settings": {"no_show_timeout_minutes": 0}},
    )
    assert bad["code"] == "invalid_settings"


def test_staff_requests_are_not_accepted_on_customer_topic(manager, queue_id):
    service, mqtt = _service(manager)
    reply = _send(service, mqtt, customer_requests(NS), {"type": "call_next", "queue_id": queue_id})
    assert reply["type"] == "error"
    assert reply["code"] == "bad_request"


def test_missing_fields_are_bad_requests(manager):
    service, mqtt = _service(manager)
    reply = _send(service, mqtt, staff_requests(NS), {"type": "mark_served"})
    assert reply["code"] == "bad_request"


def test_list_queues_and_customers(manager, queue_id):
    service, mqtt = _service(manager)
    manager.join_queue(queue_id, "Ada").unwrap()

    queues = _send(service, mqtt, staff_requests(NS), {"type": "list_queues"})
    assert [q["slug"] for q in queues["queues"]] == ["main"]

    customers = _send(service, mqtt, staff_requests(NS), {"type": "list_customers", "queue_id": queue_id})
    assert [c["name"] for c in customers["customers"]] == ["Ada"]
    assert "token" not in customers["customers"][0]


def test_channel_routes_events_to_addressed_topics():
    mqtt = FakeMqtt()
    channel = MqttNotificationChannel(mqtt=mqtt, namespace=NS)
    channel.publish(
        EventBatch(
            queue_id="q1",
            version=4,
            events=(PositionChanged("tok", 2), QueueUpdated("q1", QueueUpdateKind.CUSTOMER_JOINED)),
        )
    )

    assert [(t, m["type"], m["version"], qos) for t, m, qos in mqtt.published] == [
        (customer_events("tok", NS), "position_changed", 4, 1),
        (queue_events("q1", NS), "queue_updated", 4, 1),
    ]


def test_party_size_is_not_coerced(manager, queue_id):
    service, mqtt = _service(manager)
    for bad in (2.7, "3"):
        reply = _send(
            service, mqtt, customer_requests(NS), {"type": "join_queue", "queue_id": queue_id, "name": "A", "party_size": bad}
        )
        assert reply["code"] == "bad_request"
    assert manager.list_customers(queue_id).unwrap() == []


def test_inconsistent_state_still_gets_a_reply(repo, channel, clock, caplog):
    class BrokenManager(QueueManager):
        def call_next(self, queue_id):
            raise QueueStateError("token already owned by queue other")

    service, mqtt = _service(BrokenManager(repo, channel, clock=clock))
    with caplog.at_level(logging.ERROR, logger="queuedrop.manager"):
        reply = _send(service, mqtt, staff_requests(NS), {"type": "call_next", "queue_id": "q"})

    assert reply["code"] == "internal_error"
    assert "inconsistent queue state" in caplog.text


def test_rename_and_reslug_over_mqtt(manager, queue_id):
    service, mqtt = _service(manager)
    renamed = _send(service, mqtt, staff_requests(NS), {"type": "rename_queue", "queue_id": queue_id, "name": "Front"})
    assert renamed == {"type": "queue_renamed", "name": "Front", "corr_id": "c1"}

    moved = _send(service, mqtt, staff_requests(NS), {"type": "update_queue_slug", "queue_id": queue_id, "slug": "Front"})
    assert moved["slug"] == "front"

    joined = _send(service, mqtt, customer_requests(NS), {"type": "join_queue", "queue_slug": "front", "name": "Ada"})
    assert joined["queue_name"] == "Front"


def test_shared_slug_is_resolved_by_business(manager, queue_id):
    manager.create_queue(business_id="b2", name="Elsewhere", slug="main").unwrap()
    service, mqtt = _service(manager)

    ambiguous = _send(service, mqtt, customer_requests(NS), {"type": "join_queue", "queue_slug": "main", "name": "A"})
    assert ambiguous["code"] == "bad_request"

    joined = _send(
        service,
        mqtt,
        customer_requests(NS),
        {"type": "join_queue", "queue_slug": "main", "business_id": "b1", "name": "A"},
    )
    assert joined["queue_id"] == queue_id
