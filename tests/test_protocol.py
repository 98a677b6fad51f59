from queuedrop.mqtt_topics import (
    customer_events,
    customer_requests,
    customer_responses,
    queue_events,
    staff_requests,
    staff_responses,
)


def test_topic_helpers():
    ns = "demo/v1"
    assert customer_requests(ns) == "demo/v1/customers/requests"
    assert customer_responses("c1", ns) == "demo/v1/customers/responses/c1"
    assert staff_requests(ns) == "demo/v1/staff/requests"
    assert staff_responses("s1", ns) == "demo/v1/staff/responses/s1"
    assert customer_events("tok", ns) == "demo/v1/customers/tok/events"
    assert queue_events("q1", ns) == "demo/v1/queues/q1/events"


def test_default_namespace():
    assert customer_requests() == "queuedrop/v1/customers/requests"
