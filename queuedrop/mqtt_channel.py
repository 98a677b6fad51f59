"""Notification channel that publishes event batches over MQTT.

Customer-scoped events go to `<ns>/customers/<token>/events`, queue-scoped
ones to `<ns>/queues/<queue_id>/events`. Every message carries the queue id
and the version of the snapshot it was computed from.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .mqtt_topics import DEFAULT_NAMESPACE, customer_events, queue_events
from .notifications import EventBatch, QueueUpdated

if TYPE_CHECKING:
    from .mqtt_client import MqttClient


class MqttNotificationChannel:
    def __init__(self, *, mqtt: MqttClient, namespace: str = DEFAULT_NAMESPACE, qos: int = 1) -> None:
        self.mqtt = mqtt
        self.namespace = namespace
        self.qos = qos

    def publish(self, batch: EventBatch) -> None:
        for event in batch.events:
            if isinstance(event, QueueUpdated):
                topic = queue_events(event.queue_id, self.namespace)
            else:
                topic = customer_events(event.customer_token, self.namespace)
            self.mqtt.publish(topic, batch.to_message(event), qos=self.qos)
