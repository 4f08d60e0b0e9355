"""
change_publisher.py
Sends help request change events to Kafka so every open feed can pick them up.

Payload shape (one message per committed write):
    {"eventType": "INSERT" | "UPDATE" | "DELETE",
     "table": "help_requests",
     "new": {...full record...} or None,
     "old": {"id": ...} or None}
"""
import json
import logging
import time

from kafka import KafkaProducer
from kafka.errors import NoBrokersAvailable, KafkaError

from helpconnect import config

logger = logging.getLogger(__name__)

TABLE_NAME = "help_requests"
EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


def build_change_event(event_type, new=None, old=None):
    """Build the message body for a change event."""
    event_type = event_type.upper()
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unsupported change event type: {event_type}")
    return {"eventType": event_type, "table": TABLE_NAME, "new": new, "old": old}


class ChangePublisher:
    """
    Example usage:
        publisher = ChangePublisher()
        store = RequestStore(on_change=publisher.publish_change)
    """

    def __init__(self, topic=None, bootstrap_servers=None, attempts=3, retry_delay=5):
        self.topic = topic or config.HELP_REQUESTS_TOPIC
        self.bootstrap_servers = bootstrap_servers or config.KAFKA_BOOTSTRAP
        self.attempts = attempts
        self.retry_delay = retry_delay
        self._producer = None

    def _get_producer(self):
        if self._producer is None:
            self._producer = KafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                key_serializer=lambda k: k.encode("utf-8") if k else None,
                retries=3,
                request_timeout_ms=10000,
                reconnect_backoff_ms=1000
            )
        return self._producer

    def publish_change(self, event_type, new=None, old=None):
        """Send one change event. Returns True if Kafka accepted it."""
        event = build_change_event(event_type, new=new, old=old)
        record = new or old or {}
        key = record.get("id")

        # Kafka may not be available yet, so we try a few times
        for attempt in range(self.attempts):
            try:
                producer = self._get_producer()
                producer.send(self.topic, value=event, key=key)
                producer.flush()
                logger.info(f"Sent {event['eventType']} event for help request {key} to {self.topic}")
                return True
            except NoBrokersAvailable:
                logger.error(f"Kafka producer attempt {attempt+1} failed (NoBrokersAvailable), retrying in {self.retry_delay}s...")
                time.sleep(self.retry_delay)
            except KafkaError as error:
                logger.error(f"Failed to send change event to Kafka! {error}")
                return False

        logger.error(f"Failed to connect to Kafka after {self.attempts} attempts. Ensure that Kafka is running and accessible!")
        return False

    def close(self):
        if self._producer is not None:
            self._producer.close()
            self._producer = None
