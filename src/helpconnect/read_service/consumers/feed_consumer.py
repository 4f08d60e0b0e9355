"""
Kafka consumer for help request change events.

Reads from the help requests topic and folds every event into a FeedSynchronizer.
One FeedSubscription belongs to one feed: it is opened when the feed starts and
always closed when the feed goes away (also when setting it up fails halfway).
"""

import json
import logging
import time

from kafka import KafkaConsumer
from kafka.errors import KafkaError, NoBrokersAvailable

from helpconnect import config
from helpconnect.read_service.feed.synchronizer import FEED_UNAVAILABLE_ERROR

logger = logging.getLogger(__name__)


class FeedSubscription:
    """
    Example usage:
        with FeedSubscription(feed) as subscription:
            subscription.listen()
    """

    def __init__(self, synchronizer, topic=None, bootstrap_servers=None, group_id=None,
                 attempts=3, retry_delay=5, consumer_timeout_ms=float("inf")):
        self.synchronizer = synchronizer
        self.topic = topic or config.HELP_REQUESTS_TOPIC
        self.bootstrap_servers = bootstrap_servers or config.KAFKA_BOOTSTRAP
        # No group by default: every feed gets every event
        self.group_id = group_id
        self.attempts = attempts
        self.retry_delay = retry_delay
        self.consumer_timeout_ms = consumer_timeout_ms
        self.consumer = None

    def open(self):
        """Connect to Kafka (a few tries, since Kafka can be slow to start)."""
        for attempt in range(self.attempts):
            try:
                self.consumer = KafkaConsumer(
                    self.topic,
                    bootstrap_servers=self.bootstrap_servers,
                    group_id=self.group_id,
                    value_deserializer=lambda m: json.loads(m.decode("utf-8")),
                    # Only changes after the snapshot matter to a live feed
                    auto_offset_reset="latest",
                    enable_auto_commit=True,
                    consumer_timeout_ms=self.consumer_timeout_ms
                )
                logger.info(f"Subscribed to help request changes on topic: {self.topic}")
                return self
            except NoBrokersAvailable:
                logger.warning(f"Kafka consumer attempt {attempt+1} failed (NoBrokersAvailable), retrying in {self.retry_delay}s...")
                time.sleep(self.retry_delay)

        raise NoBrokersAvailable(f"Could not subscribe to {self.topic} after {self.attempts} attempts")

    def close(self):
        if self.consumer is not None:
            self.consumer.close()
            self.consumer = None
            logger.info(f"Unsubscribed from topic: {self.topic}")

    def __enter__(self):
        try:
            return self.open()
        except Exception:
            self.close()
            raise

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def listen(self, max_messages=None):
        """
        Hand every change event to the synchronizer, in the order Kafka delivers them.
        A bad event is logged and skipped; it never stops the feed.
        Returns the number of messages read.
        """
        if self.consumer is None:
            raise RuntimeError("Subscription is not open")

        message_count = 0
        for message in self.consumer:
            if self.synchronizer.closed:
                logger.info("Feed closed, stopping subscription")
                break

            try:
                self.synchronizer.handle_event(message.value)
            except Exception as e:
                logger.error(f"Error processing change event {message.value}: {e}")

            message_count += 1
            if max_messages and message_count >= max_messages:
                logger.info(f"reached max_messages({max_messages}), stopping")
                break
        return message_count


def run_feed_subscription(synchronizer, max_messages=None, **kwargs):
    """
    Subscribe, listen until stopped, and always unsubscribe.
    If Kafka cannot be reached the feed is put in its error state instead of going stale quietly.
    """
    try:
        with FeedSubscription(synchronizer, **kwargs) as subscription:
            return subscription.listen(max_messages=max_messages)
    except KafkaError as e:
        logger.error(f"Live feed subscription failed: {e}")
        synchronizer.report_error(FEED_UNAVAILABLE_ERROR)
        return 0
    except KeyboardInterrupt:
        logger.info("Subscription stopped by user")
        return 0
