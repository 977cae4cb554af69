"""
Realtime Publish/Subscribe Brokers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
import json
import logging
import queue
import threading
from functools import lru_cache

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class Subscription:
    """
    Scoped subscription to a single channel.

    Must be opened before messages are received and closed when the owner
    goes away. Usable as a context manager.
    """

    def __init__(self, broker, channel):
        self.broker = broker
        self.channel = channel
        self.is_open = False

    def open(self):
        if not self.is_open:
            self._open()
            self.is_open = True
        return self

    def close(self):
        if self.is_open:
            self.is_open = False
            try:
                self._close()
            except Exception as e:
                # Best-effort unsubscribe
                logger.warning(f"Failed to close subscription to {self.channel}: {e}")

    def get(self, timeout=None):
        """Return the next message on the channel, or None after `timeout` seconds."""
        if not self.is_open:
            raise RuntimeError(f"Subscription to {self.channel} is not open")
        return self._get(timeout)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _open(self):
        raise NotImplementedError

    def _close(self):
        raise NotImplementedError

    def _get(self, timeout):
        raise NotImplementedError


class BaseBroker:
    """Interface shared by all realtime brokers."""

    def publish(self, channel, message):
        raise NotImplementedError

    def subscribe(self, channel):
        raise NotImplementedError

    def ping(self):
        return True

    def encode(self, message):
        return json.dumps(message, cls=DjangoJSONEncoder)

    def decode(self, raw):
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        return json.loads(raw)


class InProcessSubscription(Subscription):

    def _open(self):
        self._queue = queue.Queue()
        self.broker._attach(self.channel, self._queue)

    def _close(self):
        self.broker._detach(self.channel, self._queue)

    def _get(self, timeout):
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None


class InProcessBroker(BaseBroker):
    """
    Broker that delivers messages to subscribers living in the same process.
    Used in development and tests.
    """

    def __init__(self, **options):
        self._lock = threading.Lock()
        self._queues = {}

    def publish(self, channel, message):
        # Round-trip through JSON so subscribers see what Redis would deliver
        payload = self.decode(self.encode(message))
        with self._lock:
            targets = list(self._queues.get(channel, ()))
        for target in targets:
            target.put(payload)
        return len(targets)

    def subscribe(self, channel):
        return InProcessSubscription(self, channel)

    def _attach(self, channel, target):
        with self._lock:
            self._queues.setdefault(channel, set()).add(target)

    def _detach(self, channel, target):
        with self._lock:
            targets = self._queues.get(channel)
            if targets is not None:
                targets.discard(target)
                if not targets:
                    self._queues.pop(channel, None)


class RedisSubscription(Subscription):

    def _open(self):
        self._pubsub = self.broker.client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(self.channel)

    def _close(self):
        self._pubsub.unsubscribe(self.channel)
        self._pubsub.close()

    def _get(self, timeout):
        message = self._pubsub.get_message(timeout=timeout or 0)
        if message is None or message.get('type') != 'message':
            return None
        return self.broker.decode(message['data'])


class RedisBroker(BaseBroker):
    """Broker backed by Redis pub/sub, shared by every web and worker process."""

    def __init__(self, url='redis://localhost:6379/1', **options):
        import redis

        self.client = redis.Redis.from_url(url)

    def publish(self, channel, message):
        return self.client.publish(channel, self.encode(message))

    def subscribe(self, channel):
        return RedisSubscription(self, channel)

    def ping(self):
        return bool(self.client.ping())


@lru_cache(maxsize=None)
def get_broker():
    """Build the broker configured in settings.REALTIME_BROKER."""
    config = getattr(settings, 'REALTIME_BROKER', {})
    backend = config.get('BACKEND', 'apps.realtime.brokers.InProcessBroker')
    broker_class = import_string(backend)
    return broker_class(**config.get('OPTIONS', {}))


def reset_broker():
    get_broker.cache_clear()


def safe_publish(channel, message, broker=None):
    """
    Publish without raising. Delivery problems are logged and swallowed.
    Returns the number of receivers reported by the broker, or 0 on failure.
    """
    try:
        broker = broker or get_broker()
        return broker.publish(channel, message) or 0
    except Exception as e:
        logger.warning(f"Realtime publish to {channel} failed: {e}")
        return 0
