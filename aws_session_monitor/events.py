"""Session status events and the registry that delivers them."""

import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUpdate:
    text: str


@dataclass(frozen=True)
class SessionExpired:
    pass


@dataclass(frozen=True)
class SessionWarning:
    remaining: float
    threshold: int


@dataclass(frozen=True)
class SessionRenewed:
    pass


@dataclass(frozen=True)
class MonitoringStarted:
    profile_name: str


@dataclass(frozen=True)
class MonitoringStopped:
    pass


class Subscription:
    """Handle returned by EventBus.subscribe(); cancel() detaches the callback."""

    def __init__(self, bus, callback, event_type):
        self._bus = bus
        self.callback = callback
        self.event_type = event_type
        self.active = True

    def matches(self, event):
        return self.event_type is None or isinstance(event, self.event_type)

    def cancel(self):
        if self.active:
            self.active = False
            self._bus._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()


class EventBus:
    """
    Delivers events to subscribers synchronously, in publish order.

    A subscriber that raises is logged and skipped; it never interrupts the
    publisher or the other subscribers.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions = []

    def subscribe(self, callback, event_type=None):
        """
        Register callback for events of event_type (all events if None).

        Returns:
            Subscription
        """
        subscription = Subscription(self, callback, event_type)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription):
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, event):
        with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            if not subscription.active or not subscription.matches(event):
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %r", subscription.callback, event)
