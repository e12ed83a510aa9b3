"""Construction of the session services for an application."""

import logging

from .events import EventBus
from .mapping import ProfileCacheMapping
from .matcher import CacheMatcher
from .monitor import SessionMonitor
from .profiles import ProfileRepository, clear_cache
from .renewal import SessionRenewer
from .runner import CommandRunner

logger = logging.getLogger(__name__)


class SessionGateway:
    """
    Owns one instance of each session service, wired together.

    Build it when the application starts and close() it when the application
    exits; close() writes any pending cache mappings to disk.
    """

    def __init__(
        self,
        profiles=None,
        mapping=None,
        runner=None,
        bus=None,
        cache_dir=None,
        **monitor_options
    ):
        self.bus = bus or EventBus()
        self.profiles = profiles or ProfileRepository()
        self.mapping = mapping or ProfileCacheMapping()
        self.runner = runner or CommandRunner()
        self.matcher = CacheMatcher(self.mapping, self.profiles, cache_dir=cache_dir)
        self.monitor = SessionMonitor(
            self.profiles,
            self.matcher,
            self.mapping,
            self.runner,
            self.bus,
            **monitor_options
        )
        self.renewer = SessionRenewer(
            self.monitor,
            self.runner,
            self.mapping,
            self.bus,
            cache_clearer=lambda: clear_cache(self.matcher.cache_dir),
        )

    def connect(self, profile_name):
        return self.monitor.start(profile_name)

    def disconnect(self):
        self.monitor.clean_disconnect()

    def renew(self, profile_name=None):
        return self.renewer.renew(profile_name)

    def subscribe(self, callback, event_type=None):
        return self.bus.subscribe(callback, event_type)

    def close(self):
        self.monitor.close()
        self.mapping.close()
        logger.debug("Session gateway closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
