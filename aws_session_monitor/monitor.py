"""Background monitoring of the active profile's credential expiry."""

import dataclasses
import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from . import config as settings
from .credentials import format_remaining
from .events import (
    MonitoringStarted,
    MonitoringStopped,
    SessionExpired,
    SessionRenewed,
    SessionUpdate,
    SessionWarning,
)
from .exceptions import ProcessError
from .scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class SessionStatus(Enum):
    IDLE = 'idle'
    CONNECTING = 'connecting'
    MONITORING = 'monitoring'
    EXPIRED = 'expired'
    NOT_AUTHENTICATED = 'not_authenticated'
    DISCONNECTED = 'disconnected'


_INACTIVE = (SessionStatus.IDLE, SessionStatus.DISCONNECTED)


@dataclass
class SessionState:
    active_profile_name: str = None
    expires_at: datetime = None
    generation: int = 0
    clean_disconnect_requested: bool = False
    status: SessionStatus = SessionStatus.IDLE
    fired_thresholds: set = field(default_factory=set)
    last_revalidated: datetime = None


def _utcnow():
    return datetime.now(timezone.utc)


class SessionMonitor:
    """
    Tracks the expiry of one profile's credentials at a time.

    start() resolves the profile's cached credential on a worker thread and
    then ticks once per interval, publishing the countdown, threshold
    warnings and expiry on the event bus. Every call to start(), stop() or
    clean_disconnect() moves to a new generation; work captured under an
    older generation neither changes state nor publishes once it resumes.

    All state changes and all publishing happen while holding one lock, so
    events of a superseded generation are never delivered after events of
    the generation that replaced it.
    """

    def __init__(
        self,
        profiles,
        matcher,
        mapping,
        runner,
        bus,
        executor=None,
        task_factory=PeriodicTask,
        clock=_utcnow,
        tick_interval=settings.TICK_INTERVAL,
        revalidate_interval=settings.REVALIDATE_INTERVAL,
        thresholds=settings.WARNING_THRESHOLDS,
    ):
        self.profiles = profiles
        self.matcher = matcher
        self.mapping = mapping
        self.runner = runner
        self.bus = bus
        self.task_factory = task_factory
        self.clock = clock
        self.tick_interval = tick_interval
        self.revalidate_interval = revalidate_interval
        self.thresholds = tuple(sorted(thresholds, reverse=True))

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.CONNECT_WORKERS, thread_name_prefix='session-monitor'
        )
        self._lock = threading.RLock()
        self._generations = itertools.count(1)
        self._state = SessionState()
        self._task = None

    # Read-only views

    @property
    def state(self):
        """A copy of the current session state."""
        with self._lock:
            return dataclasses.replace(
                self._state, fired_thresholds=set(self._state.fired_thresholds)
            )

    @property
    def status(self):
        with self._lock:
            return self._state.status

    @property
    def active_profile_name(self):
        with self._lock:
            return self._state.active_profile_name

    @property
    def expires_at(self):
        with self._lock:
            return self._state.expires_at

    # Public operations

    def start(self, profile_name):
        """
        Begin monitoring profile_name, replacing any current session.

        Returns:
            Future: completes once the credential has been resolved (or not)
        """
        with self._lock:
            generation = self._next_generation()
            state = self._state
            state.active_profile_name = profile_name
            state.expires_at = None
            state.clean_disconnect_requested = False
            state.status = SessionStatus.CONNECTING
            state.fired_thresholds.clear()
            state.last_revalidated = None

            logger.info("Starting session monitoring for %s", profile_name)
            self._publish(MonitoringStarted(profile_name=profile_name))
            self._publish(SessionUpdate(settings.STATUS_CONNECTING))

        return self._executor.submit(self._connect, generation, profile_name)

    def stop(self):
        """Stop monitoring and announce it to observers."""
        self._shutdown(clean=False)

    def clean_disconnect(self):
        """Stop monitoring without the stopped notification (user-initiated disconnect)."""
        self._shutdown(clean=True)

    def tick(self):
        """Run one status check for the current generation."""
        with self._lock:
            generation = self._state.generation
        self._tick(generation)

    def close(self):
        """Cancel background work and release the worker thread."""
        with self._lock:
            self._cancel_task()
            self._next_generation()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    # Internals

    def _next_generation(self):
        self._cancel_task()
        self._state.generation = next(self._generations)
        return self._state.generation

    def _cancel_task(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _is_current(self, generation):
        with self._lock:
            return self._state.generation == generation

    def _publish(self, event):
        self.bus.publish(event)

    def _shutdown(self, clean):
        with self._lock:
            state = self._state
            was_active = state.status not in _INACTIVE

            self._next_generation()
            state.clean_disconnect_requested = clean
            state.active_profile_name = None
            state.expires_at = None
            state.fired_thresholds.clear()
            state.last_revalidated = None
            if state.status is not SessionStatus.IDLE:
                state.status = SessionStatus.DISCONNECTED

            if not was_active:
                return

            logger.info("Session monitoring stopped%s", " (clean disconnect)" if clean else "")
            self.mapping.clear_connected()
            self._publish(SessionUpdate(settings.STATUS_NO_SESSION))
            if not clean:
                self._publish(MonitoringStopped())

    def _connect(self, generation, profile_name):
        try:
            self._resolve_and_monitor(generation, profile_name)
        except Exception:
            logger.exception("Unexpected error resolving credentials for %s", profile_name)
            self._fail(generation, settings.STATUS_NOT_AUTHENTICATED)

    def _resolve_and_monitor(self, generation, profile_name):
        if not self._is_current(generation):
            return

        profile = self.profiles.get_profile(profile_name)
        if profile is None:
            logger.warning("Profile %s is not an SSO or role profile", profile_name)
            self._fail(generation, settings.STATUS_PROFILE_NOT_FOUND)
            return

        cache_file = self.matcher.resolve(profile)
        if cache_file is None:
            if not self._is_current(generation):
                return
            logger.info("No cached credential for %s, asking the AWS CLI to refresh", profile_name)
            self._refresh(profile_name)
            if not self._is_current(generation):
                return
            cache_file = self.matcher.resolve(profile)

        if cache_file is None:
            self._fail(generation, settings.STATUS_NOT_AUTHENTICATED)
            return

        self._begin_monitoring(generation, profile_name, cache_file.expires_at)

    def _refresh(self, profile_name):
        try:
            self.runner.get_caller_identity(profile_name)
        except ProcessError as e:
            logger.warning("Credential refresh for %s failed: %s", profile_name, e)

    def _fail(self, generation, text):
        with self._lock:
            if self._state.generation != generation:
                return
            self._cancel_task()
            self._state.status = SessionStatus.NOT_AUTHENTICATED
            self._state.expires_at = None
            self._publish(SessionUpdate(text))

    def _begin_monitoring(self, generation, profile_name, expires_at):
        with self._lock:
            if self._state.generation != generation:
                return

            state = self._state
            state.expires_at = expires_at
            state.status = SessionStatus.MONITORING
            state.last_revalidated = self.clock()
            logger.info("Monitoring %s, credentials expire at %s", profile_name, expires_at.isoformat())

            self.mapping.set_connected(profile_name)
            self._task = self.task_factory(
                self.tick_interval,
                lambda: self._tick(generation),
                name=f'session-monitor-{generation}',
            )
            self._task.start()
            self._tick(generation)

    def _tick(self, generation):
        with self._lock:
            state = self._state
            if state.generation != generation or state.status is not SessionStatus.MONITORING:
                return
            now = self.clock()
            profile_name = state.active_profile_name
            revalidate = (
                state.last_revalidated is None
                or (now - state.last_revalidated).total_seconds() >= self.revalidate_interval
            )
            if revalidate:
                state.last_revalidated = now

        if revalidate:
            self._revalidate(generation, profile_name)

        with self._lock:
            state = self._state
            if state.generation != generation or state.status is not SessionStatus.MONITORING:
                return

            remaining = (state.expires_at - self.clock()).total_seconds()
            if remaining <= 0:
                self._expire()
                return

            self._publish(SessionUpdate(f'Session: {format_remaining(remaining)}'))
            self._check_warning_thresholds(remaining)

    def _revalidate(self, generation, profile_name):
        profile = self.profiles.get_profile(profile_name)
        cache_file = self.matcher.resolve(profile) if profile is not None else None
        if cache_file is None:
            # The CLI may be rewriting the file; keep the known expiry
            return

        with self._lock:
            state = self._state
            if state.generation != generation or state.status is not SessionStatus.MONITORING:
                return
            if cache_file.expires_at == state.expires_at:
                return

            extended = cache_file.expires_at > state.expires_at
            state.expires_at = cache_file.expires_at
            logger.info("Credential expiry for %s changed to %s", profile_name, state.expires_at.isoformat())
            if extended:
                state.fired_thresholds.clear()
                self._publish(SessionRenewed())

    def _expire(self):
        state = self._state
        profile_name = state.active_profile_name
        logger.info("Session for %s expired", profile_name)

        self._next_generation()
        state.status = SessionStatus.EXPIRED
        state.expires_at = None
        self.mapping.remove(profile_name)

        self._publish(SessionUpdate(settings.STATUS_EXPIRED))
        if not state.clean_disconnect_requested:
            self._publish(SessionExpired())

    def _check_warning_thresholds(self, remaining):
        # Only a tick inside (threshold - 1, threshold] fires; a jump over the window misses it
        state = self._state
        for threshold in self.thresholds:
            if threshold - 1 < remaining <= threshold and threshold not in state.fired_thresholds:
                state.fired_thresholds.add(threshold)
                self._publish(SessionWarning(remaining=remaining, threshold=threshold))
