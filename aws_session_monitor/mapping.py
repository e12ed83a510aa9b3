"""Persistent mapping from profile names to credential cache files."""

import json
import logging
import os
import threading

from . import config as settings

logger = logging.getLogger(__name__)


class ProfileCacheMapping:
    """
    Remembers which cache file holds the credentials of each profile.

    Also records the currently connected profile. Mutations are serialized
    with a lock. Ordinary changes are written to disk after a short debounce
    on a timer thread; connect and disconnect are flushed immediately.
    """

    def __init__(self, path=None, debounce_interval=settings.SAVE_DEBOUNCE_INTERVAL):
        self.path = path or settings.mapping_file()
        self.debounce_interval = debounce_interval
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()
        self._mappings = {}
        self._connected_profile = None
        self._dirty = False
        self._timer = None
        self.load()

    def load(self):
        """Load the mapping document, starting fresh if it is missing or corrupt."""
        with self._lock:
            self._mappings = {}
            self._connected_profile = None

            if not self.path.exists():
                logger.debug("Mapping file %s does not exist yet", self.path)
                return

            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    document = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Error loading cache mappings, starting fresh: %s", e)
                return

            if not isinstance(document, dict):
                logger.warning("Ignoring cache mappings with unexpected layout")
                return

            if 'mappings' in document and isinstance(document['mappings'], dict):
                mappings = document['mappings']
                connected = document.get('connected_profile')
            else:
                # Older files were a flat profile -> file document
                mappings = document
                connected = None
                self._dirty = True

            self._mappings = {
                str(name): str(file_name)
                for name, file_name in mappings.items()
                if isinstance(file_name, str)
            }
            self._connected_profile = connected if isinstance(connected, str) else None

        if self._dirty:
            self._schedule_save()

    def get(self, profile_name):
        with self._lock:
            return self._mappings.get(profile_name)

    def set(self, profile_name, cache_file_name):
        """Record that profile_name's credentials live in cache_file_name."""
        with self._lock:
            if self._mappings.get(profile_name) == cache_file_name:
                return
            self._mappings[profile_name] = cache_file_name
            logger.debug("Mapped profile %s to %s", profile_name, cache_file_name)
            self._mark_dirty()

    def remove(self, profile_name):
        with self._lock:
            if self._mappings.pop(profile_name, None) is not None:
                logger.debug("Removed cache mapping for %s", profile_name)
                self._mark_dirty()

    @property
    def connected_profile(self):
        with self._lock:
            return self._connected_profile

    def set_connected(self, profile_name):
        """Mark profile_name as connected and write to disk before returning."""
        with self._lock:
            self._connected_profile = profile_name
            self._dirty = True
        self.flush()

    def clear_connected(self):
        """Clear the connected profile and write to disk before returning."""
        with self._lock:
            self._connected_profile = None
            self._dirty = True
        self.flush()

    def flush(self):
        """Write pending changes synchronously, cancelling any scheduled save."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._save()

    def close(self):
        self.flush()

    def _mark_dirty(self):
        self._dirty = True
        self._schedule_save()

    def _schedule_save(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_interval, self._save)
            self._timer.daemon = True
            self._timer.start()

    def _snapshot(self):
        with self._lock:
            if not self._dirty:
                return None
            self._dirty = False
            return {
                'mappings': dict(self._mappings),
                'connected_profile': self._connected_profile,
            }

    def _save(self):
        # Snapshot and write under one lock so an older snapshot never lands last
        with self._write_lock:
            document = self._snapshot()
            if document is None:
                return
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = self.path.with_name(self.path.name + '.tmp')
                with open(tmp_path, 'w', encoding='utf-8') as f:
                    json.dump(document, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error("Error saving cache mappings to %s: %s", self.path, e)
                with self._lock:
                    self._dirty = True
                return
        logger.debug("Saved cache mappings to %s", self.path)
