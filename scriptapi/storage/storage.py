"""Key/value storage shared by all invocations of one provider script.

Two independent tiers, each behind its own reader/writer lock:

- the memory tier lives as long as the ``Storage`` object (the loaded
  script), values are kept as given;
- the persistent tier survives restarts.  Values are converted to the
  tagged ``StoredValue`` union, limited to 65535 encoded bytes, and
  expire after a lifetime of 1 to 30 days.  Expired entries are removed
  by a rate-limited sweep and are invisible to reads even before the
  sweep ran.
"""

from __future__ import annotations

import copy
import datetime
import time
from collections.abc import Callable, Mapping

from scriptapi import config
from scriptapi.storage import persistent
from scriptapi.types import values
from scriptapi.utils import locks, logger

log = logger.create_logger("Storage")

Clock = Callable[[], datetime.datetime]


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class Storage:
    """Memory and persistent key/value tiers for one script id."""

    def __init__(
        self,
        script_id: str,
        settings: config.ScriptApiSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.script_id = script_id
        self._settings = settings or config.get_settings()
        self._clock = clock or _utc_now

        self._data: dict[str, object] = {}
        self._lock = locks.ReadWriteLock()

        self._persistent_lock = locks.ReadWriteLock()
        self._store = persistent.load(self._settings.storage_dir, script_id)
        self._last_lifetime_check: float | None = None

        self.check_lifetime()

    # ── Memory tier ─────────────────────────────────────────────

    def write(self, name: str | Mapping[str, object], value: object = None) -> None:
        """Store *value* under *name*, or merge every item of a mapping."""
        items = dict(name) if isinstance(name, Mapping) else {name: value}
        items = copy.deepcopy(items)
        with self._lock.write():
            self._data.update(items)

    def read(self, name: str | None = None, default: object = None) -> object:
        """Return the value stored under *name*, or *default*.

        Without *name*, returns a copy of the whole memory tier.
        """
        with self._lock.read():
            if name is None:
                return copy.deepcopy(self._data)
            if name not in self._data:
                return default
            return copy.deepcopy(self._data[name])

    def has_data(self, name: str) -> bool:
        with self._lock.read():
            return name in self._data

    def remove(self, name: str) -> None:
        with self._lock.write():
            self._data.pop(name, None)

    def clear(self) -> None:
        with self._lock.write():
            self._data.clear()

    # ── Persistent tier ─────────────────────────────────────────

    def write_persistent(
        self,
        name: str | Mapping[str, object],
        value: object = None,
        lifetime: int = config.DEFAULT_LIFETIME_DAYS,
    ) -> bool:
        """Persist *value* under *name* (or every item of a mapping).

        *lifetime* is in days; values above 30 are clamped, values
        below 1 are rejected.  Either all given items are written or,
        if any of them cannot be stored, none is.

        Returns:
            Whether the values were stored.
        """
        items = dict(name) if isinstance(name, Mapping) else {name: value}
        if lifetime < 1:
            log.warn("Rejected persistent write, lifetime below one day", {"script": self.script_id, "lifetime": lifetime})
            return False
        if lifetime > config.MAX_LIFETIME_DAYS:
            log.debug("Lifetime clamped", {"lifetime": lifetime, "max": config.MAX_LIFETIME_DAYS})
            lifetime = config.MAX_LIFETIME_DAYS

        encoded: dict[str, values.StoredValue] = {}
        for key, item in items.items():
            try:
                stored = values.encode_value(item)
            except values.UnsupportedValueError as exc:
                log.warn("Rejected persistent write", {"script": self.script_id, "name": key, "error": str(exc)})
                return False
            size = values.encoded_size(stored)
            if size > config.MAX_PERSISTENT_BYTES:
                log.warn(
                    "Rejected persistent write, value too large",
                    {"script": self.script_id, "name": key, "bytes": size, "max": config.MAX_PERSISTENT_BYTES},
                )
                return False
            encoded[key] = stored

        expires = self._clock() + datetime.timedelta(days=lifetime)
        with self._persistent_lock.write():
            updated = self._store.model_copy(deep=True)
            for key, stored in encoded.items():
                updated.entries[key] = persistent.PersistentEntry(value=stored, expires=expires)
            if not persistent.save(self._settings.storage_dir, updated):
                return False
            self._store = updated
        return True

    def read_persistent(self, name: str, default: object = None) -> object:
        """Return the unexpired persisted value under *name*, or *default*."""
        with self._persistent_lock.read():
            entry = self._store.entries.get(name)
            if entry is None or entry.is_expired(self._clock()):
                return default
            return values.decode_value(entry.value)

    def has_persistent_data(self, name: str) -> bool:
        with self._persistent_lock.read():
            entry = self._store.entries.get(name)
            return entry is not None and not entry.is_expired(self._clock())

    def lifetime(self, name: str) -> int | None:
        """Days until the entry under *name* expires.

        Counted in calendar days, so an entry written with a lifetime
        of ``n`` reports ``n`` on the day it was written.  ``None`` for
        missing or expired entries.
        """
        with self._persistent_lock.read():
            entry = self._store.entries.get(name)
            now = self._clock()
            if entry is None or entry.is_expired(now):
                return None
            return min((entry.expires.date() - now.date()).days, config.MAX_LIFETIME_DAYS)

    def remove_persistent(self, name: str) -> None:
        with self._persistent_lock.write():
            if name not in self._store.entries:
                return
            updated = self._store.model_copy(deep=True)
            del updated.entries[name]
            if persistent.save(self._settings.storage_dir, updated):
                self._store = updated

    def clear_persistent(self) -> None:
        with self._persistent_lock.write():
            updated = persistent.PersistentStore(script_id=self.script_id)
            if not persistent.save(self._settings.storage_dir, updated):
                return
            self._store = updated
        log.success("Persistent storage cleared", {"script": self.script_id})

    def check_lifetime(self, force: bool = False) -> int:
        """Delete expired persistent entries.

        Runs at most once per configured check interval unless
        *force* is set.

        Returns:
            The number of entries removed.
        """
        interval = self._settings.lifetime_check_interval * 60
        with self._persistent_lock.write():
            checked_at = time.monotonic()
            if not force and self._last_lifetime_check is not None and checked_at - self._last_lifetime_check < interval:
                return 0
            self._last_lifetime_check = checked_at

            now = self._clock()
            expired = [key for key, entry in self._store.entries.items() if entry.is_expired(now)]
            if not expired:
                return 0
            updated = self._store.model_copy(deep=True)
            for key in expired:
                del updated.entries[key]
            if not persistent.save(self._settings.storage_dir, updated):
                return 0
            self._store = updated

        log.info("Expired persistent entries removed", {"script": self.script_id, "removed": len(expired)})
        return len(expired)
