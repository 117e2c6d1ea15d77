"""On-disk file backing the persistent storage tier.

Each provider script gets one JSON file under
``<cache_dir>/storage/`` named by its script id.  A file maps entry
names to a tagged value and an expiry timestamp (UTC).

Files are replaced atomically (write to a temporary file, then
rename), so a crash mid-write leaves the previous version intact.  A
file that cannot be parsed is logged, deleted and treated as empty.
"""

from __future__ import annotations

import contextlib
import datetime
import json
import os
import pathlib
import tempfile

import pydantic

from scriptapi.types import values
from scriptapi.utils import logger

log = logger.create_logger("PersistentStorage")


# ── Stored file model ───────────────────────────────────────────


class PersistentEntry(pydantic.BaseModel):
    """One persisted value with its expiry time."""

    value: values.StoredValue
    expires: datetime.datetime

    def is_expired(self, now: datetime.datetime) -> bool:
        return now >= self.expires


class PersistentStore(pydantic.BaseModel):
    """All persisted entries of one provider script."""

    script_id: str
    entries: dict[str, PersistentEntry] = pydantic.Field(default_factory=dict)


# ── File helpers ────────────────────────────────────────────────


def script_path(storage_dir: pathlib.Path, script_id: str) -> pathlib.Path:
    """Build the storage file path for a script id."""
    safe = "".join(c if c.isalnum() or c in ".-_" else "_" for c in script_id)[:100]
    return storage_dir / f"{safe or '_'}.json"


def _remove(path: pathlib.Path) -> None:
    """Silently delete a storage file."""
    with contextlib.suppress(OSError):
        path.unlink(missing_ok=True)


# ── Public API ──────────────────────────────────────────────────


def load(storage_dir: pathlib.Path, script_id: str) -> PersistentStore:
    """Load the persisted entries of *script_id*.

    Returns an empty store when no file exists or the file is
    malformed (the malformed file is removed).
    """
    path = script_path(storage_dir, script_id)
    if not path.exists():
        log.debug("No persistent storage file", {"script": script_id})
        return PersistentStore(script_id=script_id)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        store = PersistentStore.model_validate(data)
        log.debug(
            "Persistent storage loaded",
            {"script": script_id, "entries": len(store.entries)},
        )
        return store
    except (OSError, ValueError) as exc:
        log.warn(
            "Failed to read persistent storage, removing",
            {"script": script_id, "error": str(exc)},
        )
        _remove(path)
        return PersistentStore(script_id=script_id)


def save(storage_dir: pathlib.Path, store: PersistentStore) -> bool:
    """Atomically replace the storage file of ``store.script_id``.

    Returns whether the file was written.
    """
    path = script_path(storage_dir, store.script_id)
    tmp_name: str | None = None
    try:
        storage_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=storage_dir,
            prefix=f".{path.stem}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(store.model_dump_json(indent=2))
        os.replace(tmp_name, path)
    except OSError as exc:
        log.warn(
            "Failed to write persistent storage",
            {"script": store.script_id, "error": str(exc)},
        )
        if tmp_name is not None:
            _remove(pathlib.Path(tmp_name))
        return False

    log.debug(
        "Persistent storage saved",
        {"script": store.script_id, "entries": len(store.entries), "path": path.name},
    )
    return True

