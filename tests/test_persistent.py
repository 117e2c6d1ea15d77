"""Tests for scriptapi.storage.persistent: per-script JSON files."""

from __future__ import annotations

import datetime
import pathlib

from scriptapi.storage import persistent
from scriptapi.types import values

EXPIRES = datetime.datetime(2011, 6, 8, 12, 0, tzinfo=datetime.UTC)


def _store(script_id: str = "de_db") -> persistent.PersistentStore:
    return persistent.PersistentStore(
        script_id=script_id,
        entries={"stops": persistent.PersistentEntry(value=values.encode_value(["A", "B"]), expires=EXPIRES)},
    )


class TestScriptPath:
    """Tests for script_path."""

    def test_plain_id(self, tmp_path: pathlib.Path) -> None:
        assert persistent.script_path(tmp_path, "de_db") == tmp_path / "de_db.json"

    def test_unsafe_characters_are_replaced(self, tmp_path: pathlib.Path) -> None:
        assert persistent.script_path(tmp_path, "../de/db?x").name == ".._de_db_x.json"

    def test_empty_id(self, tmp_path: pathlib.Path) -> None:
        assert persistent.script_path(tmp_path, "").name == "_.json"


class TestLoadSave:
    """Tests for load and save."""

    def test_load_missing_file(self, tmp_path: pathlib.Path) -> None:
        store = persistent.load(tmp_path, "de_db")
        assert store.script_id == "de_db"
        assert store.entries == {}

    def test_save_then_load(self, tmp_path: pathlib.Path) -> None:
        storage_dir = tmp_path / "storage"
        assert persistent.save(storage_dir, _store())

        store = persistent.load(storage_dir, "de_db")
        assert store.entries["stops"].expires == EXPIRES
        assert values.decode_value(store.entries["stops"].value) == ["A", "B"]

    def test_save_leaves_no_temporary_files(self, tmp_path: pathlib.Path) -> None:
        persistent.save(tmp_path, _store())
        persistent.save(tmp_path, _store())
        assert [p.name for p in tmp_path.iterdir()] == ["de_db.json"]

    def test_corrupt_file_is_removed(self, tmp_path: pathlib.Path) -> None:
        path = persistent.script_path(tmp_path, "de_db")
        path.write_text("{not json", encoding="utf-8")

        store = persistent.load(tmp_path, "de_db")
        assert store.entries == {}
        assert not path.exists()

    def test_invalid_entry_is_removed(self, tmp_path: pathlib.Path) -> None:
        path = persistent.script_path(tmp_path, "de_db")
        path.write_text('{"script_id": "de_db", "entries": {"x": {"value": {"type": "blob"}}}}', encoding="utf-8")

        assert persistent.load(tmp_path, "de_db").entries == {}
        assert not path.exists()

    def test_save_failure(self, tmp_path: pathlib.Path) -> None:
        blocked = tmp_path / "storage"
        blocked.write_text("a file where the directory should be", encoding="utf-8")
        assert not persistent.save(blocked, _store())


class TestPersistentEntry:
    """Tests for PersistentEntry.is_expired."""

    def test_expiry_boundary(self) -> None:
        entry = persistent.PersistentEntry(value=values.encode_value(1), expires=EXPIRES)
        assert not entry.is_expired(EXPIRES - datetime.timedelta(seconds=1))
        assert entry.is_expired(EXPIRES)
