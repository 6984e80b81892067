import os

import pytest

from signed_store.errors import StorageError
from signed_store.storage import (
    FileAtimeTracker,
    InMemoryAccessTracker,
    SQLiteAccessTracker,
    load_access_tracker,
)


def _object(tmp_path, name="obj"):
    path = tmp_path / name
    path.write_bytes(b"x")
    return str(path)


def test_sqlite_ledger_survives_reopen(tmp_path):
    path = _object(tmp_path)
    ledger = str(tmp_path / "ledger.sqlite3")

    t = SQLiteAccessTracker(ledger)
    t.touch("obj", path, 1234.5)
    t.close()

    t = SQLiteAccessTracker(ledger)
    assert t.last_access("obj", path) == 1234.5
    t.touch("obj", path, 2000.0)
    assert t.last_access("obj", path) == 2000.0
    t.close()


def test_ledger_falls_back_to_mtime(tmp_path):
    path = _object(tmp_path)
    os.utime(path, (10.0, 500.0))
    t = InMemoryAccessTracker()
    assert t.last_access("obj", path) == 500.0


def test_ledger_never_resurrects_deleted_object(tmp_path):
    t = InMemoryAccessTracker()
    t.touch("gone", str(tmp_path / "gone"), 1.0)
    with pytest.raises(FileNotFoundError):
        t.last_access("gone", str(tmp_path / "gone"))


def test_sqlite_discard_missing(tmp_path):
    keep = _object(tmp_path, "keep")
    t = SQLiteAccessTracker(str(tmp_path / "ledger.sqlite3"))
    t.touch("keep", keep, 1.0)
    t.touch("gone", str(tmp_path / "gone"), 1.0)

    assert t.discard_missing(str(tmp_path)) == 1
    assert t.last_access("keep", keep) == 1.0
    assert t._lookup("gone") is None
    t.close()


def test_sqlite_forget(tmp_path):
    path = _object(tmp_path)
    t = SQLiteAccessTracker(str(tmp_path / "ledger.sqlite3"))
    t.touch("obj", path, 1.0)
    t.forget("obj")
    t.forget("obj")
    assert t._lookup("obj") is None
    t.close()


def test_sqlite_unopenable_ledger(tmp_path):
    (tmp_path / "ledger").mkdir()
    with pytest.raises(StorageError):
        SQLiteAccessTracker(str(tmp_path / "ledger"))


def test_atime_tracker_moves_atime_only(tmp_path):
    path = _object(tmp_path)
    os.utime(path, (100.0, 200.0))
    t = FileAtimeTracker()

    t.touch("obj", path, 5000.0)

    st = os.stat(path)
    assert st.st_atime == 5000.0
    assert st.st_mtime == 200.0
    assert t.last_access("obj", path) == 5000.0
    assert t.discard_missing(str(tmp_path)) == 0


def test_atime_tracker_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        FileAtimeTracker().last_access("nope", str(tmp_path / "nope"))


def test_load_access_tracker_modes(tmp_path, monkeypatch):
    monkeypatch.delenv("SIGNED_STORE_ACCESS_TRACKING", raising=False)
    monkeypatch.delenv("SIGNED_STORE_LEDGER_PATH", raising=False)

    default = load_access_tracker(str(tmp_path))
    assert isinstance(default, SQLiteAccessTracker)
    assert default.path == os.path.join(str(tmp_path), ".access.sqlite3")
    default.close()

    assert isinstance(load_access_tracker(str(tmp_path), {"provider": "memory"}), InMemoryAccessTracker)
    assert isinstance(load_access_tracker(str(tmp_path), {"provider": "atime"}), FileAtimeTracker)

    custom = load_access_tracker(str(tmp_path), {"provider": "sqlite", "ledger_path": str(tmp_path / "x.db")})
    assert custom.path == str(tmp_path / "x.db")
    custom.close()

    monkeypatch.setenv("SIGNED_STORE_ACCESS_TRACKING", "atime")
    assert isinstance(load_access_tracker(str(tmp_path)), FileAtimeTracker)

    with pytest.raises(ValueError):
        load_access_tracker(str(tmp_path), {"provider": "redis"})
