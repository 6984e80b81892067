from __future__ import annotations
from typing import Iterable, Optional
import os, sqlite3, threading
from signed_store.errors import StorageError
from signed_store.storage.provider import LedgerTracker


class SQLiteAccessTracker(LedgerTracker):
    """
    Explicit last-access ledger in a small SQLite database.

    Statements are serialised with a lock so one connection can be shared by
    request worker threads and the reaper.
    """
    name = "sqlite"

    def __init__(self, path: str):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self._lock = threading.Lock()
        try:
            self.db = sqlite3.connect(path, check_same_thread=False)
            self._init()
        except sqlite3.Error as e:
            raise StorageError(f"cannot open access ledger {path}: {e}") from e

    def _init(self) -> None:
        self.db.execute("""CREATE TABLE IF NOT EXISTS access(
            identity TEXT PRIMARY KEY,
            last_access REAL NOT NULL
        )""")
        self.db.commit()

    def _execute(self, sql: str, params: tuple = (), commit: bool = False):
        with self._lock:
            try:
                cur = self.db.execute(sql, params)
                rows = cur.fetchall()
                if commit:
                    self.db.commit()
                return rows
            except sqlite3.Error as e:
                raise StorageError(f"access ledger error: {e}") from e

    def _lookup(self, identity: str) -> Optional[float]:
        rows = self._execute("SELECT last_access FROM access WHERE identity=?", (identity,))
        return rows[0][0] if rows else None

    def _identities(self) -> Iterable[str]:
        return [r[0] for r in self._execute("SELECT identity FROM access")]

    def touch(self, identity: str, path: str, when: float) -> None:
        self._execute(
            "INSERT INTO access(identity,last_access) VALUES(?,?) "
            "ON CONFLICT(identity) DO UPDATE SET last_access=excluded.last_access",
            (identity, when),
            commit=True,
        )

    def forget(self, identity: str) -> None:
        self._execute("DELETE FROM access WHERE identity=?", (identity,), commit=True)

    def close(self) -> None:
        with self._lock:
            self.db.close()
