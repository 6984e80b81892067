# signed_store/storage/provider.py
from __future__ import annotations
from typing import Iterable
import os


class AccessTracker:
    """
    Where an object's last-access instant lives.

    Instants are POSIX timestamps (float seconds). `identity` is the object's
    file name, `path` its full path inside the store root.
    """
    name: str = "base"

    def last_access(self, identity: str, path: str) -> float:
        """Raise FileNotFoundError when the object is gone."""
        raise NotImplementedError

    def touch(self, identity: str, path: str, when: float) -> None:
        raise NotImplementedError

    def forget(self, identity: str) -> None:
        raise NotImplementedError

    def discard_missing(self, root: str) -> int:
        """Drop records whose object file no longer exists. Returns how many."""
        return 0

    def close(self) -> None:
        return


class LedgerTracker(AccessTracker):
    """Shared fallback for trackers that keep their own records."""

    def _lookup(self, identity: str):
        raise NotImplementedError

    def _identities(self) -> Iterable[str]:
        raise NotImplementedError

    def last_access(self, identity: str, path: str) -> float:
        # stat first: a record must never resurrect a deleted object
        st = os.stat(path)
        recorded = self._lookup(identity)
        if recorded is None:
            # object written before the ledger existed (or by another mode)
            return st.st_mtime
        return recorded

    def discard_missing(self, root: str) -> int:
        removed = 0
        for identity in list(self._identities()):
            if not os.path.exists(os.path.join(root, identity)):
                self.forget(identity)
                removed += 1
        return removed
