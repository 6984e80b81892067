from typing import Dict
import threading
from signed_store.storage.provider import LedgerTracker


class InMemoryAccessTracker(LedgerTracker):
    name = "memory"

    def __init__(self):
        self.records: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _lookup(self, identity: str):
        return self.records.get(identity)

    def _identities(self):
        with self._lock:
            return list(self.records)

    def touch(self, identity: str, path: str, when: float):
        with self._lock:
            self.records[identity] = when

    def forget(self, identity: str):
        with self._lock:
            self.records.pop(identity, None)
