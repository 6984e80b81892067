# signed_store/reaper.py
import threading
from typing import Optional
from signed_store.logger import get_logger

log = get_logger("signed_store.reaper")

DEFAULT_INTERVAL = 60 * 60.0


class Reaper:
    """
    Background sweeper: every `interval` seconds, prune the store.

    A failed sweep is logged and the loop carries on; nothing but stop() or
    process exit ends it.
    """

    def __init__(self, store, interval: float = DEFAULT_INTERVAL):
        if interval <= 0:
            raise ValueError("sweep interval must be positive")
        self.store = store
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> Optional[int]:
        """One sweep. Returns the removed count, or None if the sweep failed."""
        try:
            removed = self.store.prune()
        except Exception as e:
            log.exception(f"[REAPER] failed to prune: {e}")
            return None
        if removed == 0:
            log.info("[REAPER] there is no expired file")
        else:
            log.info(f"[REAPER] prune {removed} file(s)")
        return removed

    def _loop(self):
        log.info(f"[REAPER] sweeping every {self.interval:.0f}s")
        while not self._stop.wait(self.interval):
            self.run_once()
        log.info("[REAPER] stopped")

    def start(self) -> "Reaper":
        if self._thread is not None and self._thread.is_alive():
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="signed-store-reaper", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
