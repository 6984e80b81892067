"""
signed_store.storage.content_store
----------------------------------
Key-addressed object store with idle-time expiry.

Layout: one file per key directly under the store root, named by the key's
identity (uuid5 of the key in the URL namespace, lowercase and hyphenated),
no extension. Anything else in the root is not an object. A sweep leaves it
alone, except temporary files from saves that never finished: those are
removed once they are older than the ttl.

An object is live while now - last_access <= ttl. Reading a live object moves
its last access to now; touching an expired one deletes it. There are no
per-key locks: concurrent operations on one key race with only the
filesystem's own create/rename/unlink atomicity.
"""

from __future__ import annotations
from pathlib import Path
from typing import Callable, List, Optional
import os, re, tempfile, time, uuid

from signed_store.constants import IDENTITY_NAMESPACE, TMP_PREFIX
from signed_store.errors import ObjectNotFoundError, StorageError
from signed_store.logger import get_logger
from signed_store.storage.models import ObjectHandle, ObjectInfo
from signed_store.storage.provider import AccessTracker

log = get_logger("signed_store.store")

_IDENTITY_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# what open(path, "wb") would have produced; mkstemp alone gives 0600
OBJECT_FILE_MODE = 0o666 & ~_current_umask()


def key_to_identity(key: str) -> str:
    """Deterministic, restart-stable physical name for `key`."""
    if not isinstance(key, str):
        raise TypeError(f"key must be str, got {type(key).__name__}")
    return str(uuid.uuid5(IDENTITY_NAMESPACE, key))


def is_identity_name(name: str) -> bool:
    return bool(_IDENTITY_RE.match(name))


class ContentStore:
    def __init__(
        self,
        root,
        ttl: float,
        tracker: Optional[AccessTracker] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            root: Storage directory (created if missing)
            ttl: Idle time-to-live in seconds
            tracker: Where last-access instants are kept (default from environment, sqlite)
            clock: Returns the current POSIX time; injectable for tests
        """
        if ttl < 0:
            raise ValueError("ttl must not be negative")
        self.root = Path(root)
        self.ttl = float(ttl)
        self.clock = clock
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot open store at {self.root}: {e}") from e
        if not self.root.is_dir():
            raise StorageError(f"store path {self.root} is not a directory")

        if tracker is None:
            from signed_store.storage import load_access_tracker
            tracker = load_access_tracker(str(self.root))
        self.tracker = tracker

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------
    def path_for(self, key: str) -> Path:
        return self.root / key_to_identity(key)

    def _idle(self, identity: str, path: Path, now: float) -> tuple[float, float]:
        last = self.tracker.last_access(identity, str(path))
        # clock skew puts last access in the future: count it as just touched
        return last, max(0.0, now - last)

    def _expired(self, idle: float) -> bool:
        return idle > self.ttl

    def _remove(self, identity: str, path: Path) -> bool:
        """Unlink an object. False if it was already gone."""
        try:
            path.unlink()
        except FileNotFoundError:
            self.tracker.forget(identity)
            return False
        self.tracker.forget(identity)
        return True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def save(self, key: str, data: bytes) -> str:
        """
        Store `data` under `key`, replacing whatever was there.

        Written to a temporary file in the store root and renamed into place,
        so readers see either the old object or the new one, never a torn write.
        Returns the object identity.
        """
        identity = key_to_identity(key)
        target = self.root / identity
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=TMP_PREFIX, dir=self.root)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, OBJECT_FILE_MODE)
            os.replace(tmp_name, target)
            tmp_name = None
            self.tracker.touch(identity, str(target), self.clock())
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"failed to store {key!r}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
        log.debug(f"[STORE] saved {identity} ({len(data)} bytes)")
        return identity

    def open(self, key: str) -> ObjectHandle:
        """
        Return a handle on the live object stored under `key`.

        An expired object is deleted and reported as missing. A live one has
        its last access moved to now before the handle is returned.
        """
        identity = key_to_identity(key)
        path = self.root / identity
        now = self.clock()
        try:
            _, idle = self._idle(identity, path, now)
            if self._expired(idle):
                if self._remove(identity, path):
                    log.info(f"[STORE] {identity} expired after {idle:.0f}s idle, removed")
                raise ObjectNotFoundError(key)

            self.tracker.touch(identity, str(path), now)
            fp = open(path, "rb")
        except FileNotFoundError:
            raise ObjectNotFoundError(key) from None
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"failed to open {key!r}: {e}") from e

        return ObjectHandle(key, identity, fp, size=os.fstat(fp.fileno()).st_size, last_access=now)

    def read(self, key: str) -> bytes:
        """open() and read everything."""
        with self.open(key) as handle:
            return handle.read()

    def delete(self, key: str) -> None:
        identity = key_to_identity(key)
        try:
            removed = self._remove(identity, self.root / identity)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"failed to delete {key!r}: {e}") from e
        if not removed:
            raise ObjectNotFoundError(key)
        log.debug(f"[STORE] deleted {identity}")

    def stat(self, key: str) -> ObjectInfo:
        """Inspect an object without refreshing it. Expired objects still report (and are not removed)."""
        identity = key_to_identity(key)
        path = self.root / identity
        try:
            last, idle = self._idle(identity, path, self.clock())
            size = path.stat().st_size
        except FileNotFoundError:
            raise ObjectNotFoundError(key) from None
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"failed to stat {key!r}: {e}") from e
        return ObjectInfo(identity=identity, path=str(path), size=size, last_access=last, idle=idle)

    def exists(self, key: str) -> bool:
        """True if a live object is stored under `key`. Does not refresh it."""
        try:
            return not self._expired(self.stat(key).idle)
        except ObjectNotFoundError:
            return False

    def identities(self) -> List[str]:
        """Names of every object file currently in the store root."""
        try:
            with os.scandir(self.root) as it:
                return [e.name for e in it if is_identity_name(e.name) and e.is_file(follow_symlinks=False)]
        except OSError as e:
            raise StorageError(f"failed to list {self.root}: {e}") from e

    def prune(self) -> int:
        """
        Delete every object whose idle time exceeds the ttl.

        Each decision is re-derived from the tracker at the moment the object
        is examined. Objects that vanish mid-sweep (a concurrent delete or an
        expiring open) are skipped, not counted and not treated as errors.
        Temporary files left by saves that died more than ttl ago are removed
        too; they are not objects and do not count.
        """
        count = 0
        for identity in self.identities():
            path = self.root / identity
            try:
                _, idle = self._idle(identity, path, self.clock())
                if self._expired(idle) and self._remove(identity, path):
                    count += 1
            except FileNotFoundError:
                continue
            except StorageError:
                raise
            except OSError as e:
                raise StorageError(f"failed to prune {identity}: {e}") from e

        stale = self._discard_stale_temporaries(self.clock())
        if stale:
            log.info(f"[STORE] removed {stale} abandoned temporary file(s)")

        try:
            orphans = self.tracker.discard_missing(str(self.root))
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"failed to clean access ledger: {e}") from e
        if orphans:
            log.debug(f"[STORE] dropped {orphans} stale access record(s)")
        return count

    def _discard_stale_temporaries(self, now: float) -> int:
        """Unlink `TMP_PREFIX` files last written more than ttl ago. Returns how many."""
        removed = 0
        try:
            with os.scandir(self.root) as it:
                candidates = [e.path for e in it if e.name.startswith(TMP_PREFIX) and e.is_file(follow_symlinks=False)]
            for path in candidates:
                try:
                    if now - os.stat(path).st_mtime > self.ttl:
                        os.unlink(path)
                        removed += 1
                except FileNotFoundError:
                    # the save finished (renamed) or another sweep got it
                    continue
        except OSError as e:
            raise StorageError(f"failed to clean temporary files: {e}") from e
        return removed

    def close(self) -> None:
        self.tracker.close()
