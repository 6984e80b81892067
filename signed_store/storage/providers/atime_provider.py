import os
from signed_store.storage.provider import AccessTracker


class FileAtimeTracker(AccessTracker):
    """
    Compatibility mode: the object file's own access time is the expiry signal.

    Needs a mount that does not suppress atime updates (no `noatime`); with
    `relatime` the explicit update in touch() still lands.
    """
    name = "atime"

    def last_access(self, identity: str, path: str) -> float:
        return os.stat(path).st_atime

    def touch(self, identity: str, path: str, when: float) -> None:
        st = os.stat(path)
        # keep mtime, move atime
        os.utime(path, (when, st.st_mtime))

    def forget(self, identity: str) -> None:
        # nothing recorded outside the file itself
        return
