# signed_store/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional


@dataclass(frozen=True)
class ObjectInfo:
    """
    Point-in-time view of one stored object.

    Produced without refreshing the object, so inspecting it does not extend
    its life.
    """
    identity: str
    path: str
    size: int
    last_access: float
    idle: float


class ObjectHandle:
    """Open, readable handle on a live object's bytes."""

    def __init__(self, key: str, identity: str, fp: BinaryIO, size: int, last_access: float):
        self.key = key
        self.identity = identity
        self.size = size
        self.last_access = last_access
        self._fp = fp

    def read(self, n: int = -1) -> bytes:
        return self._fp.read(n)

    def iter_chunks(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Yield the remaining bytes in chunks and close the handle afterwards."""
        try:
            while True:
                chunk = self._fp.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self._fp.close()

    @property
    def closed(self) -> bool:
        return self._fp.closed

    def __enter__(self) -> "ObjectHandle":
        return self

    def __exit__(self, *exc: Optional[object]) -> None:
        self.close()
