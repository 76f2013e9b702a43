"""Working tree access: files as blobs, with an optional digest cache."""

import time
from typing import Callable

from .kv.base import KVStore
from .objects import Blob, blob_digest

RACY_WINDOW_NS = 2_000_000_000


class WorkingTree:
    """The user's files, seen through a ``KVStore``.

    Args:
        files: Backend holding the work tree (``Files`` rooted at the
            work directory, or ``Memory`` in tests).
        cache: Optional store memoizing digests by ``(path, size,
            mtime_ns)``. Only used when ``files`` reports stamps.
        now_ns: Clock used to detect recently written files.
    """

    def __init__(
        self,
        files: KVStore,
        cache: KVStore | None = None,
        *,
        now_ns: Callable[[], int] = time.time_ns,
    ) -> None:
        self.files = files
        self.cache = cache
        self._now_ns = now_ns

    def paths(self) -> set[str]:
        return set(self.files.keys())

    def exists(self, path: str) -> bool:
        return path in self.files

    def read(self, path: str) -> bytes | None:
        return self.files.get(path)

    def write(self, path: str, data: bytes) -> None:
        self.files.set(path, data)

    def delete(self, path: str) -> None:
        self.files.remove(path)

    def blob(self, path: str) -> Blob | None:
        data = self.files.get(path)
        if data is None:
            return None
        return Blob(path, data)

    def digest(self, path: str) -> str | None:
        """Blob digest of the file at ``path``, or None if absent."""
        cache = self.cache
        stamp = self.files.stamp(path) if cache is not None else None
        if cache is None or stamp is None:
            data = self.files.get(path)
            return None if data is None else blob_digest(path, data)

        size, mtime_ns = stamp
        key = f"{path}\0{size}\0{mtime_ns}"
        cached = cache.get(key)
        if cached is not None:
            return cached.decode()
        data = self.files.get(path)
        if data is None:
            return None
        digest = blob_digest(path, data)
        # A file touched within timestamp granularity may change again
        # without its stamp changing.
        if self._now_ns() - mtime_ns > RACY_WINDOW_NS:
            cache.set(key, digest.encode())
        return digest

    def snapshot(self) -> dict[str, bytes]:
        """Contents of every file, for rollback."""
        return {path: data for path, data in self.files.items()}

    def restore(self, snapshot: dict[str, bytes]) -> None:
        """Return the tree to a ``snapshot()``: rewrite and prune."""
        for path in self.paths() - snapshot.keys():
            self.files.remove(path)
        for path, data in snapshot.items():
            if self.files.get(path) != data:
                self.files.set(path, data)
