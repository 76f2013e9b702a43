"""Directory-backed KV store: one plain file per key."""

import os
from typing import Iterable, Mapping

from .base import KVStore


class Files(KVStore):
    """KV store mapping slash-separated keys to files under a root directory.

    Key ``objects/ab/cdef`` lives at ``<root>/objects/ab/cdef``. Parent
    directories are created on write and pruned (up to, never including,
    the root) when a removal leaves them empty.

    Args:
        directory: Root directory. Created if missing.
        exclude: Top-level entry names hidden from listing and refused
            as keys (the work tree hides the repository directory).
    """

    def __init__(self, directory: str, exclude: Iterable[str] = ()) -> None:
        self.root = os.path.abspath(directory)
        self.exclude = frozenset(exclude)
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        parts = key.split("/")
        if not key or any(p in ("", ".", "..") for p in parts):
            raise KeyError(f"Invalid key: {key!r}")
        if parts[0] in self.exclude:
            raise KeyError(f"Excluded key: {key!r}")
        return os.path.join(self.root, *parts)

    def get(self, key: str) -> bytes | None:
        try:
            path = self._path(key)
        except KeyError:
            return None
        if not os.path.isfile(path):
            return None
        with open(path, "rb") as f:
            return f.read()

    def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(value)

    def get_many(self, *args: str) -> Mapping[str, bytes]:
        return {k: v for k in args if (v := self.get(k)) is not None}

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            if not isinstance(value, bytes):
                raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
        for key, value in kwargs.items():
            self.set(key, value)

    def items(self) -> Iterable[tuple[str, bytes]]:
        for key in self.keys():
            value = self.get(key)
            if value is not None:
                yield key, value

    def keys(self, prefix: str = "") -> Iterable[str]:
        result = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = os.path.relpath(dirpath, self.root)
            if rel_dir == ".":
                rel_dir = ""
                dirnames[:] = [d for d in dirnames if d not in self.exclude]
                filenames = [f for f in filenames if f not in self.exclude]
            for filename in filenames:
                rel = os.path.join(rel_dir, filename) if rel_dir else filename
                key = rel.replace(os.sep, "/")
                if key.startswith(prefix):
                    result.append(key)
        return sorted(result)

    def __contains__(self, key: str) -> bool:
        try:
            return os.path.isfile(self._path(key))
        except KeyError:
            return False

    def remove(self, key: str) -> None:
        try:
            path = self._path(key)
        except KeyError:
            return
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        self._prune(os.path.dirname(path))

    def remove_many(self, *keys: str) -> None:
        for key in keys:
            self.remove(key)

    def clear(self) -> None:
        for key in list(self.keys()):
            self.remove(key)

    def stamp(self, key: str) -> tuple[int, int] | None:
        try:
            st = os.stat(self._path(key))
        except (KeyError, FileNotFoundError):
            return None
        return st.st_size, st.st_mtime_ns

    def _prune(self, directory: str) -> None:
        """Remove empty directories from ``directory`` up to the root."""
        while directory != self.root and directory.startswith(self.root):
            try:
                os.rmdir(directory)
            except OSError:
                return
            directory = os.path.dirname(directory)
