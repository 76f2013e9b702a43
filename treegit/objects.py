"""Immutable repository records: blobs and commits."""

import hashlib
import pickle
from dataclasses import dataclass, field
from typing import ClassVar, Mapping

ZERO_DIGEST = "0" * 40
DEFAULT_BRANCH = "master"
INITIAL_MESSAGE = "initial commit"
SHORT_ID_LENGTH = 7


def blob_digest(path: str, data: bytes) -> str:
    """Digest of a file's content, labeled by its path.

    Hashes the byte length, the raw content and the path so the same
    bytes under two names are two distinct blobs.
    """
    h = hashlib.sha1()
    h.update(str(len(data)).encode())
    h.update(data)
    h.update(path.encode())
    return h.hexdigest()


def commit_digest(
    tracked: Mapping[str, str],
    parent: str | None,
    message: str,
    timestamp: int,
) -> str:
    """Compute a content-addressable commit hash.

    A pure function of the tracked mapping, the parent pointer, the
    message and the timestamp (epoch milliseconds).
    """
    h = hashlib.sha1()
    h.update(pickle.dumps(sorted(tracked.items())))
    h.update((parent or ZERO_DIGEST).encode())
    h.update(message.encode())
    h.update(str(timestamp).encode())
    return h.hexdigest()


def short_id(digest: str) -> str:
    return digest[:SHORT_ID_LENGTH]


@dataclass(frozen=True, eq=False)
class Blob:
    """Snapshot of one file's content at the time it was staged."""

    kind: ClassVar[str] = "blob"

    path: str
    data: bytes
    digest: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "digest", blob_digest(self.path, self.data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Blob):
            return NotImplemented
        return self.digest == other.digest

    def __hash__(self) -> int:
        return hash(self.digest)


@dataclass(frozen=True, eq=False)
class Commit:
    """Snapshot of a whole tracked-file mapping plus ancestry.

    ``tracked`` maps path to blob digest. ``parent`` is None only for
    the root commit; ``merge_parent`` is set only on merge commits.
    Pointers are digests, resolved through the object store on demand.
    """

    kind: ClassVar[str] = "commit"

    tracked: Mapping[str, str]
    parent: str | None
    message: str
    timestamp: int
    branch: str = DEFAULT_BRANCH
    merge_parent: str | None = None
    digest: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tracked", dict(self.tracked))
        object.__setattr__(
            self,
            "digest",
            commit_digest(self.tracked, self.parent, self.message, self.timestamp),
        )

    @classmethod
    def root(cls, branch: str = DEFAULT_BRANCH) -> "Commit":
        """The initial commit: no parent, nothing tracked, epoch timestamp."""
        return cls(tracked={}, parent=None, message=INITIAL_MESSAGE, timestamp=0, branch=branch)

    @property
    def parents(self) -> tuple[str, ...]:
        """Parent digests, first parent first."""
        return tuple(p for p in (self.parent, self.merge_parent) if p is not None)

    @property
    def is_merge(self) -> bool:
        return self.merge_parent is not None

    def blob_for(self, path: str) -> str | None:
        return self.tracked.get(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commit):
            return NotImplemented
        return self.digest == other.digest

    def __hash__(self) -> int:
        return hash(self.digest)


Record = Blob | Commit


def encode(record: Record) -> bytes:
    """Binary encoding of a record for the object store."""
    return pickle.dumps(record)


def decode(raw: bytes) -> Record:
    return pickle.loads(raw)
