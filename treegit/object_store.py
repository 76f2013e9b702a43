"""Content-addressable, write-once store for blobs and commits."""

from typing import Iterable, TypeVar

from .errors import ObjectKindMismatch, ObjectNotFound
from .kv.base import KVStore
from .log_utils import getLogger
from .objects import Blob, Commit, Record, decode, encode

OBJECTS_PREFIX = "objects/"
MIN_PREFIX_LENGTH = 4

R = TypeVar("R", Blob, Commit)

logger = getLogger(__name__)


def object_key(digest: str) -> str:
    """Fan-out key: two-character directory, then the remainder."""
    return f"{OBJECTS_PREFIX}{digest[:2]}/{digest[2:]}"


class ObjectStore:
    """Persists immutable records keyed by their digest.

    There is no update or delete: a record, once written, is permanent.
    Writing a digest that is already present is silently ignored.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    def put(self, record: Record) -> str:
        """Persist a record and return its digest."""
        key = object_key(record.digest)
        if key not in self.store:
            self.store.set(key, encode(record))
            logger.debug("wrote %s %s", record.kind, record.digest)
        return record.digest

    def put_many(self, records: Iterable[Record]) -> list[str]:
        return [self.put(r) for r in records]

    def __contains__(self, digest: str) -> bool:
        return len(digest) > 2 and object_key(digest) in self.store

    def get(self, digest: str, kind: type[R]) -> R:
        """Load the record stored under ``digest``.

        Raises:
            ObjectNotFound: No record with that digest.
            ObjectKindMismatch: The record is not a ``kind``.
        """
        raw = self.store.get(object_key(digest)) if len(digest) > 2 else None
        if raw is None:
            raise ObjectNotFound(digest)
        record = decode(raw)
        if not isinstance(record, kind):
            raise ObjectKindMismatch(digest, kind.kind, record.kind)
        return record

    def commit(self, digest: str) -> Commit:
        return self.get(digest, Commit)

    def blob(self, digest: str) -> Blob:
        return self.get(digest, Blob)

    def resolve(self, prefix: str) -> str:
        """Expand an abbreviated digest to the full digest.

        Raises ObjectNotFound when the prefix is too short, matches
        nothing, or matches more than one object.
        """
        if len(prefix) < MIN_PREFIX_LENGTH:
            raise ObjectNotFound(prefix)
        if prefix in self:
            return prefix
        dir_prefix = f"{OBJECTS_PREFIX}{prefix[:2]}/{prefix[2:]}"
        matches = list(self.store.keys(dir_prefix))
        if len(matches) != 1:
            raise ObjectNotFound(prefix)
        _, fan, rest = matches[0].split("/")
        return fan + rest

    def digests(self) -> list[str]:
        """All stored digests, sorted."""
        return sorted(
            key[len(OBJECTS_PREFIX):].replace("/", "")
            for key in self.store.keys(OBJECTS_PREFIX)
        )
