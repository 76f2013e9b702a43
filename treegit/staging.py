"""Staging area: the mutable pending delta against the last commit."""

import enum
import pickle

from .errors import EmptyCommit, EmptyMessage, NothingToRemove
from .kv.base import KVStore
from .log_utils import getLogger
from .objects import Blob, Commit

STAGE_KEY = "stage"

logger = getLogger(__name__)


class StageOutcome(str, enum.Enum):
    """Result of ``StagingArea.stage_add``."""

    UNCHANGED = "unchanged"
    CHANGED = "changed"


class StagingArea:
    """Pending additions and removals relative to a base commit.

    Staging is always relative to committed state: adding content that
    matches the base commit un-stages the path instead of recording a
    no-op change. A path is never in ``added`` and ``removed`` at once.

    This is not a commit and is never content-addressed; ``finalize``
    turns it into one.
    """

    def __init__(self, base: Commit) -> None:
        self.base = base.digest
        self.base_tracked: dict[str, str] = dict(base.tracked)
        self.added: dict[str, Blob] = {}
        self.removed: set[str] = set()

    # -- Queries --

    def has_pending_changes(self) -> bool:
        """Whether there are staged changes."""
        return bool(self.added or self.removed)

    def expected(self, path: str) -> str | None:
        """Digest the working tree should hold for ``path``, if any."""
        if path in self.added:
            return self.added[path].digest
        if path in self.removed:
            return None
        return self.base_tracked.get(path)

    def tracked(self) -> dict[str, str]:
        """The mapping a commit made now would record."""
        result = {p: d for p, d in self.base_tracked.items() if p not in self.removed}
        result.update((p, b.digest) for p, b in self.added.items())
        return result

    # -- Mutations --

    def stage_add(self, blob: Blob) -> StageOutcome:
        """Stage a blob for the next commit."""
        staged = self.added.get(blob.path)
        if staged is not None and staged == blob:
            return StageOutcome.UNCHANGED
        self.removed.discard(blob.path)
        if self.base_tracked.get(blob.path) == blob.digest:
            self.added.pop(blob.path, None)
        else:
            self.added[blob.path] = blob
        return StageOutcome.CHANGED

    def stage_remove(self, path: str) -> None:
        """Stage a path removal for the next commit.

        Raises:
            NothingToRemove: The path is neither tracked nor staged.
        """
        if path in self.base_tracked:
            self.added.pop(path, None)
            self.removed.add(path)
        elif path in self.added:
            del self.added[path]
        else:
            raise NothingToRemove()

    def unstage_restore(self, path: str) -> str | None:
        """Reverse a staged removal.

        Returns the base commit's blob digest for ``path`` so the caller
        can restore the file, or None if the path was not removed.
        """
        if path not in self.removed:
            return None
        self.removed.discard(path)
        return self.base_tracked[path]

    def reset(self) -> None:
        """Discard all staged changes."""
        self.added.clear()
        self.removed.clear()

    # -- Commit --

    def finalize(
        self,
        branch: str,
        message: str,
        timestamp: int,
        merge_parent: str | None = None,
    ) -> Commit:
        """Build the commit these staged changes describe.

        Pure: neither the staging area nor any store is modified.

        Raises:
            EmptyCommit: Nothing is staged.
            EmptyMessage: ``message`` is blank.
        """
        if not self.has_pending_changes():
            raise EmptyCommit()
        if not message.strip():
            raise EmptyMessage()
        return Commit(
            tracked=self.tracked(),
            parent=self.base,
            message=message,
            timestamp=timestamp,
            branch=branch,
            merge_parent=merge_parent,
        )

    # -- Persistence --

    def to_bytes(self) -> bytes:
        return pickle.dumps(
            {
                "base": self.base,
                "base_tracked": self.base_tracked,
                "added": {p: b.data for p, b in self.added.items()},
                "removed": sorted(self.removed),
            }
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> "StagingArea":
        state = pickle.loads(raw)
        staging = cls.__new__(cls)
        staging.base = state["base"]
        staging.base_tracked = dict(state["base_tracked"])
        staging.added = {p: Blob(p, data) for p, data in state["added"].items()}
        staging.removed = set(state["removed"])
        return staging

    @classmethod
    def load(cls, store: KVStore, base: Commit) -> "StagingArea":
        """Load the persisted staging area, or start one from ``base``.

        A persisted area staged against another commit (the branch moved
        underneath it) is stale and replaced.
        """
        raw = store.get(STAGE_KEY)
        if raw is not None:
            staging = cls.from_bytes(raw)
            if staging.base == base.digest:
                return staging
            logger.debug("discarding stale staging area based on %s", staging.base)
        return cls(base)

    def save(self, store: KVStore) -> None:
        store.set(STAGE_KEY, self.to_bytes())

    @staticmethod
    def discard(store: KVStore) -> None:
        """Delete the persisted staging area."""
        store.remove(STAGE_KEY)
