"""Repository: user-facing version-control operations."""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from .errors import (
    AlreadyOnBranch,
    BranchExists,
    BranchNotFound,
    CannotRemoveCurrentBranch,
    FileNotFound,
    FileNotInCommit,
    InvalidBranchName,
    NoMatchingCommit,
    NotARepository,
    ObjectKindMismatch,
    ObjectNotFound,
    RepositoryExists,
)
from .graph import CommitGraph
from .kv.base import KVStore
from .log_utils import getLogger
from .merge import CONFLICT_PREFIX, MergeEngine, MergeResult
from .object_store import ObjectStore
from .objects import DEFAULT_BRANCH, Commit
from .reconcile import Reconciler
from .refs import BRANCH_HEAD, BRANCH_LOG, HEAD_KEY, LogEntry, RefStore, valid_branch_name
from .staging import STAGE_KEY, StageOutcome, StagingArea
from .worktree import WorkingTree

REPO_DIR = ".treegit"

logger = getLogger(__name__)


def epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Status:
    """Snapshot of branch, staging and work-tree state."""

    current_branch: str
    branches: tuple[str, ...]
    staged: tuple[str, ...]
    removed: tuple[str, ...]
    modified: tuple[tuple[str, str], ...]  # (path, "modified" | "deleted")
    untracked: tuple[str, ...]

    @property
    def clean(self) -> bool:
        return not (self.staged or self.removed or self.modified or self.untracked)


class Repository:
    """A version-controlled work tree.

    ``store`` holds the repository records (objects, refs, logs, the
    staging file) and ``worktree`` the user's files. Both are plain
    ``KVStore`` views, so a repository can live on disk or in memory.

    Use ``Repository.init`` to create one and ``Repository.open`` to
    load an existing one.
    """

    def __init__(
        self,
        store: KVStore,
        worktree: WorkingTree,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.store = store
        self.worktree = worktree
        self.objects = ObjectStore(store)
        self.graph = CommitGraph(self.objects)
        self.refs = RefStore(store, self.objects)
        self.reconciler = Reconciler(worktree, self.objects)
        self._merger = MergeEngine(self)
        self._clock = clock or epoch_millis

    @classmethod
    def init(
        cls,
        store: KVStore,
        worktree: WorkingTree,
        *,
        clock: Callable[[], int] | None = None,
    ) -> "Repository":
        """Create a repository holding only the root commit on ``master``."""
        if HEAD_KEY in store:
            raise RepositoryExists()
        repo = cls(store, worktree, clock=clock)
        root = Commit.root()
        repo.objects.put(root)
        repo.refs.write(DEFAULT_BRANCH, root.digest)
        repo.refs.append_log(DEFAULT_BRANCH, root)
        repo.refs.set_current(DEFAULT_BRANCH)
        logger.debug("initialized repository, root %s", root.digest)
        return repo

    @classmethod
    def open(
        cls,
        store: KVStore,
        worktree: WorkingTree,
        *,
        clock: Callable[[], int] | None = None,
    ) -> "Repository":
        if HEAD_KEY not in store:
            raise NotARepository()
        return cls(store, worktree, clock=clock)

    # -- State --

    def now(self) -> int:
        """Current time in epoch milliseconds."""
        return self._clock()

    @property
    def current_branch(self) -> str:
        return self.refs.current_branch()

    def head_commit(self) -> Commit:
        return self.objects.commit(self.refs.head())

    def staging(self) -> StagingArea:
        """The staging area, created from the branch tip if none is saved."""
        return StagingArea.load(self.store, self.head_commit())

    def resolve_commit(self, commit_id: str) -> Commit:
        """Load a commit by full or abbreviated id."""
        try:
            return self.objects.commit(self.objects.resolve(commit_id))
        except ObjectKindMismatch as e:
            raise ObjectNotFound(commit_id) from e

    def record_commit(self, staging: StagingArea, commit: Commit) -> None:
        """Persist a finalized commit and advance its branch."""
        self.objects.put_many(staging.added.values())
        self.objects.put(commit)
        self.refs.write(commit.branch, commit.digest)
        self.refs.append_log(commit.branch, commit)
        StagingArea.discard(self.store)
        logger.debug("committed %s on %s", commit.digest, commit.branch)

    # -- Staging --

    def add(self, path: str) -> StageOutcome:
        """Stage the current content of ``path``.

        Re-adding a path staged for removal restores it from the last
        commit. Adding a tracked path that is gone from the work tree
        stages its removal.
        """
        staging = self.staging()
        restored = staging.unstage_restore(path)
        if restored is not None:
            self.reconciler.checkout_blob(path, restored)
            staging.save(self.store)
            return StageOutcome.CHANGED

        blob = self.worktree.blob(path)
        if blob is None:
            if path not in staging.base_tracked and path not in staging.added:
                raise FileNotFound()
            staging.stage_remove(path)
            staging.save(self.store)
            return StageOutcome.CHANGED

        outcome = staging.stage_add(blob)
        if outcome is StageOutcome.CHANGED:
            staging.save(self.store)
        return outcome

    def rm(self, path: str) -> None:
        """Unstage ``path``; if it is tracked, stage its removal and delete it."""
        staging = self.staging()
        staging.stage_remove(path)
        if path in staging.base_tracked:
            self.worktree.delete(path)
        staging.save(self.store)

    def commit(self, message: str) -> Commit:
        staging = self.staging()
        commit = staging.finalize(self.current_branch, message, self.now())
        self.record_commit(staging, commit)
        return commit

    # -- History --

    def log(self) -> list[Commit]:
        """First-parent history of the current branch, newest first."""
        return [self.objects.commit(d) for d in self.graph.history(self.refs.head())]

    def global_log(self) -> list[LogEntry]:
        return self.refs.log_entries()

    def find(self, message: str) -> list[str]:
        """Ids of every commit whose message is exactly ``message``."""
        found = [e.commit for e in self.refs.log_entries() if e.message == message]
        if not found:
            raise NoMatchingCommit()
        return found

    # -- Branches --

    def branch(self, name: str) -> None:
        """Create branch ``name`` at the current tip.

        Raises:
            InvalidBranchName: ``name`` has an empty, ``.`` or ``..``
                segment, or nests inside (or around) an existing branch.
            BranchExists: ``name`` is taken.
        """
        if not valid_branch_name(name):
            raise InvalidBranchName()
        if self.refs.exists(name):
            raise BranchExists()
        for other in self.refs.branches():
            if other.startswith(name + "/") or name.startswith(other + "/"):
                raise InvalidBranchName(f"Branch name conflicts with existing branch {other}.")
        self.refs.write(name, self.refs.head())

    def rm_branch(self, name: str) -> None:
        if not self.refs.exists(name):
            raise BranchNotFound()
        if name == self.current_branch:
            raise CannotRemoveCurrentBranch()
        self.refs.delete(name)

    # -- Work tree --

    def checkout_file(self, path: str, commit_id: str | None = None) -> None:
        """Overwrite ``path`` with its content in a commit (default: tip)."""
        commit = self.head_commit() if commit_id is None else self.resolve_commit(commit_id)
        digest = commit.blob_for(path)
        if digest is None:
            raise FileNotInCommit()
        self.reconciler.checkout_blob(path, digest)

    def checkout_branch(self, name: str) -> None:
        """Switch to branch ``name`` and make the work tree match its tip.

        Only files tracked by the current tip are deleted; files that are
        merely staged stay in the work tree. The staging area is discarded.
        """
        if name == self.current_branch:
            raise AlreadyOnBranch()
        if not self.refs.exists(name):
            raise BranchNotFound("No such branch exists.")
        with self.rollback():
            tip = self.objects.commit(self.refs.read(name))
            self.reconciler.reconcile_to(tip.tracked, self.head_commit().tracked)
            self.refs.set_current(name)
            StagingArea.discard(self.store)

    def reset(self, commit_id: str) -> Commit:
        """Move the current branch to a commit and check it out."""
        commit = self.resolve_commit(commit_id)
        with self.rollback():
            self.reconciler.reconcile_to(commit.tracked, self.head_commit().tracked)
            self.refs.write(self.current_branch, commit.digest)
            StagingArea.discard(self.store)
        return commit

    def merge(self, branch: str) -> MergeResult:
        with self.rollback():
            return self._merger.merge(branch)

    def conflicts(self) -> list[str]:
        return self._merger.conflicts()

    def conflict_text(self, path: str) -> bytes | None:
        return self.store.get(CONFLICT_PREFIX + path)

    def status(self) -> Status:
        staging = self.staging()
        tracked = staging.tracked()
        on_disk = self.worktree.paths()

        modified: list[tuple[str, str]] = []
        untracked: list[str] = []
        for path in sorted(on_disk):
            if path in tracked:
                if self.worktree.digest(path) != tracked[path]:
                    modified.append((path, "modified"))
            else:
                untracked.append(path)
        for path in sorted(tracked.keys() - on_disk):
            modified.append((path, "deleted"))

        return Status(
            current_branch=self.current_branch,
            branches=tuple(self.refs.branches()),
            staged=tuple(sorted(staging.added)),
            removed=tuple(sorted(staging.removed)),
            modified=tuple(sorted(modified)),
            untracked=tuple(untracked),
        )

    # -- Rollback --

    @contextmanager
    def rollback(self) -> Iterator[None]:
        """Restore work tree, HEAD, branch ref and staging on failure.

        Best effort, not a transaction log: objects written inside the
        scope stay (they are immutable and unreferenced).
        """
        files = self.worktree.snapshot()
        branch = self.current_branch
        keys = [HEAD_KEY, STAGE_KEY, BRANCH_HEAD % branch, BRANCH_LOG % branch]
        keys.extend(self.store.keys(CONFLICT_PREFIX))
        saved = {key: self.store.get(key) for key in keys}
        try:
            yield
        except Exception:
            logger.debug("rolling back to %s on %s", saved[BRANCH_HEAD % branch], branch)
            self.worktree.restore(files)
            for key in list(self.store.keys(CONFLICT_PREFIX)):
                if key not in saved:
                    self.store.remove(key)
            for key, value in saved.items():
                if value is None:
                    self.store.remove(key)
                else:
                    self.store.set(key, value)
            raise
