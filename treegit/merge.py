"""Three-way merge of one branch into the current branch."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

from .errors import (
    AlreadyUpToDate,
    BranchNotFound,
    EmptyCommit,
    SelfMerge,
    UncommittedChanges,
)
from .log_utils import getLogger
from .staging import StagingArea

if TYPE_CHECKING:
    from .repository import Repository

CONFLICT_PREFIX = "conflicts/"
MERGE_MESSAGE = "Merged %s into %s."

logger = getLogger(__name__)


class MergeCase(enum.Enum):
    """How one path differs across base (S), current (T) and target (O)."""

    UNCHANGED_ABSENT = "unchanged_absent"
    DELETED_IN_TARGET = "deleted_in_target"
    DELETED_IN_CURRENT = "deleted_in_current"
    CONVERGED = "converged"
    MODIFIED_IN_TARGET = "modified_in_target"
    MODIFIED_IN_CURRENT = "modified_in_current"
    CONFLICT = "conflict"


def classify(base: str | None, ours: str | None, theirs: str | None) -> MergeCase:
    """Classify one path from its blob digest in each snapshot.

    None means the path is untracked in that snapshot. The rules are
    tried in order and are total: the last one catches every remaining
    combination, all of which have ``ours != theirs``. A path added only
    in the target (absent from base and current) is MODIFIED_IN_TARGET;
    one added only in the current branch is MODIFIED_IN_CURRENT.
    """
    if ours is None and theirs is None:
        return MergeCase.UNCHANGED_ABSENT
    if theirs is None and ours == base:
        return MergeCase.DELETED_IN_TARGET
    if ours is None and theirs == base:
        return MergeCase.DELETED_IN_CURRENT
    if theirs is not None and ours == theirs:
        return MergeCase.CONVERGED
    if ours == base and theirs != base:
        return MergeCase.MODIFIED_IN_TARGET
    if theirs == base and ours != base:
        return MergeCase.MODIFIED_IN_CURRENT
    return MergeCase.CONFLICT


def conflict_text(ours: bytes | None, theirs: bytes | None) -> bytes:
    """Both sides of a conflicted file in marker form (absent = empty)."""
    return b"".join(
        [b"<<<<<<< HEAD\n", ours or b"", b"=======\n", theirs or b"", b">>>>>>>\n"]
    )


@dataclass(frozen=True)
class MergeResult:
    """Result of a merge operation."""

    merged: bool
    commit: str | None
    strategy: str  # "fast_forward", "three_way"
    staged: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.merged


class MergeEngine:
    """Merges a target branch into the repository's current branch.

    The caller runs ``merge`` inside a rollback scope; the engine itself
    mutates refs, staging and the work tree as it goes.
    """

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def merge(self, target: str) -> MergeResult:
        """Merge branch ``target`` into the current branch.

        Raises:
            UncommittedChanges: Changes are staged.
            SelfMerge: ``target`` is the current branch.
            BranchNotFound: No branch ``target``.
            AlreadyUpToDate: ``target`` is an ancestor of the current tip.
            UntrackedObstruction: The merge would overwrite or delete an
                unstaged edit.
            EmptyCommit: Nothing to commit and nothing conflicted.
        """
        repo = self.repo
        if repo.staging().has_pending_changes():
            raise UncommittedChanges()
        current = repo.refs.current_branch()
        if target == current:
            raise SelfMerge()
        if not repo.refs.exists(target):
            raise BranchNotFound()

        head = repo.refs.read(current)
        other = repo.refs.read(target)
        split = repo.graph.common_ancestor(head, other)
        logger.debug("merge %s (%s) into %s (%s), base %s", target, other, current, head, split)

        if split == other:
            raise AlreadyUpToDate()
        self.clear_conflicts()
        if split == head:
            return self._fast_forward(current, other)
        return self._three_way(current, target, head, other, split)

    def _fast_forward(self, current: str, other: str) -> MergeResult:
        repo = self.repo
        plan = repo.reconciler.reconcile_to(
            repo.objects.commit(other).tracked, repo.staging().tracked()
        )
        repo.refs.write(current, other)
        StagingArea.discard(repo.store)
        logger.debug("fast-forwarded %s to %s", current, other)
        return MergeResult(
            merged=True,
            commit=other,
            strategy="fast_forward",
            staged=tuple(sorted(plan.writes)),
            removed=tuple(plan.deletes),
        )

    def _three_way(
        self, current: str, target: str, head: str, other: str, split: str
    ) -> MergeResult:
        repo = self.repo
        base_files = repo.objects.commit(split).tracked
        head_commit = repo.objects.commit(head)
        our_files = head_commit.tracked
        their_files = repo.objects.commit(other).tracked

        staging = StagingArea(head_commit)
        staged: list[str] = []
        removed: list[str] = []
        conflicts: list[str] = []

        for path in sorted(base_files.keys() | our_files.keys() | their_files.keys()):
            s, t, o = base_files.get(path), our_files.get(path), their_files.get(path)
            case = classify(s, t, o)
            logger.debug("%s: %s", path, case.value)

            if case is MergeCase.DELETED_IN_TARGET:
                repo.reconciler.guard(path, t)
                staging.stage_remove(path)
                repo.worktree.delete(path)
                removed.append(path)
            elif case is MergeCase.MODIFIED_IN_TARGET:
                theirs_digest = cast(str, o)
                repo.reconciler.guard(path, t, allowed=(theirs_digest,))
                blob = repo.objects.blob(theirs_digest)
                repo.worktree.write(path, blob.data)
                staging.stage_add(blob)
                staged.append(path)
            elif case is MergeCase.CONFLICT:
                # the work tree keeps its content; only the conflict file is written
                ours = repo.objects.blob(t).data if t is not None else None
                theirs = repo.objects.blob(o).data if o is not None else None
                repo.store.set(CONFLICT_PREFIX + path, conflict_text(ours, theirs))
                conflicts.append(path)

        if not staging.has_pending_changes():
            if not conflicts:
                raise EmptyCommit()
            StagingArea.discard(repo.store)
            return MergeResult(
                merged=False,
                commit=None,
                strategy="three_way",
                conflicts=tuple(conflicts),
            )

        commit = staging.finalize(
            current, MERGE_MESSAGE % (target, current), repo.now(), merge_parent=other
        )
        repo.record_commit(staging, commit)
        return MergeResult(
            merged=True,
            commit=commit.digest,
            strategy="three_way",
            staged=tuple(staged),
            removed=tuple(removed),
            conflicts=tuple(conflicts),
        )

    def conflicts(self) -> list[str]:
        """Paths with a pending conflict file, sorted."""
        return sorted(key[len(CONFLICT_PREFIX):] for key in self.repo.store.keys(CONFLICT_PREFIX))

    def clear_conflicts(self) -> None:
        keys = list(self.repo.store.keys(CONFLICT_PREFIX))
        if keys:
            self.repo.store.remove_many(*keys)
