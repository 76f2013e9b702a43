"""Working-tree reconciliation against a target snapshot."""

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .errors import UntrackedObstruction
from .log_utils import getLogger
from .object_store import ObjectStore
from .worktree import WorkingTree

logger = getLogger(__name__)


@dataclass
class ReconcilePlan:
    """Mutations that bring the work tree to a target mapping."""

    writes: dict[str, str] = field(default_factory=dict)
    deletes: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.writes or self.deletes)


class Reconciler:
    """Overwrites, creates and deletes work-tree files to match a snapshot.

    Never destroys an unstaged edit: before any overwrite or delete the
    on-disk content must match what the repository already tracks for
    that path (``expected``), otherwise ``UntrackedObstruction``.
    Files that are neither tracked nor in the target are left alone.
    """

    def __init__(self, worktree: WorkingTree, objects: ObjectStore) -> None:
        self.worktree = worktree
        self.objects = objects

    def guard(self, path: str, expected: str | None, allowed: Iterable[str] = ()) -> None:
        """Refuse to touch ``path`` if it holds content that would be lost.

        Args:
            path: Work-tree path about to be overwritten or deleted.
            expected: Digest the repository tracks for the path, or None.
            allowed: Further digests that are safe to replace (e.g. the
                incoming content itself).
        """
        on_disk = self.worktree.digest(path)
        if on_disk is None or on_disk == expected or on_disk in allowed:
            return
        raise UntrackedObstruction(path)

    def plan(self, target: Mapping[str, str], expected: Mapping[str, str]) -> ReconcilePlan:
        """Compute the mutations for ``reconcile_to`` and check every guard.

        Raises:
            UntrackedObstruction: Some path holds an unstaged edit or an
                untracked file that the target would overwrite.
        """
        plan = ReconcilePlan()
        for path in sorted(self.worktree.paths() | target.keys()):
            want = target.get(path)
            have = self.worktree.digest(path)
            if want is None:
                if have is None or path not in expected:
                    continue
                self.guard(path, expected[path])
                plan.deletes.append(path)
            elif have != want:
                if have is not None:
                    self.guard(path, expected.get(path))
                plan.writes[path] = want
        return plan

    def apply(self, plan: ReconcilePlan) -> None:
        for path in plan.deletes:
            self.worktree.delete(path)
        for path, digest in plan.writes.items():
            self.checkout_blob(path, digest)
        if plan:
            logger.debug("reconciled: %d written, %d deleted", len(plan.writes), len(plan.deletes))

    def reconcile_to(self, target: Mapping[str, str], expected: Mapping[str, str]) -> ReconcilePlan:
        """Make the work tree match ``target`` (path -> blob digest)."""
        plan = self.plan(target, expected)
        self.apply(plan)
        return plan

    def checkout_blob(self, path: str, digest: str) -> None:
        """Write a stored blob's bytes to ``path``."""
        self.worktree.write(path, self.objects.blob(digest).data)
