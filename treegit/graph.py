"""Commit graph: ancestry queries over parent and merge-parent edges."""

from collections import deque
from typing import Iterable

from .errors import AssertionViolation
from .object_store import ObjectStore


class CommitGraph:
    """Read-only view of the commits in an ``ObjectStore``.

    Every edge is a digest resolved through the store on demand; the
    graph holds no live references between commits.
    """

    def __init__(self, objects: ObjectStore) -> None:
        self.objects = objects

    def parents(self, digest: str) -> tuple[str, ...]:
        """Load the parent tuple for a commit (first parent first)."""
        return self.objects.commit(digest).parents

    def ancestors_of(self, digest: str) -> set[str]:
        """Every commit reachable from ``digest``, including itself.

        Depth-first over both parent edges; the visited set handles
        histories that re-converge after a merge.
        """
        visited: set[str] = set()
        stack = [digest]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for p in self.parents(current):
                if p not in visited:
                    stack.append(p)
        return visited

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Whether ``ancestor`` is reachable from ``descendant``."""
        return ancestor in self.ancestors_of(descendant)

    def _first_hits(self, tip: str, targets: set[str]) -> set[str]:
        """Members of ``targets`` on the first BFS level from ``tip`` that has any."""
        seen: set[str] = {tip}
        level = [tip]
        while level:
            hits = {c for c in level if c in targets}
            if hits:
                return hits
            following: list[str] = []
            for current in level:
                for p in self.parents(current):
                    if p not in seen:
                        seen.add(p)
                        following.append(p)
            level = following
        return set()

    def common_ancestor(self, tip_a: str, tip_b: str) -> str:
        """Find the nearest commit reachable from both tips.

        Breadth-first from each tip, level by level; every commit on the
        first level that lies in the other tip's ancestor set is a
        candidate. Candidates that are ancestors of another candidate are
        dropped, and a remaining tie (criss-cross merges) goes to the
        smallest digest, so the result does not depend on argument order.

        Raises:
            AssertionViolation: The tips share no history. All commits of
                one repository descend from the root, so this means the
                repository is corrupt.
        """
        candidates = self._first_hits(tip_a, self.ancestors_of(tip_b))
        candidates |= self._first_hits(tip_b, self.ancestors_of(tip_a))
        if not candidates:
            raise AssertionViolation(f"No common ancestor for {tip_a} and {tip_b}")
        best = {
            c
            for c in candidates
            if not any(c != other and c in self.ancestors_of(other) for other in candidates)
        }
        return min(best)

    def history(self, digest: str, *, all_parents: bool = False) -> Iterable[str]:
        """Yield the commit chain from newest to oldest.

        Args:
            digest: Starting commit.
            all_parents: If True, BFS over all parents (full DAG).
                If False, follow first parent only (linear).
        """
        if not all_parents:
            current: str | None = digest
            while current is not None:
                yield current
                parents = self.parents(current)
                current = parents[0] if parents else None
        else:
            visited: set[str] = set()
            queue: deque[str] = deque([digest])
            while queue:
                current = queue.popleft()
                if current in visited:
                    continue
                visited.add(current)
                yield current
                for p in self.parents(current):
                    if p not in visited:
                        queue.append(p)
