"""Repository factory functions."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Callable, Literal

if TYPE_CHECKING:
    from .repository import Repository

CACHE_DIR = "cache"


def _build(
    path: str,
    storage: str,
    digest_cache: bool,
    clock: Callable[[], int] | None,
    create: bool,
) -> Repository:
    from .repository import REPO_DIR, Repository
    from .worktree import WorkingTree

    if storage == "memory":
        from .kv.memory import Memory

        store = Memory()
        worktree = WorkingTree(Memory())
        create = True
    elif storage == "disk":
        from .errors import NotARepository
        from .kv.files import Files

        repo_dir = os.path.join(path, REPO_DIR)
        if not create and not os.path.isdir(repo_dir):
            raise NotARepository()
        store = Files(repo_dir, exclude=(CACHE_DIR,))
        cache = None
        if digest_cache:
            from .kv.disk import Disk

            cache = Disk(os.path.join(repo_dir, CACHE_DIR))
        worktree = WorkingTree(Files(path, exclude=(REPO_DIR,)), cache)
    else:
        raise ValueError(f"Unknown storage: {storage!r}")

    if create:
        return Repository.init(store, worktree, clock=clock)
    return Repository.open(store, worktree, clock=clock)


def _check(digest_cache: bool, clock: Callable[[], int] | None) -> None:
    if not isinstance(digest_cache, bool):
        raise ValueError("digest_cache must be a bool")
    if clock is not None and not callable(clock):
        raise ValueError("clock must be a zero-argument callable")


def init_repository(
    path: str = ".",
    *,
    storage: Literal["disk", "memory"] = "disk",
    digest_cache: bool = True,
    clock: Callable[[], int] | None = None,
) -> Repository:
    """Create a new repository with sensible defaults.

    Args:
        path: Work-tree directory (``storage="disk"`` only). The
            repository lives in ``<path>/.treegit``.
        storage: ``"disk"`` (default) or ``"memory"`` for a scratch
            repository with an in-memory work tree.
        digest_cache: Memoize work-tree file digests in a diskcache
            store under ``.treegit/cache`` (disk only).
        clock: Returns the current time in epoch milliseconds; used for
            commit timestamps.

    Raises:
        RepositoryExists: ``path`` already holds a repository.
        ValueError: Invalid option.
    """
    _check(digest_cache, clock)
    return _build(path, storage, digest_cache, clock, create=True)


def open_repository(
    path: str = ".",
    *,
    storage: Literal["disk", "memory"] = "disk",
    digest_cache: bool = True,
    clock: Callable[[], int] | None = None,
) -> Repository:
    """Open the repository at ``path``.

    Takes the same options as ``init_repository``. With
    ``storage="memory"`` there is nothing to open, so a fresh
    repository is returned.

    Raises:
        NotARepository: ``path`` holds no repository.
        ValueError: Invalid option.
    """
    _check(digest_cache, clock)
    return _build(path, storage, digest_cache, clock, create=False)
