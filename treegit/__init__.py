"""treegit: a local, single-user version-control engine."""

from .errors import (
    AlreadyOnBranch,
    AlreadyUpToDate,
    AssertionViolation,
    BranchExists,
    BranchNotFound,
    CannotRemoveCurrentBranch,
    EmptyCommit,
    EmptyMessage,
    FileNotFound,
    FileNotInCommit,
    InvalidBranchName,
    NoMatchingCommit,
    NotARepository,
    NothingToRemove,
    ObjectKindMismatch,
    ObjectNotFound,
    RepositoryExists,
    SelfMerge,
    TreegitError,
    UncommittedChanges,
    UntrackedObstruction,
)
from .factory import init_repository, open_repository
from .graph import CommitGraph
from .kv.base import KVStore
from .merge import MergeCase, MergeResult, classify
from .object_store import ObjectStore
from .objects import Blob, Commit
from .reconcile import Reconciler
from .refs import LogEntry, RefStore
from .repository import Repository, Status
from .staging import StageOutcome, StagingArea
from .worktree import WorkingTree

__all__ = [
    "AlreadyOnBranch",
    "AlreadyUpToDate",
    "AssertionViolation",
    "Blob",
    "BranchExists",
    "BranchNotFound",
    "CannotRemoveCurrentBranch",
    "Commit",
    "CommitGraph",
    "EmptyCommit",
    "EmptyMessage",
    "FileNotFound",
    "FileNotInCommit",
    "InvalidBranchName",
    "KVStore",
    "LogEntry",
    "MergeCase",
    "MergeResult",
    "NoMatchingCommit",
    "NotARepository",
    "NothingToRemove",
    "ObjectKindMismatch",
    "ObjectNotFound",
    "ObjectStore",
    "Reconciler",
    "RefStore",
    "Repository",
    "RepositoryExists",
    "SelfMerge",
    "StageOutcome",
    "StagingArea",
    "Status",
    "TreegitError",
    "UncommittedChanges",
    "UntrackedObstruction",
    "WorkingTree",
    "classify",
    "init_repository",
    "open_repository",
]
