"""Branch refs, the HEAD pointer, and the append-only ref logs."""

import re
from dataclasses import dataclass

from .errors import AssertionViolation, BranchNotFound, ObjectNotFound
from .kv.base import KVStore
from .log_utils import getLogger
from .object_store import ObjectStore
from .objects import ZERO_DIGEST, Commit

HEAD_KEY = "HEAD"
BRANCH_HEAD = "refs/heads/%s"
BRANCH_LOG = "logs/refs/heads/%s"
REMOVED_LOG = "logs/refs/removed"

_ESCAPE = re.compile(r"\\(.)")

logger = getLogger(__name__)


def _escape(message: str) -> str:
    return message.replace("\\", "\\\\").replace("\n", "\\n")


def _unescape(text: str) -> str:
    return _ESCAPE.sub(lambda m: "\n" if m.group(1) == "n" else m.group(1), text)


def valid_branch_name(name: str) -> bool:
    """Whether ``name`` can be stored as ``refs/heads/<name>``.

    Names are slash-separated like paths; empty, ``.`` and ``..``
    segments and surrounding whitespace are refused.
    """
    if name != name.strip():
        return False
    return not any(p in ("", ".", "..") for p in name.split("/"))


@dataclass(frozen=True)
class LogEntry:
    """One line of a ref log: ``<parent> <commit> <millis> <message>``.

    Backslashes and newlines in the message are escaped so each entry
    stays on one line.
    """

    parent: str
    commit: str
    timestamp: int
    message: str

    def to_line(self) -> str:
        return f"{self.parent} {self.commit} {self.timestamp} {_escape(self.message)}\n"

    @classmethod
    def from_line(cls, line: str) -> "LogEntry":
        parent, commit, timestamp, message = line.split(" ", 3)
        return cls(parent, commit, int(timestamp), _unescape(message))


def _read_log(raw: bytes | None) -> list[LogEntry]:
    if not raw:
        return []
    return [LogEntry.from_line(line) for line in raw.decode().split("\n") if line]


class RefStore:
    """Maps branch names to tip commit digests; one branch is current."""

    def __init__(self, store: KVStore, objects: ObjectStore) -> None:
        self.store = store
        self.objects = objects

    # -- HEAD --

    def current_branch(self) -> str:
        raw = self.store.get(HEAD_KEY)
        if raw is None:
            raise AssertionViolation("HEAD is missing")
        return raw.decode().strip().removeprefix(BRANCH_HEAD % "")

    def set_current(self, branch: str) -> None:
        if not self.exists(branch):
            raise BranchNotFound()
        self.store.set(HEAD_KEY, (BRANCH_HEAD % branch).encode())
        logger.debug("HEAD -> %s", branch)

    def head(self) -> str:
        """Tip digest of the current branch."""
        return self.read(self.current_branch())

    # -- Branches --

    def exists(self, branch: str) -> bool:
        return (BRANCH_HEAD % branch) in self.store

    def read(self, branch: str) -> str:
        raw = self.store.get(BRANCH_HEAD % branch)
        if raw is None:
            raise BranchNotFound()
        return raw.decode().strip()

    def write(self, branch: str, digest: str) -> None:
        """Point ``branch`` at a commit that is already persisted."""
        if digest not in self.objects:
            raise ObjectNotFound(digest)
        self.store.set(BRANCH_HEAD % branch, digest.encode())
        logger.debug("%s -> %s", branch, digest)

    def branches(self) -> list[str]:
        """List all branch names, sorted."""
        prefix = BRANCH_HEAD.replace("%s", "")
        return sorted(key[len(prefix):] for key in self.store.keys(prefix))

    def delete(self, branch: str) -> None:
        """Delete a branch, carrying its log over into the removed log."""
        if not self.exists(branch):
            raise BranchNotFound()
        log = self.store.get(BRANCH_LOG % branch) or b""
        if log:
            self.store.set(REMOVED_LOG, (self.store.get(REMOVED_LOG) or b"") + log)
        self.store.remove_many(BRANCH_HEAD % branch, BRANCH_LOG % branch)
        logger.debug("deleted branch %s", branch)

    # -- Logs --

    def append_log(self, branch: str, commit: Commit) -> None:
        entry = LogEntry(
            parent=commit.parent or ZERO_DIGEST,
            commit=commit.digest,
            timestamp=commit.timestamp,
            message=commit.message,
        )
        key = BRANCH_LOG % branch
        self.store.set(key, (self.store.get(key) or b"") + entry.to_line().encode())

    def branch_log(self, branch: str) -> list[LogEntry]:
        """Entries of one branch's log, newest first."""
        return _read_log(self.store.get(BRANCH_LOG % branch))[::-1]

    def log_entries(self) -> list[LogEntry]:
        """Every branch log (each newest first), then the removed log."""
        entries: list[LogEntry] = []
        for branch in self.branches():
            entries.extend(self.branch_log(branch))
        entries.extend(_read_log(self.store.get(REMOVED_LOG))[::-1])
        return entries
