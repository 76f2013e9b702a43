"""Command-line interface for treegit.

Every user-visible error ends the command with a message on stdout and
exit status 0; only I/O failures exit non-zero.
"""

import argparse
import sys
from datetime import datetime
from typing import Sequence

from .errors import IncorrectOperands, TreegitError, UnknownCommand
from .factory import init_repository, open_repository
from .log_utils import default_logging_config, getLogger
from .merge import MergeResult
from .objects import Commit, short_id
from .repository import Repository

NO_COMMAND = "Please enter a command."
DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"

logger = getLogger(__name__)


class _Parser(argparse.ArgumentParser):
    """Argument parser that reports bad operands as a treegit error."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise IncorrectOperands()


def format_date(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000).astimezone().strftime(DATE_FORMAT)


def format_commit(commit: Commit) -> str:
    lines = ["===", f"commit {commit.digest}"]
    if commit.merge_parent is not None and commit.parent is not None:
        lines.append(f"Merge: {short_id(commit.parent)} {short_id(commit.merge_parent)}")
    lines.append(f"Date: {format_date(commit.timestamp)}")
    lines.append(commit.message)
    return "\n".join(lines) + "\n"


class Command:
    """A treegit subcommand."""

    def __init__(self, path: str = ".") -> None:
        self.path = path

    def repo(self) -> Repository:
        return open_repository(self.path)

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_init(Command):
    """Create an empty repository in the current directory."""

    def run(self, args: Sequence[str]) -> None:
        _Parser(prog="init").parse_args(args)
        init_repository(self.path)


class cmd_add(Command):
    """Stage a file's current content."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="add")
        parser.add_argument("path")
        parsed = parser.parse_args(args)
        self.repo().add(parsed.path)


class cmd_rm(Command):
    """Unstage a file, or stage its removal and delete it."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="rm")
        parser.add_argument("path")
        parsed = parser.parse_args(args)
        self.repo().rm(parsed.path)


class cmd_commit(Command):
    """Record the staged changes."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="commit")
        parser.add_argument("message", nargs="?", default="")
        parsed = parser.parse_args(args)
        self.repo().commit(parsed.message)


class cmd_log(Command):
    """Show the current branch's history."""

    def run(self, args: Sequence[str]) -> None:
        _Parser(prog="log").parse_args(args)
        for commit in self.repo().log():
            print(format_commit(commit))


class cmd_global_log(Command):
    """Show every commit ever made."""

    def run(self, args: Sequence[str]) -> None:
        _Parser(prog="global-log").parse_args(args)
        for entry in self.repo().global_log():
            print("===")
            print(f"commit {entry.commit}")
            print(f"Date: {format_date(entry.timestamp)}")
            print(entry.message)
            print()


class cmd_find(Command):
    """Print the ids of commits with a given message."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="find")
        parser.add_argument("message")
        parsed = parser.parse_args(args)
        for digest in self.repo().find(parsed.message):
            print(digest)


class cmd_branch(Command):
    """Create a branch at the current commit."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="branch")
        parser.add_argument("name")
        parsed = parser.parse_args(args)
        self.repo().branch(parsed.name)


class cmd_rm_branch(Command):
    """Delete a branch pointer."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="rm-branch")
        parser.add_argument("name")
        parsed = parser.parse_args(args)
        self.repo().rm_branch(parsed.name)


class cmd_checkout(Command):
    """Restore a file, or switch branches.

    ``checkout -- <file>``, ``checkout <commit> -- <file>`` or
    ``checkout <branch>``.
    """

    def run(self, args: Sequence[str]) -> None:
        if len(args) == 2 and args[0] == "--":
            self.repo().checkout_file(args[1])
        elif len(args) == 3 and args[1] == "--":
            self.repo().checkout_file(args[2], args[0])
        elif len(args) == 1 and args[0] != "--":
            self.repo().checkout_branch(args[0])
        else:
            raise IncorrectOperands()


class cmd_reset(Command):
    """Check out a commit and move the current branch to it."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="reset")
        parser.add_argument("commit")
        parsed = parser.parse_args(args)
        self.repo().reset(parsed.commit)


class cmd_merge(Command):
    """Merge a branch into the current branch."""

    def run(self, args: Sequence[str]) -> None:
        parser = _Parser(prog="merge")
        parser.add_argument("branch")
        parsed = parser.parse_args(args)
        result: MergeResult = self.repo().merge(parsed.branch)
        if result.strategy == "fast_forward":
            print("Current branch fast-forwarded.")
        if result.conflicts:
            print("Encountered a merge conflict.")


class cmd_status(Command):
    """Show branches, staged files and work-tree changes."""

    def run(self, args: Sequence[str]) -> None:
        _Parser(prog="status").parse_args(args)
        status = self.repo().status()
        print("=== Branches ===")
        for branch in status.branches:
            print(f"*{branch}" if branch == status.current_branch else branch)
        print()
        print("=== Staged Files ===")
        for path in status.staged:
            print(path)
        print()
        print("=== Removed Files ===")
        for path in status.removed:
            print(path)
        print()
        print("=== Modifications Not Staged For Commit ===")
        for path, change in status.modified:
            print(f"{path} ({change})")
        print()
        print("=== Untracked Files ===")
        for path in status.untracked:
            print(path)
        print()


commands: dict[str, type[Command]] = {
    "add": cmd_add,
    "branch": cmd_branch,
    "checkout": cmd_checkout,
    "commit": cmd_commit,
    "find": cmd_find,
    "global-log": cmd_global_log,
    "init": cmd_init,
    "log": cmd_log,
    "merge": cmd_merge,
    "reset": cmd_reset,
    "rm": cmd_rm,
    "rm-branch": cmd_rm_branch,
    "status": cmd_status,
}


def main(argv: Sequence[str] | None = None, path: str = ".") -> int:
    """Main entry point for the treegit CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])
        path: Work-tree directory.

    Returns:
        Exit code.
    """
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        print(NO_COMMAND)
        return 0

    cmd, cmd_args = argv[0], list(argv[1:])
    try:
        cmd_cls = commands.get(cmd)
        if cmd_cls is None:
            raise UnknownCommand()
        cmd_cls(path).run(cmd_args)
    except TreegitError as e:
        print(e)
    except OSError as e:
        logger.debug("I/O failure in %s", cmd, exc_info=True)
        print(f"fatal: {e}", file=sys.stderr)
        return 1
    return 0


def _main() -> None:
    default_logging_config()
    sys.exit(main())


if __name__ == "__main__":
    _main()
