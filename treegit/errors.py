"""treegit error types.

Every user-facing failure is a ``TreegitError``; the command boundary
catches these and prints their message. ``AssertionViolation`` is an
``AssertionError`` and is never caught there.
"""


class TreegitError(Exception):
    """Base class for recoverable, user-facing errors."""

    message = "An error occurred."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class AssertionViolation(AssertionError):
    """An internal invariant was breached (e.g. no common ancestor).

    Indicates a corrupted repository. Always fatal.
    """


class RepositoryExists(TreegitError):
    message = "A treegit version-control system already exists in the current directory."


class NotARepository(TreegitError):
    message = "Not in an initialized treegit directory."


class IncorrectOperands(TreegitError):
    message = "Incorrect operands."


class UnknownCommand(TreegitError):
    message = "No command with that name exists."


class ObjectError(TreegitError):
    """Raised when an object cannot be read from the object store.

    Attributes:
        digest: The digest that was requested.
    """

    def __init__(self, digest: str, message: str | None = None) -> None:
        self.digest = digest
        super().__init__(message)


class ObjectNotFound(ObjectError):
    message = "No commit with that id exists."


class ObjectKindMismatch(ObjectError):
    """The stored record is not of the requested kind.

    Attributes:
        expected: Kind that was requested (``"blob"`` or ``"commit"``).
        actual: Kind found in the store.
    """

    def __init__(self, digest: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(digest, f"Object {digest} is a {actual}, not a {expected}.")


class FileNotFound(TreegitError):
    message = "File does not exist."


class FileNotInCommit(TreegitError):
    message = "File does not exist in that commit."


class NothingToRemove(TreegitError):
    message = "No reason to remove the file."


class EmptyCommit(TreegitError):
    message = "No changes added to the commit."


class EmptyMessage(TreegitError):
    message = "Please enter a commit message."


class NoMatchingCommit(TreegitError):
    message = "Found no commit with that message."


class BranchExists(TreegitError):
    message = "A branch with that name already exists."


class BranchNotFound(TreegitError):
    message = "A branch with that name does not exist."


class InvalidBranchName(TreegitError):
    message = "Not a valid branch name."


class CannotRemoveCurrentBranch(TreegitError):
    message = "Cannot remove the current branch."


class AlreadyOnBranch(TreegitError):
    message = "No need to checkout the current branch."


class UntrackedObstruction(TreegitError):
    """A destructive update would discard an unstaged edit.

    Attributes:
        path: The working-tree path that is in the way.
    """

    message = "There is an untracked file in the way; delete it, or add and commit it first."

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__()


class AlreadyUpToDate(TreegitError):
    message = "Given branch is an ancestor of the current branch."


class SelfMerge(TreegitError):
    message = "Cannot merge a branch with itself."


class UncommittedChanges(TreegitError):
    message = "You have uncommitted changes."
