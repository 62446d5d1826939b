"""Exceptions raised by liblet.

Every expected, user-facing outcome derives from RepositoryError and carries the
message a command should print. IntegrityError covers states that only arise from
corruption or a broken invariant."""

from collections.abc import Iterable


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""

    default_message = 'Repository error.'

    def __init__(self, msg: str | None = None) -> None:
        super().__init__(msg or self.default_message)


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""

    default_message = 'Not in an initialized liblet directory.'


class RepositoryExistsError(RepositoryError):
    """Exception raised when initializing over an existing repository."""

    default_message = 'A liblet version-control system already exists in the current directory.'


class WorkingFileNotFoundError(RepositoryError):
    """Exception raised when a file to add is absent from the working tree."""

    default_message = 'File does not exist.'


class NothingToRemoveError(RepositoryError):
    """Exception raised when removing a path that is neither staged nor tracked."""

    default_message = 'No reason to remove the file.'


class NoChangesStagedError(RepositoryError):
    """Exception raised when committing with an empty staging area."""

    default_message = 'No changes added to the commit.'


class BranchExistsError(RepositoryError):
    """Exception raised when creating a branch that already exists."""

    default_message = 'A branch with that name already exists.'


class BranchNotFoundError(RepositoryError):
    """Exception raised when a branch lookup fails."""

    default_message = 'A branch with that name does not exist.'


class CannotRemoveActiveError(RepositoryError):
    """Exception raised when deleting the current branch."""

    default_message = 'Cannot remove the current branch.'


class AlreadyOnBranchError(RepositoryError):
    """Exception raised when checking out the current branch."""

    default_message = 'No need to checkout the current branch.'


class SelfMergeError(RepositoryError):
    """Exception raised when merging a branch with itself."""

    default_message = 'Cannot merge a branch with itself.'


class UncommittedChangesError(RepositoryError):
    """Exception raised when merging with a non-empty staging area."""

    default_message = 'You have uncommitted changes.'


class UntrackedObstructionError(RepositoryError):
    """Exception raised when an operation would overwrite untracked files."""

    default_message = 'There is an untracked file in the way; delete it or add it first.'

    def __init__(self, paths: Iterable[str] = ()) -> None:
        super().__init__()
        self.paths = sorted(paths)


class CommitNotFoundError(RepositoryError):
    """Exception raised when a commit id (or id prefix) matches no commit."""

    default_message = 'No commit with that id exists.'


class AmbiguousCommitError(CommitNotFoundError):
    """Exception raised when a commit id prefix matches more than one commit."""

    default_message = 'Commit id is ambiguous.'

    def __init__(self, prefix: str, matches: Iterable[str]) -> None:
        self.matches = sorted(matches)
        super().__init__(f'Commit id {prefix} is ambiguous; it matches {len(self.matches)} commits.')


class FileNotInCommitError(RepositoryError):
    """Exception raised when checking out a path the commit does not track."""

    default_message = 'File does not exist in that commit.'


class IntegrityError(Exception):
    """Exception raised when stored repository data is inconsistent."""


class ObjectMissingError(IntegrityError):
    """Exception raised when a digest is not present in the object store."""


class CorruptStateError(IntegrityError):
    """Exception raised when the persisted repository state cannot be read."""
