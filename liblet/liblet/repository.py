"""liblet repository management."""

import logging
from collections.abc import Callable, Generator
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Concatenate, ParamSpec, TypeVar

from .branch import BranchTable
from .commit import Commit, CommitGraph
from .constants import DEFAULT_BRANCH, DEFAULT_REPO_DIR, INITIAL_COMMIT_MESSAGE, OBJECTS_SUBDIR, STATE_FILE, TIME_FORMAT
from .errors import (AlreadyOnBranchError, BranchNotFoundError, FileNotInCommitError, NoChangesStagedError,
                     NothingToRemoveError, RepositoryError, RepositoryExistsError, RepositoryNotFoundError,
                     SelfMergeError, UncommittedChangesError, WorkingFileNotFoundError)
from .merge import FileAction, MergeError, MergeOutcome, MergeResult, find_split_point, plan_merge
from .objects import ObjectStore
from .ref import HashRef
from .staging import StagingArea
from .working_tree import WorkingTree

__all__ = ['LogEntry', 'Repository', 'RepositoryError', 'RepositoryNotFoundError', 'Status']

logger = logging.getLogger(__name__)

P = ParamSpec('P')
R = TypeVar('R')


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: HashRef
    commit: Commit


@dataclass
class Status:
    """A snapshot of the repository state relative to the working directory. Every list is sorted."""

    head: str
    branches: list[str]
    staged: list[str]
    removed: list[str]
    modified: list[str]
    deleted: list[str]
    untracked: list[str]


class Repository:
    """Represents a liblet repository.

    The repository owns the object store, the commit graph, the branch table, the staging
    area and the working tree. It is built empty, then either initialized with `init()` or
    filled by `liblet.persistence.load`."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None,
                 clock: Callable[[], datetime] = datetime.now) -> None:
        """Initialize a Repository instance. The repository is not created on disk until `init()` is called.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.liblet'.
        :param clock: Returns the current time; commit timestamps are taken from it."""
        self.working_dir = Path(working_dir)

        if repo_dir is None:
            self.repo_dir = Path(DEFAULT_REPO_DIR)
        else:
            self.repo_dir = Path(repo_dir)

        self.clock = clock
        self.store = ObjectStore(self.objects_dir())
        self.graph = CommitGraph()
        self.branches = BranchTable()
        self.staging = StagingArea()
        self.merge_parent: HashRef | None = None
        self.tree = WorkingTree(self.working_dir, self.store, ignored=(self.repo_dir.parts[0],))

    def init(self, default_branch: str = DEFAULT_BRANCH) -> None:
        """Initialize a new repository in the working directory with a root commit and one branch.

        :param default_branch: The name of the default branch to create. Defaults to 'master'.
        :raises RepositoryExistsError: If the repository already exists."""
        if self.exists() or self.initialized():
            raise RepositoryExistsError()

        self.objects_dir().mkdir(parents=True)

        root = self.graph.create_root(INITIAL_COMMIT_MESSAGE, self._now())
        self.branches.create(default_branch, root.digest)
        logger.debug('Initialized repository at %s', self.repo_path())

    def exists(self) -> bool:
        """Check if the repository directory exists in the working directory."""
        return self.repo_path().exists()

    def initialized(self) -> bool:
        """Check if this instance holds repository state, from `init()` or from a load."""
        return len(self.branches) > 0

    def repo_path(self) -> Path:
        """Get the path to the repository directory."""
        return self.working_dir / self.repo_dir

    def objects_dir(self) -> Path:
        """Get the path to the objects directory within the repository."""
        return self.repo_path() / OBJECTS_SUBDIR

    def state_file(self) -> Path:
        """Get the path to the file the repository state is persisted in."""
        return self.repo_path() / STATE_FILE

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository is initialized before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.initialized():
                msg = f'Repository not initialized at {self.repo_path()}'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    def _now(self) -> str:
        return self.clock().strftime(TIME_FORMAT)

    def _normalize(self, path: Path | str, error: type[RepositoryError]) -> str:
        try:
            return self.tree.normalize(path)
        except ValueError as e:
            raise error() from e

    @requires_repo
    def head_ref(self) -> str:
        """Get the name of the active branch."""
        return self.branches.head

    @requires_repo
    def head_commit(self) -> Commit:
        """Get the commit the active branch points at."""
        return self.graph.get(self.branches.head_commit)

    @property
    def in_conflict(self) -> bool:
        """Whether a merge stopped on conflicts and has not been committed yet."""
        return self.merge_parent is not None

    @requires_repo
    def add(self, path: Path | str) -> bool:
        """Stage a working-tree file for the next commit.

        :param path: The file to add, relative to the working directory.
        :return: True if the file is staged afterwards.
        :raises WorkingFileNotFoundError: If the file does not exist."""
        rel_path = self._normalize(path, WorkingFileNotFoundError)
        if not self.tree.exists(rel_path):
            raise WorkingFileNotFoundError()

        staged = self.staging.add(rel_path, self.tree.digest(rel_path), self.head_commit().files.get(rel_path))
        if staged:
            self.store.put_file(self.tree.path(rel_path))

        return staged

    @requires_repo
    def commit(self, message: str) -> HashRef:
        """Record the staged changes as a new commit on the active branch.

        If a conflicted merge is pending, the merged branch's tip becomes the second parent.

        :param message: The commit message.
        :return: The digest of the new commit.
        :raises ValueError: If the message is empty.
        :raises NoChangesStagedError: If nothing is staged."""
        if not message:
            msg = 'Commit message is required'
            raise ValueError(msg)
        if self.staging.is_empty():
            raise NoChangesStagedError()

        parents = [self.branches.head_commit]
        if self.merge_parent is not None:
            parents.append(self.merge_parent)

        return self._commit(message, parents)

    def _commit(self, message: str, parents: list[HashRef]) -> HashRef:
        files = self.staging.apply(self.head_commit().files)
        commit = self.graph.create_child(message, parents, self._now(), files)

        self.branches.advance(self.branches.head, commit.digest)
        self.staging.clear()
        self.merge_parent = None

        return commit.digest

    @requires_repo
    def remove(self, path: Path | str) -> None:
        """Unstage a file and, if HEAD tracks it, delete it and stage its removal.

        :param path: The file to remove, relative to the working directory.
        :raises NothingToRemoveError: If the file is neither staged nor tracked by HEAD."""
        rel_path = self._normalize(path, NothingToRemoveError)
        if self.staging.remove(rel_path, rel_path in self.head_commit().files):
            self.tree.delete(rel_path)

    @requires_repo
    def log(self) -> Generator[LogEntry, None, None]:
        """Generate the history from HEAD to the root commit, following first parents."""
        for commit in self.graph.first_parent_chain(self.branches.head_commit):
            yield LogEntry(commit.digest, commit)

    @requires_repo
    def global_log(self) -> list[LogEntry]:
        """List every commit ever made, in no particular order."""
        return [LogEntry(commit.digest, commit) for commit in self.graph]

    @requires_repo
    def find(self, message: str) -> set[HashRef]:
        """Find the digests of all commits with exactly the given message."""
        return self.graph.find(message)

    @requires_repo
    def status(self) -> Status:
        """Compare HEAD, the staging area and the working directory."""
        head_files = self.head_commit().files
        added = self.staging.added
        removed = self.staging.removed
        on_disk = set(self.tree.files())

        modified: set[str] = set()
        deleted: set[str] = set()

        for path, digest in added.items():
            if path not in on_disk:
                deleted.add(path)
            elif self.tree.digest(path) != digest:
                modified.add(path)

        for path, digest in head_files.items():
            if path in added or path in removed:
                continue
            if path not in on_disk:
                deleted.add(path)
            elif self.tree.digest(path) != digest:
                modified.add(path)

        untracked = [path for path in on_disk
                     if (path not in head_files and path not in added) or path in removed]

        return Status(
            head=self.branches.head,
            branches=self.branches.names(),
            staged=sorted(added),
            removed=sorted(removed),
            modified=sorted(modified),
            deleted=sorted(deleted),
            untracked=sorted(untracked),
        )

    @requires_repo
    def checkout_branch(self, name: str) -> None:
        """Switch the working tree and HEAD to another branch.

        :raises BranchNotFoundError: If the branch does not exist.
        :raises AlreadyOnBranchError: If the branch is already active.
        :raises UntrackedObstructionError: If an untracked file would be overwritten."""
        if name not in self.branches:
            raise BranchNotFoundError()
        if name == self.branches.head:
            raise AlreadyOnBranchError()

        self.tree.safe_switch(self.head_commit(), self.graph.get(self.branches.get(name)))

        self.branches.switch(name)
        self.staging.clear()
        self.merge_parent = None

    @requires_repo
    def checkout_file(self, path: Path | str) -> None:
        """Restore a file to its version in HEAD.

        :raises FileNotInCommitError: If HEAD does not track the file."""
        self.tree.restore_one(self.head_commit(), self._normalize(path, FileNotInCommitError))

    @requires_repo
    def checkout_file_from_commit(self, id_prefix: str, path: Path | str) -> None:
        """Restore a file to its version in the commit identified by an id prefix.

        :raises CommitNotFoundError: If the prefix matches no commit or more than one.
        :raises FileNotInCommitError: If the commit does not track the file."""
        commit = self.graph.resolve(id_prefix)
        self.tree.restore_one(commit, self._normalize(path, FileNotInCommitError))

    @requires_repo
    def branch(self, name: str) -> None:
        """Create a branch pointing at HEAD's commit.

        :raises ValueError: If the branch name is empty.
        :raises BranchExistsError: If the branch already exists."""
        self.branches.create(name, self.branches.head_commit)

    @requires_repo
    def remove_branch(self, name: str) -> None:
        """Delete a branch pointer.

        :raises BranchNotFoundError: If the branch does not exist.
        :raises CannotRemoveActiveError: If the branch is the active one."""
        self.branches.delete(name)

    @requires_repo
    def reset(self, id_prefix: str) -> HashRef:
        """Check out every file of a commit and move the active branch to it.

        :param id_prefix: The commit id or a unique prefix of at least six characters.
        :return: The digest of the commit reset to.
        :raises CommitNotFoundError: If the prefix matches no commit or more than one.
        :raises UntrackedObstructionError: If an untracked file would be overwritten."""
        target = self.graph.resolve(id_prefix)
        self.tree.safe_switch(self.head_commit(), target)

        self.branches.advance(self.branches.head, target.digest)
        self.staging.clear()
        self.merge_parent = None

        return target.digest

    @requires_repo
    def merge(self, branch_name: str, line_merge: bool = False) -> MergeResult:
        """Merge another branch into the active one.

        :param branch_name: The branch to merge in.
        :param line_merge: Whether files changed on both sides get a line-level merge before
            being declared conflicting.
        :return: The outcome, with the conflicting paths if any.
        :raises BranchNotFoundError: If the branch does not exist.
        :raises UncommittedChangesError: If the staging area is not empty.
        :raises UntrackedObstructionError: If an untracked file would be overwritten.
        :raises SelfMergeError: If the branch is the active one."""
        theirs_ref = self.branches.get(branch_name)
        if not self.staging.is_empty():
            raise UncommittedChangesError()

        head_name = self.branches.head
        ours = self.head_commit()
        theirs = self.graph.get(theirs_ref)
        self.tree.check_obstructions(ours, theirs)

        if branch_name == head_name:
            raise SelfMergeError()

        split_ref = find_split_point(self.graph, ours.digest, theirs.digest)
        if split_ref is None:
            msg = 'No common ancestor found for merge'
            raise MergeError(msg)

        # A new merge replaces any unresolved one; a conflict below records it again.
        self.merge_parent = None

        if self.graph.is_ancestor(theirs.digest, ours.digest):
            logger.info('%s is already contained in %s', branch_name, head_name)
            return MergeResult(MergeOutcome.UP_TO_DATE)

        if split_ref == ours.digest:
            self.tree.safe_switch(ours, theirs)
            self.branches.advance(head_name, theirs.digest)
            logger.info('Fast-forwarded %s to %s', head_name, theirs.digest)
            return MergeResult(MergeOutcome.FAST_FORWARD, theirs.digest)

        split = self.graph.get(split_ref)
        plan = plan_merge(self.store, split.files, ours.files, theirs.files,
                          theirs_label=branch_name, line_merge=line_merge)

        conflicts: list[str] = []
        for file_merge in plan:
            path = file_merge.path
            match file_merge.action:
                case FileAction.TAKE_THEIRS:
                    self.tree.write_bytes(path, self.store.get(file_merge.digest))
                    self.staging.stage(path, file_merge.digest)
                case FileAction.MERGED:
                    self.tree.write_bytes(path, file_merge.content)
                    self.staging.stage(path, file_merge.digest)
                case FileAction.DELETE:
                    self.tree.delete(path)
                    self.staging.mark_removed(path)
                case FileAction.CONFLICT:
                    self.tree.write_bytes(path, file_merge.content)
                    conflicts.append(path)

        if conflicts:
            self.merge_parent = theirs.digest
            logger.warning('Merge of %s into %s left %d conflicts', branch_name, head_name, len(conflicts))
            return MergeResult(MergeOutcome.CONFLICT, None, conflicts)

        commit_ref = self._commit(f'Merged {head_name} with {branch_name}.', [ours.digest, theirs.digest])
        logger.info('Merged %s into %s as %s', branch_name, head_name, commit_ref)

        return MergeResult(MergeOutcome.MERGED, commit_ref)
