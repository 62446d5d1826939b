"""Reconciling the working directory with commit snapshots.

The working tree is the only component that writes or deletes files in the user's
working directory. Paths are POSIX-style strings relative to the working directory;
the repository directory itself is invisible to every operation here."""

import logging
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from .commit import Commit
from .errors import FileNotInCommitError, UntrackedObstructionError
from .objects import ObjectStore
from .plumbing import hash_file
from .ref import HashRef

logger = logging.getLogger(__name__)


class WorkingTree:
    """The user's working directory."""

    def __init__(self, root: Path | str, store: ObjectStore, ignored: Iterable[str] = ()) -> None:
        """Wrap a working directory.

        :param root: The working directory.
        :param store: The object store blobs are restored from.
        :param ignored: Top-level names never listed or touched, such as the repository directory."""
        self.root = Path(root)
        self.store = store
        self.ignored = frozenset(ignored)

    def normalize(self, path: Path | str) -> str:
        """Turn a user-supplied path into a working-tree relative POSIX path.

        :raises ValueError: If the path is empty, escapes the working directory or points into
            an ignored directory."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root.resolve())
            except ValueError:
                msg = f'{path} is outside the working directory {self.root}'
                raise ValueError(msg) from None

        parts = [part for part in PurePosixPath(candidate.as_posix()).parts if part != '.']
        if not parts or '..' in parts or parts[0] in self.ignored:
            msg = f'Invalid working tree path: {path}'
            raise ValueError(msg)

        return '/'.join(parts)

    def path(self, rel_path: str) -> Path:
        return self.root / rel_path

    def exists(self, rel_path: str) -> bool:
        return self.path(rel_path).is_file()

    def digest(self, rel_path: str) -> HashRef:
        """Digest of a file's current content; nothing is stored."""
        return hash_file(self.path(rel_path))

    def write_bytes(self, rel_path: str, data: bytes) -> None:
        target = self.path(rel_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def delete(self, rel_path: str) -> None:
        """Delete a file, then any parent directories left empty by it."""
        target = self.path(rel_path)
        target.unlink(missing_ok=True)

        parent = target.parent
        while parent != self.root and parent.is_dir() and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def files(self) -> list[str]:
        """List every regular file in the working directory, sorted."""
        found: list[str] = []
        stack = [self.root]

        while stack:
            current = stack.pop()
            for item in current.iterdir():
                if current == self.root and item.name in self.ignored:
                    continue
                if item.is_dir() and not item.is_symlink():
                    stack.append(item)
                elif item.is_file():
                    found.append(item.relative_to(self.root).as_posix())

        return sorted(found)

    def restore_all(self, commit: Commit) -> None:
        """Overwrite every file tracked by a commit with its committed content."""
        for rel_path, digest in commit.files.items():
            self.write_bytes(rel_path, self.store.get(digest))
        logger.debug('Restored %d files from %s', len(commit.files), commit.digest)

    def restore_one(self, commit: Commit, rel_path: str) -> None:
        """Overwrite a single file with its content in a commit.

        :raises FileNotInCommitError: If the commit does not track the path."""
        digest = commit.files.get(rel_path)
        if digest is None:
            raise FileNotInCommitError()

        self.write_bytes(rel_path, self.store.get(digest))
        logger.debug('Restored %s from %s', rel_path, commit.digest)

    def check_obstructions(self, from_commit: Commit, to_commit: Commit) -> None:
        """Refuse to go from one snapshot to another if that would clobber untracked files.

        :raises UntrackedObstructionError: If a path tracked by `to_commit` but not by
            `from_commit` exists in the working directory."""
        obstructions = [rel_path for rel_path in to_commit.files
                        if rel_path not in from_commit.files and self.exists(rel_path)]
        if obstructions:
            raise UntrackedObstructionError(obstructions)

    def safe_switch(self, from_commit: Commit, to_commit: Commit) -> None:
        """Replace the files of one snapshot with those of another.

        Nothing is touched if an untracked file is in the way. Otherwise every file tracked
        by `from_commit` is deleted before `to_commit` is restored.

        :raises UntrackedObstructionError: If an untracked file would be overwritten."""
        self.check_obstructions(from_commit, to_commit)

        for rel_path in from_commit.files:
            self.delete(rel_path)
        self.restore_all(to_commit)
        logger.debug('Switched working tree from %s to %s', from_commit.digest, to_commit.digest)
