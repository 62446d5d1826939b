"""Commits and the commit graph."""

import logging
from collections import deque
from collections.abc import Generator, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .constants import MIN_PREFIX_LENGTH
from .errors import AmbiguousCommitError, CommitNotFoundError
from .plumbing import hash_commit
from .ref import HashRef

logger = logging.getLogger(__name__)

MAX_PARENTS = 2


@dataclass(frozen=True)
class Commit:
    """An immutable snapshot of the tracked files.

    `parents` is empty for the root commit, holds one digest for a regular commit and
    two for a merge commit (the branch that was merged into first)."""

    digest: HashRef
    parents: tuple[HashRef, ...]
    message: str
    timestamp: str
    files: Mapping[str, HashRef] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'files', MappingProxyType(dict(self.files)))

    @property
    def parent(self) -> HashRef | None:
        """The first parent, or None for the root commit."""
        return self.parents[0] if self.parents else None

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @classmethod
    def build(cls, message: str, parents: Iterable[str], timestamp: str, files: Mapping[str, str]) -> 'Commit':
        """Create a commit, computing its digest from the other fields.

        :param message: The commit message.
        :param parents: The ordered parent digests.
        :param timestamp: The formatted creation time.
        :param files: The tracked-file table.
        :return: The new commit."""
        parents = tuple(HashRef(p) for p in parents)
        files = {path: HashRef(digest) for path, digest in files.items()}
        digest = hash_commit(message, parents, timestamp, files)
        return cls(digest, parents, message, timestamp, files)


class CommitGraph:
    """All commits ever created, keyed by digest, linked through their parents."""

    def __init__(self, commits: Iterable[Commit] = ()) -> None:
        self._commits: dict[HashRef, Commit] = {}
        for commit in commits:
            self.add(commit)

    def add(self, commit: Commit) -> Commit:
        """Insert an existing commit into the graph.

        :param commit: The commit to insert.
        :return: The stored commit, which is the existing one if the digest was already known."""
        return self._commits.setdefault(commit.digest, commit)

    def create_root(self, message: str, timestamp: str) -> Commit:
        """Create the root commit: no parents and no tracked files.

        :param message: The commit message.
        :param timestamp: The formatted creation time.
        :return: The root commit."""
        commit = self.add(Commit.build(message, (), timestamp, {}))
        logger.debug('Created root commit %s', commit.digest)
        return commit

    def create_child(self, message: str, parents: Iterable[str], timestamp: str,
                     files: Mapping[str, str]) -> Commit:
        """Create a commit on top of one or two existing commits.

        :param message: The commit message.
        :param parents: The ordered parent digests, at least one and at most two.
        :param timestamp: The formatted creation time.
        :param files: The tracked-file table of the new commit.
        :return: The new commit.
        :raises ValueError: If the number of parents is not one or two.
        :raises CommitNotFoundError: If a parent is not in the graph."""
        parents = tuple(parents)
        if not 1 <= len(parents) <= MAX_PARENTS:
            msg = f'A commit needs one or two parents, got {len(parents)}'
            raise ValueError(msg)
        for parent in parents:
            self.get(parent)

        commit = self.add(Commit.build(message, parents, timestamp, files))
        logger.debug('Created commit %s with parents %s', commit.digest, ', '.join(parents))
        return commit

    def get(self, digest: str) -> Commit:
        """Look up a commit by its full digest.

        :raises CommitNotFoundError: If the digest is unknown."""
        try:
            return self._commits[HashRef(digest)]
        except KeyError:
            raise CommitNotFoundError() from None

    def resolve(self, prefix: str) -> Commit:
        """Look up a commit by a digest prefix of at least MIN_PREFIX_LENGTH characters.

        :param prefix: The full digest or a unique prefix of it.
        :return: The single matching commit.
        :raises CommitNotFoundError: If the prefix is too short or matches nothing.
        :raises AmbiguousCommitError: If the prefix matches more than one commit."""
        prefix = prefix.strip().lower()
        if len(prefix) < MIN_PREFIX_LENGTH:
            raise CommitNotFoundError()
        if prefix in self._commits:
            return self._commits[HashRef(prefix)]

        matches = [digest for digest in self._commits if digest.startswith(prefix)]
        if not matches:
            raise CommitNotFoundError()
        if len(matches) > 1:
            raise AmbiguousCommitError(prefix, matches)

        return self._commits[matches[0]]

    def ancestor_distances(self, digest: str) -> dict[HashRef, int]:
        """Compute the shortest parent-link distance from a commit to each of its ancestors.

        The commit itself is included at distance 0. Insertion order is breadth-first,
        following parents in order."""
        start = self.get(digest).digest
        distances = {start: 0}
        queue = deque([start])

        while queue:
            current = queue.popleft()
            for parent in self.get(current).parents:
                if parent not in distances:
                    distances[parent] = distances[current] + 1
                    queue.append(parent)

        return distances

    def ancestor_chain(self, digest: str) -> list[HashRef]:
        """List a commit and all its ancestors, nearest first."""
        return list(self.ancestor_distances(digest))

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Check whether `ancestor` is reachable from `descendant` (a commit is its own ancestor)."""
        return HashRef(ancestor) in self.ancestor_distances(descendant)

    def first_parent_chain(self, digest: str) -> Generator[Commit, None, None]:
        """Walk from a commit to the root along first parents."""
        current: HashRef | None = HashRef(digest)
        while current:
            commit = self.get(current)
            yield commit
            current = commit.parent

    def find(self, message: str) -> set[HashRef]:
        """Find the digests of all commits with exactly the given message."""
        return {commit.digest for commit in self._commits.values() if commit.message == message}

    def __iter__(self) -> Iterator[Commit]:
        return iter(self._commits.values())

    def __len__(self) -> int:
        return len(self._commits)

    def __contains__(self, digest: object) -> bool:
        return digest in self._commits
