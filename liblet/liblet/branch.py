"""Branch pointers and HEAD."""

import logging
from collections.abc import Mapping

from .errors import BranchExistsError, BranchNotFoundError, CannotRemoveActiveError
from .ref import HashRef

logger = logging.getLogger(__name__)


def _require_name(name: str) -> None:
    if not name:
        msg = 'Branch name is required'
        raise ValueError(msg)


class BranchTable:
    """Named pointers into the commit graph, one of which is HEAD."""

    def __init__(self, branches: Mapping[str, str] | None = None, head: str | None = None) -> None:
        self._branches: dict[str, HashRef] = {name: HashRef(digest) for name, digest in (branches or {}).items()}
        if head is not None and head not in self._branches:
            raise BranchNotFoundError()
        self._head = head

    @property
    def head(self) -> str:
        """The name of the active branch.

        :raises BranchNotFoundError: If no branch has been made active yet."""
        if self._head is None:
            raise BranchNotFoundError()
        return self._head

    @property
    def head_commit(self) -> HashRef:
        return self._branches[self.head]

    def create(self, name: str, digest: str) -> None:
        """Create a branch pointing at a commit.

        :raises ValueError: If the branch name is empty.
        :raises BranchExistsError: If the branch already exists."""
        _require_name(name)
        if name in self._branches:
            raise BranchExistsError()

        self._branches[name] = HashRef(digest)
        if self._head is None:
            self._head = name
        logger.debug('Created branch %s at %s', name, digest)

    def delete(self, name: str) -> None:
        """Delete a branch pointer; the commits it pointed at are kept.

        :raises ValueError: If the branch name is empty.
        :raises BranchNotFoundError: If the branch does not exist.
        :raises CannotRemoveActiveError: If the branch is HEAD."""
        _require_name(name)
        if name not in self._branches:
            raise BranchNotFoundError()
        if name == self._head:
            raise CannotRemoveActiveError()

        del self._branches[name]
        logger.debug('Deleted branch %s', name)

    def advance(self, name: str, digest: str) -> None:
        """Repoint an existing branch at another commit.

        :raises BranchNotFoundError: If the branch does not exist."""
        if name not in self._branches:
            raise BranchNotFoundError()

        self._branches[name] = HashRef(digest)
        logger.debug('Moved branch %s to %s', name, digest)

    def switch(self, name: str) -> None:
        """Make an existing branch the active one.

        :raises BranchNotFoundError: If the branch does not exist."""
        if name not in self._branches:
            raise BranchNotFoundError()

        self._head = name

    def get(self, name: str) -> HashRef:
        """Get the commit a branch points at.

        :raises BranchNotFoundError: If the branch does not exist."""
        try:
            return self._branches[name]
        except KeyError:
            raise BranchNotFoundError() from None

    def names(self) -> list[str]:
        return sorted(self._branches)

    def items(self) -> list[tuple[str, HashRef]]:
        return sorted(self._branches.items())

    def __contains__(self, name: object) -> bool:
        return name in self._branches

    def __len__(self) -> int:
        return len(self._branches)
