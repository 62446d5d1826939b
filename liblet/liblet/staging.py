"""The staging area: pending additions and removals for the next commit."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from .errors import NothingToRemoveError
from .ref import HashRef

logger = logging.getLogger(__name__)


@dataclass
class StagingArea:
    """Paths staged for addition (with the digest of their content) and paths staged for removal.

    A path is never in both collections at once."""

    added: dict[str, HashRef] = field(default_factory=dict)
    removed: set[str] = field(default_factory=set)

    def add(self, path: str, digest: HashRef, tracked_digest: HashRef | None) -> bool:
        """Stage a file for addition.

        A pending removal of the path is cancelled instead. A file whose content equals
        the version tracked by HEAD is not staged, and any earlier staging of it is dropped.

        :param path: The path being added.
        :param digest: The digest of the path's current content.
        :param tracked_digest: The digest HEAD tracks for the path, if any.
        :return: True if the path is staged for addition afterwards."""
        if path in self.removed:
            self.removed.discard(path)
            logger.debug('Cancelled pending removal of %s', path)
            return path in self.added

        if digest == tracked_digest:
            if self.added.pop(path, None) is not None:
                logger.debug('Unstaged %s, content matches HEAD', path)
            return False

        self.added[path] = HashRef(digest)
        logger.debug('Staged %s as %s', path, digest)
        return True

    def remove(self, path: str, tracked: bool) -> bool:
        """Unstage a path and, if HEAD tracks it, stage its removal.

        :param path: The path being removed.
        :param tracked: Whether HEAD tracks the path.
        :return: True if the removal was staged and the working file must be deleted.
        :raises NothingToRemoveError: If the path is neither staged nor tracked."""
        was_staged = self.added.pop(path, None) is not None
        if tracked:
            self.removed.add(path)
            logger.debug('Staged removal of %s', path)
            return True
        if not was_staged:
            raise NothingToRemoveError()

        logger.debug('Unstaged %s', path)
        return False

    def stage(self, path: str, digest: HashRef) -> None:
        self.removed.discard(path)
        self.added[path] = HashRef(digest)

    def mark_removed(self, path: str) -> None:
        self.added.pop(path, None)
        self.removed.add(path)

    def is_empty(self) -> bool:
        return not self.added and not self.removed

    def clear(self) -> None:
        self.added.clear()
        self.removed.clear()

    def apply(self, files: Mapping[str, HashRef]) -> dict[str, HashRef]:
        """Compute the tracked-file table of the next commit.

        :param files: The tracked-file table of the parent commit.
        :return: The parent's table with staged additions applied and staged removals dropped."""
        result = dict(files)
        result.update(self.added)
        for path in self.removed:
            result.pop(path, None)

        return result
