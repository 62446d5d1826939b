"""Merge helpers for liblet: split-point discovery and the three-way file merge."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from merge3 import Merge3

from .commit import CommitGraph
from .constants import CONFLICT_END, CONFLICT_SEPARATOR, CONFLICT_START
from .errors import RepositoryError
from .objects import ObjectStore
from .ref import HashRef

logger = logging.getLogger(__name__)


class MergeError(RepositoryError):
    """Exception raised for merge-related errors."""


class MergeOutcome(Enum):
    UP_TO_DATE = 'up-to-date'
    FAST_FORWARD = 'fast-forward'
    MERGED = 'merged'
    CONFLICT = 'conflict'


@dataclass
class MergeResult:
    """Represents the output of a merge.

    `commit` is the merge commit for MERGED, the new tip for FAST_FORWARD and None otherwise."""

    outcome: MergeOutcome
    commit: HashRef | None = None
    conflicts: list[str] = field(default_factory=list)


class FileAction(Enum):
    TAKE_THEIRS = 'take-theirs'
    DELETE = 'delete'
    MERGED = 'merged'
    CONFLICT = 'conflict'


@dataclass
class FileMerge:
    """What a merge does to one path.

    `digest` is the blob to check out and stage (TAKE_THEIRS and MERGED); `content` is the
    text written to the working tree for CONFLICT and MERGED."""

    path: str
    action: FileAction
    digest: HashRef | None = None
    content: bytes | None = None


def find_split_point(graph: CommitGraph, ours: str, theirs: str) -> HashRef | None:
    """Find the nearest common ancestor of two commits.

    Common ancestors that are themselves ancestors of another common ancestor are discarded.
    Of the remaining ones, the one with the smallest combined distance to both tips wins, and
    ties go to the smallest digest. Commit timestamps are never consulted.

    :param graph: The commit graph.
    :param ours: The digest of the first tip.
    :param theirs: The digest of the second tip.
    :return: The split point, or None if the tips share no history."""
    ours_distances = graph.ancestor_distances(ours)
    theirs_distances = graph.ancestor_distances(theirs)
    common = ours_distances.keys() & theirs_distances.keys()
    if not common:
        return None

    redundant: set[HashRef] = set()
    for candidate in common:
        if candidate in redundant:
            continue
        redundant.update(ancestor for ancestor in graph.ancestor_chain(candidate)[1:] if ancestor in common)

    best = common - redundant
    split = min(best, key=lambda c: (ours_distances[c] + theirs_distances[c], c))
    logger.debug('Split point of %s and %s is %s (%d candidates)', ours, theirs, split, len(best))

    return HashRef(split)


def _terminated(data: bytes) -> bytes:
    return data if not data or data.endswith(b'\n') else data + b'\n'


def render_conflict(ours: bytes | None, theirs: bytes | None) -> bytes:
    """Build a whole-file conflict block from HEAD's and the merged branch's content.

    A missing side contributes no lines. Each marker sits on its own line."""
    return b''.join([
        f'{CONFLICT_START}\n'.encode(),
        _terminated(ours or b''),
        f'{CONFLICT_SEPARATOR}\n'.encode(),
        _terminated(theirs or b''),
        f'{CONFLICT_END}\n'.encode(),
    ])


def _decode_lines(data: bytes | None) -> list[str] | None:
    try:
        return (data or b'').decode('utf-8').splitlines(keepends=True)
    except UnicodeDecodeError:
        return None


def merge_blob_text(base: bytes | None, ours: bytes, theirs: bytes, theirs_label: str) -> tuple[bytes, bool] | None:
    """Merge three versions of a text file line by line using merge3.

    All content is assumed to be UTF-8 encoded text.

    :param base: The split point's version, or None if the file did not exist there.
    :param ours: HEAD's version.
    :param theirs: The merged branch's version.
    :param theirs_label: The name printed on the closing conflict marker.
    :return: Tuple of (merged content, has_conflict), or None if a version is not UTF-8."""
    base_lines = _decode_lines(base)
    ours_lines = _decode_lines(ours)
    theirs_lines = _decode_lines(theirs)
    if base_lines is None or ours_lines is None or theirs_lines is None:
        return None

    merger = Merge3(base_lines, ours_lines, theirs_lines)

    content_buffer: list[bytes] = []
    conflict = False
    for group in merger.merge_groups():
        group_type = group[0]

        if group_type == 'conflict':
            # Both sides changed the same lines differently - output both versions
            conflict = True
            _, _, a_lines, b_lines = group
            content_buffer.append(f'{CONFLICT_START}\n'.encode())
            content_buffer.append(_terminated(''.join(a_lines).encode('utf-8')))
            content_buffer.append(f'{CONFLICT_SEPARATOR}\n'.encode())
            content_buffer.append(_terminated(''.join(b_lines).encode('utf-8')))
            content_buffer.append(f'{CONFLICT_END} {theirs_label}\n'.encode())
        else:
            # 'unchanged', 'same', 'a' and 'b' all carry the lines to keep
            content_buffer.append(''.join(group[1]).encode('utf-8'))

    return b''.join(content_buffer), conflict


def plan_merge(
    store: ObjectStore,
    base_files: Mapping[str, HashRef],
    ours_files: Mapping[str, HashRef],
    theirs_files: Mapping[str, HashRef],
    *,
    theirs_label: str,
    line_merge: bool = False,
) -> list[FileMerge]:
    """Decide the fate of every path touched by either side of a merge.

    Paths are compared by blob digest. If both sides agree nothing happens. If HEAD left
    the path as it was at the split point, the merged branch's version wins (including a
    deletion). If the merged branch left it alone, HEAD's version stays. Anything else is
    a conflict, unless `line_merge` is set and merge3 can combine the two versions.

    :param store: The object store holding every referenced blob.
    :param base_files: The split point's tracked-file table.
    :param ours_files: HEAD's tracked-file table.
    :param theirs_files: The merged branch's tracked-file table.
    :param theirs_label: The merged branch's name, used in line-level conflict markers.
    :param line_merge: Whether to attempt a line-level merge when both sides changed a file.
    :return: The actions to apply, sorted by path; paths that need nothing are omitted."""
    plan: list[FileMerge] = []

    for path in sorted(set(base_files) | set(ours_files) | set(theirs_files)):
        base_hash = base_files.get(path)
        ours_hash = ours_files.get(path)
        theirs_hash = theirs_files.get(path)

        # Case 1: Both sides match - nothing to do
        if ours_hash == theirs_hash:
            continue

        # Case 2: Ours matches base - take theirs, or its deletion
        if ours_hash == base_hash:
            if theirs_hash is None:
                plan.append(FileMerge(path, FileAction.DELETE))
            else:
                plan.append(FileMerge(path, FileAction.TAKE_THEIRS, theirs_hash))
            continue

        # Case 3: Theirs matches base - keep ours
        if theirs_hash == base_hash:
            continue

        ours_content = store.get(ours_hash) if ours_hash else None
        theirs_content = store.get(theirs_hash) if theirs_hash else None

        # Case 4: Both sides hold content - try merge3 if asked to
        if line_merge and ours_content is not None and theirs_content is not None:
            base_content = store.get(base_hash) if base_hash else None
            merged = merge_blob_text(base_content, ours_content, theirs_content, theirs_label)
            if merged is not None:
                content, conflict = merged
                if conflict:
                    plan.append(FileMerge(path, FileAction.CONFLICT, content=content))
                elif action := _clean_merge(store, path, content, ours_hash, theirs_hash):
                    plan.append(action)
                continue

        # Case 5: Conflict - write both versions into the file
        plan.append(FileMerge(path, FileAction.CONFLICT, content=render_conflict(ours_content, theirs_content)))

    return plan


def _clean_merge(store: ObjectStore, path: str, content: bytes, ours_hash: HashRef,
                 theirs_hash: HashRef) -> FileMerge | None:
    merged_hash = store.put(content)
    if merged_hash == ours_hash:
        return None
    if merged_hash == theirs_hash:
        return FileMerge(path, FileAction.TAKE_THEIRS, theirs_hash)

    return FileMerge(path, FileAction.MERGED, merged_hash, content)
