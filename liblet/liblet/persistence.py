"""Loading and saving the whole repository state.

The state lives in a single JSON document next to the object store. Its layout is an
explicit, versioned schema:

    {"schema": 1,
     "head": "<branch>",
     "branches": {"<name>": "<commit digest>"},
     "commits": {"<digest>": {"parents": [...], "message": "...", "timestamp": "...",
                              "files": {"<path>": "<blob digest>"}}},
     "staging": {"added": {"<path>": "<blob digest>"}, "removed": ["<path>"]},
     "merge_parent": "<commit digest>" | null}

Blobs are not part of the document; they are written to the object store as soon as
they are created."""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from .branch import BranchTable
from .commit import Commit, CommitGraph
from .constants import STATE_SCHEMA_VERSION
from .errors import BranchNotFoundError, CorruptStateError, RepositoryNotFoundError
from .ref import HashRef, RefError, to_hash_ref
from .repository import Repository
from .staging import StagingArea

logger = logging.getLogger(__name__)


def to_dict(repo: Repository) -> dict[str, Any]:
    """Serialize a repository to the current state schema."""
    return {
        'schema': STATE_SCHEMA_VERSION,
        'head': repo.branches.head,
        'branches': dict(repo.branches.items()),
        'commits': {
            commit.digest: {
                'parents': list(commit.parents),
                'message': commit.message,
                'timestamp': commit.timestamp,
                'files': dict(sorted(commit.files.items())),
            }
            for commit in repo.graph
        },
        'staging': {
            'added': dict(sorted(repo.staging.added.items())),
            'removed': sorted(repo.staging.removed),
        },
        'merge_parent': repo.merge_parent,
    }


def from_dict(repo: Repository, state: dict[str, Any]) -> Repository:
    """Fill an empty repository from a state document.

    :param repo: A freshly constructed, uninitialized repository.
    :param state: The decoded state document.
    :return: The same repository, now holding the state.
    :raises CorruptStateError: If the schema version is unknown, a field is missing or
        malformed, a commit digest does not match its content, or a reference dangles."""
    if not isinstance(state, dict):
        msg = 'Repository state must be a JSON object'
        raise CorruptStateError(msg)

    version = state.get('schema')
    if version != STATE_SCHEMA_VERSION:
        msg = f'Unsupported repository state schema: {version!r}'
        raise CorruptStateError(msg)

    try:
        graph = CommitGraph()
        for digest, fields in state['commits'].items():
            commit = Commit.build(fields['message'], fields['parents'], fields['timestamp'], fields['files'])
            if commit.digest != digest:
                msg = f'Commit {digest} does not match its recorded content'
                raise CorruptStateError(msg)
            graph.add(commit)

        for commit in graph:
            for parent in commit.parents:
                if parent not in graph:
                    msg = f'Commit {commit.digest} has unknown parent {parent}'
                    raise CorruptStateError(msg)

        branches = BranchTable({name: to_hash_ref(digest) for name, digest in state['branches'].items()},
                               state['head'])
        for name, digest in branches.items():
            if digest not in graph:
                msg = f'Branch {name} points at unknown commit {digest}'
                raise CorruptStateError(msg)

        staging = StagingArea(
            {path: to_hash_ref(digest) for path, digest in state['staging']['added'].items()},
            set(state['staging']['removed']),
        )
        merge_parent = state.get('merge_parent')
        if merge_parent is not None and merge_parent not in graph:
            msg = f'Pending merge parent {merge_parent} is unknown'
            raise CorruptStateError(msg)
    except (KeyError, TypeError, AttributeError, RefError, BranchNotFoundError) as e:
        msg = f'Malformed repository state: {e}'
        raise CorruptStateError(msg) from e

    repo.graph = graph
    repo.branches = branches
    repo.staging = staging
    repo.merge_parent = HashRef(merge_parent) if merge_parent else None

    return repo


def load(working_dir: Path | str, repo_dir: Path | str | None = None,
         clock: Callable[[], datetime] = datetime.now) -> Repository | None:
    """Load the repository persisted in a working directory.

    :param working_dir: The working directory.
    :param repo_dir: The repository directory name, if not the default.
    :param clock: The clock handed to the loaded repository.
    :return: The repository, or None if none has been saved there.
    :raises CorruptStateError: If the state file cannot be read."""
    repo = Repository(working_dir, repo_dir, clock=clock)
    state_file = repo.state_file()
    if not state_file.is_file():
        return None

    try:
        state = json.loads(state_file.read_text(encoding='utf-8'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f'Cannot read repository state from {state_file}'
        raise CorruptStateError(msg) from e

    from_dict(repo, state)
    logger.debug('Loaded %d commits and %d branches from %s', len(repo.graph), len(repo.branches), state_file)

    return repo


def load_required(working_dir: Path | str, repo_dir: Path | str | None = None,
                  clock: Callable[[], datetime] = datetime.now) -> Repository:
    """Load a repository that must already exist.

    :raises RepositoryNotFoundError: If nothing has been saved in the working directory."""
    repo = load(working_dir, repo_dir, clock)
    if repo is None:
        raise RepositoryNotFoundError()

    return repo


def save(repo: Repository) -> None:
    """Persist the repository state, replacing the previous state atomically.

    :raises RepositoryNotFoundError: If the repository was never initialized."""
    if not repo.initialized():
        raise RepositoryNotFoundError()

    state_file = repo.state_file()
    state_file.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=state_file.parent, prefix='.state-')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as handle:
            json.dump(to_dict(repo), handle, indent=2, ensure_ascii=False)
            handle.write('\n')
        os.replace(tmp_name, state_file)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug('Saved repository state to %s', state_file)
