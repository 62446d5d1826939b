"""liblet: a local, single-user version-control engine."""

from .branch import BranchTable
from .commit import Commit, CommitGraph
from .merge import MergeOutcome, MergeResult
from .objects import ObjectStore
from .ref import HashRef
from .repository import LogEntry, Repository, Status
from .staging import StagingArea
from .working_tree import WorkingTree

__all__ = [
    'BranchTable',
    'Commit',
    'CommitGraph',
    'HashRef',
    'LogEntry',
    'MergeOutcome',
    'MergeResult',
    'ObjectStore',
    'Repository',
    'StagingArea',
    'Status',
    'WorkingTree',
]
