"""
Gitlet - a small local version-control engine.

This package provides:
- Content-addressed storage of file blobs and commits
- A repository state machine: staging, commits, branches, checkout, reset
- A three-way merge engine with first-parent split point discovery
- Integrity verification of stored objects and repository invariants

Main entry point:
    Repository - one working tree's history and staging state

Example usage:
    from gitlet import Repository

    repo = Repository.init('/path/to/worktree')
    repo.add('notes.txt')
    repo.commit('Add notes')

    with Repository.session('/path/to/worktree') as repo:
        repo.branch('feature')
"""

from .commands import CommandResult, dispatch, main
from .errors import (
    ConfigError,
    ErrorKind,
    GitletError,
    InvalidObjectError,
    InvariantViolationError,
    ObjectCorruptedError,
    ObjectNotFoundError,
    OperationError,
    StorageError,
)
from .merge import MergeAction, MergeEngine, MergeOutcome, MergeResult
from .model.commit import Commit
from .model.state import RepositoryState
from .repository import Repository, StatusReport
from .storage.object_store import ObjectStore

__version__ = '0.1.0'

__all__ = [
    # Main entry points
    'Repository',
    'StatusReport',
    'ObjectStore',
    'MergeEngine',
    'MergeResult',
    'MergeOutcome',
    'MergeAction',
    'dispatch',
    'main',
    'CommandResult',

    # Errors
    'GitletError',
    'OperationError',
    'ErrorKind',
    'ObjectNotFoundError',
    'ObjectCorruptedError',
    'InvalidObjectError',
    'InvariantViolationError',
    'StorageError',
    'ConfigError',

    # Models
    'Commit',
    'RepositoryState',
]
