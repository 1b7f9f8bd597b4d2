"""
Repository state machine.

One Repository handle is opened per command, mutated by a single
operation and persisted once. Every operation runs its guards before
touching the working tree or the in-memory state.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .config import RepositoryConfig
from .errors import (
    ErrorKind,
    GitletError,
    InvalidObjectError,
    ObjectNotFoundError,
    OperationError,
    StorageError,
)
from .integrity.canonical import canonical_json, decode_json
from .integrity.hashing import compute_hash
from .integrity.verification import find_missing_references, scan_objects
from .invariants import create_repository_invariants
from .merge import MergeEngine, MergeResult
from .model.commit import Commit
from .model.state import RepositoryState
from .storage.files import delete_file, read_bytes, write_atomic, write_file
from .storage.layout import RepositoryLayout
from .storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class StatusReport:
    """Snapshot of what `status` shows. All lists are sorted."""

    head: str
    branches: List[str]
    staged: List[str]
    removed: List[str]
    modified: List[Tuple[str, str]] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)


class Repository:
    """
    Head branch, branches, staging area and removal set of one working
    tree, backed by an object store.

    Use Repository.init() for a new working tree and Repository.open()
    (or the session() context manager) for an existing one.
    """

    def __init__(
        self,
        layout: RepositoryLayout,
        store: ObjectStore,
        state: RepositoryState,
        config: RepositoryConfig,
    ):
        self.layout = layout
        self.store = store
        self.state = state
        self.config = config

    # ========== Lifecycle ==========

    @classmethod
    def init(cls, worktree: str | Path) -> 'Repository':
        """
        Create a repository holding only the root commit on the default
        branch.

        Raises OperationError(ALREADY_INITIALIZED) if one exists.
        """
        layout = RepositoryLayout(Path(worktree))
        if layout.is_initialized():
            raise OperationError(ErrorKind.ALREADY_INITIALIZED)

        layout.initialize()
        config = RepositoryConfig.defaults()
        config.save(layout.config_path)

        store = ObjectStore(layout)
        root = Commit.create_root()
        store.put_commit(root)

        state = RepositoryState.fresh(config.default_branch, root.id)
        repo = cls(layout, store, state, config)
        repo.save()
        logger.info("Initialized repository in %s", layout.meta_dir)
        return repo

    @classmethod
    def open(cls, worktree: str | Path) -> 'Repository':
        """
        Load an existing repository.

        Raises OperationError(NOT_INITIALIZED) if there is none.
        """
        layout = RepositoryLayout(Path(worktree))
        if not layout.is_initialized():
            raise OperationError(ErrorKind.NOT_INITIALIZED)

        config = RepositoryConfig.load(layout.config_path)
        try:
            state = RepositoryState.from_dict(decode_json(read_bytes(layout.state_path)))
        except ValueError as e:
            raise InvalidObjectError(f"unreadable repository state: {e}")

        return cls(layout, ObjectStore(layout), state, config)

    @classmethod
    @contextmanager
    def session(cls, worktree: str | Path) -> Iterator['Repository']:
        """
        Open a repository and persist its state when the block exits
        normally. Nothing is written if the block raises.
        """
        repo = cls.open(worktree)
        yield repo
        repo.save()

    def save(self) -> None:
        write_atomic(self.layout.state_path, canonical_json(self.state.to_dict()))

    # ========== Lookups ==========

    @property
    def head_commit(self) -> Commit:
        return self.get_commit(self.state.head_commit_id)

    def get_commit(self, commit_id: str) -> Commit:
        try:
            return self.store.get_commit(commit_id)
        except ObjectNotFoundError:
            raise OperationError(ErrorKind.NO_SUCH_COMMIT)

    def resolve_commit_id(self, commit_id: str) -> str:
        """Expand a unique (or first-matching) prefix to a full commit id."""
        resolved = self.store.resolve_prefix(commit_id)
        if resolved is None:
            raise OperationError(ErrorKind.NO_SUCH_COMMIT)
        return resolved

    def first_parent_chain(self, commit_id: str) -> List[str]:
        """Commit ids from commit_id back to the root, first parents only."""
        chain = []
        current: Optional[str] = commit_id
        while current is not None:
            chain.append(current)
            current = self.get_commit(current).parent
        return chain

    def _relative(self, path: str, kind: ErrorKind) -> str:
        try:
            relative = self.layout.relative_path(path)
        except StorageError:
            raise OperationError(kind)
        if relative == '.' or self.layout.is_metadata(relative):
            raise OperationError(kind)
        return relative

    def _read_worktree(self, path: str) -> Optional[bytes]:
        full = self.layout.worktree_path(path)
        if not full.is_file():
            return None
        return read_bytes(full)

    def _write_from_commit(self, commit: Commit, path: str) -> None:
        data = self.store.get(commit.files[path])
        write_file(self.layout.worktree_path(path), data)

    # ========== Staging ==========

    def add(self, path: str) -> None:
        """Stage the working-tree content of path for the next commit."""
        relative = self._relative(path, ErrorKind.FILE_NOT_FOUND)
        data = self._read_worktree(relative)
        if data is None:
            raise OperationError(ErrorKind.FILE_NOT_FOUND)

        blob_id = compute_hash(data)
        if self.head_commit.blob_for(relative) != blob_id:
            self.store.put(data)
            self.state.stage(relative, blob_id)
            logger.debug("Staged %s as %s", relative, blob_id[:12])
        else:
            # Same as the head commit: nothing to stage.
            self.state.unstage(relative)
            self.state.unmark_removed(relative)
            logger.debug("%s matches head commit, staging cleared", relative)

    def rm(self, path: str) -> None:
        """Unstage path and, if tracked, delete it and mark it for removal."""
        relative = self._relative(path, ErrorKind.NOTHING_TO_REMOVE)
        staged = relative in self.state.staging
        tracked = self.head_commit.tracks(relative)
        if not staged and not tracked:
            raise OperationError(ErrorKind.NOTHING_TO_REMOVE)

        if staged:
            self.state.unstage(relative)
        if tracked:
            delete_file(self.layout.worktree_path(relative))
            self.state.mark_removed(relative)
        logger.debug("Removed %s (staged=%s, tracked=%s)", relative, staged, tracked)

    # ========== Commits ==========

    def commit(self, message: str, parents: Optional[List[str]] = None) -> Commit:
        """
        Snapshot the head commit's files plus staged changes minus
        removals, and move the head branch to it.

        parents defaults to [head commit]; merges pass both heads.
        """
        if not message or not message.strip():
            raise OperationError(ErrorKind.EMPTY_MESSAGE)
        if not self.state.has_pending_changes():
            raise OperationError(ErrorKind.NOTHING_TO_COMMIT)

        head = self.head_commit
        files = head.copy_files()
        files.update(self.state.staging)
        for path in self.state.removed:
            files.pop(path, None)

        commit = Commit.create(message, files, parents if parents is not None else [head.id])
        self.store.put_commit(commit)
        self.state.branches[self.state.head] = commit.id
        self.state.clear_pending()
        logger.info("Committed %s on %s", commit.id[:12], self.state.head)
        return commit

    def log(self) -> List[Commit]:
        """Head history following first parents only, newest first."""
        return [self.get_commit(commit_id)
                for commit_id in self.first_parent_chain(self.state.head_commit_id)]

    def global_log(self) -> List[Commit]:
        """Every stored commit, ordered by id."""
        return list(self.store.iter_commits())

    def find(self, message: str) -> List[str]:
        matches = [commit.id for commit in self.store.iter_commits()
                   if commit.message == message]
        if not matches:
            raise OperationError(ErrorKind.NOT_FOUND)
        return matches

    # ========== Working tree ==========

    def untracked_files(self) -> List[str]:
        """Working-tree files neither tracked by the head commit nor staged."""
        head = self.head_commit
        return [path for path in self.layout.iter_worktree_files()
                if not head.tracks(path) and path not in self.state.staging]

    def check_untracked(self) -> None:
        """
        Refuse to go on if the working tree holds a file that is neither
        tracked nor staged.
        """
        untracked = self.untracked_files()
        if untracked:
            logger.debug("Untracked files in the way: %s", untracked)
            raise OperationError(ErrorKind.UNTRACKED_FILE_CONFLICT)

    def _replace_working_tree(self, target: Commit) -> None:
        deleted = []
        for path in list(self.layout.iter_worktree_files()):
            if not target.tracks(path):
                delete_file(self.layout.worktree_path(path))
                deleted.append(path)
        self.layout.prune_empty_dirs(deleted)
        for path in target.files:
            self._write_from_commit(target, path)

    def status(self) -> StatusReport:
        head = self.head_commit
        staging = self.state.staging
        removed = self.state.removed

        modified = []
        for path in sorted(set(head.files) | set(staging)):
            data = self._read_worktree(path)
            if path in staging:
                expected = staging[path]
            elif path not in removed:
                expected = head.files[path]
            else:
                continue
            if data is None:
                modified.append((path, 'deleted'))
            elif compute_hash(data) != expected:
                modified.append((path, 'modified'))

        untracked = [path for path in self.layout.iter_worktree_files()
                     if path not in staging and (not head.tracks(path) or path in removed)]

        return StatusReport(
            head=self.state.head,
            branches=sorted(self.state.branches),
            staged=sorted(staging),
            removed=sorted(removed),
            modified=modified,
            untracked=sorted(untracked),
        )

    # ========== Checkout / reset ==========

    def checkout_file(self, path: str, commit_id: Optional[str] = None) -> None:
        """Restore path from the head commit, or from commit_id (prefix allowed)."""
        if commit_id is None:
            commit = self.head_commit
        else:
            commit = self.get_commit(self.resolve_commit_id(commit_id))

        relative = self._relative(path, ErrorKind.FILE_NOT_IN_COMMIT)
        if not commit.tracks(relative):
            raise OperationError(ErrorKind.FILE_NOT_IN_COMMIT)
        self._write_from_commit(commit, relative)

    def checkout_branch(self, name: str) -> None:
        """Switch head to branch name, replacing the working tree."""
        if name not in self.state.branches:
            raise OperationError(ErrorKind.NO_SUCH_BRANCH, "No such branch exists.")
        if name == self.state.head:
            raise OperationError(ErrorKind.ALREADY_ON_BRANCH)

        target = self.get_commit(self.state.branches[name])
        self.check_untracked()

        self._replace_working_tree(target)
        self.state.clear_pending()
        self.state.head = name
        logger.info("Switched to branch %s", name)

    def reset(self, commit_id: str) -> None:
        """Point the current branch at commit_id and check it out."""
        target = self.get_commit(self.resolve_commit_id(commit_id))
        self.check_untracked()

        self._replace_working_tree(target)
        self.state.clear_pending()
        self.state.branches[self.state.head] = target.id
        logger.info("Reset %s to %s", self.state.head, target.id[:12])

    # ========== Branches ==========

    def branch(self, name: str) -> None:
        if name in self.state.branches:
            raise OperationError(ErrorKind.BRANCH_EXISTS)
        self.state.branches[name] = self.state.head_commit_id

    def rm_branch(self, name: str) -> None:
        if name == self.state.head:
            raise OperationError(ErrorKind.CANNOT_REMOVE_CURRENT)
        if name not in self.state.branches:
            raise OperationError(ErrorKind.NO_SUCH_BRANCH)
        del self.state.branches[name]

    def merge(self, branch: str) -> MergeResult:
        """Merge branch into the current branch. See MergeEngine.merge."""
        return MergeEngine(self).merge(branch)

    # ========== Verification ==========

    def verify(self) -> Dict[str, object]:
        """
        Check stored objects and repository invariants.

        Returns dict with:
            - valid: bool
            - commits: count of verified commits
            - blobs: count of verified blobs
            - errors: list of error messages
        """
        commit_count, errors = scan_objects(
            self.store.list_commits(),
            lambda commit_id: self.store.get_commit(commit_id, verify=True),
        )
        blob_count, blob_errors = scan_objects(
            self.store.list_blobs(),
            lambda blob_id: self.store.get(blob_id, verify=True),
        )
        errors.extend(blob_errors)

        for commit_id in self.store.list_commits():
            try:
                record = self.store.get_commit_record(commit_id)
            except GitletError:
                # Already reported by the scan above.
                continue
            errors.extend(find_missing_references(
                commit_id, record, self.store.has_commit, self.store.has_blob,
            ))

        invariants = create_repository_invariants(self).verify_all()
        errors.extend(message for _, message in invariants['failed'])

        return {
            'valid': not errors,
            'commits': commit_count,
            'blobs': blob_count,
            'errors': errors,
        }

    def __repr__(self) -> str:
        return f"Repository(worktree={self.layout.worktree}, state={self.state!r})"
