"""
Filesystem layout for a repository.

Implements content-addressed storage with directory sharding.
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List

from ..errors import StorageError
from ..integrity.hashing import get_hash_prefix

logger = logging.getLogger(__name__)

METADATA_DIR = '.gitlet'


class RepositoryLayout:
    """
    Manages the on-disk layout of one working tree.

    Layout:
        worktree/
            .gitlet/
                config           # INI configuration
                state.json       # head, branches, staging, removal set
                commits/
                    <prefix>/
                        <hash>   # canonical JSON commit
                blobs/
                    <prefix>/
                        <hash>   # raw file bytes
    """

    def __init__(self, worktree: Path):
        self.worktree = Path(worktree).resolve()
        self.meta_dir = self.worktree / METADATA_DIR
        self.commits_dir = self.meta_dir / "commits"
        self.blobs_dir = self.meta_dir / "blobs"
        self.state_path = self.meta_dir / "state.json"
        self.config_path = self.meta_dir / "config"

    def is_initialized(self) -> bool:
        return self.meta_dir.is_dir()

    def initialize(self) -> None:
        """
        Create the metadata directory structure.

        Idempotent - safe to call multiple times.
        """
        try:
            self.meta_dir.mkdir(parents=True, exist_ok=True)
            self.commits_dir.mkdir(exist_ok=True)
            self.blobs_dir.mkdir(exist_ok=True)
        except OSError as e:
            raise StorageError("initialize", str(self.meta_dir), e)
        logger.debug("Initialized layout at %s", self.meta_dir)

    def get_commit_path(self, commit_id: str) -> Path:
        return self.commits_dir / get_hash_prefix(commit_id, 2) / commit_id

    def get_blob_path(self, blob_id: str) -> Path:
        return self.blobs_dir / get_hash_prefix(blob_id, 2) / blob_id

    def list_commits(self) -> List[str]:
        return self._list_sharded(self.commits_dir)

    def list_blobs(self) -> List[str]:
        return self._list_sharded(self.blobs_dir)

    @staticmethod
    def _list_sharded(root: Path) -> List[str]:
        """
        List all object hashes under a sharded directory, sorted.

        Temporary files left by interrupted writes are skipped.
        """
        objects = []

        if not root.exists():
            return objects

        try:
            for prefix_dir in root.iterdir():
                if not prefix_dir.is_dir():
                    continue

                for obj_file in prefix_dir.iterdir():
                    if obj_file.is_file() and not obj_file.name.startswith('.tmp_'):
                        objects.append(obj_file.name)

        except OSError as e:
            raise StorageError("list_objects", str(root), e)

        return sorted(objects)

    # ========== Working tree ==========

    def worktree_path(self, path: str) -> Path:
        """Absolute filesystem path of a tracked relative path."""
        return self.worktree.joinpath(*PurePosixPath(path).parts)

    def relative_path(self, path: str | os.PathLike) -> str:
        """
        Normalize a user-supplied path to a POSIX path relative to the
        working tree root.
        """
        candidate = Path(path)
        if candidate.is_absolute():
            # worktree is resolved; resolve the directory part the same way
            candidate = Path(os.path.realpath(candidate.parent)) / candidate.name
        else:
            candidate = self.worktree / candidate
        candidate = Path(os.path.normpath(candidate))
        try:
            relative = candidate.relative_to(self.worktree)
        except ValueError:
            raise StorageError("resolve_path", str(path))
        return relative.as_posix()

    def is_metadata(self, path: str) -> bool:
        return PurePosixPath(path).parts[:1] == (METADATA_DIR,)

    def iter_worktree_files(self) -> Iterator[str]:
        """Yield every file in the working tree, excluding the metadata directory."""
        for root, dirnames, filenames in os.walk(self.worktree):
            dirnames[:] = sorted(d for d in dirnames if d != METADATA_DIR)
            for filename in sorted(filenames):
                full = Path(root) / filename
                if full.is_file():
                    yield full.relative_to(self.worktree).as_posix()

    def prune_empty_dirs(self, deleted: Iterable[str]) -> None:
        """
        Remove the parent directories of deleted files once they are
        empty, walking up toward the working tree root.
        """
        candidates = set()
        for path in deleted:
            candidates.update(PurePosixPath(path).parents)
        candidates.discard(PurePosixPath('.'))

        # Deepest first, so a parent is tried after its children.
        for relative in sorted(candidates, key=lambda p: len(p.parts), reverse=True):
            try:
                self.worktree_path(str(relative)).rmdir()
            except OSError:
                # Not empty, or already gone.
                continue
