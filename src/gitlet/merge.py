"""
Three-way merge.

Finds the split point of two branches by walking first parents only and
applies a per-path rule table against the split, current and given
commits. The repository's own add/rm/checkout/commit operations do the
actual mutation.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from .errors import ErrorKind, OperationError
from .storage.files import write_file

if TYPE_CHECKING:
    from .repository import Repository

logger = logging.getLogger(__name__)

CONFLICT_START = b"<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = b"\n=======\n"
CONFLICT_END = b"\n>>>>>>>"


class MergeOutcome(Enum):
    ANCESTOR = "Given branch is an ancestor of the current branch."
    FAST_FORWARD = "Current branch fast-forwarded."
    MERGED = "merged"


class MergeAction(Enum):
    KEEP = "keep"
    TAKE_GIVEN = "take-given"
    REMOVE = "remove"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class MergeResult:
    outcome: MergeOutcome
    commit_id: Optional[str] = None
    conflicts: Tuple[str, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def decide(split: Optional[str], current: Optional[str], given: Optional[str]) -> MergeAction:
    """
    Pick the action for one path from its blob digest at the split,
    current and given commits (None when untracked there).

    - both sides agree (including both deleted): keep current
    - only given changed it: take given's version, or remove if given
      deleted it
    - only current changed it: keep current
    - both changed it differently: conflict
    """
    if current == given:
        return MergeAction.KEEP
    if current == split:
        return MergeAction.REMOVE if given is None else MergeAction.TAKE_GIVEN
    if given == split:
        return MergeAction.KEEP
    return MergeAction.CONFLICT


def conflict_contents(current: bytes, given: bytes) -> bytes:
    """Render both sides of a conflicting path with markers."""
    return CONFLICT_START + current + CONFLICT_SEPARATOR + given + CONFLICT_END


class MergeEngine:
    """Merges another branch into a repository's current branch."""

    def __init__(self, repository: 'Repository'):
        self.repo = repository

    def split_point(self, branch_a: str, branch_b: str) -> Optional[str]:
        """
        First commit on branch_a's first-parent chain that also lies on
        branch_b's first-parent chain. Second parents of merge commits
        are never followed.
        """
        branches = self.repo.state.branches
        chain_a = self.repo.first_parent_chain(branches[branch_a])
        chain_b = set(self.repo.first_parent_chain(branches[branch_b]))
        for commit_id in chain_a:
            if commit_id in chain_b:
                return commit_id
        return None

    def merge(self, branch: str) -> MergeResult:
        """
        Merge branch into the current branch.

        Returns a MergeResult saying whether the given branch was already
        an ancestor, the current branch was fast-forwarded, or a merge
        commit (possibly with conflicts) was created.
        """
        repo = self.repo
        state = repo.state

        if state.has_pending_changes():
            raise OperationError(ErrorKind.UNCOMMITTED_CHANGES)
        if branch not in state.branches:
            raise OperationError(ErrorKind.NO_SUCH_BRANCH)
        if branch == state.head:
            raise OperationError(ErrorKind.SELF_MERGE)

        given_id = state.branches[branch]
        current_id = state.head_commit_id

        split_id = self.split_point(branch, state.head)
        if split_id is None:
            raise OperationError(ErrorKind.NO_SUCH_COMMIT)
        logger.debug("Split point of %s and %s is %s", branch, state.head, split_id[:12])

        if split_id == given_id:
            return MergeResult(MergeOutcome.ANCESTOR)

        if split_id == current_id:
            repo.reset(given_id)
            logger.info("Fast-forwarded %s to %s", state.head, given_id[:12])
            return MergeResult(MergeOutcome.FAST_FORWARD, commit_id=given_id)

        split = repo.get_commit(split_id)
        current = repo.get_commit(current_id)
        given = repo.get_commit(given_id)
        repo.check_untracked()

        conflicts = []
        for path in sorted(set(split.files) | set(current.files) | set(given.files)):
            action = decide(split.blob_for(path), current.blob_for(path), given.blob_for(path))
            if action is MergeAction.KEEP:
                continue

            logger.debug("Merge %s: %s", path, action.value)
            if action is MergeAction.REMOVE:
                repo.rm(path)
            elif action is MergeAction.TAKE_GIVEN:
                repo.checkout_file(path, given.id)
                repo.add(path)
            else:
                self._write_conflict(path, current.blob_for(path), given.blob_for(path))
                repo.add(path)
                conflicts.append(path)

        commit = repo.commit(
            f"Merged {branch} into {state.head}.",
            parents=[current.id, given.id],
        )
        if conflicts:
            logger.info("Merge conflicts in: %s", ", ".join(conflicts))
        return MergeResult(MergeOutcome.MERGED, commit_id=commit.id, conflicts=tuple(conflicts))

    def _write_conflict(self, path: str, current_blob: Optional[str], given_blob: Optional[str]) -> None:
        store = self.repo.store
        current = store.get(current_blob) if current_blob else b""
        given = store.get(given_blob) if given_blob else b""
        write_file(self.repo.layout.worktree_path(path), conflict_contents(current, given))
