"""
Repository state model.

The mutable part of a repository: head branch, branches, staging area
and removal set.
"""

from typing import Dict, Optional, Set

from ..errors import InvalidObjectError


class RepositoryState:
    """
    Head branch name, branch -> commit digest map, staging area and
    removal set.

    Staging and removal are kept disjoint by the mutators below: staging
    a path clears its removal mark and marking a path for removal clears
    its staging entry.
    """

    def __init__(
        self,
        head: str,
        branches: Dict[str, str],
        staging: Optional[Dict[str, str]] = None,
        removed: Optional[Set[str]] = None,
    ):
        self.head = head
        self.branches = dict(branches)
        self.staging = dict(staging or {})
        self.removed = set(removed or ())

    @classmethod
    def fresh(cls, branch: str, root_id: str) -> 'RepositoryState':
        return cls(head=branch, branches={branch: root_id})

    @property
    def head_commit_id(self) -> str:
        return self.branches[self.head]

    def stage(self, path: str, blob_id: str) -> None:
        self.staging[path] = blob_id
        self.removed.discard(path)

    def unstage(self, path: str) -> bool:
        """Drop a staging entry. Returns True if one existed."""
        return self.staging.pop(path, None) is not None

    def mark_removed(self, path: str) -> None:
        self.removed.add(path)
        self.staging.pop(path, None)

    def unmark_removed(self, path: str) -> None:
        self.removed.discard(path)

    def has_pending_changes(self) -> bool:
        return bool(self.staging) or bool(self.removed)

    def clear_pending(self) -> None:
        self.staging.clear()
        self.removed.clear()

    def to_dict(self) -> dict:
        return {
            'head': self.head,
            'branches': dict(self.branches),
            'staging': dict(self.staging),
            'removed': sorted(self.removed),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RepositoryState':
        """
        Reconstruct state from its stored dictionary.

        Raises InvalidObjectError if data is malformed.
        """
        try:
            head = data['head']
            branches = data['branches']
        except (KeyError, TypeError):
            raise InvalidObjectError("repository state missing head or branches")

        if not isinstance(branches, dict):
            raise InvalidObjectError("repository branches must be a mapping")

        return cls(
            head=head,
            branches=branches,
            staging=data.get('staging') or {},
            removed=set(data.get('removed') or ()),
        )

    def __repr__(self) -> str:
        return (
            f"RepositoryState(head={self.head}, branches={len(self.branches)}, "
            f"staged={len(self.staging)}, removed={len(self.removed)})"
        )
