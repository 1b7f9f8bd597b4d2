"""
Repository invariants and their verification.

Defines the guarantees a well-formed repository always satisfies.
"""

from typing import TYPE_CHECKING, Callable, List

from .errors import GitletError, InvariantViolationError

if TYPE_CHECKING:
    from .repository import Repository


class Invariant:
    """
    Represents a repository invariant that must always hold.
    """

    def __init__(self, name: str, description: str, check_func: Callable[[], bool]):
        """
        Define an invariant.

        Args:
            name: short invariant name
            description: what must hold
            check_func: function that returns True if invariant holds
        """
        self.name = name
        self.description = description
        self.check_func = check_func

    def verify(self) -> bool:
        """
        Verify this invariant holds.

        Returns True if holds, raises InvariantViolationError if not.
        """
        try:
            result = self.check_func()
        except GitletError as e:
            raise InvariantViolationError(
                self.name,
                f"check raised {e}: {self.description}"
            )
        if not result:
            raise InvariantViolationError(self.name, self.description)
        return True


class InvariantRegistry:
    """
    Registry of repository invariants.
    """

    def __init__(self):
        self.invariants: List[Invariant] = []

    def register(self, name: str, description: str, check_func: Callable[[], bool]) -> None:
        """Register a new invariant."""
        self.invariants.append(Invariant(name, description, check_func))

    def verify_all(self) -> dict:
        """
        Verify all registered invariants.

        Returns dict with:
            - passed: list of invariant names that passed
            - failed: list of (name, error) tuples for failed invariants
            - all_passed: bool indicating if all passed
        """
        result = {
            'passed': [],
            'failed': [],
            'all_passed': True,
        }

        for invariant in self.invariants:
            try:
                invariant.verify()
                result['passed'].append(invariant.name)
            except InvariantViolationError as e:
                result['failed'].append((invariant.name, str(e)))
                result['all_passed'] = False

        return result

    def verify_one(self, name: str) -> bool:
        """
        Verify a specific invariant by name.

        Returns True if passed, raises InvariantViolationError if failed.
        """
        for invariant in self.invariants:
            if invariant.name == name:
                return invariant.verify()

        raise ValueError(f"Unknown invariant: {name}")

    def list_invariants(self) -> List[tuple]:
        """List all registered invariants as (name, description) tuples."""
        return [(inv.name, inv.description) for inv in self.invariants]


def create_repository_invariants(repo: 'Repository') -> InvariantRegistry:
    """Create the core invariants for one repository."""
    registry = InvariantRegistry()
    state = repo.state
    store = repo.store

    registry.register(
        "branches_resolve",
        "Every branch points at a stored commit",
        lambda: all(store.has_commit(commit_id) for commit_id in state.branches.values()),
    )

    registry.register(
        "head_is_branch",
        "Head names an existing branch",
        lambda: state.head in state.branches,
    )

    registry.register(
        "staging_removal_disjoint",
        "No path is both staged and marked for removal",
        lambda: not (set(state.staging) & state.removed),
    )

    registry.register(
        "staged_blobs_exist",
        "Every staged digest is a stored blob",
        lambda: all(store.has_blob(blob_id) for blob_id in state.staging.values()),
    )

    def check_parent_counts():
        roots = 0
        for commit in store.iter_commits():
            if not commit.parents:
                roots += 1
            elif len(commit.parents) > 2:
                return False
        return roots == 1

    registry.register(
        "single_root",
        "Exactly one commit has no parents; all others have one or two",
        check_parent_counts,
    )

    return registry
