"""
Test package structure and exports.

Verifies that the package is correctly structured and exposes the right API.
"""

import gitlet
from gitlet import (
    Commit,
    ErrorKind,
    GitletError,
    MergeEngine,
    ObjectStore,
    OperationError,
    Repository,
)


def test_package_exports():
    """Verify that the package exposes the expected classes."""
    assert Repository is not None
    assert Commit is not None
    assert ObjectStore is not None
    assert MergeEngine is not None
    assert issubclass(OperationError, GitletError)


def test_repository_initialization(tmp_path):
    """Verify that init lays out the metadata directory."""
    Repository.init(tmp_path)

    meta = tmp_path / ".gitlet"
    assert (meta / "commits").is_dir()
    assert (meta / "blobs").is_dir()
    assert (meta / "state.json").is_file()
    assert (meta / "config").is_file()


def test_error_kinds_carry_messages():
    """Every error kind renders as a single diagnostic line."""
    for kind in ErrorKind:
        error = OperationError(kind)
        assert str(error) == kind.value
        assert "\n" not in str(error)


def test_subpackage_imports():
    """Verify that subpackages are importable (even if not exposed directly)."""
    import gitlet.integrity.hashing
    import gitlet.model.commit
    import gitlet.storage.layout
    import gitlet.storage.object_store

    assert gitlet.storage.object_store.ObjectStore is not None
    assert gitlet.integrity.hashing.compute_hash is not None
    assert gitlet.__version__
