"""
Integrity verification for stored commits and blobs.

Provides tamper detection and reference checks.
"""

from typing import Callable, Iterable, List

from ..errors import (
    GitletError,
    InvalidObjectError,
    ObjectCorruptedError,
)
from .hashing import compute_hash, compute_object_hash


def verify_commit_integrity(obj_data: dict, expected_hash: str) -> None:
    """
    Verify that a commit record hashes to its name.

    Raises ObjectCorruptedError if mismatch detected.
    """
    actual_hash = compute_object_hash(obj_data)
    if actual_hash != expected_hash:
        raise ObjectCorruptedError(expected_hash, actual_hash)


def verify_blob_integrity(data: bytes, expected_hash: str) -> None:
    """
    Verify that blob bytes hash to their name.

    Raises ObjectCorruptedError if mismatch detected.
    """
    actual_hash = compute_hash(data)
    if actual_hash != expected_hash:
        raise ObjectCorruptedError(expected_hash, actual_hash)


def verify_commit_structure(obj_data: dict) -> None:
    """
    Verify that a commit record has valid structure.

    Raises InvalidObjectError if structure is invalid.
    """
    if not isinstance(obj_data, dict):
        raise InvalidObjectError("Object must be a dictionary")

    if obj_data.get('type') != 'commit':
        raise InvalidObjectError(f"Invalid object type: {obj_data.get('type')}")

    content = obj_data.get('content')
    if not isinstance(content, dict):
        raise InvalidObjectError("Object missing 'content' field")

    parents = content.get('parents')
    if not isinstance(parents, list) or len(parents) > 2:
        raise InvalidObjectError("Commit must have a list of at most 2 parents")


def find_missing_references(
    commit_id: str,
    obj_data: dict,
    commit_exists: Callable[[str], bool],
    blob_exists: Callable[[str], bool],
) -> List[str]:
    """
    Check that a commit's parents and blobs exist.

    Returns one error message per missing reference.
    """
    errors = []
    content = obj_data.get('content', {})

    for parent in content.get('parents') or []:
        if not commit_exists(parent):
            errors.append(f"Commit {commit_id} references missing parent {parent}")

    for path, blob_id in sorted((content.get('files') or {}).items()):
        if not blob_exists(blob_id):
            errors.append(
                f"Commit {commit_id} references missing blob {blob_id} for {path}"
            )

    return errors


def scan_objects(
    object_ids: Iterable[str],
    verify_func: Callable[[str], None],
) -> tuple[int, List[str]]:
    """
    Run verify_func over every object id.

    Returns (verified_count, errors).
    """
    verified = 0
    errors = []

    for obj_id in object_ids:
        try:
            verify_func(obj_id)
            verified += 1
        except GitletError as e:
            errors.append(str(e))

    return verified, errors
