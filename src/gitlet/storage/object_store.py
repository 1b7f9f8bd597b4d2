"""
Content-addressed object storage.

Provides immutable storage for blobs and commits.
"""

import logging
from typing import List

from ..errors import (
    InvalidObjectError,
    ObjectNotFoundError,
)
from ..integrity.canonical import canonical_json, decode_json
from ..integrity.hashing import compute_hash, is_full_digest, is_hex
from ..integrity.verification import (
    verify_blob_integrity,
    verify_commit_integrity,
    verify_commit_structure,
)
from ..model.commit import Commit
from .files import read_bytes, write_atomic
from .layout import RepositoryLayout

logger = logging.getLogger(__name__)

class ObjectStore:
    """
    Content-addressed store with immutable objects.

    Blobs are stored under the digest of their raw bytes, commits under
    their own id. Once written, objects never change and are never
    deleted.
    """

    def __init__(self, layout: RepositoryLayout):
        self.layout = layout

    # ========== Blobs ==========

    def put(self, data: bytes) -> str:
        """
        Store raw bytes as a blob and return the digest.

        Idempotent: re-putting identical bytes performs no write.
        """
        blob_id = compute_hash(data)
        path = self.layout.get_blob_path(blob_id)

        if path.exists():
            logger.debug("Blob %s already stored", blob_id[:12])
            return blob_id

        write_atomic(path, data)
        logger.debug("Stored blob %s (%d bytes)", blob_id[:12], len(data))
        return blob_id

    def get(self, blob_id: str, verify: bool = False) -> bytes:
        """
        Retrieve blob bytes.

        Raises ObjectNotFoundError if absent.
        Raises ObjectCorruptedError if verify=True and the bytes don't
        match the digest.
        """
        path = self.layout.get_blob_path(blob_id)
        if not path.exists():
            raise ObjectNotFoundError(blob_id)

        data = read_bytes(path)
        if verify:
            verify_blob_integrity(data, blob_id)
        return data

    def has_blob(self, blob_id: str) -> bool:
        return self.layout.get_blob_path(blob_id).exists()

    def list_blobs(self) -> List[str]:
        return self.layout.list_blobs()

    # ========== Commits ==========

    def put_commit(self, commit: Commit) -> str:
        """
        Store a commit under its own id.

        Idempotent: an already-stored commit is not rewritten.
        """
        path = self.layout.get_commit_path(commit.id)

        if path.exists():
            logger.debug("Commit %s already stored", commit.id[:12])
            return commit.id

        write_atomic(path, canonical_json(commit.to_dict()))
        logger.debug("Stored commit %s: %r", commit.id[:12], commit.message)
        return commit.id

    def get_commit(self, commit_id: str, verify: bool = False) -> Commit:
        """
        Retrieve a commit by id.

        Raises ObjectNotFoundError if absent.
        Raises InvalidObjectError if the record can't be decoded.
        Raises ObjectCorruptedError if verify=True and the record doesn't
        hash to its name.
        """
        if not self.has_commit(commit_id):
            raise ObjectNotFoundError(commit_id)

        path = self.layout.get_commit_path(commit_id)
        raw = read_bytes(path)
        try:
            obj_data = decode_json(raw)
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidObjectError(f"undecodable commit record: {e}", commit_id)

        if verify:
            verify_commit_structure(obj_data)
            verify_commit_integrity(obj_data, commit_id)

        return Commit.from_dict(obj_data)

    def get_commit_record(self, commit_id: str) -> dict:
        """Raw decoded commit record, unverified."""
        if not self.has_commit(commit_id):
            raise ObjectNotFoundError(commit_id)
        path = self.layout.get_commit_path(commit_id)
        try:
            return decode_json(read_bytes(path))
        except (UnicodeDecodeError, ValueError) as e:
            raise InvalidObjectError(f"undecodable commit record: {e}", commit_id)

    def has_commit(self, commit_id: str) -> bool:
        if len(commit_id) < 2 or not is_hex(commit_id):
            return False
        return self.layout.get_commit_path(commit_id).exists()

    def list_commits(self) -> List[str]:
        return self.layout.list_commits()

    def iter_commits(self):
        """Yield every stored commit, ordered by id."""
        for commit_id in self.list_commits():
            yield self.get_commit(commit_id)

    def resolve_prefix(self, prefix: str) -> str | None:
        """
        Resolve a possibly abbreviated commit id.

        Returns the first stored id (in sorted order) starting with
        prefix, or None if nothing matches.
        """
        if not prefix:
            return None

        if is_full_digest(prefix) and self.has_commit(prefix):
            return prefix

        for commit_id in self.list_commits():
            if commit_id.startswith(prefix):
                return commit_id
        return None

