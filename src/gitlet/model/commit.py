"""
Commit object model.

Commits are immutable snapshot nodes of the version graph.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..errors import InvalidObjectError
from ..integrity.hashing import compute_object_hash

ROOT_MESSAGE = "initial commit"
ROOT_TIMESTAMP = "Wed Dec 31 16:00:00 1969 -0800"
TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Y %z"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Render a commit timestamp in local time."""
    moment = moment or datetime.now().astimezone()
    return moment.strftime(TIMESTAMP_FORMAT)


class Commit:
    """
    Immutable snapshot of every tracked file.

    A commit references:
    - A mapping of relative path -> blob digest
    - An ordered list of 0 (root), 1 or 2 (merge) parent digests
    - A message and a textual timestamp

    The digest is computed once, from the canonical encoding of all four
    fields, so two commits with the same logical content share an id.
    """

    __slots__ = ('_message', '_files', '_parents', '_timestamp', '_id')

    def __init__(
        self,
        message: str,
        files: Mapping[str, str],
        parents: Iterable[str],
        timestamp: str,
    ):
        self._message = message
        # Private copy; callers only ever see a read-only view.
        self._files = MappingProxyType(dict(sorted(files.items())))
        self._parents: Tuple[str, ...] = tuple(parents)
        self._timestamp = timestamp
        if len(self._parents) > 2:
            raise InvalidObjectError(
                f"commit has {len(self._parents)} parents, at most 2 allowed"
            )
        self._id = compute_object_hash(self.to_dict())

    @classmethod
    def create_root(cls) -> 'Commit':
        """Create the parentless, fileless initial commit."""
        return cls(ROOT_MESSAGE, {}, [], ROOT_TIMESTAMP)

    @classmethod
    def create(
        cls,
        message: str,
        files: Mapping[str, str],
        parents: Iterable[str],
        timestamp: Optional[str] = None,
    ) -> 'Commit':
        """Create a commit stamped with the current time."""
        return cls(message, files, parents, timestamp or format_timestamp())

    @property
    def message(self) -> str:
        return self._message

    @property
    def files(self) -> Mapping[str, str]:
        """Read-only view of the tracked path -> blob digest mapping."""
        return self._files

    @property
    def parents(self) -> Tuple[str, ...]:
        return self._parents

    @property
    def parent(self) -> Optional[str]:
        """First parent, or None for the root commit."""
        return self._parents[0] if self._parents else None

    @property
    def timestamp(self) -> str:
        return self._timestamp

    @property
    def id(self) -> str:
        return self._id

    def is_merge(self) -> bool:
        return len(self._parents) == 2

    def tracks(self, path: str) -> bool:
        return path in self._files

    def blob_for(self, path: str) -> Optional[str]:
        return self._files.get(path)

    def to_dict(self) -> dict:
        """
        Convert commit to storable dictionary representation.

        The canonical encoding of this dict is both what gets hashed and
        what gets written to disk.
        """
        return {
            'type': 'commit',
            'content': {
                'message': self._message,
                'files': dict(self._files),
                'timestamp': self._timestamp,
                'parents': list(self._parents),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Commit':
        """
        Reconstruct a commit from its stored dictionary.

        Raises InvalidObjectError if data is malformed.
        """
        if not isinstance(data, dict) or data.get('type') != 'commit':
            raise InvalidObjectError(f"not a commit record: {data!r:.60}")

        content = data.get('content')
        if not isinstance(content, dict):
            raise InvalidObjectError("commit missing content field")

        missing = [
            field for field in ('message', 'files', 'timestamp', 'parents')
            if field not in content
        ]
        if missing:
            raise InvalidObjectError(f"commit content missing {', '.join(missing)}")

        files = content['files']
        parents = content['parents']
        if not isinstance(files, dict):
            raise InvalidObjectError("commit files must be a mapping")
        if not isinstance(parents, list):
            raise InvalidObjectError("commit parents must be a list")

        return cls(content['message'], files, parents, content['timestamp'])

    def copy_files(self) -> Dict[str, str]:
        """Independent, mutable copy of the tracked mapping."""
        return dict(self._files)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Commit) and other._id == self._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        parent_preview = self.parent[:8] + "..." if self.parent else "None"
        return (
            f"Commit(files={len(self._files)}, parent={parent_preview}, "
            f"hash={self._id[:8]}...)"
        )
