"""
Error types for repository and object store operations.

User-facing failures are OperationError values carrying an ErrorKind.
Store-level failures keep their own types so corruption is never
mistaken for a user mistake.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of user-facing failures. Each value is the diagnostic line."""

    NOT_INITIALIZED = "Not in an initialized Gitlet directory."
    ALREADY_INITIALIZED = (
        "A Gitlet version-control system already exists in the current directory."
    )
    NO_COMMAND = "Please enter a command."
    UNKNOWN_COMMAND = "No command with that name exists."
    INCORRECT_OPERANDS = "Incorrect operands."
    FILE_NOT_FOUND = "File does not exist."
    EMPTY_MESSAGE = "Please enter a commit message."
    NOTHING_TO_COMMIT = "No changes added to the commit."
    NOTHING_TO_REMOVE = "No reason to remove the file."
    BRANCH_EXISTS = "A branch with that name already exists."
    NO_SUCH_BRANCH = "A branch with that name does not exist."
    CANNOT_REMOVE_CURRENT = "Cannot remove the current branch."
    NO_SUCH_COMMIT = "No commit with that id exists."
    FILE_NOT_IN_COMMIT = "File does not exist in that commit."
    UNTRACKED_FILE_CONFLICT = (
        "There is an untracked file in the way; delete it or add it first."
    )
    UNCOMMITTED_CHANGES = "You have uncommitted changes."
    SELF_MERGE = "Cannot merge a branch with itself."
    ALREADY_ON_BRANCH = "No need to checkout the current branch."
    NOT_FOUND = "Found no commit with that message."


class GitletError(Exception):
    """Base exception for all gitlet errors."""
    pass


class OperationError(GitletError):
    """Raised when a repository operation is rejected."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(self.message)


class ObjectNotFoundError(GitletError):
    """Raised when a requested object does not exist."""

    def __init__(self, object_hash: str):
        self.object_hash = object_hash
        super().__init__(f"Object not found: {object_hash}")


class ObjectCorruptedError(GitletError):
    """Raised when an object's content does not match its hash."""

    def __init__(self, object_hash: str, actual: str):
        self.object_hash = object_hash
        self.actual = actual
        super().__init__(
            f"Object corrupted: {object_hash} (content hashes to {actual})"
        )


class InvalidObjectError(GitletError):
    """Raised when a stored record is malformed."""

    def __init__(self, reason: str, object_hash: Optional[str] = None):
        self.reason = reason
        self.object_hash = object_hash
        msg = f"Invalid object: {reason}"
        if object_hash:
            msg += f" (hash: {object_hash})"
        super().__init__(msg)


class InvariantViolationError(GitletError):
    """Raised when a repository invariant does not hold."""

    def __init__(self, invariant: str, details: str):
        self.invariant = invariant
        self.details = details
        super().__init__(f"Invariant violation: {invariant}: {details}")


class StorageError(GitletError):
    """Raised when filesystem operations fail."""

    def __init__(self, operation: str, path: str, cause: Optional[Exception] = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        msg = f"Storage error during {operation}: {path}"
        if cause:
            msg += f" ({cause})"
        super().__init__(msg)


class ConfigError(GitletError):
    """Raised when the repository configuration is missing or unsupported."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Configuration error: {reason}")
