"""
Whole-file read, write and delete primitives.

Metadata writes go through a temp file and an atomic rename; working-tree
files are rewritten in place so they keep their mode.
"""

import os
import tempfile
from pathlib import Path

from ..errors import StorageError


def read_bytes(path: Path) -> bytes:
    """Read file contents."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError("read_file", str(path), e)


def write_atomic(path: Path, data: bytes) -> None:
    """
    Write a file atomically, creating parent directories as needed.

    Uses temp file + rename for atomicity.
    """
    dir_path = path.parent
    fd = None
    temp_path = None
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=str(dir_path), prefix='.tmp_')

        os.write(fd, data)
        os.close(fd)
        fd = None

        # Atomic replace (works cross-platform including Windows)
        os.replace(temp_path, path)
        temp_path = None

    except OSError as e:
        if fd is not None:
            try:
                os.close(fd)
            except OSError:
                pass
        if temp_path is not None and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError:
                pass
        raise StorageError("write_file", str(path), e)


def write_file(path: Path, data: bytes) -> None:
    """
    Write a working-tree file in place, creating parent directories.

    An existing file keeps its mode; a new one is created under the
    process umask.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise StorageError("write_file", str(path), e)


def delete_file(path: Path) -> bool:
    """
    Delete a file.

    Returns True if deleted, False if it didn't exist.
    """
    if not path.exists():
        return False

    try:
        path.unlink()
        return True
    except OSError as e:
        raise StorageError("delete_file", str(path), e)
