"""SHA-256 integrity checks for local files."""

import hashlib
from pathlib import Path

from .errors import ReadError

CHUNK_SIZE = 65536


def file_digest(path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Stream a file through SHA-256 and return the lowercase hex digest.

    Raises ReadError if the file is absent or unreadable.
    """
    sha = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                sha.update(chunk)
    except OSError as e:
        raise ReadError(f"cannot read {path}: {e}") from e
    return sha.hexdigest()


def matches(path: Path, expected: str, chunk_size: int = CHUNK_SIZE) -> bool:
    try:
        return file_digest(path, chunk_size) == expected.lower()
    except ReadError:
        return False
