"""Exception types raised across the mirror pipeline."""

from typing import Optional


class MirrorError(Exception):
    """Base class for all mirror errors."""


class ConfigError(MirrorError):
    """Configuration file is missing, unreadable or malformed. Fatal."""


class ReadError(MirrorError):
    """A local file could not be read for validation."""


class FetchError(MirrorError):
    def __init__(self, url: str, message: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"{url}: {message}")


class ManifestFetchError(MirrorError):
    """A version's manifest could not be retrieved; the version is skipped."""


class ManifestParseError(MirrorError):
    """A stored manifest could not be read or decoded."""


class ValidationError(MirrorError):
    def __init__(self, path: str, expected: str, actual: str):
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(f"{path}: expected {expected}, got {actual}")
