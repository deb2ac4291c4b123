"""Data models for the mirror."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class ManifestRecord:
    checksum: str
    filename: str


class Outcome(str, Enum):
    VALIDATED = "validated"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class FileResult:
    record: ManifestRecord
    outcome: Outcome
    path: Path
    attempts: int = 0
    fetches: int = 0
    # Filled when validated
    size: Optional[int] = None
    error: Optional[str] = None


@dataclass
class VersionResult:
    section: str
    version: str
    results: List[FileResult] = field(default_factory=list)
    manifest_error: Optional[str] = None

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def validated(self) -> int:
        return self._count(Outcome.VALIDATED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def cancelled(self) -> int:
        return self._count(Outcome.CANCELLED)

    @property
    def total_bytes(self) -> int:
        return sum(r.size or 0 for r in self.results)

    @property
    def ok(self) -> bool:
        return self.manifest_error is None and self.validated == len(self.results)


@dataclass
class RunSummary:
    versions: List[VersionResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failed_files(self) -> List[FileResult]:
        return [r for v in self.versions for r in v.results if r.outcome is Outcome.FAILED]

    @property
    def ok(self) -> bool:
        return not self.cancelled and all(v.ok for v in self.versions)
