"""Per-file download/validate loop with bounded retries and exponential backoff.

Each attempt first checks the local file, so a file that is already correct
from a previous run costs no network traffic. When it is missing or wrong the
file is downloaded and checked again. A failed download is followed by a
backoff sleep unless it was the last attempt; a download that arrives with the
wrong digest goes straight to the next attempt.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from .downloader import Fetcher
from .errors import FetchError, ReadError, ValidationError
from .models import FileResult, ManifestRecord, Outcome
from .validator import file_digest

logger = logging.getLogger("release_mirror")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_backoff: float = 1.0

    def delay(self, attempt: int) -> float:
        """Backoff after the failed download of 0-indexed attempt."""
        return self.initial_backoff * (2 ** attempt)

    def delays(self) -> Iterator[float]:
        for attempt in range(self.max_retries - 1):
            yield self.delay(attempt)


class RetryOrchestrator:
    def __init__(self, fetcher: Fetcher, policy: Optional[RetryPolicy] = None,
                 sleep: Optional[Callable[[float], None]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 log: Optional[logging.Logger] = None):
        self.fetcher = fetcher
        self.policy = policy or RetryPolicy()
        self.cancel_event = cancel_event or fetcher.cancel_event
        self._sleep = sleep or self._wait
        self.log = log or logger

    def _wait(self, seconds: float):
        # Returns early when cancelled
        self.cancel_event.wait(seconds)

    def _check(self, path: Path, expected: str):
        actual = file_digest(path, self.fetcher.config.chunk_size)
        if actual != expected:
            raise ValidationError(str(path), expected, actual)

    def process_file(self, record: ManifestRecord, version_url: str, dest_dir: Path) -> FileResult:
        dest_dir = Path(dest_dir)
        path = dest_dir / record.filename
        url = version_url + record.filename
        result = FileResult(record=record, outcome=Outcome.FAILED, path=path)

        for attempt in range(self.policy.max_retries):
            if self.cancel_event.is_set():
                result.outcome = Outcome.CANCELLED
                return result
            result.attempts = attempt + 1

            try:
                self._check(path, record.checksum)
                return self._validated(result)
            except ReadError:
                self.log.debug(f"{record.filename} not present locally")
            except ValidationError as e:
                self.log.warning(f"Local file does not validate: {e}")

            self.log.debug(f"Downloading {url} (attempt {attempt + 1}/{self.policy.max_retries})")
            result.fetches += 1
            try:
                self.fetcher.fetch(url, path.parent, path.name)
            except FetchError as e:
                result.error = str(e)
                if self.cancel_event.is_set():
                    result.outcome = Outcome.CANCELLED
                    return result
                if attempt < self.policy.max_retries - 1:
                    wait = self.policy.delay(attempt)
                    self.log.warning(
                        f"Retry {attempt + 1}/{self.policy.max_retries} for {url}: {e} (wait {wait}s)"
                    )
                    self._sleep(wait)
                else:
                    self.log.warning(f"Download failed for {url}: {e}")
                continue

            try:
                self._check(path, record.checksum)
                return self._validated(result)
            except (ReadError, ValidationError) as e:
                result.error = str(e)
                self.log.warning(f"Downloaded file failed validation: {e}")

        self.log.error(f"Giving up on {url} after {result.attempts} attempts: {result.error}")
        return result

    def _validated(self, result: FileResult) -> FileResult:
        result.outcome = Outcome.VALIDATED
        result.error = None
        try:
            result.size = result.path.stat().st_size
        except OSError:
            result.size = None
        self.log.debug(f"File validated! {result.record.filename} matches {result.record.checksum}")
        return result
