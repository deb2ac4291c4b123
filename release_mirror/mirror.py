"""Walks configured sections and versions, mirroring each version's manifest."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .config import AppConfig, SectionConfig
from .downloader import Fetcher
from .errors import ConfigError, FetchError, ManifestFetchError, ManifestParseError
from .manifest import read_manifest
from .models import FileResult, ManifestRecord, Outcome, RunSummary, VersionResult
from .retry import RetryOrchestrator, RetryPolicy

logger = logging.getLogger("release_mirror")


def unique(names: Iterable[str]) -> List[str]:
    """Drop repeated names, keeping first-seen order."""
    return list(dict.fromkeys(names))


class MirrorDriver:
    def __init__(self, config: AppConfig, fetcher: Optional[Fetcher] = None,
                 sleep: Optional[Callable[[float], None]] = None,
                 cancel_event: Optional[threading.Event] = None,
                 log: Optional[logging.Logger] = None):
        self.config = config
        if cancel_event is None:
            cancel_event = fetcher.cancel_event if fetcher else threading.Event()
        self.cancel_event = cancel_event
        self.fetcher = fetcher or Fetcher(config.download, cancel_event=self.cancel_event)
        self.log = log or logger
        policy = RetryPolicy(
            max_retries=config.download.max_retries,
            initial_backoff=config.download.initial_backoff,
        )
        self.orchestrator = RetryOrchestrator(
            self.fetcher, policy, sleep=sleep,
            cancel_event=self.cancel_event, log=self.log,
        )

    def cancel(self):
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def close(self):
        self.fetcher.close()

    def run(self, section_names: Optional[Iterable[str]] = None) -> RunSummary:
        """Mirror every configured section, or only the named ones."""
        if section_names:
            section_names = unique(section_names)
            unknown = [n for n in section_names if n not in self.config.sections]
            if unknown:
                raise ConfigError(f"unknown section(s): {', '.join(unknown)}")
            sections = [self.config.sections[n] for n in section_names]
        else:
            sections = list(self.config.sections.values())

        summary = RunSummary()
        for section in sections:
            if self.cancelled:
                break
            summary.versions.extend(self.run_section(section))
        summary.cancelled = self.cancelled
        if summary.cancelled:
            self.log.warning("Run cancelled; results are partial")
        return summary

    def run_section(self, section: SectionConfig) -> List[VersionResult]:
        self.log.info(f"[{section.name}] {len(section.versions)} version(s) from {section.base_url}")
        results = []
        for version in section.versions:
            if self.cancelled:
                break
            results.append(self.run_version(section, version))
        return results

    def version_dir(self, section: SectionConfig, version: str) -> Path:
        return Path(section.output_dir) / version

    def fetch_manifest(self, section: SectionConfig, version: str) -> Path:
        url = section.version_url(version) + self.config.download.manifest_name
        try:
            return self.fetcher.fetch(url, self.version_dir(section, version),
                                      self.config.download.manifest_name)
        except FetchError as e:
            raise ManifestFetchError(f"cannot fetch manifest for {version}: {e}") from e

    def load_records(self, section: SectionConfig, version: str) -> List[ManifestRecord]:
        """Fetch and parse a version's manifest with the section's ignore rules."""
        manifest_path = self.fetch_manifest(section, version)
        return read_manifest(
            manifest_path, section.ignored_files,
            stop_on_malformed=self.config.download.stop_on_malformed, log=self.log,
        )

    def run_version(self, section: SectionConfig, version: str) -> VersionResult:
        self.log.info(f"[{section.name}] Processing files for version: {version}")
        result = VersionResult(section=section.name, version=version)

        try:
            records = self.load_records(section, version)
        except (ManifestFetchError, ManifestParseError) as e:
            result.manifest_error = str(e)
            self.log.error(f"[{section.name}] Skipping version {version}: {e}")
            return result

        result.results = self._process_all(records, section.version_url(version),
                                           self.version_dir(section, version))

        msg = (
            f"[{section.name}] Finished processing {version}: {len(records)} files, "
            f"{result.validated} validated, {result.failed} failed"
        )
        if result.cancelled:
            msg += f", {result.cancelled} cancelled"
        if result.ok:
            self.log.info(msg)
        else:
            self.log.warning(msg)
        return result

    def _process_all(self, records: List[ManifestRecord], version_url: str,
                     dest_dir: Path) -> List[FileResult]:
        workers = self.config.download.workers
        if workers <= 1 or len(records) <= 1:
            return [self._process_one(r, version_url, dest_dir) for r in records]

        # map() keeps manifest order in the returned results
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda r: self._process_one(r, version_url, dest_dir), records))

    def _process_one(self, record: ManifestRecord, version_url: str, dest_dir: Path) -> FileResult:
        if self.cancelled:
            return FileResult(record=record, outcome=Outcome.CANCELLED, path=dest_dir / record.filename)
        return self.orchestrator.process_file(record, version_url, dest_dir)
