"""Mirror release artifacts listed in sha256sum manifests and verify them."""

from .config import AppConfig, DownloadConfig, SectionConfig, load_config
from .downloader import Fetcher
from .manifest import parse_manifest
from .mirror import MirrorDriver
from .models import FileResult, ManifestRecord, Outcome, RunSummary, VersionResult
from .retry import RetryOrchestrator, RetryPolicy
from .validator import file_digest

__version__ = "0.1.0"
