"""Parse sha256sum-style manifests into records, applying ignore rules.

Each manifest line has the shape ``<hex-checksum> <marker> <filename>`` split
on single spaces. The plain ``sha256sum`` output (``<hex>  <filename>``) fits
this shape with an empty marker field.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

from .errors import ManifestParseError
from .models import ManifestRecord

logger = logging.getLogger("release_mirror")

MIN_FIELDS = 3


def contains_any(line: str, patterns: Iterable[str]) -> bool:
    """True if any pattern occurs as a substring of line."""
    return any(p in line for p in patterns if p)


def _safe_filename(filename: str) -> bool:
    path = PurePosixPath(filename)
    return bool(filename) and not path.is_absolute() and ".." not in path.parts


def parse_manifest(raw_text: str, ignore_patterns: Iterable[str] = (),
                   stop_on_malformed: bool = True,
                   log: Optional[logging.Logger] = None) -> List[ManifestRecord]:
    """Turn manifest text into an ordered list of ManifestRecord.

    A line with fewer than three fields ends parsing when stop_on_malformed
    is set; otherwise only that line is skipped.
    """
    log = log or logger
    patterns = list(ignore_patterns)
    records = []

    for lineno, line in enumerate(raw_text.splitlines(), start=1):
        if not line.strip():
            continue
        if contains_any(line, patterns):
            log.warning(f"Ignoring manifest line {lineno}: {line}")
            continue

        fields = line.strip().split(" ")
        if len(fields) < MIN_FIELDS:
            if stop_on_malformed:
                log.warning(f"Malformed manifest line {lineno}, stopping: {line!r}")
                break
            log.warning(f"Malformed manifest line {lineno}, skipping: {line!r}")
            continue

        checksum, filename = fields[0].lower(), fields[2]
        if not _safe_filename(filename):
            log.warning(f"Unsafe filename on manifest line {lineno}: {filename!r}")
            continue

        records.append(ManifestRecord(checksum=checksum, filename=filename))

    return records


def read_manifest(path: Path, ignore_patterns: Iterable[str] = (),
                  stop_on_malformed: bool = True,
                  log: Optional[logging.Logger] = None) -> List[ManifestRecord]:
    try:
        raw = Path(path).read_bytes().decode("utf-8")
    except OSError as e:
        raise ManifestParseError(f"cannot read manifest {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestParseError(f"manifest {path} is not valid UTF-8: {e}") from e
    return parse_manifest(raw, ignore_patterns, stop_on_malformed, log)
