"""YAML config loader."""

from dataclasses import dataclass, field
from typing import Dict, List

import yaml

from .errors import ConfigError

# Key names used by older config files
LEGACY_SECTION_KEYS = {
    "baseURL": "base_url",
    "version": "versions",
    "ignoredFiles": "ignored_files",
    "outputDir": "output_dir",
}


@dataclass
class DownloadConfig:
    timeout: int = 30
    max_retries: int = 3
    initial_backoff: float = 1.0
    workers: int = 1
    user_agent: str = "ReleaseMirror/1.0"
    manifest_name: str = "sha256sum.txt"
    stop_on_malformed: bool = True
    chunk_size: int = 65536


@dataclass(frozen=True)
class SectionConfig:
    name: str
    base_url: str
    output_dir: str
    versions: List[str] = field(default_factory=list)
    ignored_files: List[str] = field(default_factory=list)

    def version_url(self, version: str) -> str:
        base = self.base_url if self.base_url.endswith("/") else self.base_url + "/"
        return f"{base}{version}/"


@dataclass
class AppConfig:
    log_dir: str = "logs"
    download: DownloadConfig = field(default_factory=DownloadConfig)
    sections: Dict[str, SectionConfig] = field(default_factory=dict)


def _load_section(name: str, raw) -> SectionConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"section '{name}' must be a mapping")
    raw = {LEGACY_SECTION_KEYS.get(k, k): v for k, v in raw.items()}

    for key in ("base_url", "output_dir"):
        if not raw.get(key):
            raise ConfigError(f"section '{name}' is missing '{key}'")

    lists = {}
    for key in ("versions", "ignored_files"):
        value = raw.get(key) or []
        if not isinstance(value, list):
            raise ConfigError(f"section '{name}': '{key}' must be a list")
        bad = [v for v in value if not isinstance(v, str)]
        if bad:
            # YAML reads 4.10 as the float 4.1
            raise ConfigError(f"section '{name}': '{key}' entries must be strings, quote them: {bad}")
        lists[key] = value

    return SectionConfig(
        name=name,
        base_url=str(raw["base_url"]),
        output_dir=str(raw["output_dir"]),
        versions=lists["versions"],
        ignored_files=lists["ignored_files"],
    )


def _check_download(download: DownloadConfig):
    for key in ("timeout", "max_retries", "workers", "chunk_size"):
        value = getattr(download, key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"download.{key} must be an integer, got {value!r}")
        if value < 1:
            raise ConfigError(f"download.{key} must be at least 1")
    backoff = download.initial_backoff
    if isinstance(backoff, bool) or not isinstance(backoff, (int, float)) or backoff < 0:
        raise ConfigError(f"download.initial_backoff must be a non-negative number, got {backoff!r}")
    if not isinstance(download.stop_on_malformed, bool):
        raise ConfigError("download.stop_on_malformed must be true or false")
    for key in ("user_agent", "manifest_name"):
        value = getattr(download, key)
        if not isinstance(value, str) or not value:
            raise ConfigError(f"download.{key} must be a non-empty string")


def parse_config(raw) -> AppConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")

    dl_raw = raw.get("download") or {}
    if not isinstance(dl_raw, dict):
        raise ConfigError("'download' must be a mapping")
    try:
        download = DownloadConfig(**{k: v for k, v in dl_raw.items() if k in DownloadConfig.__dataclass_fields__})
    except TypeError as e:
        raise ConfigError(f"invalid download settings: {e}") from e
    _check_download(download)

    sections_raw = raw.get("sections") or {}
    if not isinstance(sections_raw, dict):
        raise ConfigError("'sections' must be a mapping")
    sections = {name: _load_section(name, src_raw) for name, src_raw in sections_raw.items()}

    return AppConfig(
        log_dir=raw.get("log_dir", "logs"),
        download=download,
        sections=sections,
    )


def load_config(config_path: str = "config.yaml") -> AppConfig:
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e

    return parse_config(raw)
