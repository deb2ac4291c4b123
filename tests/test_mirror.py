from __future__ import annotations

import logging
from pathlib import Path

import pytest

from release_mirror.config import AppConfig, DownloadConfig, SectionConfig
from release_mirror.downloader import Fetcher
from release_mirror.errors import ConfigError
from release_mirror.mirror import MirrorDriver
from release_mirror.models import Outcome


def _section(server, tmp_path: Path, versions, ignored=()) -> SectionConfig:
    return SectionConfig(
        name="ocpbinaries",
        base_url=server.base_url,
        output_dir=str(tmp_path / "mirror"),
        versions=list(versions),
        ignored_files=list(ignored),
    )


def _driver(server, config: AppConfig, sleeps=None) -> MirrorDriver:
    fetcher = Fetcher(config.download, client=server.client())
    return MirrorDriver(config, fetcher=fetcher,
                        sleep=(sleeps.append if sleeps is not None else lambda s: None))


def _publish(server, version, files, extra_lines=""):
    lines = [f"{server.add(f'{version}/{name}', data)}  {name}" for name, data in files.items()]
    server.add(f"{version}/sha256sum.txt", ("\n".join(lines) + "\n" + extra_lines).encode())


def test_mirrors_version_and_skips_ignored(server, tmp_path: Path):
    _publish(server, "4.14.1", {
        "openshift-client-linux.tar.gz": b"linux client",
        "openshift-client-windows.zip": b"windows client",
        "openshift-install-linux.tar.gz": b"installer",
    })
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["4.14.1"], ["windows"])})

    summary = _driver(server, config).run()

    out = tmp_path / "mirror" / "4.14.1"
    assert (out / "sha256sum.txt").exists()
    assert (out / "openshift-client-linux.tar.gz").read_bytes() == b"linux client"
    assert (out / "openshift-install-linux.tar.gz").read_bytes() == b"installer"
    assert not (out / "openshift-client-windows.zip").exists()
    assert "/pub/4.14.1/openshift-client-windows.zip" not in server.requests

    [version] = summary.versions
    assert version.validated == 2
    assert version.failed == 0
    assert version.total_bytes == len(b"linux client") + len(b"installer")
    assert summary.ok


def test_rerun_fetches_only_manifest(server, tmp_path: Path):
    _publish(server, "1.0", {"a.bin": b"aaa", "b.bin": b"bbb"})
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0"])})
    _driver(server, config).run()
    server.requests.clear()

    summary = _driver(server, config).run()

    assert server.requests == ["/pub/1.0/sha256sum.txt"]
    assert summary.ok


def test_missing_manifest_skips_version(server, tmp_path: Path, caplog):
    _publish(server, "2.0", {"a.bin": b"aaa"})
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0", "2.0"])})

    with caplog.at_level(logging.ERROR, logger="release_mirror"):
        summary = _driver(server, config).run()

    missing, present = summary.versions
    assert missing.manifest_error is not None
    assert missing.results == []
    assert present.validated == 1
    assert not summary.ok
    assert "Skipping version 1.0" in caplog.text


def test_failed_file_does_not_stop_version(server, tmp_path: Path):
    _publish(server, "1.0", {"a.bin": b"aaa", "b.bin": b"bbb", "c.bin": b"ccc"})
    server.statuses["/pub/1.0/b.bin"] = 500
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0"])})
    sleeps = []

    summary = _driver(server, config, sleeps).run()

    [version] = summary.versions
    assert [r.outcome for r in version.results] == [Outcome.VALIDATED, Outcome.FAILED, Outcome.VALIDATED]
    assert server.requests.count("/pub/1.0/b.bin") == 3
    assert sleeps == [1.0, 2.0]
    assert [r.record.filename for r in summary.failed_files] == ["b.bin"]
    assert not summary.ok


def test_malformed_manifest_line_keeps_earlier_records(server, tmp_path: Path):
    _publish(server, "1.0", {"a.bin": b"aaa"}, extra_lines="garbage\n" + "0" * 64 + "  later.bin\n")
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0"])})

    summary = _driver(server, config).run()

    assert [r.record.filename for r in summary.versions[0].results] == ["a.bin"]


def test_parallel_workers_keep_manifest_order(server, tmp_path: Path):
    files = {f"part-{i:02d}.bin": f"payload {i}".encode() for i in range(12)}
    _publish(server, "1.0", files)
    config = AppConfig(
        download=DownloadConfig(workers=4),
        sections={"ocp": _section(server, tmp_path, ["1.0"])},
    )

    summary = _driver(server, config).run()

    [version] = summary.versions
    assert [r.record.filename for r in version.results] == list(files)
    assert version.validated == 12


def test_multiple_sections_and_selection(server, tmp_path: Path):
    _publish(server, "1.0", {"a.bin": b"aaa"})
    config = AppConfig(sections={
        "ocp": _section(server, tmp_path / "ocp", ["1.0"]),
        "rhcos": _section(server, tmp_path / "rhcos", ["1.0"]),
    })

    summary = _driver(server, config).run(["rhcos"])

    assert len(summary.versions) == 1
    assert (tmp_path / "rhcos" / "mirror" / "1.0" / "a.bin").exists()
    assert not (tmp_path / "ocp" / "mirror").exists()


def test_unknown_section(server, tmp_path: Path):
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0"])})
    with pytest.raises(ConfigError):
        _driver(server, config).run(["nope"])


def test_cancel_skips_remaining_versions(server, tmp_path: Path):
    _publish(server, "1.0", {"a.bin": b"aaa"})
    _publish(server, "2.0", {"a.bin": b"aaa"})
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0", "2.0"])})
    driver = _driver(server, config)

    original = driver.run_version

    def run_then_cancel(section, version):
        result = original(section, version)
        driver.cancel()
        return result

    driver.run_version = run_then_cancel
    summary = driver.run()

    assert [v.version for v in summary.versions] == ["1.0"]
    assert summary.cancelled
    assert not summary.ok


def test_version_url_adds_slash():
    section = SectionConfig(name="x", base_url="https://example.com/rhcos", output_dir="out")
    assert section.version_url("4.14") == "https://example.com/rhcos/4.14/"


def test_unrequestable_filename_fails_only_that_file(server, tmp_path: Path):
    good = server.add("1.0/a.bin", b"aaa")
    server.add("1.0/sha256sum.txt", f"{'0' * 64}  bad\x01name.bin\n{good}  a.bin\n".encode())
    _publish(server, "2.0", {"b.bin": b"bbb"})
    config = AppConfig(sections={"ocp": _section(server, tmp_path, ["1.0", "2.0"])})

    summary = _driver(server, config).run()

    first, second = summary.versions
    assert first.failed == 1
    assert first.validated == 1
    assert "InvalidURL" in first.results[0].error
    assert second.validated == 1
    assert not summary.ok


def test_repeated_section_runs_once(server, tmp_path: Path):
    _publish(server, "1.0", {"a.bin": b"aaa"})
    config = AppConfig(sections={
        "ocp": _section(server, tmp_path / "ocp", ["1.0"]),
        "rhcos": _section(server, tmp_path / "rhcos", ["1.0"]),
    })

    summary = _driver(server, config).run(["rhcos", "ocp", "rhcos"])

    assert len(summary.versions) == 2
    assert server.requests.count("/pub/1.0/sha256sum.txt") == 2
