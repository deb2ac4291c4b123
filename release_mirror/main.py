"""CLI entry point and orchestrator."""

import argparse
import logging
import os
import signal
import sys

from dotenv import load_dotenv

from .config import load_config
from .errors import ConfigError, ManifestFetchError, ManifestParseError
from .logger import setup_logger
from .mirror import MirrorDriver, unique

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def run_mirror(driver, section_names=None):
    """Run the mirror, turning SIGINT/SIGTERM into a clean partial stop."""
    def _cancel(signum, frame):
        print(f"\nReceived signal {signum}, finishing current file and stopping...")
        driver.cancel()

    previous = {sig: signal.signal(sig, _cancel) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        return driver.run(section_names)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        driver.close()


def run_dry(driver, section_names=None) -> bool:
    """Fetch and parse manifests, listing what would be mirrored."""
    names = unique(section_names or driver.config.sections)
    ok = True
    try:
        for name in names:
            section = driver.config.sections.get(name)
            if section is None:
                raise ConfigError(f"unknown section(s): {name}")
            for version in section.versions:
                try:
                    records = driver.load_records(section, version)
                except (ManifestFetchError, ManifestParseError) as e:
                    print(f"[{name}] {version}: {e}")
                    ok = False
                    continue
                print(f"[{name}] {version}: {len(records)} file(s)")
                for r in records:
                    print(f"  {r.checksum}  {r.filename}")
    finally:
        driver.close()
    return ok


def show_summary(summary):
    """Display per-version mirror results."""
    print("\n" + "=" * 70)
    print("  MIRROR SUMMARY")
    print("=" * 70)
    print(f"{'Section':<16} {'Version':<20} {'Valid':>7} {'Failed':>7} {'Size':>14}")
    print("-" * 70)

    total_valid = 0
    total_failed = 0
    total_bytes = 0
    for v in summary.versions:
        if v.manifest_error:
            print(f"{v.section:<16} {v.version:<20} {'manifest unavailable':>30}")
            continue
        print(f"{v.section:<16} {v.version:<20} {v.validated:>7} {v.failed:>7} "
              f"{_format_bytes(v.total_bytes):>14}")
        total_valid += v.validated
        total_failed += v.failed
        total_bytes += v.total_bytes

    print("-" * 70)
    print(f"{'TOTAL':<16} {'':20} {total_valid:>7} {total_failed:>7} {_format_bytes(total_bytes):>14}")

    failed = summary.failed_files
    if failed:
        print("\nFailed files:")
        for r in failed:
            print(f"  {r.path}: {r.error}")
    if summary.cancelled:
        print("\nRun was cancelled before completion.")
    print()


def _format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    elif n < 1024 ** 2:
        return f"{n / 1024:.1f} KB"
    elif n < 1024 ** 3:
        return f"{n / 1024 ** 2:.1f} MB"
    else:
        return f"{n / 1024 ** 3:.2f} GB"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mirror release artifacts and verify their SHA-256 sums")
    parser.add_argument("--config", type=str,
                        default=os.environ.get("RELEASE_MIRROR_CONFIG", "config.yaml"),
                        help="Path to config file")
    parser.add_argument("--section", action="append", default=None,
                        help="Mirror only this section (repeatable)")
    parser.add_argument("--workers", type=int, default=None,
                        help="Download this many files in parallel per version")
    parser.add_argument("--log-level", type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console log level")
    parser.add_argument("--log-file-level", type=str, default="DEBUG",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level for the rotating log file")
    parser.add_argument("--dry-run", action="store_true",
                        help="Fetch manifests and list files without downloading them")
    return parser


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.workers is not None:
            if args.workers < 1:
                raise ConfigError("--workers must be at least 1")
            config.download.workers = args.workers
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logger(config.log_dir, getattr(logging, args.log_level),
                 getattr(logging, args.log_file_level))
    driver = MirrorDriver(config)

    try:
        if args.dry_run:
            return EXIT_OK if run_dry(driver, args.section) else EXIT_FAILED

        print("Release Mirror")
        print(f"Sections: {', '.join(unique(args.section or config.sections))}")
        summary = run_mirror(driver, args.section)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    show_summary(summary)
    return EXIT_OK if summary.ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
