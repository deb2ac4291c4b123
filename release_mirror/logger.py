"""Logging setup: console for progress, rotating file for per-download detail."""

import logging
import os
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "release_mirror"
LOG_FILE = "mirror.log"


def setup_logger(log_dir: str = "logs", level: int = logging.INFO,
                 file_level: int = logging.DEBUG) -> logging.Logger:
    """Configure the release_mirror logger.

    The console shows `level` and above while the log file keeps `file_level`
    and above, so retry and validation detail is on disk without cluttering
    the terminal. Calling again only updates the handler levels.
    """
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(min(level, file_level))

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(file_level if isinstance(handler, RotatingFileHandler) else level)
        return logger

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"))
    logger.addHandler(console)

    # 10MB per file, keep 5
    logfile = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    logfile.setLevel(file_level)
    logfile.setFormatter(fmt)
    logger.addHandler(logfile)

    return logger
