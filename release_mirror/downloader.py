"""HTTP fetcher: single streamed GET into a destination file, written atomically."""

import logging
import os
import threading
from pathlib import Path
from typing import Optional

import httpx

from .config import DownloadConfig
from .errors import FetchError

logger = logging.getLogger("release_mirror")

PART_SUFFIX = ".part"


class Fetcher:
    """Retrieves one URL per call. Retrying is left to the caller."""

    def __init__(self, config: DownloadConfig, client: Optional[httpx.Client] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.config = config
        self.cancel_event = cancel_event or threading.Event()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
                headers={"User-Agent": self.config.user_agent},
            )
            self._owns_client = True
        return self._client

    def close(self):
        if self._owns_client and self._client and not self._client.is_closed:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def fetch(self, url: str, dest_dir: Path, filename: str) -> Path:
        """Download url to dest_dir/filename, overwriting any existing file.

        Raises FetchError on transport errors, non-2xx responses and
        cancellation. No partial file is left behind on failure.
        """
        dest_dir = Path(dest_dir)
        local_path = dest_dir / filename
        tmp_path = local_path.with_name(local_path.name + PART_SUFFIX)

        if self.cancel_event.is_set():
            raise FetchError(url, "cancelled")

        logger.debug(f"GET {url} -> {local_path}")
        try:
            with self.client.stream("GET", url) as resp:
                if not resp.is_success:
                    raise FetchError(url, f"HTTP {resp.status_code}", status=resp.status_code)

                local_path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "wb") as f:
                    for chunk in resp.iter_bytes(chunk_size=self.config.chunk_size):
                        if self.cancel_event.is_set():
                            raise FetchError(url, "cancelled")
                        f.write(chunk)
            os.replace(tmp_path, local_path)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self._discard(tmp_path)
            raise FetchError(url, f"{type(e).__name__}: {e}") from e
        except OSError as e:
            self._discard(tmp_path)
            raise FetchError(url, f"cannot write {local_path}: {e}") from e
        except FetchError:
            self._discard(tmp_path)
            raise

        return local_path

    @staticmethod
    def _discard(path: Path):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
