"""Download and archive extraction.

Downloads go through httpx with retry/backoff logic; archives are extracted
with zipfile, every member validated against the extraction root.
"""

from __future__ import annotations

import logging
import os
import random
import tempfile
import time
import zipfile
from collections.abc import Callable
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from .config import NetworkConfig
from .paths import StorageVolumes
from .safe_paths import safe_resolve
from .types import OpResult

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


def _file_name_from_url(url: str) -> str:
    name = unquote(Path(urlparse(url).path).name)
    return name or "download"


class Downloader:
    """
    HTTP downloader with retry/backoff logic.

    Retry strategy:
    - 429/5xx: exponential backoff with jitter
    - other 4xx: no retry
    - network errors and timeouts: retry with backoff
    """

    def __init__(
        self,
        config: NetworkConfig,
        volumes: StorageVolumes,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.volumes = volumes
        self._transport = transport
        self._sleep = sleep

    def _backoff(self, attempt: int) -> None:
        sleep_time = (2**attempt) * 0.5
        jitter = random.uniform(0, 0.1 * sleep_time)
        self._sleep(sleep_time + jitter)

    def download_file(self, url: str, destination: str) -> OpResult:
        """
        Fetch url into destination.

        A destination ending in "/" receives the file under the URL's name.
        The file is written to a temporary sibling and renamed on success,
        so a failed download never leaves a partial file behind.
        """
        if not self.config.enabled:
            return OpResult.failure("Network disabled")

        try:
            target = self.volumes.to_host(destination)
        except ValueError as e:
            return OpResult.failure(str(e))
        if destination.endswith("/"):
            target = target / _file_name_from_url(url)

        last_error = ""
        for attempt in range(self.config.retry_max):
            try:
                with httpx.Client(
                    timeout=self.config.timeout_seconds,
                    follow_redirects=True,
                    headers={"User-Agent": self.config.user_agent},
                    transport=self._transport,
                ) as client:
                    with client.stream("GET", url) as response:
                        if response.status_code in RETRY_STATUS_CODES:
                            last_error = f"HTTP {response.status_code}"
                            if attempt < self.config.retry_max - 1:
                                self._backoff(attempt)
                            continue
                        if response.status_code != 200:
                            logger.warning("download %s failed: HTTP %s", url, response.status_code)
                            return OpResult.failure(f"HTTP {response.status_code}")
                        self._write_stream(response, target)
                return OpResult.success(str(target))
            except (httpx.NetworkError, httpx.TimeoutException) as e:
                last_error = f"Network error: {e}"
                if attempt < self.config.retry_max - 1:
                    self._backoff(attempt)
                continue
            except (httpx.HTTPError, OSError) as e:
                logger.warning("download %s failed: %s", url, e)
                return OpResult.failure(str(e))

        logger.warning("download %s gave up after %d attempts: %s", url, self.config.retry_max, last_error)
        return OpResult.failure(f"Max retries ({self.config.retry_max}) exceeded: {last_error}")

    def _write_stream(self, response: httpx.Response, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".download-", dir=target.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def unzip_file(volumes: StorageVolumes, source: str, destination: str) -> OpResult:
    """Extract the zip archive at source into destination directory."""
    try:
        archive = volumes.to_host(source)
        root = volumes.to_host(destination)
        root.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive) as zf:
            members = zf.infolist()
            # Validate everything before writing anything.
            for info in members:
                safe_resolve(root, info.filename)
            for info in members:
                zf.extract(info, root)
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        logger.warning("unzip %s failed: %s", source, e)
        return OpResult.failure(str(e))
    return OpResult.success(f"extracted {len(members)} member(s)")
