"""Single-attempt downloads."""

from __future__ import annotations

import logging
import shutil
import ssl
import urllib.error
import urllib.request
from pathlib import Path

logger = logging.getLogger(__name__)

USER_AGENT = "terminal-ide"

# Default network timeout in seconds
DEFAULT_TIMEOUT = 60.0


class FetchError(Exception):
    """Download failed (network error or non-2xx response)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to download {url}: {reason}")
        self.url = url
        self.reason = reason


class Downloader:
    """Fetches URLs to local files.

    One attempt per call, no retry. The caller decides whether an
    alternative URL or strategy is worth trying.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the downloader.

        Args:
            timeout: Socket timeout in seconds.
        """
        self.timeout = timeout

    @classmethod
    def create(cls, timeout: float = DEFAULT_TIMEOUT) -> Downloader:
        """Create a downloader with the given timeout."""
        return cls(timeout=timeout)

    def download(self, url: str, dest: Path) -> Path:
        """Download a URL to a file.

        Args:
            url: http(s) or file URL.
            dest: Destination file path. Parent must exist.

        Returns:
            The destination path.

        Raises:
            FetchError: On any transport error or non-2xx status.
        """
        logger.debug("Downloading %s -> %s", url, dest)
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        kwargs = {"timeout": self.timeout}
        if url.startswith("https://"):
            kwargs["context"] = ssl.create_default_context()

        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                status = getattr(response, "status", None)
                if status is not None and not 200 <= status < 300:
                    raise FetchError(url, f"HTTP {status}")
                with dest.open("wb") as out:
                    shutil.copyfileobj(response, out)
        except urllib.error.HTTPError as e:
            dest.unlink(missing_ok=True)
            raise FetchError(url, f"HTTP {e.code}") from e
        except (urllib.error.URLError, OSError, ValueError) as e:
            dest.unlink(missing_ok=True)
            reason = getattr(e, "reason", None) or str(e)
            raise FetchError(url, str(reason)) from e

        return dest
