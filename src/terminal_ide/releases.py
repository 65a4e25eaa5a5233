"""Latest-release lookups against the GitHub API."""

from __future__ import annotations

import json
import logging
import ssl
import urllib.request

logger = logging.getLogger(__name__)

LATEST_RELEASE_API = "https://api.github.com/repos/{repo}/releases/latest"

# Default API timeout in seconds
DEFAULT_TIMEOUT = 10.0


class VersionLookupFailure(Exception):
    """Latest version could not be determined.

    Covers network errors, rate limiting and unparsable responses alike.
    Expected and non-fatal: callers fall back to a pinned version or to
    another strategy.
    """

    def __init__(self, repo: str, reason: str) -> None:
        super().__init__(f"Could not determine latest release of {repo}: {reason}")
        self.repo = repo
        self.reason = reason


def normalize_version(tag: str) -> str:
    """Strip surrounding whitespace and one leading "v" from a release tag.

    Example:
        >>> normalize_version("v1.2.3")
        '1.2.3'
    """
    tag = tag.strip()
    if tag[:1] in ("v", "V"):
        return tag[1:]
    return tag


class GitHubReleases:
    """Version oracle backed by the GitHub releases API."""

    def __init__(
        self,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        api_url: str = LATEST_RELEASE_API,
    ) -> None:
        """Initialize the client.

        Args:
            token: Optional GitHub token, sent as a bearer token.
            timeout: Request timeout in seconds.
            api_url: URL template with a ``{repo}`` placeholder.
        """
        self.token = token
        self.timeout = timeout
        self.api_url = api_url

    @classmethod
    def create(cls, token: str | None = None, timeout: float = DEFAULT_TIMEOUT) -> GitHubReleases:
        """Create a client for the public GitHub API."""
        return cls(token=token, timeout=timeout)

    def latest_version(self, repo: str) -> str:
        """Get the latest released version of a project.

        Args:
            repo: Project in owner/repo form.

        Returns:
            The version with any leading "v" removed.

        Raises:
            VersionLookupFailure: On any failure.
        """
        data = self._fetch_latest(repo)
        tag = data.get("tag_name") if isinstance(data, dict) else None
        if not isinstance(tag, str) or not normalize_version(tag):
            raise VersionLookupFailure(repo, "response has no tag_name")
        version = normalize_version(tag)
        logger.debug("Latest release of %s is %s", repo, version)
        return version

    def _fetch_latest(self, repo: str) -> object:
        """Fetch and decode the latest-release document."""
        url = self.api_url.format(repo=repo)
        headers = {"Accept": "application/vnd.github.v3+json", "User-Agent": "terminal-ide"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        request = urllib.request.Request(url, headers=headers)

        kwargs = {"timeout": self.timeout}
        if url.startswith("https://"):
            kwargs["context"] = ssl.create_default_context()

        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                return json.loads(response.read().decode("utf-8"))
        except Exception as e:
            logger.debug("GitHub API query for %s failed: %s", repo, e)
            raise VersionLookupFailure(repo, str(e)) from e
