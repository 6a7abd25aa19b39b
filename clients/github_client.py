#!/usr/bin/env python3
"""GitHub REST API client for commit history queries.

Wraps the two endpoints the diff service needs: listing the commits that
touched a path since a date, and fetching a single commit with its per-file
patches. Every failure surfaces as UpstreamFetchError with a typed code.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from configs.config import Config

# Set up logging
logger = logging.getLogger(__name__)


class UpstreamFetchError(Exception):
    """Raised when the commit API cannot be reached or returns an unusable response."""
    def __init__(self, message: str, code: str = "UNKNOWN", *, cause: Optional[Exception] = None):
        super().__init__(message)
        self.code = code
        self.cause = cause


class GithubCommitsClient:
    """Client for the GitHub commits REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the commits client.

        Args:
            token: GitHub token sent as a bearer credential; anonymous when unset
            base_url: API root (defaults to Config.GITHUB_API_URL)
            timeout_s: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT_S)
            retries: Transport retries for GET requests (defaults to Config.HTTP_RETRIES)
            session: Pre-built session, mainly for tests
        """
        github_config = Config.get_github_config()
        self.token = token if token is not None else github_config["token"]
        self.base_url = (base_url or github_config["base_url"]).rstrip("/")
        self.timeout_s = timeout_s or github_config["timeout_s"]
        retries = github_config["retries"] if retries is None else retries

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'file-diff-service/1.0'
        })
        if self.token:
            self.session.headers['Authorization'] = f'Bearer {self.token}'

        if retries > 0:
            retry_strategy = Retry(
                total=retries,
                status_forcelist=[429, 500, 502, 503, 504],
                backoff_factor=1,
                allowed_methods=["HEAD", "GET", "OPTIONS"]
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("https://", adapter)
            self.session.mount("http://", adapter)

        logger.info(f"GitHub commits client initialized ({'authenticated' if self.token else 'anonymous'})")

    def list_commits(self, repo: str, path: str, since: str, per_page: int = 100) -> Any:
        """List commits touching a path since a date, newest first.

        Only the first page is requested.

        Args:
            repo: Repository in 'owner/name' format
            path: File path within the repository
            since: ISO date (YYYY-MM-DD), interpreted as midnight UTC
            per_page: Page size cap

        Returns:
            Decoded JSON body (a list of commits for well-formed responses)

        Raises:
            UpstreamFetchError: If the request fails
        """
        url = f"{self.base_url}/repos/{repo}/commits"
        params = {"path": path, "since": f"{since}T00:00:00Z", "per_page": per_page}
        return self._get_json(url, params=params, what=f"commits for {repo}/{path}")

    def get_commit(self, repo: str, sha: str) -> Dict[str, Any]:
        """Fetch a single commit including its file patches.

        Raises:
            UpstreamFetchError: If the request fails or the body is not an object
        """
        url = f"{self.base_url}/repos/{repo}/commits/{sha}"
        data = self._get_json(url, what=f"commit {repo}@{sha}")
        if not isinstance(data, dict):
            raise UpstreamFetchError(f"Unexpected commit payload for {repo}@{sha}", code="PARSE")
        return data

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None, what: str = "") -> Any:
        try:
            logger.info(f"GET {url}")
            response = self.session.get(url, params=params, timeout=self.timeout_s)
        except requests.Timeout as e:
            logger.warning(f"Timeout fetching {what}: {e}")
            raise UpstreamFetchError(f"Timeout fetching {what}", code="TIMEOUT", cause=e)
        except requests.RequestException as e:
            logger.warning(f"Network error fetching {what}: {e}")
            raise UpstreamFetchError(f"Failed to fetch {what}: {e}", code="NETWORK", cause=e)

        status = response.status_code
        if status in (401, 403):
            if status == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
                raise UpstreamFetchError("GitHub API rate limit exceeded", code="RATE_LIMIT")
            raise UpstreamFetchError("Invalid GitHub token or insufficient permissions", code="UNAUTHORIZED")
        elif status == 404:
            raise UpstreamFetchError(f"Not found: {what}", code="NOT_FOUND")
        elif status == 429:
            raise UpstreamFetchError("GitHub API rate limit exceeded", code="RATE_LIMIT")
        elif not 200 <= status < 300:
            raise UpstreamFetchError(f"GitHub API error: HTTP {status}", code="HTTP_ERROR")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamFetchError(f"Malformed JSON in response for {what}", code="PARSE", cause=e)

        logger.debug(f"✓ Retrieved {what}")
        return data

    def close(self) -> None:
        """Close the GitHub client session."""
        if self.session:
            self.session.close()
            logger.debug("GitHub commits client session closed")
