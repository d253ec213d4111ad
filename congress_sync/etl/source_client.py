"""
Base HTTP client shared by every external source.
"""

import logging
from typing import Dict, Optional

import requests

from congress_sync.etl.errors import SourceFetchError
from congress_sync.etl.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

USER_AGENT = 'congress-sync/1.0 (+https://github.com/congress-sync/congress-sync)'
DEFAULT_TIMEOUT_SECONDS = 30


class SourceClient:
    """
    Rate-limited GET client for one external source.

    No retries happen here: a failed request raises SourceFetchError and the
    orchestrator decides whether the chunk ends.
    """

    source_name = 'source'

    def __init__(self, rate_limiter: RateLimiter,
                 session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_TIMEOUT_SECONDS):
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': USER_AGENT})

    def _get(self, url: str, params: Optional[Dict] = None) -> requests.Response:
        with self.rate_limiter:
            logger.debug(f"{self.source_name} request #{self.rate_limiter.request_count}: {url}")
            try:
                return self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                raise SourceFetchError(self.source_name, url, None, str(e)) from e

    def fetch(self, url: str, params: Optional[Dict] = None) -> requests.Response:
        """
        Issue a GET and return the response.

        Raises:
            SourceFetchError: On any non-2xx status (status and body included) or transport failure.
        """
        response = self._get(url, params)
        if not 200 <= response.status_code < 300:
            logger.error(f"{self.source_name} API error: {response.status_code} for url: {url}")
            raise SourceFetchError(self.source_name, url, response.status_code, response.text or '')
        return response

    def fetch_optional(self, url: str, params: Optional[Dict] = None) -> Optional[requests.Response]:
        """Like fetch(), but a 404 returns None instead of raising."""
        response = self._get(url, params)
        if response.status_code == 404:
            logger.debug(f"{self.source_name} not found: {url}")
            return None
        if not 200 <= response.status_code < 300:
            logger.error(f"{self.source_name} API error: {response.status_code} for url: {url}")
            raise SourceFetchError(self.source_name, url, response.status_code, response.text or '')
        return response

    def fetch_json(self, url: str, params: Optional[Dict] = None) -> Dict:
        response = self.fetch(url, params)
        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(self.source_name, url, response.status_code, f"invalid JSON: {e}") from e
