"""
Congress.gov API v3 client.

All list endpoints paginate with limit/offset (limit at most 250). Detail,
summaries and subjects for a bill are separate endpoints, each costing a
rate-limited request.
"""

import logging
from typing import Dict, Optional

from congress_sync.config import CONGRESS_GOV_BASE_URL, CONGRESS_API_INTERVAL_MS, DEFAULT_PAGE_LIMIT
from congress_sync.etl.errors import ConfigurationError
from congress_sync.etl.rate_limiter import RateLimiter
from congress_sync.etl.source_client import SourceClient

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 250


class CongressApiClient(SourceClient):
    """Client for the Congress.gov API."""

    source_name = 'congress-api'

    def __init__(self, api_key: str, rate_limiter: Optional[RateLimiter] = None,
                 base_url: str = CONGRESS_GOV_BASE_URL, **kwargs):
        if not api_key:
            raise ConfigurationError("Congress.gov API key is required")
        super().__init__(rate_limiter or RateLimiter(CONGRESS_API_INTERVAL_MS), **kwargs)
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')

    def _request(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        query = {'api_key': self.api_key, 'format': 'json'}
        for key, value in (params or {}).items():
            if value is not None:
                query[key] = value
        return self.fetch_json(f"{self.base_url}{endpoint}", query)

    @staticmethod
    def _page(limit: int, offset: int) -> Dict:
        return {'limit': min(limit, MAX_PAGE_LIMIT), 'offset': offset}

    def get_members(self, congress: int, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0) -> Dict:
        return self._request(f"/member/congress/{congress}", self._page(limit, offset))

    def get_member(self, bioguide_id: str) -> Dict:
        return self._request(f"/member/{bioguide_id}")

    def get_bills(self, congress: int, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0,
                  from_date_time: Optional[str] = None) -> Dict:
        """
        List bills for a Congress.

        Args:
            from_date_time: Only bills updated at or after this ISO timestamp (incremental sync)
        """
        params = self._page(limit, offset)
        params['fromDateTime'] = from_date_time
        return self._request(f"/bill/{congress}", params)

    def get_bill(self, congress: int, bill_type: str, bill_number: int) -> Dict:
        return self._request(f"/bill/{congress}/{bill_type.lower()}/{bill_number}")

    def get_bill_summaries(self, congress: int, bill_type: str, bill_number: int) -> Dict:
        return self._request(f"/bill/{congress}/{bill_type.lower()}/{bill_number}/summaries")

    def get_bill_subjects(self, congress: int, bill_type: str, bill_number: int) -> Dict:
        return self._request(f"/bill/{congress}/{bill_type.lower()}/{bill_number}/subjects")

    def get_house_votes(self, congress: int, limit: int = DEFAULT_PAGE_LIMIT, offset: int = 0) -> Dict:
        return self._request(f"/house-vote/{congress}", self._page(limit, offset))
