"""
ZIP-to-congressional-district geocoders.

Each geocoder exposes `lookup(zip_code)` returning a raw (state, district)
pair in whatever form the service reports it (FIPS or postal state, padded
or "00" districts). Normalization happens in the resolver.
"""

import logging
from typing import Dict, Optional, Tuple

from congress_sync.config import (
    CENSUS_GEOCODER_URL, CICERO_API_URL, CENSUS_INTERVAL_MS, CICERO_INTERVAL_MS
)
from congress_sync.etl.errors import SourceFetchError
from congress_sync.etl.rate_limiter import RateLimiter
from congress_sync.etl.source_client import SourceClient

logger = logging.getLogger(__name__)

# Census layer 54 is the current Congressional Districts layer
CENSUS_DISTRICT_LAYER = '54'
CENSUS_DISTRICT_KEYS = ('119th Congressional Districts', 'Congressional Districts')
CENSUS_DISTRICT_FIELDS = ('CD119', 'CD')

RawDistrict = Tuple[str, str]


class CensusGeocoderClient(SourceClient):
    """U.S. Census Bureau geocoder, queried with a ZIP-only address."""

    source_name = 'census'

    def __init__(self, rate_limiter: Optional[RateLimiter] = None,
                 base_url: str = CENSUS_GEOCODER_URL, **kwargs):
        super().__init__(rate_limiter or RateLimiter(CENSUS_INTERVAL_MS), **kwargs)
        self.base_url = base_url

    def lookup(self, zip_code: str) -> Optional[RawDistrict]:
        params = {
            'street': '',
            'city': '',
            'state': '',
            'zip': zip_code,
            'benchmark': 'Public_AR_Current',
            'vintage': 'Current_Current',
            'layers': CENSUS_DISTRICT_LAYER,
            'format': 'json',
        }
        data = self.fetch_json(self.base_url, params)
        return parse_census_response(data)


def parse_census_response(data: Dict) -> Optional[RawDistrict]:
    matches = (data.get('result') or {}).get('addressMatches') or []
    if not matches:
        return None
    geographies = matches[0].get('geographies') or {}
    for key in CENSUS_DISTRICT_KEYS:
        districts = geographies.get(key)
        if not districts:
            continue
        district = districts[0]
        state = district.get('STATE')
        number = next((district[f] for f in CENSUS_DISTRICT_FIELDS if district.get(f) is not None), None)
        if state and number is not None:
            return str(state), str(number)
    return None


class CiceroClient(SourceClient):
    """Cicero official lookup by postal code; used when the Census geocoder cannot match."""

    source_name = 'cicero'

    def __init__(self, api_key: str, rate_limiter: Optional[RateLimiter] = None,
                 base_url: str = CICERO_API_URL, **kwargs):
        super().__init__(rate_limiter or RateLimiter(CICERO_INTERVAL_MS), **kwargs)
        self.api_key = api_key
        self.base_url = base_url

    def lookup(self, zip_code: str) -> Optional[RawDistrict]:
        params = {
            'search_postal': zip_code,
            'search_country': 'US',
            'format': 'json',
            'key': self.api_key,
        }
        data = self.fetch_json(self.base_url, params)
        errors = (data.get('response') or {}).get('errors') or []
        if errors:
            raise SourceFetchError(self.source_name, self.base_url, None, '; '.join(map(str, errors)))
        return parse_cicero_response(data)


def parse_cicero_response(data: Dict) -> Optional[RawDistrict]:
    candidates = ((data.get('response') or {}).get('results') or {}).get('candidates') or []
    if not candidates:
        return None
    officials = candidates[0].get('officials') or []

    for official in officials:
        district = official.get('office', {}).get('district') or {}
        if district.get('district_type') == 'NATIONAL_LOWER' and district.get('state'):
            return district['state'], str(district.get('district_id') or '')

    # Single-district states report only the region
    region = candidates[0].get('match_region') or candidates[0].get('match_subregion')
    if region:
        return region, ''
    return None


def create_cicero_client(api_key: Optional[str], rate_limiter: Optional[RateLimiter] = None,
                         **kwargs) -> Optional[CiceroClient]:
    """Cicero client if a key is configured, otherwise None (the stage is skipped)."""
    if not api_key:
        logger.info("No Cicero API key configured, Cicero fallback disabled")
        return None
    return CiceroClient(api_key, rate_limiter=rate_limiter, **kwargs)
