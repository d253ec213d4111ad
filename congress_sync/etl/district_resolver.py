"""
ZIP code to congressional district resolution.

Lookup order: the zip_districts cache table, then each configured geocoder
in turn. The first geocoder answer is normalized and written back to the
cache so the next lookup for that ZIP never leaves the database.
"""

import re
import logging
from typing import List, Optional, Sequence

from congress_sync.etl.errors import SyncError
from congress_sync.etl.records import DistrictResult
from congress_sync.models import ZipDistrict
from congress_sync.utils.database import DatabaseManager
from congress_sync.utils.states import normalize_state_code, normalize_district

logger = logging.getLogger(__name__)

_ZIP = re.compile(r'^(\d{5})(?:-?\d{4})?$')


def normalize_zip(zip_code) -> Optional[str]:
    """'12345', '12345-6789' and '123456789' -> '12345'; anything else -> None."""
    match = _ZIP.match(str(zip_code or '').strip())
    return match.group(1) if match else None


class DistrictResolver:
    """Resolves ZIP codes to (state, district) with a database cache in front of the geocoders."""

    def __init__(self, db: DatabaseManager, geocoders: Sequence = ()):
        """
        Args:
            db: Database manager owning the zip_districts table
            geocoders: Ordered fallback chain; None entries (unconfigured services) are dropped
        """
        self.db = db
        self.geocoders: List = [g for g in geocoders if g is not None]

    def resolve(self, zip_code: str) -> Optional[DistrictResult]:
        """
        Resolve a ZIP code to its congressional district.

        Returns:
            DistrictResult, or None if the ZIP is invalid or no stage could resolve it
        """
        zip5 = normalize_zip(zip_code)
        if not zip5:
            logger.warning(f"Invalid ZIP code: {zip_code!r}")
            return None

        cached = self._from_cache(zip5)
        if cached:
            return cached

        for geocoder in self.geocoders:
            name = getattr(geocoder, 'source_name', type(geocoder).__name__)
            try:
                raw = geocoder.lookup(zip5)
            except SyncError as e:
                logger.warning(f"{name} lookup failed for ZIP {zip5}: {e}")
                continue
            if not raw:
                logger.debug(f"{name} found no district for ZIP {zip5}")
                continue

            state_code = normalize_state_code(raw[0])
            if not state_code:
                logger.warning(f"{name} returned unknown state {raw[0]!r} for ZIP {zip5}")
                continue
            result = DistrictResult(state_code, normalize_district(raw[1]), source=name)
            self._store(zip5, result)
            logger.info(f"Resolved ZIP {zip5} to {result.state_code}-{result.district_number} via {name}")
            return result

        logger.info(f"Could not resolve ZIP {zip5}")
        return None

    def _from_cache(self, zip5: str) -> Optional[DistrictResult]:
        with self.db.get_session() as session:
            row = (session.query(ZipDistrict)
                   .filter(ZipDistrict.zip_code == zip5)
                   .order_by(ZipDistrict.id)
                   .first())
            if row is None:
                return None
            return DistrictResult(row.state_code, row.district_number, source='cache')

    def _store(self, zip5: str, result: DistrictResult):
        with self.db.get_session() as session:
            exists = session.query(ZipDistrict.id).filter(
                ZipDistrict.zip_code == zip5,
                ZipDistrict.state_code == result.state_code,
                ZipDistrict.district_number == result.district_number,
            ).first()
            if not exists:
                session.add(ZipDistrict(
                    zip_code=zip5,
                    state_code=result.state_code,
                    district_number=result.district_number,
                ))
