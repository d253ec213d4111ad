"""
Bulk ZIP-to-district loader.

Seeds the zip_districts cache from the OpenSourceActivismTech ZCCD dataset
(state_fips,state_abbr,zcta,cd; about 48,000 rows) so most lookups never
reach a geocoder.
"""

import io
import logging
from typing import Dict, List, Optional

import pandas as pd
import requests
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from congress_sync.etl.errors import RecordError, SourceFetchError
from congress_sync.models import ZipDistrict
from congress_sync.utils.database import DatabaseManager
from congress_sync.utils.states import STATE_CODES, normalize_district

logger = logging.getLogger(__name__)

ZCCD_CSV_URL = 'https://raw.githubusercontent.com/OpenSourceActivismTech/us-zipcodes-congress/master/zccd.csv'
ZCCD_COLUMNS = ('state_fips', 'state_abbr', 'zcta', 'cd')
BATCH_SIZE = 1000


def download_zip_district_csv(url: str = ZCCD_CSV_URL, session: Optional[requests.Session] = None,
                              timeout: int = 60) -> str:
    """
    Download the ZCCD CSV.

    Raises:
        SourceFetchError: On transport failure or a non-2xx status.
    """
    logger.info(f"Downloading ZIP district data from {url}")
    http = session or requests.Session()
    try:
        response = http.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise SourceFetchError('zccd', url, None, str(e)) from e
    if not 200 <= response.status_code < 300:
        raise SourceFetchError('zccd', url, response.status_code, response.text or '')
    logger.info(f"Downloaded {len(response.content)} bytes of ZIP district data")
    return response.text


def parse_zip_district_csv(csv_source) -> pd.DataFrame:
    """
    Parse ZCCD CSV text (or a path / file object) into zip_code, state_code, district_number.

    ZIPs are left-padded to 5 digits; blank, '0' and '00' districts become 'AL'.

    Raises:
        RecordError: If a required column is missing.
    """
    if isinstance(csv_source, str) and '\n' in csv_source:
        csv_source = io.StringIO(csv_source)
    df = pd.read_csv(csv_source, dtype=str, keep_default_na=False)
    df.columns = [c.strip().lower() for c in df.columns]

    missing = [c for c in ('state_abbr', 'zcta', 'cd') if c not in df.columns]
    if missing:
        raise RecordError(f"ZIP district CSV is missing columns: {missing}")

    df = df[df['zcta'].str.strip() != '']
    records = pd.DataFrame({
        'zip_code': df['zcta'].str.strip().str.zfill(5),
        'state_code': df['state_abbr'].str.strip().str.upper(),
        'district_number': df['cd'].map(normalize_district),
    })
    records = records.drop_duplicates().reset_index(drop=True)
    logger.info(f"Parsed {len(records)} ZIP district records")
    return records


def validate_state_codes(records: pd.DataFrame) -> List[str]:
    """State codes present in the records that are not known postal codes."""
    invalid = sorted(set(records['state_code']) - STATE_CODES)
    if invalid:
        logger.warning(f"Found state codes not in reference data: {invalid}")
    return invalid


class ZipDistrictLoader:
    """Inserts ZIP district rows in batches, leaving existing rows untouched."""

    def __init__(self, db: DatabaseManager, batch_size: int = BATCH_SIZE):
        self.db = db
        self.batch_size = batch_size

    def ingest(self, records: pd.DataFrame) -> Dict:
        """
        Insert every (zip, state, district) not already stored.

        A failed batch is rolled back and its rows counted as errors; later
        batches still run.

        Returns:
            {'inserted', 'skipped', 'errors'}
        """
        stats = {'inserted': 0, 'skipped': 0, 'errors': 0}
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size
        logger.info(f"Loading {len(records)} ZIP district rows in {total_batches} batches of {self.batch_size}")

        for start in tqdm(range(0, len(records), self.batch_size), desc="ZIP districts", total=total_batches):
            batch = records.iloc[start:start + self.batch_size]
            try:
                inserted = self._insert_batch(batch)
                stats['inserted'] += inserted
                stats['skipped'] += len(batch) - inserted
            except SQLAlchemyError as e:
                logger.error(f"Batch starting at row {start} failed: {e}")
                stats['errors'] += len(batch)

        logger.info(f"ZIP district load complete: {stats}")
        return stats

    def _insert_batch(self, batch: pd.DataFrame) -> int:
        rows = list(batch[['zip_code', 'state_code', 'district_number']].itertuples(index=False, name=None))
        zips = list({row[0] for row in rows})
        with self.db.get_session() as session:
            existing = {
                tuple(row) for row in
                session.query(ZipDistrict.zip_code, ZipDistrict.state_code, ZipDistrict.district_number)
                .filter(ZipDistrict.zip_code.in_(zips))
            }
            new_rows = [row for row in rows if row not in existing]
            session.add_all(
                ZipDistrict(zip_code=z, state_code=s, district_number=d) for z, s, d in new_rows
            )
        return len(new_rows)

    def run(self, csv_source=None, validate_only: bool = False) -> Dict:
        """
        Download (unless `csv_source` is given), parse, and either validate or load.

        Returns:
            Validation summary in validate-only mode, otherwise the load stats
        """
        text = csv_source if csv_source is not None else download_zip_district_csv()
        records = parse_zip_district_csv(text)
        if validate_only:
            invalid = validate_state_codes(records)
            return {
                'mode': 'validate',
                'total_records': len(records),
                'invalid_state_codes': invalid,
                'validation_passed': not invalid,
            }
        result = self.ingest(records)
        result['mode'] = 'ingest'
        return result
