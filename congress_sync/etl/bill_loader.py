"""
Bill loader: chunked sync of bills from the Congress.gov API.

Phase 1 writes identity, title and latest action from the list endpoint.
Phase 2 (enrich) fetches detail, summaries and subjects per bill, which
costs three extra rate-limited requests per bill.
"""

import logging
from datetime import datetime
from typing import Optional

from tqdm import tqdm

from congress_sync.config import DEFAULT_BILLS_PER_CHUNK, DEFAULT_PAGE_LIMIT
from congress_sync.etl.congress_adapter import bill_enrichment_from_api, bill_from_api, page_items
from congress_sync.etl.congress_client import CongressApiClient
from congress_sync.etl.errors import RecordError, SourceFetchError
from congress_sync.etl.records import BillRecord, SyncResult
from congress_sync.etl.repository import EntityRepository
from congress_sync.utils.database import DatabaseManager

logger = logging.getLogger(__name__)

SYNC_ENTITY = 'bills'
MODES = ('full', 'incremental')


class BillLoader:
    """Offset-paginated, chunked bill loader."""

    def __init__(self, db: DatabaseManager, client: CongressApiClient,
                 repository: Optional[EntityRepository] = None):
        self.db = db
        self.client = client
        self.repository = repository or EntityRepository()

    def _from_date_time(self, mode: str) -> Optional[str]:
        if mode != 'incremental':
            return None
        with self.db.get_session() as session:
            last_sync = self.repository.get_last_sync(session, SYNC_ENTITY)
        if last_sync is None:
            return None
        return last_sync.strftime('%Y-%m-%dT%H:%M:%SZ')

    def sync_chunk(self, congress: int, offset: int = 0, chunk_size: int = DEFAULT_BILLS_PER_CHUNK,
                   mode: str = 'full', enrich: bool = True,
                   page_limit: int = DEFAULT_PAGE_LIMIT) -> SyncResult:
        """
        Process at most `chunk_size` bills starting at `offset`.

        Args:
            congress: Congress number
            offset: Resume offset returned by the previous chunk
            chunk_size: Maximum number of bills handled by this invocation
            mode: 'full' or 'incremental' (only bills updated since the last completed pass)
            enrich: Run phase 2 for each bill

        Returns:
            SyncResult with has_more/next_offset. The bills sync time is recorded
            only when the listing is exhausted.

        Raises:
            SourceFetchError: If a list page cannot be fetched. The caller resumes from the same offset.
                A failed per-bill enrichment request is counted as an error instead.
        """
        if mode not in MODES:
            raise ValueError(f"Unknown sync mode: {mode}")

        started_at = datetime.utcnow()
        from_date_time = self._from_date_time(mode)
        logger.info(f"Syncing bills for Congress {congress} from offset {offset} "
                    f"(mode={mode}, since={from_date_time or 'beginning'}, enrich={enrich})")

        result = SyncResult()
        processed = 0
        exhausted = False
        while processed < chunk_size:
            limit = min(page_limit, chunk_size - processed)
            payload = self.client.get_bills(congress, limit=limit, offset=offset, from_date_time=from_date_time)
            items = page_items(payload, 'bills')
            if not items:
                exhausted = True
                break

            for item in tqdm(items, desc=f"Bills {offset + 1}-{offset + len(items)}", leave=False):
                self._process_bill(item, congress, enrich, result)
                processed += 1

            offset += len(items)
            if len(items) < limit or not (payload.get('pagination') or {}).get('next'):
                exhausted = True
                break

        result.has_more = not exhausted
        result.next_offset = offset if result.has_more else None
        if exhausted:
            with self.db.get_session() as session:
                self.repository.mark_synced(session, SYNC_ENTITY, started_at)

        logger.info(f"Bill chunk complete: {processed} bills, {result.inserted} inserted, "
                    f"{result.updated} updated, {result.errors} errors, has_more={result.has_more}")
        return result

    def _process_bill(self, item: dict, congress: int, enrich: bool, result: SyncResult):
        try:
            record = bill_from_api(item)
        except (RecordError, TypeError, ValueError) as e:
            logger.error(f"Skipping malformed bill item in Congress {congress}: {e}")
            result.errors += 1
            return

        try:
            with self.db.get_session() as session:
                if self.repository.upsert_bill_identity(session, record):
                    result.inserted += 1
                else:
                    result.updated += 1
            if enrich:
                self._enrich(record)
        except (RecordError, SourceFetchError) as e:
            # Phase 1 is already committed; the bill is enriched on a later pass
            logger.error(f"Bill {record.bill_type}{record.bill_number}-{record.congress}: {e}")
            result.errors += 1

    def _enrich(self, record: BillRecord):
        detail = self.client.get_bill(record.congress, record.bill_type, record.bill_number)
        summaries = self.client.get_bill_summaries(record.congress, record.bill_type, record.bill_number)
        subjects = self.client.get_bill_subjects(record.congress, record.bill_type, record.bill_number)
        enrichment = bill_enrichment_from_api(record, detail, summaries, subjects)
        with self.db.get_session() as session:
            self.repository.merge_bill_enrichment(session, record, enrichment)
