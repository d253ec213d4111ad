"""
Member loader: syncs current members of Congress from the Congress.gov API.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from tqdm import tqdm

from congress_sync.config import DEFAULT_PAGE_LIMIT, MEMBER_FRESHNESS_HOURS
from congress_sync.etl.congress_adapter import member_from_api, page_items
from congress_sync.etl.congress_client import CongressApiClient
from congress_sync.etl.errors import RecordError, SourceFetchError
from congress_sync.etl.records import SyncResult
from congress_sync.etl.repository import EntityRepository
from congress_sync.utils.database import DatabaseManager

logger = logging.getLogger(__name__)

SYNC_ENTITY = 'members'


class MemberLoader:
    """Full-pass loader for the members table."""

    def __init__(self, db: DatabaseManager, client: CongressApiClient,
                 repository: Optional[EntityRepository] = None):
        self.db = db
        self.client = client
        self.repository = repository or EntityRepository()

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        with self.db.get_session() as session:
            last_sync = self.repository.get_last_sync(session, SYNC_ENTITY)
        if last_sync is None:
            return False
        return (now or datetime.utcnow()) - last_sync < timedelta(hours=MEMBER_FRESHNESS_HOURS)

    def sync(self, congress: int, force: bool = False, enrich_details: bool = False,
             deactivate_missing: bool = False, page_limit: int = DEFAULT_PAGE_LIMIT) -> SyncResult:
        """
        Sync every member of a Congress.

        Args:
            congress: Congress number
            force: Run even if members were synced within the freshness window
            enrich_details: Fetch each member's detail record for thomas/govtrack/FEC ids
            deactivate_missing: Mark members absent from this pass inactive
            page_limit: Page size for the member list

        Returns:
            SyncResult; skipped_sync is set when the pass was skipped as fresh

        Raises:
            SourceFetchError: If a list page cannot be fetched. Nothing is marked synced.
                A failed detail request is counted and the list data is stored.
        """
        result = SyncResult()
        if not force and self.is_fresh():
            logger.info(f"Members synced within the last {MEMBER_FRESHNESS_HOURS}h, skipping (use force to override)")
            result.skipped_sync = True
            return result

        logger.info(f"Syncing members for Congress {congress}")
        seen = set()
        offset = 0
        while True:
            payload = self.client.get_members(congress, limit=page_limit, offset=offset)
            items = page_items(payload, 'members')
            if not items:
                break

            with self.db.get_session() as session:
                for item in tqdm(items, desc=f"Members {offset + 1}-{offset + len(items)}", leave=False):
                    detail = None
                    if enrich_details and item.get('bioguideId'):
                        detail = self._fetch_detail(item['bioguideId'], result)
                    try:
                        record = member_from_api(item, detail)
                        if self.repository.upsert_member(session, record):
                            result.inserted += 1
                        else:
                            result.updated += 1
                        seen.add(record.bioguide_id)
                    except RecordError as e:
                        logger.error(f"Skipping member {e.source_id or item.get('bioguideId')}: {e}")
                        result.errors += 1

            offset += len(items)
            if len(items) < page_limit or not (payload.get('pagination') or {}).get('next'):
                break

        with self.db.get_session() as session:
            if deactivate_missing:
                self.repository.deactivate_members_not_in(session, seen)
            self.repository.mark_synced(session, SYNC_ENTITY)

        logger.info(f"Member sync complete: {result.inserted} inserted, {result.updated} updated, "
                    f"{result.errors} errors")
        return result

    def _fetch_detail(self, bioguide_id: str, result: SyncResult) -> Optional[dict]:
        """Member detail record, or None (counted as an error) if the request fails."""
        try:
            return self.client.get_member(bioguide_id).get('member')
        except SourceFetchError as e:
            logger.error(f"Member detail for {bioguide_id} unavailable, storing list data only: {e}")
            result.errors += 1
            return None
