"""
House vote loader.

Roll-call stubs come from the Congress.gov /house-vote list; the member-level
votes come from the House Clerk XML document for each roll call.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from congress_sync.config import DEFAULT_PAGE_LIMIT, DEFAULT_ROLL_CALLS_PER_CHUNK
from congress_sync.etl.congress_adapter import house_vote_stub_from_api, page_items
from congress_sync.etl.congress_client import CongressApiClient
from congress_sync.etl.errors import RecordError, SourceFetchError
from congress_sync.etl.house_clerk import HouseClerkClient
from congress_sync.etl.records import HouseVoteStub, SyncResult
from congress_sync.etl.repository import EntityRepository
from congress_sync.utils.database import DatabaseManager

logger = logging.getLogger(__name__)

CHAMBER = 'house'


def session_year(congress: int, session: int) -> int:
    """Calendar year of a congressional session (the 1st Congress first met in 1789)."""
    return 1789 + 2 * (congress - 1) + (session - 1)


class HouseVoteLoader:
    """Chunked loader for House roll calls and member votes."""

    def __init__(self, db: DatabaseManager, congress_client: CongressApiClient,
                 clerk_client: HouseClerkClient, repository: Optional[EntityRepository] = None):
        self.db = db
        self.congress_client = congress_client
        self.clerk_client = clerk_client
        self.repository = repository or EntityRepository()

    def sync_chunk(self, congress: int, offset: int = 0,
                   max_roll_calls: int = DEFAULT_ROLL_CALLS_PER_CHUNK,
                   mode: str = 'full', page_limit: int = DEFAULT_PAGE_LIMIT) -> SyncResult:
        """
        Process House roll calls starting at `offset` in the stub list.

        Only roll calls whose document was fetched count toward `max_roll_calls`;
        stubs skipped because they already exist (incremental mode) do not.

        Args:
            congress: Congress number
            offset: Resume offset into the /house-vote list
            max_roll_calls: Roll-call documents to fetch before ending the chunk
            mode: 'full' re-fetches every roll call, 'incremental' skips stored ones

        Returns:
            SyncResult with has_more, next_offset and roll_calls_processed

        Raises:
            SourceFetchError: If a stub page cannot be fetched.
        """
        logger.info(f"Syncing House votes for Congress {congress} from offset {offset} (mode={mode})")
        result = SyncResult()
        exhausted = False

        while True:
            payload = self.congress_client.get_house_votes(congress, limit=page_limit, offset=offset)
            items = page_items(payload, 'houseRollCallVotes', 'votes')
            if not items:
                exhausted = True
                break

            for index, item in enumerate(tqdm(items, desc=f"House votes {offset + 1}-{offset + len(items)}",
                                              leave=False)):
                if result.roll_calls_processed >= max_roll_calls:
                    result.has_more = True
                    result.next_offset = offset + index
                    logger.info(f"House chunk limit reached, next offset {result.next_offset}")
                    return result
                self._process_stub(item, congress, mode, result)

            offset += len(items)
            if len(items) < page_limit or not (payload.get('pagination') or {}).get('next'):
                exhausted = True
                break

        result.has_more = not exhausted
        result.next_offset = offset if result.has_more else None
        logger.info(f"House votes complete for Congress {congress}: {result.roll_calls_processed} roll calls, "
                    f"{result.inserted} votes inserted, {result.updated} updated, {result.errors} errors")
        return result

    def _process_stub(self, item: dict, congress: int, mode: str, result: SyncResult):
        try:
            stub = house_vote_stub_from_api(item, congress)
        except RecordError as e:
            logger.error(f"Skipping House vote stub: {e}")
            result.errors += 1
            return

        if mode == 'incremental':
            with self.db.get_session() as session:
                if self.repository.roll_call_exists(session, stub.congress, CHAMBER,
                                                    stub.session, stub.roll_call_number):
                    result.skipped += 1
                    return

        result.roll_calls_processed += 1
        try:
            self.load_roll_call(stub, result)
        except (SourceFetchError, RecordError) as e:
            logger.error(f"Failed to load House roll call {stub.congress}-{stub.session}-{stub.roll_call_number}: {e}")
            result.errors += 1

    def load_roll_call(self, stub: HouseVoteStub, result: SyncResult):
        """Fetch one Clerk document and write the roll call, its votes and its party breakdown."""
        year = stub.year or session_year(stub.congress, stub.session)
        record = self.clerk_client.fetch_roll_call(year, stub.roll_call_number)
        if record is None:
            raise RecordError(f"Clerk document roll{stub.roll_call_number:03d} for {year} not found")

        # The document is authoritative for everything except its position in the Congress list
        record.congress = record.congress or stub.congress
        record.session = stub.session
        record.roll_call_number = record.roll_call_number or stub.roll_call_number

        with self.db.get_session() as session:
            roll_call_id, inserted = self.repository.upsert_roll_call(session, record)
            votes = self.repository.upsert_house_votes(session, roll_call_id, record)
        result.add_votes(votes)
        logger.debug(f"House roll call {record.congress}-{record.session}-{record.roll_call_number} "
                     f"{'inserted' if inserted else 'updated'}: {votes.inserted} new votes")
        self._compute_breakdown(roll_call_id, result)

    def _compute_breakdown(self, roll_call_id: int, result: SyncResult):
        """Breakdown runs after the votes are committed; on failure the columns stay NULL for the backfill."""
        try:
            with self.db.get_session() as session:
                self.repository.compute_party_breakdown(session, roll_call_id)
        except SQLAlchemyError as e:
            logger.error(f"Party breakdown failed for roll call {roll_call_id}, left for backfill: {e}")
            result.errors += 1
