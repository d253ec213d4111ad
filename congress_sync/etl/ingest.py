"""
Ingestion driver.

`process_event` executes one invocation: whichever of members, bills and
votes the event does not skip, with votes limited to one chunk. The
response carries the cursors the caller passes back in the next event.

`run_ingestion` drives a complete pass locally: members and bills run as
concurrent branches, then the House and Senate vote loops run concurrently,
each looping chunk by chunk until its source is exhausted.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional

from congress_sync.config import (
    DEFAULT_BILLS_PER_CHUNK, DEFAULT_ROLL_CALLS_PER_CHUNK, SyncConfig
)
from congress_sync.etl.bill_loader import BillLoader
from congress_sync.etl.congress_client import CongressApiClient
from congress_sync.etl.errors import ConfigurationError
from congress_sync.etl.house_clerk import HouseClerkClient
from congress_sync.etl.house_vote_loader import HouseVoteLoader
from congress_sync.etl.member_loader import MemberLoader
from congress_sync.etl.rate_limiter import RateLimiter
from congress_sync.etl.records import SyncResult
from congress_sync.etl.repository import EntityRepository
from congress_sync.etl.senate_clerk import SenateClerkClient
from congress_sync.etl.senate_vote_loader import SenateVoteLoader
from congress_sync.utils.database import DatabaseManager

logger = logging.getLogger(__name__)

MODES = ('full', 'incremental')


class IngestionPipeline:
    """Wires the source clients, repository and loaders for one database."""

    def __init__(self, db: DatabaseManager, congress_client: CongressApiClient,
                 house_clerk_client: HouseClerkClient, senate_client: SenateClerkClient,
                 repository: Optional[EntityRepository] = None):
        self.db = db
        self.repository = repository or EntityRepository()
        self.members = MemberLoader(db, congress_client, self.repository)
        self.bills = BillLoader(db, congress_client, self.repository)
        self.house_votes = HouseVoteLoader(db, congress_client, house_clerk_client, self.repository)
        self.senate_votes = SenateVoteLoader(db, senate_client, self.repository)

    @classmethod
    def from_config(cls, config: SyncConfig, db: Optional[DatabaseManager] = None) -> 'IngestionPipeline':
        """
        Build the pipeline with one rate limiter per source.

        Raises:
            ConfigurationError: If no Congress.gov API key is configured.
        """
        if not config.congress_api_key:
            raise ConfigurationError("Congress.gov API key is required for ingestion")
        return cls(
            db or DatabaseManager(config.database_url),
            CongressApiClient(config.congress_api_key, RateLimiter(config.congress_interval_ms)),
            HouseClerkClient(RateLimiter(config.house_clerk_interval_ms)),
            SenateClerkClient(RateLimiter(config.senate_interval_ms)),
        )

    def process_event(self, event: Dict, default_congress: Optional[int] = None) -> Dict:
        """
        Run one ingestion invocation.

        Event keys:
            mode: 'full' or 'incremental' (default 'incremental')
            congress: Congress number (default `default_congress`)
            skip_members, skip_bills, skip_votes: Skip that branch
            bill_offset, bill_chunk_size: Bill chunk cursor and size
            vote_start_offset: House stub offset to resume at
            vote_max_roll_calls: Roll calls per chamber in this chunk
            senate_start_session, senate_start_roll_call: Senate resume point
            house_done, senate_done: That chamber finished in an earlier chunk; skip it

        Returns:
            JSON-serializable summary with per-branch results and vote cursors.
            vote_chunking carries every key the next event needs, including
            house_done/senate_done.
        """
        mode = event.get('mode') or 'incremental'
        if mode not in MODES:
            raise ConfigurationError(f"Unknown ingestion mode: {mode}")
        congress = int(event.get('congress') or default_congress or 0)
        if not congress:
            raise ConfigurationError("congress must be given in the event or configuration")

        logger.info(f"Starting ingestion: mode={mode}, congress={congress}")
        response = {'success': True, 'mode': mode, 'congress': congress, 'results': {}}

        if not event.get('skip_members'):
            response['results']['members'] = self.members.sync(congress, force=(mode == 'full')).to_dict()

        if not event.get('skip_bills'):
            bills = self.bills.sync_chunk(
                congress,
                offset=int(event.get('bill_offset') or 0),
                chunk_size=int(event.get('bill_chunk_size') or DEFAULT_BILLS_PER_CHUNK),
                mode=mode,
            )
            response['results']['bills'] = bills.to_dict()

        if not event.get('skip_votes'):
            max_roll_calls = int(event.get('vote_max_roll_calls') or DEFAULT_ROLL_CALLS_PER_CHUNK)
            # A chamber finished by an earlier chunk is not restarted from its beginning
            house_done = bool(event.get('house_done'))
            senate_done = bool(event.get('senate_done'))
            house, senate = SyncResult(skipped_sync=house_done), SyncResult(skipped_sync=senate_done)
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix='votes') as executor:
                house_future = senate_future = None
                if not house_done:
                    house_future = executor.submit(
                        self.house_votes.sync_chunk, congress,
                        offset=int(event.get('vote_start_offset') or 0),
                        max_roll_calls=max_roll_calls, mode=mode,
                    )
                if not senate_done:
                    senate_future = executor.submit(
                        self.senate_votes.sync_chunk, congress,
                        start_session=event.get('senate_start_session'),
                        start_roll_call=event.get('senate_start_roll_call'),
                        max_roll_calls=max_roll_calls, mode=mode,
                    )
                if house_future is not None:
                    house = house_future.result()
                if senate_future is not None:
                    senate = senate_future.result()

            response['results']['votes'] = {'house': house.to_dict(), 'senate': senate.to_dict()}
            response['vote_chunking'] = {
                'has_more': house.has_more or senate.has_more,
                'next_offset': house.next_offset,
                'roll_calls_processed': house.roll_calls_processed + senate.roll_calls_processed,
                'senate_next_session': senate.next_session,
                'senate_next_roll_call': senate.next_roll_call,
                'house_done': not house.has_more,
                'senate_done': not senate.has_more,
            }

        logger.info(f"Ingestion complete: {response['results']}")
        return response

    def sync_all_bills(self, congress: int, mode: str,
                       chunk_size: int = DEFAULT_BILLS_PER_CHUNK, enrich: bool = True) -> SyncResult:
        total = SyncResult()
        offset = 0
        while True:
            chunk = self.bills.sync_chunk(congress, offset=offset, chunk_size=chunk_size, mode=mode, enrich=enrich)
            total.merge(chunk)
            if not chunk.has_more:
                return total
            offset = chunk.next_offset

    def sync_all_house_votes(self, congress: int, mode: str,
                             max_roll_calls: int = DEFAULT_ROLL_CALLS_PER_CHUNK) -> SyncResult:
        total = SyncResult()
        offset = 0
        while True:
            chunk = self.house_votes.sync_chunk(congress, offset=offset, max_roll_calls=max_roll_calls, mode=mode)
            total.merge(chunk)
            if not chunk.has_more:
                return total
            offset = chunk.next_offset

    def sync_all_senate_votes(self, congress: int, mode: str,
                              max_roll_calls: int = DEFAULT_ROLL_CALLS_PER_CHUNK) -> SyncResult:
        total = SyncResult()
        next_session, next_roll_call = None, None
        while True:
            chunk = self.senate_votes.sync_chunk(congress, start_session=next_session,
                                                 start_roll_call=next_roll_call,
                                                 max_roll_calls=max_roll_calls, mode=mode)
            total.merge(chunk)
            if not chunk.has_more:
                return total
            next_session, next_roll_call = chunk.next_session, chunk.next_roll_call


def run_ingestion(pipeline: IngestionPipeline, congress: int, mode: str = 'incremental',
                  skip_members: bool = False, skip_bills: bool = False, skip_votes: bool = False,
                  bill_chunk_size: int = DEFAULT_BILLS_PER_CHUNK,
                  vote_max_roll_calls: int = DEFAULT_ROLL_CALLS_PER_CHUNK) -> Dict:
    """
    Run a complete ingestion pass.

    Members and bills are independent and run concurrently; vote branches
    start once both have finished so bill links and member ids resolve.
    An exception in any branch propagates after the other branch of its
    stage completes.
    """
    if mode not in MODES:
        raise ConfigurationError(f"Unknown ingestion mode: {mode}")
    logger.info(f"Starting full ingestion run: mode={mode}, congress={congress}")
    results = {}

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix='ingest') as executor:
        futures = {}
        if not skip_members:
            futures['members'] = executor.submit(pipeline.members.sync, congress, force=(mode == 'full'))
        if not skip_bills:
            futures['bills'] = executor.submit(pipeline.sync_all_bills, congress, mode, bill_chunk_size)
        for name, future in futures.items():
            results[name] = future.result().to_dict()

        if not skip_votes:
            house = executor.submit(pipeline.sync_all_house_votes, congress, mode, vote_max_roll_calls)
            senate = executor.submit(pipeline.sync_all_senate_votes, congress, mode, vote_max_roll_calls)
            results['votes'] = {'house': house.result().to_dict(), 'senate': senate.result().to_dict()}

    logger.info(f"Full ingestion run complete: {results}")
    return {'success': True, 'mode': mode, 'congress': congress, 'results': results}
