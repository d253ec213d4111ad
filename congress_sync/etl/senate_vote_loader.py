"""
Senate vote loader.

Senate.gov has no listing of roll calls, so each session is walked with
sequential roll numbers until several in a row are missing.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from congress_sync.config import DEFAULT_ROLL_CALLS_PER_CHUNK
from congress_sync.etl.errors import RecordError
from congress_sync.etl.records import SyncResult
from congress_sync.etl.repository import EntityRepository
from congress_sync.etl.senate_clerk import SenateClerkClient
from congress_sync.utils.database import DatabaseManager

logger = logging.getLogger(__name__)

CHAMBER = 'senate'
SESSIONS = (1, 2)
DEFAULT_MAX_CONSECUTIVE_MISSES = 3


class SenateVoteLoader:
    """Chunked loader for Senate roll calls and member votes."""

    def __init__(self, db: DatabaseManager, client: SenateClerkClient,
                 repository: Optional[EntityRepository] = None):
        self.db = db
        self.client = client
        self.repository = repository or EntityRepository()

    def _compute_breakdown(self, roll_call_id: int, result: SyncResult):
        try:
            with self.db.get_session() as session:
                self.repository.compute_party_breakdown(session, roll_call_id)
        except SQLAlchemyError as e:
            logger.error(f"Party breakdown failed for roll call {roll_call_id}, left for backfill: {e}")
            result.errors += 1

    def _start_roll_call(self, congress: int, session_number: int, mode: str) -> int:
        if mode != 'incremental':
            return 1
        with self.db.get_session() as session:
            return self.repository.max_roll_call_number(session, congress, CHAMBER, session_number) + 1

    def sync_chunk(self, congress: int, start_session: Optional[int] = None,
                   start_roll_call: Optional[int] = None,
                   max_roll_calls: int = DEFAULT_ROLL_CALLS_PER_CHUNK, mode: str = 'full',
                   max_consecutive_misses: int = DEFAULT_MAX_CONSECUTIVE_MISSES) -> SyncResult:
        """
        Walk and load Senate roll calls for sessions 1 and 2.

        Args:
            congress: Congress number
            start_session: Session to resume in (default 1)
            start_roll_call: Roll number to resume at within start_session. Without it
                incremental mode starts after the highest stored number and full mode at 1.
            max_roll_calls: Roll-call documents to load before ending the chunk
            mode: 'full' or 'incremental'
            max_consecutive_misses: Not-found responses in a row that end a session

        Returns:
            SyncResult with has_more, next_session and next_roll_call

        Raises:
            SourceFetchError: On any transport failure. The caller resumes from the same point.
        """
        result = SyncResult()
        first_session = start_session or SESSIONS[0]

        with tqdm(total=max_roll_calls, desc=f"Senate votes {congress}", leave=False) as progress:
            for session_number in SESSIONS:
                if session_number < first_session:
                    continue
                if session_number == first_session and start_roll_call:
                    roll_number = start_roll_call
                else:
                    roll_number = self._start_roll_call(congress, session_number, mode)
                logger.info(f"Syncing Senate votes {congress}-{session_number} from roll call {roll_number}")

                misses = 0
                while misses < max_consecutive_misses:
                    if result.roll_calls_processed >= max_roll_calls:
                        result.has_more = True
                        result.next_session = session_number
                        result.next_roll_call = roll_number
                        logger.info(f"Senate chunk limit reached, next {session_number}/{roll_number}")
                        return result

                    try:
                        record = self.client.fetch_roll_call(congress, session_number, roll_number)
                    except RecordError as e:
                        logger.error(f"Unparsable Senate roll call {congress}-{session_number}-{roll_number}: {e}")
                        result.errors += 1
                        result.roll_calls_processed += 1
                        progress.update(1)
                        misses = 0
                        roll_number += 1
                        continue

                    if record is None:
                        misses += 1
                        roll_number += 1
                        continue

                    misses = 0
                    record.congress = congress
                    record.session = session_number
                    record.roll_call_number = record.roll_call_number or roll_number
                    with self.db.get_session() as session:
                        roll_call_id, _ = self.repository.upsert_roll_call(session, record)
                        votes = self.repository.upsert_senate_votes(session, roll_call_id, record)
                    result.add_votes(votes)
                    self._compute_breakdown(roll_call_id, result)
                    result.roll_calls_processed += 1
                    progress.update(1)
                    roll_number += 1

                logger.info(f"Senate session {congress}-{session_number} ended after {misses} consecutive misses "
                            f"at roll call {roll_number - misses}")

        logger.info(f"Senate votes complete for Congress {congress}: {result.roll_calls_processed} roll calls, "
                    f"{result.inserted} votes inserted, {result.updated} updated, {result.errors} errors")
        return result
