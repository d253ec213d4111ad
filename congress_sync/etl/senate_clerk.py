"""
Senate.gov roll-call archive adapter.

Document URL:
    https://www.senate.gov/legislative/LIS/roll_call_votes/vote{congress}{session}/vote_{congress}_{session}_{NNNNN}.xml

There is no list endpoint; callers walk sequential roll numbers and treat
repeated 404s as the end of a session.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from congress_sync.config import SENATE_LIS_BASE_URL, SENATE_GOV_INTERVAL_MS
from congress_sync.etl.errors import RecordError
from congress_sync.etl.normalize import (
    normalize_vote_position, parse_legis_num, parse_vote_date, leading_int
)
from congress_sync.etl.rate_limiter import RateLimiter
from congress_sync.etl.records import MemberVote, RollCallRecord, VoteTotals
from congress_sync.etl.source_client import SourceClient

logger = logging.getLogger(__name__)


def senate_rollcall_url(congress: int, session: int, roll_number: int,
                        base_url: str = SENATE_LIS_BASE_URL) -> str:
    return f"{base_url}/vote{congress}{session}/vote_{congress}_{session}_{roll_number:05d}.xml"


class SenateClerkClient(SourceClient):
    """Client for the Senate LIS roll-call vote archive."""

    source_name = 'senate-gov'

    def __init__(self, rate_limiter: Optional[RateLimiter] = None, base_url: str = SENATE_LIS_BASE_URL, **kwargs):
        super().__init__(rate_limiter or RateLimiter(SENATE_GOV_INTERVAL_MS), **kwargs)
        self.base_url = base_url

    def fetch_roll_call(self, congress: int, session: int, roll_number: int) -> Optional[RollCallRecord]:
        """Fetch and parse one Senate roll call; None if the archive has no such vote."""
        url = senate_rollcall_url(congress, session, roll_number, self.base_url)
        response = self.fetch_optional(url)
        if response is None:
            return None
        record = parse_senate_rollcall_xml(response.content, congress, session)
        record.source_url = url
        return record


def _text(parent, name: str) -> str:
    if parent is None:
        return ''
    node = parent.find(name)
    if node is None or node.text is None:
        return ''
    return node.text.strip()


def _decode_count(count) -> VoteTotals:
    """Senate totals live in <count>; absentees are reported as not voting."""
    return VoteTotals(
        yea=leading_int(_text(count, 'yeas'), 0),
        nay=leading_int(_text(count, 'nays'), 0),
        present=leading_int(_text(count, 'present'), 0),
        not_voting=leading_int(_text(count, 'absent'), 0),
    )


def parse_senate_rollcall_xml(xml_content, congress: int, session: int) -> RollCallRecord:
    """
    Parse a Senate.gov roll-call XML document.

    Args:
        xml_content: Raw XML
        congress: Congress the document was requested for (used when the XML omits it)
        session: Session the document was requested for

    Raises:
        RecordError: If the document is not well-formed.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise RecordError(f"Malformed Senate XML: {e}")

    member_votes = []
    for member in root.findall('./members/member'):
        lis_id = _text(member, 'lis_member_id')
        if not lis_id:
            continue
        member_votes.append(MemberVote(
            lis_id=lis_id,
            name=_text(member, 'member_full'),
            first_name=_text(member, 'first_name'),
            last_name=_text(member, 'last_name'),
            party=_text(member, 'party'),
            state=_text(member, 'state'),
            position=normalize_vote_position(_text(member, 'vote_cast')),
        ))

    document = root.find('document')
    bill = parse_legis_num(_text(document, 'document_name')) if document is not None else None
    if bill is not None:
        bill.congress = leading_int(_text(document, 'document_congress'), 0) or None

    return RollCallRecord(
        congress=leading_int(_text(root, 'congress'), congress),
        chamber='senate',
        session=leading_int(_text(root, 'session'), session),
        roll_call_number=leading_int(_text(root, 'vote_number'), 0),
        vote_date=parse_vote_date(_text(root, 'vote_date'), source='Senate'),
        vote_question=_text(root, 'vote_question_text') or _text(root, 'question'),
        vote_result=_text(root, 'vote_result') or _text(root, 'vote_result_text'),
        totals=_decode_count(root.find('count')),
        member_votes=member_votes,
        bill=bill,
    )
