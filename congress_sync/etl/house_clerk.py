"""
House Clerk roll-call archive adapter.

Fetches https://clerk.house.gov/evs/{year}/roll{NNN}.xml and parses it into a
RollCallRecord. Missing roll numbers (404) are expected: the archive has gaps
and vacated slots.
"""

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from congress_sync.config import HOUSE_CLERK_BASE_URL, HOUSE_CLERK_INTERVAL_MS
from congress_sync.etl.errors import RecordError
from congress_sync.etl.normalize import (
    normalize_vote_position, parse_legis_num, parse_vote_date, leading_int,
    YEA, NAY, PRESENT, NOT_VOTING
)
from congress_sync.etl.rate_limiter import RateLimiter
from congress_sync.etl.records import MemberVote, RollCallRecord, VoteTotals
from congress_sync.etl.source_client import SourceClient

logger = logging.getLogger(__name__)


def house_rollcall_url(year: int, roll_number: int, base_url: str = HOUSE_CLERK_BASE_URL) -> str:
    return f"{base_url}/{year}/roll{roll_number:03d}.xml"


class HouseClerkClient(SourceClient):
    """Client for the House Clerk electronic voting system archive."""

    source_name = 'house-clerk'

    def __init__(self, rate_limiter: Optional[RateLimiter] = None, base_url: str = HOUSE_CLERK_BASE_URL, **kwargs):
        super().__init__(rate_limiter or RateLimiter(HOUSE_CLERK_INTERVAL_MS), **kwargs)
        self.base_url = base_url

    def fetch_roll_call(self, year: int, roll_number: int) -> Optional[RollCallRecord]:
        """
        Fetch and parse one House roll call.

        Args:
            year: Calendar year of the vote (the archive is keyed by year, not session)
            roll_number: Roll-call number within that year

        Returns:
            Parsed roll call, or None if the archive has no document for it
        """
        url = house_rollcall_url(year, roll_number, self.base_url)
        response = self.fetch_optional(url)
        if response is None:
            logger.warning(f"House roll call {year}/{roll_number} not found")
            return None
        record = parse_house_rollcall_xml(response.content)
        record.source_url = url
        return record


def _tag(elem) -> str:
    return elem.tag.split('}')[-1].lower()


def _find(parent, name: str):
    if parent is None:
        return None
    for child in parent:
        if _tag(child) == name:
            return child
    return None


def _text(parent, name: str) -> str:
    node = _find(parent, name)
    if node is None or node.text is None:
        return ''
    return node.text.strip()


def _int_text(node) -> int:
    if node is None:
        return 0
    return leading_int(node.text, 0)


def _decode_vote_totals(elements: List) -> Optional[VoteTotals]:
    """
    Normalize <totals-by-vote> into VoteTotals.

    The archive uses two shapes: a single element holding <yea-total>,
    <nay-total>, <present-total>, <not-voting-total> children, or one element
    per vote type tagged by a total-type attribute (or <vote-type> child)
    whose count is the element text (or a <total> child).
    """
    if not elements:
        return None

    if len(elements) == 1 and _find(elements[0], 'yea-total') is not None:
        single = elements[0]
        return VoteTotals(
            yea=_int_text(_find(single, 'yea-total')),
            nay=_int_text(_find(single, 'nay-total')),
            present=_int_text(_find(single, 'present-total')),
            not_voting=_int_text(_find(single, 'not-voting-total')),
        )

    totals = VoteTotals()
    for elem in elements:
        vote_type = (elem.get('total-type') or _text(elem, 'vote-type')).strip().lower()
        count_node = _find(elem, 'total')
        count = _int_text(count_node) if count_node is not None else leading_int(elem.text, 0)
        if vote_type == 'yea':
            totals.yea = count
        elif vote_type == 'nay':
            totals.nay = count
        elif vote_type == 'present':
            totals.present = count
        elif vote_type in ('not-voting', 'not voting'):
            totals.not_voting = count
    return totals


def _totals_from_positions(member_votes: List[MemberVote]) -> VoteTotals:
    totals = VoteTotals()
    for mv in member_votes:
        if mv.position == YEA:
            totals.yea += 1
        elif mv.position == NAY:
            totals.nay += 1
        elif mv.position == PRESENT:
            totals.present += 1
        elif mv.position == NOT_VOTING:
            totals.not_voting += 1
    return totals


def parse_house_rollcall_xml(xml_content) -> RollCallRecord:
    """
    Parse a House Clerk roll-call XML document.

    Raises:
        RecordError: If the document is not well-formed or lacks vote metadata.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise RecordError(f"Malformed House Clerk XML: {e}")

    metadata = root if _tag(root) == 'vote-metadata' else _find(root, 'vote-metadata')
    if metadata is None:
        raise RecordError("House Clerk XML has no vote-metadata element")

    member_votes: List[MemberVote] = []
    vote_data = _find(root, 'vote-data')
    if vote_data is not None:
        for recorded in vote_data:
            if _tag(recorded) != 'recorded-vote':
                continue
            legislator = _find(recorded, 'legislator')
            if legislator is None:
                continue
            bioguide_id = (legislator.get('name-id') or '').strip()
            if not bioguide_id:
                continue
            member_votes.append(MemberVote(
                bioguide_id=bioguide_id,
                name=(legislator.text or legislator.get('unaccented-name') or '').strip(),
                party=(legislator.get('party') or '').strip(),
                state=(legislator.get('state') or '').strip(),
                position=normalize_vote_position(_text(recorded, 'vote')),
            ))

    totals_by_vote = []
    vote_totals = _find(metadata, 'vote-totals')
    if vote_totals is not None:
        totals_by_vote = [e for e in vote_totals if _tag(e) == 'totals-by-vote']
    totals = _decode_vote_totals(totals_by_vote)
    if totals is None:
        totals = _totals_from_positions(member_votes)

    return RollCallRecord(
        congress=leading_int(_text(metadata, 'congress'), 0),
        chamber='house',
        session=leading_int(_text(metadata, 'session'), 1),
        roll_call_number=leading_int(_text(metadata, 'rollcall-num'), 0),
        vote_date=parse_vote_date(_text(metadata, 'action-date'), source='House'),
        vote_question=_text(metadata, 'vote-question'),
        vote_result=_text(metadata, 'vote-result'),
        totals=totals,
        member_votes=member_votes,
        bill=parse_legis_num(_text(metadata, 'legis-num')),
    )
