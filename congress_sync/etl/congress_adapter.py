"""
Congress.gov JSON adapter.

Turns API payloads into canonical records. Source quirks handled here:
member names come as "Last, First", states as full names, bill numbers as
strings, and list envelopes use a different key per endpoint.
"""

import re
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from congress_sync.etl.errors import RecordError
from congress_sync.etl.normalize import normalize_party, parse_iso_date, leading_int
from congress_sync.etl.records import (
    BillEnrichment, BillRecord, HouseVoteStub, MemberRecord
)
from congress_sync.utils.states import normalize_state_code, normalize_district

logger = logging.getLogger(__name__)

BILL_TYPE_SLUGS = {
    'hr': 'house-bill',
    's': 'senate-bill',
    'hres': 'house-resolution',
    'sres': 'senate-resolution',
    'hjres': 'house-joint-resolution',
    'sjres': 'senate-joint-resolution',
    'hconres': 'house-concurrent-resolution',
    'sconres': 'senate-concurrent-resolution',
}


def page_items(payload: Dict, *keys: str) -> List[Dict]:
    """Return the first list found under any of `keys` in a list-endpoint envelope."""
    for key in keys:
        items = payload.get(key)
        if isinstance(items, list):
            return items
        if isinstance(items, dict):
            return [items]
    return []


def _as_list(value) -> List:
    """The API renders single-element collections as an object instead of an array."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _current_term(member: Dict) -> Optional[Dict]:
    terms = member.get('terms') or {}
    items = _as_list(terms.get('item') if isinstance(terms, dict) else terms)
    if not items:
        return None
    for term in items:
        if not term.get('endYear'):
            return term
    return items[-1]


def _split_name(member: Dict):
    if member.get('firstName') or member.get('lastName'):
        return (member.get('firstName') or '').strip(), (member.get('lastName') or '').strip()
    name = (member.get('name') or member.get('directOrderName') or '').strip()
    if ', ' in name:
        last, first = name.split(', ', 1)
        return first.strip(), last.strip()
    return '', name


def member_from_api(member: Dict, detail: Optional[Dict] = None) -> MemberRecord:
    """
    Build a MemberRecord from a /member list item, optionally merged with /member/{id} detail.

    Raises:
        RecordError: If the bioguide id is missing or the state cannot be resolved
            to a postal code.
    """
    bioguide_id = (member.get('bioguideId') or '').strip()
    if not bioguide_id:
        raise RecordError("Member record has no bioguideId")

    state_code = normalize_state_code(member.get('state'))
    if not state_code:
        logger.warning(f"Invalid state code {member.get('state')!r} for member {bioguide_id}")
        raise RecordError(f"Invalid state code: {member.get('state')}", source_id=bioguide_id)

    term = _current_term(member)
    chamber = 'senate' if term and 'senate' in str(term.get('chamber', '')).lower() else 'house'

    first_name, last_name = _split_name(detail or member)
    district = None
    if chamber == 'house':
        district = normalize_district(member.get('district'))

    term_start = None
    if term and term.get('startYear'):
        term_start = date(int(term['startYear']), 1, 3)

    record = MemberRecord(
        bioguide_id=bioguide_id,
        first_name=first_name[:100],
        last_name=last_name[:100],
        party=normalize_party(member.get('partyName') or member.get('party')),
        state_code=state_code,
        chamber=chamber,
        district=district,
        current_term_start=term_start,
        website_url=member.get('officialWebsiteUrl') or (detail or {}).get('officialWebsiteUrl'),
    )

    if detail:
        identifiers = detail.get('identifiers') or {}
        record.thomas_id = identifiers.get('thomasId')
        govtrack_id = identifiers.get('govTrackId')
        record.govtrack_id = int(govtrack_id) if govtrack_id not in (None, '') else None
        fec_ids = identifiers.get('fecIds') or []
        record.fec_id = fec_ids[0] if fec_ids else None
    return record


def bill_from_api(bill: Dict) -> BillRecord:
    """
    Build the phase-1 BillRecord from a /bill list item.

    Raises:
        RecordError: If type or number is missing.
    """
    bill_type = (bill.get('type') or '').strip().lower()
    bill_number = leading_int(bill.get('number'), 0)
    if not bill_type or not bill_number:
        raise RecordError(f"Bill record missing type/number: {bill.get('type')}{bill.get('number')}")

    latest = bill.get('latestAction') or {}
    return BillRecord(
        congress=int(bill.get('congress')),
        bill_type=bill_type,
        bill_number=bill_number,
        title=bill.get('title'),
        latest_action=latest.get('text'),
        latest_action_date=parse_iso_date(latest.get('actionDate')),
    )


def strip_html(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    plain = BeautifulSoup(text, 'html.parser').get_text(' ')
    plain = re.sub(r'\s+', ' ', plain).strip()
    return plain or None


def select_latest_summary(summaries: Iterable[Dict]) -> Optional[str]:
    """
    Pick the most recent summary version and return it as plain text.

    Versions are ordered by action date, then update date.
    """
    candidates = [s for s in summaries or [] if s.get('text')]
    if not candidates:
        return None
    latest = max(candidates, key=lambda s: (s.get('actionDate') or '', s.get('updateDate') or ''))
    return strip_html(latest.get('text'))


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(n % 10, 'th')
    return f"{n}{suffix}"


def full_text_url(congress: int, bill_type: str, bill_number: int) -> Optional[str]:
    """congress.gov text page for a bill; derived, never fetched."""
    slug = BILL_TYPE_SLUGS.get(bill_type.lower())
    if not slug:
        return None
    return f"https://www.congress.gov/bill/{_ordinal(congress)}-congress/{slug}/{bill_number}/text"


def bill_enrichment_from_api(record: BillRecord, detail: Dict,
                             summaries: Optional[Dict] = None,
                             subjects: Optional[Dict] = None) -> BillEnrichment:
    """Combine the detail, summaries and subjects payloads for one bill."""
    bill = detail.get('bill', detail) if detail else {}
    sponsors = _as_list(bill.get('sponsors'))
    policy_area = (bill.get('policyArea') or {}).get('name')

    subject_names: List[str] = []
    if subjects:
        body = subjects.get('subjects', subjects)
        for item in _as_list(body.get('legislativeSubjects')):
            name = (item.get('name') or '').strip()
            if name and name not in subject_names:
                subject_names.append(name)
        if not policy_area:
            policy_area = (body.get('policyArea') or {}).get('name')

    return BillEnrichment(
        introduced_date=parse_iso_date(bill.get('introducedDate')),
        sponsor_bioguide_id=sponsors[0].get('bioguideId') if sponsors else None,
        policy_area=policy_area,
        summary=select_latest_summary(_as_list((summaries or {}).get('summaries'))),
        full_text_url=full_text_url(record.congress, record.bill_type, record.bill_number),
        subjects=subject_names,
    )


def house_vote_stub_from_api(item: Dict, congress: int) -> HouseVoteStub:
    """
    Build a HouseVoteStub from a /house-vote list item.

    Raises:
        RecordError: If the roll-call number is missing.
    """
    roll_number = leading_int(item.get('rollCallNumber') or item.get('rollNumber'), 0)
    if not roll_number:
        raise RecordError(f"House vote stub without roll number: {item}")
    start = item.get('startDate') or item.get('date') or ''
    year = int(start[:4]) if start[:4].isdigit() else None
    return HouseVoteStub(
        congress=leading_int(item.get('congress'), congress),
        session=leading_int(item.get('sessionNumber') or item.get('session'), 1),
        roll_call_number=roll_number,
        year=year,
        source_url=item.get('sourceDataURL'),
    )
