"""
Normalization shared by the format adapters: vote positions, vote dates,
legislative numbers and party names.
"""

import re
import logging
from datetime import date, datetime
from typing import Optional

from congress_sync.etl.records import BillRef

logger = logging.getLogger(__name__)

YEA = 'Yea'
NAY = 'Nay'
PRESENT = 'Present'
NOT_VOTING = 'Not Voting'

_POSITION_WORDS = {
    'yea': YEA, 'aye': YEA, 'yes': YEA,
    'nay': NAY, 'no': NAY,
    'present': PRESENT, 'present - announced': PRESENT,
    'not voting': NOT_VOTING, 'not-voting': NOT_VOTING, 'absent': NOT_VOTING,
    'abstain': NOT_VOTING,
}

_PROCEDURAL = ('QUORUM', 'JOURNAL', 'MOTION', 'ADJOURN')
# "H R 153", "S 5", "H RES 24", "S J RES 1", "H CON RES 5", also "HR 153", "HRES 24"
_LEGIS_NUM = re.compile(r'^(H|S)\s*(J\s*|CON\s*)?(RES|R)?\s*(\d+)$')

_MONTH_ABBR = {
    'Jan': 1, 'Feb': 2, 'Mar': 3, 'Apr': 4, 'May': 5, 'Jun': 6,
    'Jul': 7, 'Aug': 8, 'Sep': 9, 'Oct': 10, 'Nov': 11, 'Dec': 12,
}


def normalize_vote_position(position: Optional[str], strict: bool = False) -> str:
    """
    Map a source vote string onto Yea / Nay / Present / Not Voting.

    Blank means Not Voting. Anything else that is not a recognized word
    (a candidate's name in a Speaker election, for instance) is returned as
    the literal text, unless `strict` is set, in which case it maps to
    Not Voting.
    """
    raw = (position or '').strip()
    if not raw:
        return NOT_VOTING
    mapped = _POSITION_WORDS.get(raw.lower())
    if mapped:
        return mapped
    if strict:
        return NOT_VOTING
    return raw


def parse_legis_num(legis_num: Optional[str]) -> Optional[BillRef]:
    """
    Extract a bill reference from a free-text legislative number.

    Examples:
        "H R 153"   -> hr 153
        "H RES 24"  -> hres 24
        "S J RES 1" -> sjres 1
        "S. 5"      -> s 5
        "QUORUM"    -> None
    """
    if not legis_num:
        return None
    normalized = re.sub(r'[.\s]+', ' ', legis_num).strip().upper()
    if not normalized:
        return None
    if any(p in normalized for p in _PROCEDURAL):
        return None

    match = _LEGIS_NUM.match(normalized)
    if not match:
        logger.debug(f"Could not parse legis-num: {legis_num!r}")
        return None

    chamber, modifier, res_type, number = match.groups()
    bill_type = chamber.lower()
    modifier = (modifier or '').strip()
    if modifier == 'J':
        bill_type += 'jres'
    elif modifier == 'CON':
        bill_type += 'conres'
    elif res_type == 'RES':
        bill_type += 'res'
    elif res_type == 'R':
        bill_type += 'r'
    return BillRef(bill_type=bill_type, bill_number=int(number))


def parse_vote_date(date_str: Optional[str], source: str = 'vote') -> date:
    """
    Parse the date formats used by the clerk archives.

    Accepts ISO ("2023-07-13", with or without a time part), "13-Jul-2023"
    (House Clerk) and "January 3, 2025" (Senate.gov, possibly followed by a
    time). Anything else falls back to today and logs a warning so the record
    is kept.
    """
    value = (date_str or '').strip()
    if value:
        iso = re.match(r'^(\d{4})-(\d{2})-(\d{2})', value)
        if iso:
            try:
                return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
            except ValueError:
                pass

        clerk = re.match(r'^(\d{1,2})-([A-Za-z]{3})-(\d{4})', value)
        if clerk and clerk.group(2).title() in _MONTH_ABBR:
            try:
                return date(int(clerk.group(3)), _MONTH_ABBR[clerk.group(2).title()], int(clerk.group(1)))
            except ValueError:
                pass

        long_form = re.match(r'^([A-Za-z]+)\s+(\d{1,2}),?\s+(\d{4})', value)
        if long_form:
            try:
                return datetime.strptime(
                    f"{long_form.group(1)} {long_form.group(2)} {long_form.group(3)}", '%B %d %Y'
                ).date()
            except ValueError:
                pass

    logger.warning(f"Could not parse {source} date {value!r}, using today")
    return date.today()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Date portion of an ISO date/datetime string, or None."""
    if not value:
        return None
    try:
        return datetime.strptime(str(value).split('T', 1)[0], '%Y-%m-%d').date()
    except ValueError:
        return None


def normalize_party(party: Optional[str]) -> str:
    """Map 'Republican', 'R', 'Democratic', 'D', ... onto the three stored parties."""
    value = (party or '').strip()
    if value.upper() == 'R' or 'republican' in value.lower():
        return 'Republican'
    if value.upper() == 'D' or 'democrat' in value.lower():
        return 'Democrat'
    return 'Independent'


def leading_int(value, default: int = 0) -> int:
    """'1st' -> 1, '42' -> 42, None -> default."""
    match = re.match(r'\s*(\d+)', str(value or ''))
    return int(match.group(1)) if match else default
