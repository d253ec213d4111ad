"""
Read-side queries over the synchronized tables.

These return plain dicts so an API layer can serialize them directly.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from congress_sync.etl.district_resolver import DistrictResolver
from congress_sync.models import Bill, BillSubject, Member, PolicyArea, RollCall, Vote

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _member_dict(member: Member) -> Dict:
    return {
        'id': member.id,
        'bioguide_id': member.bioguide_id,
        'full_name': member.full_name,
        'first_name': member.first_name,
        'last_name': member.last_name,
        'party': member.party,
        'state_code': member.state_code,
        'chamber': member.chamber,
        'district': member.district,
        'is_active': member.is_active,
        'website_url': member.website_url,
    }


def _page_meta(total: int, limit: int, offset: int, count: int) -> Dict:
    return {'total': total, 'limit': limit, 'offset': offset, 'has_more': offset + count < total}


def list_members(session: Session, state: Optional[str] = None, party: Optional[str] = None,
                 chamber: Optional[str] = None, active: Optional[bool] = True,
                 limit: int = 20, offset: int = 0) -> Dict:
    """
    List members with optional filters, ordered by full name.

    Returns:
        {'data': [...], 'meta': {'total', 'limit', 'offset', 'has_more'}}
    """
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = session.query(Member)
    if state:
        query = query.filter(Member.state_code == state.upper())
    if party:
        query = query.filter(Member.party == party)
    if chamber:
        query = query.filter(Member.chamber == chamber)
    if active is not None:
        query = query.filter(Member.is_active.is_(active))

    total = query.count()
    members = query.order_by(Member.full_name).limit(limit).offset(offset).all()
    data = [_member_dict(m) for m in members]
    return {'data': data, 'meta': _page_meta(total, limit, offset, len(data))}


def get_member(session: Session, member_id) -> Optional[Dict]:
    """Look up a member by surrogate id or bioguide id, with their recorded vote count."""
    query = session.query(Member)
    if str(member_id).isdigit():
        member = query.filter(Member.id == int(member_id)).first()
    else:
        member = query.filter(Member.bioguide_id == str(member_id)).first()
    if member is None:
        return None

    result = _member_dict(member)
    result.update({
        'lis_id': member.lis_id,
        'thomas_id': member.thomas_id,
        'govtrack_id': member.govtrack_id,
        'fec_id': member.fec_id,
        'current_term_start': member.current_term_start.isoformat() if member.current_term_start else None,
        'total_votes': session.query(func.count(Vote.id)).filter(Vote.member_id == member.id).scalar(),
    })
    return result


def get_members_by_zip(session: Session, resolver: DistrictResolver, zip_code: str) -> Optional[Dict]:
    """
    Representatives for a ZIP code: the House member for its district plus both senators.

    Returns:
        None if the ZIP cannot be resolved
    """
    district = resolver.resolve(zip_code)
    if district is None:
        return None

    members = (session.query(Member)
               .filter(Member.state_code == district.state_code,
                       Member.is_active.is_(True))
               .order_by(Member.chamber.desc(), Member.full_name)
               .all())
    representatives = [
        {'chamber': m.chamber, 'member': _member_dict(m)}
        for m in members
        if m.chamber == 'senate' or m.district == district.district_number
    ]
    return {
        'zip_code': zip_code[:5],
        'state_code': district.state_code,
        'district': district.district_number,
        'representatives': representatives,
    }


def list_bills(session: Session, congress: Optional[int] = None, bill_type: Optional[str] = None,
               policy_area: Optional[str] = None, sponsor_id: Optional[int] = None,
               limit: int = 20, offset: int = 0) -> Dict:
    """List bills, most recent action first."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = session.query(Bill)
    if congress:
        query = query.filter(Bill.congress == congress)
    if bill_type:
        query = query.filter(Bill.bill_type == bill_type.lower())
    if policy_area:
        query = query.join(PolicyArea, Bill.primary_policy_area_id == PolicyArea.id).filter(
            PolicyArea.name == policy_area)
    if sponsor_id:
        query = query.filter(Bill.sponsor_id == sponsor_id)

    total = query.count()
    bills = (query.order_by(Bill.latest_action_date.desc(), Bill.id.desc())
             .limit(limit).offset(offset).all())
    data = [{
        'id': b.id,
        'congress': b.congress,
        'bill_type': b.bill_type,
        'bill_number': b.bill_number,
        'title': b.title,
        'latest_action': b.latest_action,
        'latest_action_date': b.latest_action_date.isoformat() if b.latest_action_date else None,
    } for b in bills]
    return {'data': data, 'meta': _page_meta(total, limit, offset, len(data))}


def get_bill(session: Session, congress: int, bill_type: str, bill_number: int) -> Optional[Dict]:
    """Full bill record with sponsor, policy area, subjects and linked roll calls."""
    bill = session.query(Bill).filter(
        Bill.congress == congress,
        Bill.bill_type == bill_type.lower(),
        Bill.bill_number == bill_number,
    ).first()
    if bill is None:
        return None

    sponsor = session.get(Member, bill.sponsor_id) if bill.sponsor_id else None
    policy_area = session.get(PolicyArea, bill.primary_policy_area_id) if bill.primary_policy_area_id else None
    subjects: List[str] = [
        s.subject for s in session.query(BillSubject).filter(BillSubject.bill_id == bill.id).order_by(BillSubject.subject)
    ]
    roll_calls = session.query(RollCall).filter(RollCall.bill_id == bill.id).order_by(RollCall.vote_date).all()

    return {
        'id': bill.id,
        'congress': bill.congress,
        'bill_type': bill.bill_type,
        'bill_number': bill.bill_number,
        'title': bill.title,
        'summary': bill.summary,
        'introduced_date': bill.introduced_date.isoformat() if bill.introduced_date else None,
        'full_text_url': bill.full_text_url,
        'latest_action': bill.latest_action,
        'latest_action_date': bill.latest_action_date.isoformat() if bill.latest_action_date else None,
        'sponsor': _member_dict(sponsor) if sponsor else None,
        'policy_area': policy_area.name if policy_area else None,
        'subjects': subjects,
        'roll_calls': [_roll_call_dict(rc) for rc in roll_calls],
    }


def _roll_call_dict(roll_call: RollCall) -> Dict:
    return {
        'id': roll_call.id,
        'congress': roll_call.congress,
        'chamber': roll_call.chamber,
        'session': roll_call.session,
        'roll_call_number': roll_call.roll_call_number,
        'vote_date': roll_call.vote_date.isoformat() if roll_call.vote_date else None,
        'vote_question': roll_call.vote_question,
        'vote_result': roll_call.vote_result,
        'totals': {
            'yea': roll_call.yea_total,
            'nay': roll_call.nay_total,
            'present': roll_call.present_total,
            'not_voting': roll_call.not_voting_total,
        },
        'party_breakdown': {
            'republican_yea': roll_call.republican_yea,
            'republican_nay': roll_call.republican_nay,
            'democrat_yea': roll_call.democrat_yea,
            'democrat_nay': roll_call.democrat_nay,
        },
        'bill_id': roll_call.bill_id,
    }


def list_roll_calls(session: Session, congress: Optional[int] = None, chamber: Optional[str] = None,
                    limit: int = 20, offset: int = 0) -> Dict:
    """List roll calls, newest first."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    query = session.query(RollCall)
    if congress:
        query = query.filter(RollCall.congress == congress)
    if chamber:
        query = query.filter(RollCall.chamber == chamber)

    total = query.count()
    roll_calls = (query.order_by(RollCall.vote_date.desc(), RollCall.roll_call_number.desc())
                  .limit(limit).offset(offset).all())
    data = [_roll_call_dict(rc) for rc in roll_calls]
    return {'data': data, 'meta': _page_meta(total, limit, offset, len(data))}
