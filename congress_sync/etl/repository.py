"""
Entity repository: idempotent writes of canonical records.

Every write is keyed by the entity's natural key (bioguide id, congress +
type + number, congress + chamber + session + roll number, member + roll
call), so re-running any chunk leaves the database unchanged.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from congress_sync.etl.errors import RecordError
from congress_sync.etl.normalize import YEA, NAY
from congress_sync.etl.records import (
    BackfillResult, BillEnrichment, BillRecord, MemberRecord, RollCallRecord, VoteWriteResult
)
from congress_sync.models import (
    Bill, BillSubject, Member, PolicyArea, RollCall, SyncMetadata, Vote
)
from congress_sync.utils.states import STATE_CODES

logger = logging.getLogger(__name__)

MISSING_SAMPLE_SIZE = 10


class EntityRepository:
    """Upserts members, bills, roll calls and votes; computes party breakdowns."""

    # Members

    def find_member_id(self, session: Session, bioguide_id: Optional[str] = None,
                       lis_id: Optional[str] = None) -> Optional[int]:
        query = session.query(Member.id)
        if bioguide_id:
            row = query.filter(Member.bioguide_id == bioguide_id).first()
        elif lis_id:
            row = query.filter(Member.lis_id == lis_id).first()
        else:
            return None
        return row[0] if row else None

    def upsert_member(self, session: Session, record: MemberRecord) -> bool:
        """
        Insert or update a member keyed by bioguide id.

        Identity fields always take the incoming values. Optional identifiers
        and the website only replace stored values when the incoming value is
        present, so a list-only sync never erases detail enrichment.

        Returns:
            True if the member was inserted

        Raises:
            RecordError: If the state is not a known postal code.
        """
        if record.state_code not in STATE_CODES:
            raise RecordError(f"Invalid state code {record.state_code!r}", source_id=record.bioguide_id)

        member = session.query(Member).filter(Member.bioguide_id == record.bioguide_id).first()
        inserted = member is None
        if inserted:
            member = Member(bioguide_id=record.bioguide_id)
            session.add(member)

        member.first_name = record.first_name
        member.last_name = record.last_name
        member.full_name = record.full_name
        member.party = record.party
        member.state_code = record.state_code
        member.chamber = record.chamber
        member.district = record.district if record.chamber == 'house' else None
        member.current_term_start = record.current_term_start or member.current_term_start
        member.is_active = True
        for attr in ('website_url', 'lis_id', 'thomas_id', 'govtrack_id', 'fec_id'):
            value = getattr(record, attr)
            if value is not None:
                setattr(member, attr, value)

        session.flush()
        return inserted

    def deactivate_members_not_in(self, session: Session, bioguide_ids: Iterable[str]) -> int:
        """Mark active members missing from `bioguide_ids` inactive. Rows are never deleted."""
        keep = set(bioguide_ids)
        if not keep:
            return 0
        count = 0
        for member in session.query(Member).filter(Member.is_active.is_(True)).all():
            if member.bioguide_id not in keep:
                member.is_active = False
                count += 1
        if count:
            logger.info(f"Marked {count} members inactive")
        return count

    # Bills

    def find_bill_id(self, session: Session, congress: int, bill_type: str, bill_number: int) -> Optional[int]:
        row = session.query(Bill.id).filter(
            Bill.congress == congress,
            Bill.bill_type == bill_type.lower(),
            Bill.bill_number == bill_number,
        ).first()
        return row[0] if row else None

    def upsert_bill_identity(self, session: Session, record: BillRecord) -> bool:
        """
        Phase 1 bill write from the list endpoint. Title and latest action always overwrite.

        Returns:
            True if the bill was inserted
        """
        bill = session.query(Bill).filter(
            Bill.congress == record.congress,
            Bill.bill_type == record.bill_type,
            Bill.bill_number == record.bill_number,
        ).first()
        inserted = bill is None
        if inserted:
            bill = Bill(congress=record.congress, bill_type=record.bill_type, bill_number=record.bill_number)
            session.add(bill)

        bill.title = record.title
        bill.latest_action = record.latest_action
        bill.latest_action_date = record.latest_action_date
        session.flush()
        return inserted

    def get_or_create_policy_area(self, session: Session, name: str) -> int:
        area = session.query(PolicyArea).filter(PolicyArea.name == name).first()
        if area is None:
            area = PolicyArea(name=name)
            session.add(area)
            session.flush()
            logger.debug(f"Created policy area {name!r}")
        return area.id

    def replace_bill_subjects(self, session: Session, bill_id: int, subjects: List[str]) -> int:
        """Make the bill's subject set exactly `subjects`. Returns the number of subjects stored."""
        wanted = []
        for subject in subjects:
            name = subject.strip()[:200]
            if name and name not in wanted:
                wanted.append(name)

        existing = {s.subject: s for s in session.query(BillSubject).filter(BillSubject.bill_id == bill_id)}
        for name, row in existing.items():
            if name not in wanted:
                session.delete(row)
        for name in wanted:
            if name not in existing:
                session.add(BillSubject(bill_id=bill_id, subject=name))
        session.flush()
        return len(wanted)

    def merge_bill_enrichment(self, session: Session, record: BillRecord, enrichment: BillEnrichment) -> bool:
        """
        Phase 2 bill write from the detail, summaries and subjects endpoints.

        Only non-null incoming values replace stored ones. An unknown sponsor
        leaves sponsor_id unchanged. Subjects are replaced only when the
        source reported any.

        Returns:
            True if the bill existed and was updated

        Raises:
            RecordError: If the bill has not been written by phase 1.
        """
        bill = session.query(Bill).filter(
            Bill.congress == record.congress,
            Bill.bill_type == record.bill_type,
            Bill.bill_number == record.bill_number,
        ).first()
        if bill is None:
            raise RecordError(
                f"Bill {record.bill_type}{record.bill_number}-{record.congress} not found for enrichment"
            )

        if enrichment.introduced_date is not None:
            bill.introduced_date = enrichment.introduced_date
        if enrichment.summary is not None:
            bill.summary = enrichment.summary
        if enrichment.full_text_url is not None:
            bill.full_text_url = enrichment.full_text_url
        if enrichment.sponsor_bioguide_id:
            sponsor_id = self.find_member_id(session, bioguide_id=enrichment.sponsor_bioguide_id)
            if sponsor_id is not None:
                bill.sponsor_id = sponsor_id
            else:
                logger.debug(f"Sponsor {enrichment.sponsor_bioguide_id} not found for bill {bill.id}")
        if enrichment.policy_area:
            bill.primary_policy_area_id = self.get_or_create_policy_area(session, enrichment.policy_area)
        if enrichment.subjects:
            self.replace_bill_subjects(session, bill.id, enrichment.subjects)

        session.flush()
        return True

    # Roll calls

    def roll_call_exists(self, session: Session, congress: int, chamber: str,
                         session_number: int, roll_call_number: int) -> bool:
        return self._find_roll_call(session, congress, chamber, session_number, roll_call_number) is not None

    def _find_roll_call(self, session: Session, congress: int, chamber: str,
                        session_number: int, roll_call_number: int) -> Optional[RollCall]:
        return session.query(RollCall).filter(
            RollCall.congress == congress,
            RollCall.chamber == chamber,
            RollCall.session == session_number,
            RollCall.roll_call_number == roll_call_number,
        ).first()

    def max_roll_call_number(self, session: Session, congress: int, chamber: str, session_number: int) -> int:
        """Highest stored roll-call number for a chamber session, 0 if none."""
        value = session.query(func.max(RollCall.roll_call_number)).filter(
            RollCall.congress == congress,
            RollCall.chamber == chamber,
            RollCall.session == session_number,
        ).scalar()
        return value or 0

    def upsert_roll_call(self, session: Session, record: RollCallRecord) -> Tuple[int, bool]:
        """
        Insert or update a roll call keyed by (congress, chamber, session, number).

        The bill link is resolved against stored bills; a bill not yet synced
        leaves bill_id NULL. The party breakdown is left untouched.

        Returns:
            (roll_call_id, inserted)
        """
        bill_id = None
        if record.bill is not None:
            bill_id = self.find_bill_id(session, record.bill.congress or record.congress,
                                        record.bill.bill_type, record.bill.bill_number)

        roll_call = self._find_roll_call(session, record.congress, record.chamber,
                                         record.session, record.roll_call_number)
        inserted = roll_call is None
        if inserted:
            roll_call = RollCall(
                congress=record.congress,
                chamber=record.chamber,
                session=record.session,
                roll_call_number=record.roll_call_number,
            )
            session.add(roll_call)

        roll_call.vote_date = record.vote_date
        roll_call.vote_question = record.vote_question
        roll_call.vote_result = (record.vote_result or '')[:200]
        roll_call.yea_total = record.totals.yea
        roll_call.nay_total = record.totals.nay
        roll_call.present_total = record.totals.present
        roll_call.not_voting_total = record.totals.not_voting
        if bill_id is not None:
            roll_call.bill_id = bill_id
        if record.source_url:
            roll_call.source_url = record.source_url

        session.flush()
        return roll_call.id, inserted

    # Votes

    def upsert_house_votes(self, session: Session, roll_call_id: int, record: RollCallRecord) -> VoteWriteResult:
        """Write House member votes, matching members by exact bioguide id."""
        bioguide_ids = [mv.bioguide_id for mv in record.member_votes if mv.bioguide_id]
        member_ids: Dict[str, int] = {}
        if bioguide_ids:
            rows = session.query(Member.bioguide_id, Member.id).filter(Member.bioguide_id.in_(bioguide_ids))
            member_ids = {bioguide_id: member_id for bioguide_id, member_id in rows}

        resolved = [(member_ids.get(mv.bioguide_id), mv) for mv in record.member_votes]
        return self._write_votes(session, roll_call_id, record, resolved)

    def upsert_senate_votes(self, session: Session, roll_call_id: int, record: RollCallRecord) -> VoteWriteResult:
        """
        Write Senate member votes.

        Members are matched by LIS id, falling back to last name + state among
        senators. A fallback match stores the LIS id on the member so later
        documents match directly.
        """
        senators = session.query(Member).filter(Member.chamber == 'senate').all()
        by_lis = {m.lis_id: m for m in senators if m.lis_id}
        by_name_state = {}
        for m in senators:
            by_name_state.setdefault(((m.last_name or '').lower(), m.state_code), m)

        resolved = []
        for mv in record.member_votes:
            member = by_lis.get(mv.lis_id)
            if member is None and mv.last_name:
                member = by_name_state.get((mv.last_name.lower(), (mv.state or '').upper()))
                if member is not None and mv.lis_id and not member.lis_id:
                    logger.info(f"Back-filling LIS id {mv.lis_id} for {member.bioguide_id}")
                    member.lis_id = mv.lis_id
                    by_lis[mv.lis_id] = member
            resolved.append((member.id if member is not None else None, mv))

        return self._write_votes(session, roll_call_id, record, resolved)

    def _write_votes(self, session: Session, roll_call_id: int, record: RollCallRecord,
                     resolved: List[Tuple[Optional[int], object]]) -> VoteWriteResult:
        result = VoteWriteResult()
        roll_call = session.get(RollCall, roll_call_id)
        bill_id = roll_call.bill_id if roll_call is not None else None
        existing = {v.member_id: v for v in session.query(Vote).filter(Vote.roll_call_id == roll_call_id)}
        seen = set()

        for member_id, member_vote in resolved:
            if member_id is None:
                result.skipped += 1
                if len(result.missing_ids) < MISSING_SAMPLE_SIZE:
                    result.missing_ids.append(member_vote.source_id)
                continue
            if member_id in seen:
                continue
            seen.add(member_id)

            position = member_vote.position[:100]
            vote = existing.get(member_id)
            if vote is None:
                session.add(Vote(
                    member_id=member_id,
                    roll_call_id=roll_call_id,
                    position=position,
                    vote_date=record.vote_date,
                    bill_id=bill_id,
                ))
                result.inserted += 1
            else:
                vote.position = position
                vote.bill_id = bill_id
                result.updated += 1

        session.flush()
        if result.skipped:
            logger.warning(
                f"{record.chamber.title()} roll call {record.congress}-{record.session}-{record.roll_call_number}: "
                f"{result.skipped} votes skipped, members not found (sample: {result.missing_ids})"
            )
        return result

    # Party breakdown

    def compute_party_breakdown(self, session: Session, roll_call_id: int) -> Dict[str, int]:
        """
        Count Republican/Democrat Yea/Nay votes for a roll call and store them on it.

        Other parties and positions are not counted. Parties missing from the
        roll call count as zero.
        """
        rows = (session.query(Member.party, Vote.position, func.count(Vote.id))
                .join(Member, Vote.member_id == Member.id)
                .filter(Vote.roll_call_id == roll_call_id,
                        Member.party.in_(('Republican', 'Democrat')),
                        Vote.position.in_((YEA, NAY)))
                .group_by(Member.party, Vote.position)
                .all())
        counts = {(party, position): count for party, position, count in rows}
        breakdown = {
            'republican_yea': counts.get(('Republican', YEA), 0),
            'republican_nay': counts.get(('Republican', NAY), 0),
            'democrat_yea': counts.get(('Democrat', YEA), 0),
            'democrat_nay': counts.get(('Democrat', NAY), 0),
        }

        roll_call = session.get(RollCall, roll_call_id)
        if roll_call is not None:
            for key, value in breakdown.items():
                setattr(roll_call, key, value)
            session.flush()
        return breakdown

    def backfill_party_breakdowns(self, session: Session) -> BackfillResult:
        """Compute the breakdown for every roll call that has none. Commits per roll call."""
        result = BackfillResult()
        roll_call_ids = [row[0] for row in session.query(RollCall.id).filter(RollCall.republican_yea.is_(None))]
        logger.info(f"Backfilling party breakdown for {len(roll_call_ids)} roll calls")

        for roll_call_id in roll_call_ids:
            try:
                self.compute_party_breakdown(session, roll_call_id)
                session.commit()
                result.updated += 1
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Failed to compute party breakdown for roll call {roll_call_id}: {e}")
                result.errors += 1
        return result

    # Sync metadata

    def get_last_sync(self, session: Session, entity: str) -> Optional[datetime]:
        row = session.get(SyncMetadata, entity)
        return row.last_sync_at if row else None

    def mark_synced(self, session: Session, entity: str, when: Optional[datetime] = None):
        row = session.get(SyncMetadata, entity)
        if row is None:
            row = SyncMetadata(entity=entity, last_sync_at=when or datetime.utcnow())
            session.add(row)
        else:
            row.last_sync_at = when or datetime.utcnow()
        session.flush()
