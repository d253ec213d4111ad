"""Unit tests for the entity repository against an in-memory database."""

from datetime import date, datetime

import pytest

from congress_sync.etl.errors import RecordError
from congress_sync.etl.house_clerk import parse_house_rollcall_xml
from congress_sync.etl.records import (
    BillEnrichment, BillRecord, MemberRecord, MemberVote, RollCallRecord
)
from congress_sync.etl.senate_clerk import parse_senate_rollcall_xml
from congress_sync.models import Bill, BillSubject, Member, PolicyArea, RollCall, Vote

from conftest import HOUSE_ROLLCALL_XML, SENATE_ROLLCALL_XML, add_member


def member_record(**overrides):
    values = dict(bioguide_id='A000001', first_name='Alex', last_name='Able', party='Democrat',
                  state_code='CA', chamber='house', district='12')
    values.update(overrides)
    return MemberRecord(**values)


class TestMembers:
    """Test member upserts."""

    def test_insert_then_update(self, db, repository):
        with db.get_session() as session:
            assert repository.upsert_member(session, member_record()) is True
        with db.get_session() as session:
            assert repository.upsert_member(session, member_record(party='Independent')) is False
        with db.get_session() as session:
            members = session.query(Member).all()
            assert len(members) == 1
            assert members[0].party == 'Independent'
            assert members[0].full_name == 'Alex Able'

    def test_missing_optional_ids_do_not_erase_stored_ones(self, db, repository):
        with db.get_session() as session:
            repository.upsert_member(session, member_record(thomas_id='02201', website_url='https://a.gov'))
        with db.get_session() as session:
            repository.upsert_member(session, member_record())
        with db.get_session() as session:
            member = session.query(Member).one()
            assert member.thomas_id == '02201'
            assert member.website_url == 'https://a.gov'

    def test_invalid_state_is_record_error(self, db, repository):
        with db.get_session() as session:
            with pytest.raises(RecordError):
                repository.upsert_member(session, member_record(state_code='ZZ'))

    def test_senator_has_no_district(self, db, repository):
        with db.get_session() as session:
            repository.upsert_member(session, member_record(chamber='senate', district='AL'))
        with db.get_session() as session:
            assert session.query(Member).one().district is None

    def test_deactivate_members_not_in(self, db, repository):
        with db.get_session() as session:
            repository.upsert_member(session, member_record(bioguide_id='A1'))
            repository.upsert_member(session, member_record(bioguide_id='B1'))
        with db.get_session() as session:
            assert repository.deactivate_members_not_in(session, {'A1'}) == 1
        with db.get_session() as session:
            active = {m.bioguide_id: m.is_active for m in session.query(Member)}
            assert active == {'A1': True, 'B1': False}


class TestBills:
    """Test two-phase bill writes."""

    def test_identity_upsert_is_idempotent(self, db, repository):
        record = BillRecord(118, 'hr', 153, title='Original', latest_action='Introduced')
        with db.get_session() as session:
            assert repository.upsert_bill_identity(session, record) is True
        record.title = 'Renamed'
        with db.get_session() as session:
            assert repository.upsert_bill_identity(session, record) is False
        with db.get_session() as session:
            bill = session.query(Bill).one()
            assert bill.title == 'Renamed'

    def test_enrichment_only_replaces_non_null(self, db, repository):
        record = BillRecord(118, 's', 5, title='T')
        with db.get_session() as session:
            add_member(session, 'C001098', 'Republican', 'TX', chamber='senate', last_name='Cruz')
            repository.upsert_bill_identity(session, record)
            repository.merge_bill_enrichment(session, record, BillEnrichment(
                introduced_date=date(2023, 1, 23), sponsor_bioguide_id='C001098',
                policy_area='Taxation', summary='First summary', subjects=['Income tax', 'Tax credits'],
            ))
        with db.get_session() as session:
            repository.merge_bill_enrichment(session, record, BillEnrichment(summary=None, subjects=[]))
        with db.get_session() as session:
            bill = session.query(Bill).one()
            assert bill.summary == 'First summary'
            assert bill.introduced_date == date(2023, 1, 23)
            assert bill.sponsor_id == session.query(Member.id).filter(Member.bioguide_id == 'C001098').scalar()
            assert session.get(PolicyArea, bill.primary_policy_area_id).name == 'Taxation'
            assert sorted(s.subject for s in session.query(BillSubject)) == ['Income tax', 'Tax credits']

    def test_unknown_sponsor_leaves_sponsor_unset(self, db, repository):
        record = BillRecord(118, 'hr', 1)
        with db.get_session() as session:
            repository.upsert_bill_identity(session, record)
            repository.merge_bill_enrichment(session, record, BillEnrichment(sponsor_bioguide_id='NOPE'))
        with db.get_session() as session:
            assert session.query(Bill).one().sponsor_id is None

    def test_enrichment_without_identity_is_record_error(self, db, repository):
        with db.get_session() as session:
            with pytest.raises(RecordError):
                repository.merge_bill_enrichment(session, BillRecord(118, 'hr', 9), BillEnrichment())

    def test_replace_subjects(self, db, repository):
        with db.get_session() as session:
            repository.upsert_bill_identity(session, BillRecord(118, 'hr', 2))
            bill_id = repository.find_bill_id(session, 118, 'HR', 2)
            repository.replace_bill_subjects(session, bill_id, ['A', 'B'])
            assert repository.replace_bill_subjects(session, bill_id, ['B', 'C', 'C']) == 2
        with db.get_session() as session:
            assert sorted(s.subject for s in session.query(BillSubject)) == ['B', 'C']

    def test_policy_area_created_once(self, db, repository):
        with db.get_session() as session:
            first = repository.get_or_create_policy_area(session, 'Health')
            second = repository.get_or_create_policy_area(session, 'Health')
            assert first == second
            assert session.query(PolicyArea).count() == 1


class TestHouseScenario:
    """Roll call with 3 yea / 2 nay across two Republicans and three Democrats."""

    def test_roll_call_votes_and_breakdown(self, house_members, repository):
        db = house_members
        record = parse_house_rollcall_xml(HOUSE_ROLLCALL_XML)
        with db.get_session() as session:
            roll_call_id, inserted = repository.upsert_roll_call(session, record)
            votes = repository.upsert_house_votes(session, roll_call_id, record)
            breakdown = repository.compute_party_breakdown(session, roll_call_id)

        assert inserted is True
        assert votes.inserted == 5
        assert votes.skipped == 0
        assert breakdown == {'republican_yea': 2, 'republican_nay': 0, 'democrat_yea': 1, 'democrat_nay': 2}

        with db.get_session() as session:
            roll_call = session.query(RollCall).one()
            assert (roll_call.yea_total, roll_call.nay_total) == (3, 2)
            assert (roll_call.republican_yea, roll_call.republican_nay) == (2, 0)
            assert (roll_call.democrat_yea, roll_call.democrat_nay) == (1, 2)
            assert session.query(Vote).count() == 5

    def test_second_write_inserts_nothing(self, house_members, repository):
        db = house_members
        record = parse_house_rollcall_xml(HOUSE_ROLLCALL_XML)
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            repository.upsert_house_votes(session, roll_call_id, record)
        with db.get_session() as session:
            again_id, inserted = repository.upsert_roll_call(session, record)
            votes = repository.upsert_house_votes(session, again_id, record)

        assert again_id == roll_call_id
        assert inserted is False
        assert votes.inserted == 0
        assert votes.updated == 5
        with db.get_session() as session:
            assert session.query(RollCall).count() == 1
            assert session.query(Vote).count() == 5

    def test_roll_call_links_synced_bill(self, house_members, repository):
        db = house_members
        with db.get_session() as session:
            repository.upsert_bill_identity(session, BillRecord(118, 'hr', 153))
        record = parse_house_rollcall_xml(HOUSE_ROLLCALL_XML)
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            repository.upsert_house_votes(session, roll_call_id, record)
        with db.get_session() as session:
            bill_id = repository.find_bill_id(session, 118, 'hr', 153)
            assert session.get(RollCall, roll_call_id).bill_id == bill_id
            assert {v.bill_id for v in session.query(Vote)} == {bill_id}

    def test_unknown_members_are_skipped_and_sampled(self, db, repository):
        record = RollCallRecord(118, 'house', 1, 9, date(2023, 1, 9), member_votes=[
            MemberVote(position='Yea', bioguide_id=f"X{i:06d}") for i in range(12)
        ])
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            votes = repository.upsert_house_votes(session, roll_call_id, record)
        assert votes.skipped == 12
        assert votes.inserted == 0
        assert len(votes.missing_ids) == 10

    def test_breakdown_with_no_votes_is_zero(self, db, repository):
        record = RollCallRecord(118, 'house', 1, 10, date(2023, 1, 9))
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            breakdown = repository.compute_party_breakdown(session, roll_call_id)
        assert set(breakdown.values()) == {0}

    def test_literal_positions_are_stored_but_not_counted(self, house_members, repository):
        db = house_members
        record = RollCallRecord(118, 'house', 1, 2, date(2023, 1, 3), member_votes=[
            MemberVote(position='Jeffries', bioguide_id='D000001'),
            MemberVote(position='McCarthy', bioguide_id='R000001'),
        ])
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            repository.upsert_house_votes(session, roll_call_id, record)
            breakdown = repository.compute_party_breakdown(session, roll_call_id)
        assert set(breakdown.values()) == {0}
        with db.get_session() as session:
            assert sorted(v.position for v in session.query(Vote)) == ['Jeffries', 'McCarthy']


class TestSenateVotes:
    """Test Senate member matching."""

    def test_matches_by_lis_id_then_name_and_state(self, senators, repository):
        db = senators
        record = parse_senate_rollcall_xml(SENATE_ROLLCALL_XML, 118, 1)
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            votes = repository.upsert_senate_votes(session, roll_call_id, record)
            breakdown = repository.compute_party_breakdown(session, roll_call_id)

        # Green (S400) is not in the members table
        assert votes.inserted == 3
        assert votes.skipped == 1
        assert votes.missing_ids == ['S400']
        assert breakdown == {'republican_yea': 2, 'republican_nay': 0, 'democrat_yea': 0, 'democrat_nay': 1}

        with db.get_session() as session:
            jones = session.query(Member).filter(Member.bioguide_id == 'J000001').one()
            assert jones.lis_id == 'S200'


class TestBackfillAndMetadata:
    def test_backfill_only_touches_missing_breakdowns(self, house_members, repository):
        db = house_members
        record = parse_house_rollcall_xml(HOUSE_ROLLCALL_XML)
        with db.get_session() as session:
            roll_call_id, _ = repository.upsert_roll_call(session, record)
            repository.upsert_house_votes(session, roll_call_id, record)
            repository.upsert_roll_call(session, RollCallRecord(118, 'house', 1, 43, date(2023, 7, 14)))
        with db.get_session() as session:
            result = repository.backfill_party_breakdowns(session)
        assert result.to_dict() == {'updated': 2, 'errors': 0}
        with db.get_session() as session:
            assert repository.backfill_party_breakdowns(session).updated == 0
            assert session.get(RollCall, roll_call_id).democrat_nay == 2

    def test_sync_metadata(self, db, repository):
        when = datetime(2024, 3, 1, 12, 0, 0)
        with db.get_session() as session:
            assert repository.get_last_sync(session, 'members') is None
            repository.mark_synced(session, 'members', when)
        with db.get_session() as session:
            assert repository.get_last_sync(session, 'members') == when
            repository.mark_synced(session, 'members', datetime(2024, 3, 2))
        with db.get_session() as session:
            assert repository.get_last_sync(session, 'members') == datetime(2024, 3, 2)

    def test_max_roll_call_number(self, db, repository):
        with db.get_session() as session:
            assert repository.max_roll_call_number(session, 118, 'senate', 1) == 0
            for n in (3, 17, 5):
                repository.upsert_roll_call(session, RollCallRecord(118, 'senate', 1, n, date(2023, 2, 1)))
            repository.upsert_roll_call(session, RollCallRecord(118, 'senate', 2, 99, date(2024, 2, 1)))
        with db.get_session() as session:
            assert repository.max_roll_call_number(session, 118, 'senate', 1) == 17
            assert repository.roll_call_exists(session, 118, 'senate', 2, 99)
            assert not repository.roll_call_exists(session, 118, 'house', 2, 99)
