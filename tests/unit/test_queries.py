"""Unit tests for the read-side queries."""

from datetime import date
from unittest.mock import Mock

import pytest

from congress_sync import queries
from congress_sync.etl.house_clerk import parse_house_rollcall_xml
from congress_sync.etl.records import BillEnrichment, BillRecord, DistrictResult
from congress_sync.models import Member

from conftest import HOUSE_ROLLCALL_XML, add_member


@pytest.fixture
def populated(house_members, repository):
    """House members, two California senators, HR 153 and its roll call."""
    db = house_members
    with db.get_session() as session:
        add_member(session, 'P000145', 'Democrat', 'CA', chamber='senate', last_name='Padilla')
        add_member(session, 'B001287', 'Democrat', 'CA', chamber='senate', last_name='Butler')
        retired = add_member(session, 'X000001', 'Republican', 'CA', district='12', last_name='Former')
        retired.is_active = False

        record = BillRecord(congress=118, bill_type='hr', bill_number=153, title='Keep It Simple Act',
                            latest_action='Passed House', latest_action_date=date(2023, 7, 13))
        repository.upsert_bill_identity(session, record)
        repository.upsert_bill_identity(session, BillRecord(congress=118, bill_type='s', bill_number=5,
                                                            title='Senate bill',
                                                            latest_action_date=date(2023, 1, 20)))
        repository.merge_bill_enrichment(session, record, BillEnrichment(
            sponsor_bioguide_id='R000001', policy_area='Taxation', summary='Summary',
            subjects=['Income tax', 'Appropriations'],
        ))

        roll_call = parse_house_rollcall_xml(HOUSE_ROLLCALL_XML)
        roll_call_id, _ = repository.upsert_roll_call(session, roll_call)
        repository.upsert_house_votes(session, roll_call_id, roll_call)
        repository.compute_party_breakdown(session, roll_call_id)
    return db


class TestMembers:
    def test_list_filters_and_meta(self, populated):
        with populated.get_session() as session:
            page = queries.list_members(session, state='ca', limit=2)
        assert page['meta'] == {'total': 3, 'limit': 2, 'offset': 0, 'has_more': True}
        assert [m['bioguide_id'] for m in page['data']] == ['B001287', 'D000001']

    def test_list_includes_inactive_on_request(self, populated):
        with populated.get_session() as session:
            page = queries.list_members(session, state='CA', chamber='house', active=None)
        assert page['meta']['total'] == 2

    def test_limit_is_capped(self, populated):
        with populated.get_session() as session:
            page = queries.list_members(session, limit=1000)
        assert page['meta']['limit'] == queries.MAX_PAGE_SIZE

    def test_get_member_by_bioguide_and_id(self, populated):
        with populated.get_session() as session:
            by_bioguide = queries.get_member(session, 'R000001')
            by_id = queries.get_member(session, by_bioguide['id'])
        assert by_bioguide == by_id
        assert by_bioguide['total_votes'] == 1
        assert by_bioguide['current_term_start'] == '2023-01-03'

    def test_get_member_unknown(self, populated):
        with populated.get_session() as session:
            assert queries.get_member(session, 'Z999999') is None


class TestMembersByZip:
    def test_house_member_and_senators(self, populated):
        resolver = Mock()
        resolver.resolve.return_value = DistrictResult('CA', '12', 'cache')
        with populated.get_session() as session:
            result = queries.get_members_by_zip(session, resolver, '94110-1234')
        assert (result['zip_code'], result['state_code'], result['district']) == ('94110', 'CA', '12')
        assert [(r['chamber'], r['member']['bioguide_id']) for r in result['representatives']] == [
            ('senate', 'B001287'), ('senate', 'P000145'), ('house', 'D000001'),
        ]

    def test_unresolved_zip(self, populated):
        resolver = Mock()
        resolver.resolve.return_value = None
        with populated.get_session() as session:
            assert queries.get_members_by_zip(session, resolver, '00000') is None


class TestBillsAndRollCalls:
    def test_list_bills_newest_action_first(self, populated):
        with populated.get_session() as session:
            page = queries.list_bills(session, congress=118)
        assert [(b['bill_type'], b['bill_number']) for b in page['data']] == [('hr', 153), ('s', 5)]

    def test_list_bills_by_policy_area(self, populated):
        with populated.get_session() as session:
            page = queries.list_bills(session, policy_area='Taxation')
        assert page['meta']['total'] == 1

    def test_get_bill_detail(self, populated):
        with populated.get_session() as session:
            bill = queries.get_bill(session, 118, 'HR', 153)
        assert bill['sponsor']['bioguide_id'] == 'R000001'
        assert bill['policy_area'] == 'Taxation'
        assert bill['subjects'] == ['Appropriations', 'Income tax']
        assert len(bill['roll_calls']) == 1
        assert bill['roll_calls'][0]['party_breakdown'] == {
            'republican_yea': 2, 'republican_nay': 0, 'democrat_yea': 1, 'democrat_nay': 2,
        }

    def test_get_bill_unknown(self, populated):
        with populated.get_session() as session:
            assert queries.get_bill(session, 118, 'hr', 9999) is None

    def test_list_roll_calls(self, populated):
        with populated.get_session() as session:
            page = queries.list_roll_calls(session, congress=118, chamber='house')
            assert page['meta']['total'] == 1
            assert page['data'][0]['totals'] == {'yea': 3, 'nay': 2, 'present': 0, 'not_voting': 0}
            assert queries.list_roll_calls(session, chamber='senate')['data'] == []
            assert session.query(Member).count() == 8
