"""Shared fixtures: in-memory database, repository, canned source documents."""

from datetime import date
from unittest.mock import Mock

import pytest

from congress_sync.etl.repository import EntityRepository
from congress_sync.models import Member
from congress_sync.utils.database import DatabaseManager


HOUSE_ROLLCALL_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rollcall-vote>
  <vote-metadata>
    <majority>R</majority>
    <congress>118</congress>
    <session>1st</session>
    <chamber>U.S. House of Representatives</chamber>
    <rollcall-num>42</rollcall-num>
    <legis-num>H R 153</legis-num>
    <vote-question>On Passage</vote-question>
    <vote-type>YEA-AND-NAY</vote-type>
    <vote-result>Passed</vote-result>
    <action-date>13-Jul-2023</action-date>
    <vote-totals>
      <totals-by-vote>
        <total-stub>Totals</total-stub>
        <yea-total>3</yea-total>
        <nay-total>2</nay-total>
        <present-total>0</present-total>
        <not-voting-total>0</not-voting-total>
      </totals-by-vote>
    </vote-totals>
  </vote-metadata>
  <vote-data>
    <recorded-vote><legislator name-id="R000001" party="R" state="TX" role="legislator">Roberts</legislator><vote>Yea</vote></recorded-vote>
    <recorded-vote><legislator name-id="R000002" party="R" state="OH" role="legislator">Reed</legislator><vote>Aye</vote></recorded-vote>
    <recorded-vote><legislator name-id="D000001" party="D" state="CA" role="legislator">Diaz</legislator><vote>Yea</vote></recorded-vote>
    <recorded-vote><legislator name-id="D000002" party="D" state="NY" role="legislator">Dunn</legislator><vote>Nay</vote></recorded-vote>
    <recorded-vote><legislator name-id="D000003" party="D" state="IL" role="legislator">Davis</legislator><vote>No</vote></recorded-vote>
  </vote-data>
</rollcall-vote>
"""

SENATE_ROLLCALL_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<roll_call_vote>
  <congress>118</congress>
  <session>1</session>
  <congress_year>2023</congress_year>
  <vote_number>5</vote_number>
  <vote_date>January 26, 2023,  11:52 AM</vote_date>
  <vote_question_text>On the Motion to Table</vote_question_text>
  <vote_result>Motion to Table Agreed to</vote_result>
  <document>
    <document_congress>118</document_congress>
    <document_type>S.</document_type>
    <document_number>5</document_number>
    <document_name>S. 5</document_name>
  </document>
  <count>
    <yeas>2</yeas>
    <nays>1</nays>
    <present/>
    <absent>1</absent>
  </count>
  <members>
    <member>
      <member_full>Smith (R-TX)</member_full>
      <last_name>Smith</last_name>
      <first_name>John</first_name>
      <party>R</party>
      <state>TX</state>
      <vote_cast>Yea</vote_cast>
      <lis_member_id>S100</lis_member_id>
    </member>
    <member>
      <member_full>Jones (R-OH)</member_full>
      <last_name>Jones</last_name>
      <first_name>Mary</first_name>
      <party>R</party>
      <state>OH</state>
      <vote_cast>Yea</vote_cast>
      <lis_member_id>S200</lis_member_id>
    </member>
    <member>
      <member_full>Brown (D-MA)</member_full>
      <last_name>Brown</last_name>
      <first_name>Ann</first_name>
      <party>D</party>
      <state>MA</state>
      <vote_cast>Nay</vote_cast>
      <lis_member_id>S300</lis_member_id>
    </member>
    <member>
      <member_full>Green (D-WA)</member_full>
      <last_name>Green</last_name>
      <first_name>Paul</first_name>
      <party>D</party>
      <state>WA</state>
      <vote_cast>Not Voting</vote_cast>
      <lis_member_id>S400</lis_member_id>
    </member>
  </members>
</roll_call_vote>
"""


@pytest.fixture(autouse=True)
def aws_region(monkeypatch):
    """boto3 clients need a region even when fully mocked."""
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def db():
    """Fresh in-memory SQLite database with the full schema."""
    manager = DatabaseManager('sqlite://')
    manager.create_all()
    yield manager
    manager.dispose()


@pytest.fixture
def repository():
    return EntityRepository()


def add_member(session, bioguide_id, party, state_code, chamber='house', district='1',
               last_name='Member', lis_id=None):
    member = Member(
        bioguide_id=bioguide_id,
        first_name='Test',
        last_name=last_name,
        full_name=f"Test {last_name}",
        party=party,
        state_code=state_code,
        chamber=chamber,
        district=district if chamber == 'house' else None,
        current_term_start=date(2023, 1, 3),
        lis_id=lis_id,
        is_active=True,
    )
    session.add(member)
    session.flush()
    return member


@pytest.fixture
def house_members(db):
    """Two Republicans and three Democrats matching HOUSE_ROLLCALL_XML."""
    with db.get_session() as session:
        add_member(session, 'R000001', 'Republican', 'TX', district='7', last_name='Roberts')
        add_member(session, 'R000002', 'Republican', 'OH', district='3', last_name='Reed')
        add_member(session, 'D000001', 'Democrat', 'CA', district='12', last_name='Diaz')
        add_member(session, 'D000002', 'Democrat', 'NY', district='10', last_name='Dunn')
        add_member(session, 'D000003', 'Democrat', 'IL', district='AL', last_name='Davis')
    return db


@pytest.fixture
def senators(db):
    """Senators matching SENATE_ROLLCALL_XML; Jones has no LIS id yet."""
    with db.get_session() as session:
        add_member(session, 'S000001', 'Republican', 'TX', chamber='senate', last_name='Smith', lis_id='S100')
        add_member(session, 'J000001', 'Republican', 'OH', chamber='senate', last_name='Jones')
        add_member(session, 'B000001', 'Democrat', 'MA', chamber='senate', last_name='Brown', lis_id='S300')
    return db


def make_response(status_code=200, json_data=None, content=b'', text=''):
    """Mock of requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.text = text or (content.decode('utf-8') if content else '')
    if json_data is not None:
        response.json.return_value = json_data
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    return response
