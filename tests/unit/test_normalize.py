"""Unit tests for shared normalization: legislative numbers, positions, dates, states."""

from datetime import date

import pytest

from congress_sync.etl.normalize import (
    leading_int, normalize_party, normalize_vote_position, parse_iso_date,
    parse_legis_num, parse_vote_date
)
from congress_sync.utils.states import normalize_district, normalize_state_code


class TestParseLegisNum:
    """Test bill references extracted from free-text legislative numbers."""

    @pytest.mark.parametrize('text,bill_type,number', [
        ('H R 153', 'hr', 153),
        ('H RES 24', 'hres', 24),
        ('S J RES 1', 'sjres', 1),
        ('H CON RES 5', 'hconres', 5),
        ('S 5', 's', 5),
        ('S. 5', 's', 5),
        ('H.R. 153', 'hr', 153),
        ('S.J.Res. 1', 'sjres', 1),
        ('H J RES 7', 'hjres', 7),
        ('S CON RES 3', 'sconres', 3),
        ('HRES 24', 'hres', 24),
    ])
    def test_parses_bill_types(self, text, bill_type, number):
        ref = parse_legis_num(text)
        assert ref is not None
        assert (ref.bill_type, ref.bill_number) == (bill_type, number)

    @pytest.mark.parametrize('text', [
        'QUORUM', 'JOURNAL', 'MOTION TO ADJOURN', 'ADJOURN', '', None, 'Speaker election',
    ])
    def test_procedural_and_unparsable_have_no_bill(self, text):
        assert parse_legis_num(text) is None


class TestNormalizeVotePosition:
    """Test mapping of source vote strings."""

    @pytest.mark.parametrize('raw,expected', [
        ('Aye', 'Yea'), ('Yes', 'Yea'), ('yea', 'Yea'), ('Yea', 'Yea'),
        ('No', 'Nay'), ('nay', 'Nay'),
        ('present', 'Present'), ('Present', 'Present'),
        ('not voting', 'Not Voting'), ('Not-Voting', 'Not Voting'),
        ('absent', 'Not Voting'), ('abstain', 'Not Voting'),
        ('', 'Not Voting'), ('   ', 'Not Voting'), (None, 'Not Voting'),
    ])
    def test_known_positions(self, raw, expected):
        assert normalize_vote_position(raw) == expected

    def test_unknown_text_passes_through(self):
        assert normalize_vote_position('Jeffries') == 'Jeffries'

    @pytest.mark.parametrize('raw', ['Present/Not Voting', 'Y', 'n'])
    def test_ambiguous_labels_pass_through(self, raw):
        assert normalize_vote_position(raw) == raw

    def test_strict_maps_unknown_to_not_voting(self):
        assert normalize_vote_position('Jeffries', strict=True) == 'Not Voting'


class TestDates:
    """Test vote and ISO date parsing."""

    def test_iso(self):
        assert parse_vote_date('2023-07-13') == date(2023, 7, 13)

    def test_iso_with_time(self):
        assert parse_vote_date('2023-07-13T14:30:00Z') == date(2023, 7, 13)

    def test_house_clerk_format(self):
        assert parse_vote_date('13-Jul-2023') == date(2023, 7, 13)

    def test_senate_format_with_time(self):
        assert parse_vote_date('January 26, 2023,  11:52 AM') == date(2023, 1, 26)

    def test_unparsable_falls_back_to_today(self, caplog):
        assert parse_vote_date('sometime last week') == date.today()
        assert 'using today' in caplog.text

    def test_parse_iso_date(self):
        assert parse_iso_date('2024-02-01T10:00:00Z') == date(2024, 2, 1)
        assert parse_iso_date('not a date') is None
        assert parse_iso_date(None) is None


class TestStatesAndDistricts:
    """Test state and at-large district normalization."""

    @pytest.mark.parametrize('raw', ['0', '00', '98', '', None, 'AL', 0])
    def test_at_large_codes(self, raw):
        assert normalize_district(raw) == 'AL'

    def test_numeric_district_loses_padding(self):
        assert normalize_district('07') == '7'
        assert normalize_district(12) == '12'

    @pytest.mark.parametrize('raw,expected', [
        ('CA', 'CA'), ('ca', 'CA'), ('California', 'CA'), ('north carolina', 'NC'),
        ('06', 'CA'), ('6', 'CA'), ('11', 'DC'), ('72', 'PR'),
    ])
    def test_state_codes(self, raw, expected):
        assert normalize_state_code(raw) == expected

    @pytest.mark.parametrize('raw', ['XX', 'Atlantis', '99', '', None])
    def test_unknown_states(self, raw):
        assert normalize_state_code(raw) is None


class TestMisc:
    def test_party(self):
        assert normalize_party('R') == 'Republican'
        assert normalize_party('Democratic') == 'Democrat'
        assert normalize_party('Independent') == 'Independent'
        assert normalize_party('ID') == 'Independent'
        assert normalize_party(None) == 'Independent'

    def test_leading_int(self):
        assert leading_int('1st') == 1
        assert leading_int('42') == 42
        assert leading_int(None, 7) == 7
        assert leading_int('n/a') == 0
