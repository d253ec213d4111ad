"""Unit tests for the bulk ZIP district loader."""

from unittest.mock import Mock

import pytest
import requests

from congress_sync.etl.errors import RecordError, SourceFetchError
from congress_sync.etl.zip_district_loader import (
    ZipDistrictLoader, download_zip_district_csv, parse_zip_district_csv, validate_state_codes
)
from congress_sync.models import ZipDistrict

from conftest import make_response

ZCCD_CSV = """state_fips,state_abbr,zcta,cd
06,CA,94110,12
06,CA,94110,11
02,AK,99501,0
56,WY,82001,00
50,VT,5401,
36,ny,10001,07
36,NY,10001,7
"""


class TestParse:
    """Test CSV parsing and normalization."""

    def test_parse_normalizes_rows(self):
        records = parse_zip_district_csv(ZCCD_CSV)
        rows = list(records.itertuples(index=False, name=None))
        assert rows == [
            ('94110', 'CA', '12'),
            ('94110', 'CA', '11'),
            ('99501', 'AK', 'AL'),
            ('82001', 'WY', 'AL'),
            ('05401', 'VT', 'AL'),
            ('10001', 'NY', '7'),
        ]

    def test_parse_from_path(self, tmp_path):
        path = tmp_path / 'zccd.csv'
        path.write_text(ZCCD_CSV)
        assert len(parse_zip_district_csv(str(path))) == 6

    def test_missing_column_raises(self):
        with pytest.raises(RecordError):
            parse_zip_district_csv("state_abbr,zcta\nCA,94110\n")

    def test_validate_state_codes(self):
        records = parse_zip_district_csv(ZCCD_CSV + "99,ZZ,00001,1\n")
        assert validate_state_codes(records) == ['ZZ']


class TestDownload:
    def test_download_returns_text(self):
        session = Mock(spec=requests.Session, headers={})
        session.get.return_value = make_response(200, content=b'abc', text=ZCCD_CSV)
        assert download_zip_district_csv('https://example.test/zccd.csv', session=session) == ZCCD_CSV

    def test_download_failure_raises(self):
        session = Mock(spec=requests.Session, headers={})
        session.get.return_value = make_response(404, text='not found')
        with pytest.raises(SourceFetchError):
            download_zip_district_csv('https://example.test/zccd.csv', session=session)

    def test_transport_failure_raises(self):
        session = Mock(spec=requests.Session, headers={})
        session.get.side_effect = requests.ConnectionError('refused')
        with pytest.raises(SourceFetchError):
            download_zip_district_csv('https://example.test/zccd.csv', session=session)


class TestZipDistrictLoader:
    """Test batched, idempotent loading."""

    def test_ingest_inserts_each_row_once(self, db):
        loader = ZipDistrictLoader(db, batch_size=4)
        first = loader.run(ZCCD_CSV)
        assert first == {'inserted': 6, 'skipped': 0, 'errors': 0, 'mode': 'ingest'}

        second = loader.run(ZCCD_CSV)
        assert (second['inserted'], second['skipped']) == (0, 6)
        with db.get_session() as session:
            assert session.query(ZipDistrict).count() == 6

    def test_multi_district_zip_keeps_every_row(self, db):
        ZipDistrictLoader(db).run(ZCCD_CSV)
        with db.get_session() as session:
            districts = sorted(z.district_number for z in
                               session.query(ZipDistrict).filter(ZipDistrict.zip_code == '94110'))
        assert districts == ['11', '12']

    def test_validate_only_writes_nothing(self, db):
        result = ZipDistrictLoader(db).run(ZCCD_CSV, validate_only=True)
        assert result == {
            'mode': 'validate',
            'total_records': 6,
            'invalid_state_codes': [],
            'validation_passed': True,
        }
        with db.get_session() as session:
            assert session.query(ZipDistrict).count() == 0
