"""Unit tests for the database manager."""

import pytest

from congress_sync.etl.errors import ConfigurationError
from congress_sync.models import PolicyArea
from congress_sync.utils import database
from congress_sync.utils.database import DatabaseManager


class TestDatabaseManager:
    def test_session_commits(self, db):
        with db.get_session() as session:
            session.add(PolicyArea(name='Health'))
        with db.get_session() as session:
            assert session.query(PolicyArea).count() == 1

    def test_session_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.get_session() as session:
                session.add(PolicyArea(name='Health'))
                session.flush()
                raise RuntimeError('boom')
        with db.get_session() as session:
            assert session.query(PolicyArea).count() == 0

    def test_connection(self, db):
        assert db.test_connection() is True

    def test_url_required(self, monkeypatch):
        monkeypatch.delenv('DATABASE_URL', raising=False)
        with pytest.raises(ConfigurationError):
            DatabaseManager()

    def test_create_all_drop_existing(self, db):
        with db.get_session() as session:
            session.add(PolicyArea(name='Health'))
        db.create_all(drop_existing=True)
        with db.get_session() as session:
            assert session.query(PolicyArea).count() == 0


class TestGlobalManager:
    @pytest.fixture(autouse=True)
    def reset_global(self, monkeypatch):
        monkeypatch.setattr(database, '_db_manager', None)
        yield
        if database._db_manager is not None:
            database._db_manager.dispose()

    def test_init_db_replaces_manager(self):
        first = database.init_db('sqlite://')
        second = database.init_db('sqlite://')
        assert first is not second
        assert database.get_db_manager() is second

    def test_get_db_manager_reads_environment(self, monkeypatch):
        monkeypatch.setenv('DATABASE_URL', 'sqlite://')
        manager = database.get_db_manager()
        manager.create_all()
        with database.get_db_session() as session:
            assert session.query(PolicyArea).count() == 0
