"""
Record store tests: typed reads, named lists and store error classification
"""
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from voterdesk.errors import Conflict, NotFound, StoreError, StoreErrorKind
from voterdesk.models import Message
from voterdesk.schemas import UserCreate, VoterCandidate
from voterdesk.store import DEFAULT_ISLANDS, DEFAULT_PARTIES, classify_store_error, to_store_error


class PgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


class TestClassifyStoreError:

    def test_sqlite_missing_table(self):
        exc = OperationalError("SELECT * FROM voters", {}, Exception("no such table: voters"))
        assert classify_store_error(exc) == (StoreErrorKind.MISSING_TABLE, "voters", None)

    def test_postgres_missing_table_by_code(self):
        exc = ProgrammingError("SELECT", {}, PgError('relation "tasks" does not exist', "42P01"))
        kind, table, _ = classify_store_error(exc)
        assert (kind, table) == (StoreErrorKind.MISSING_TABLE, "tasks")

    def test_sqlite_missing_column(self):
        exc = OperationalError("INSERT", {}, Exception("table voters has no column named notes"))
        kind, _, column = classify_store_error(exc)
        assert (kind, column) == (StoreErrorKind.MISSING_COLUMN, "notes")

    def test_postgres_missing_column(self):
        exc = ProgrammingError("SELECT", {}, PgError("column voters.gender does not exist", "42703"))
        kind, _, column = classify_store_error(exc)
        assert (kind, column) == (StoreErrorKind.MISSING_COLUMN, "gender")

    def test_permission_denied(self):
        exc = ProgrammingError(
            "DELETE", {}, PgError('new row violates row-level security policy for table "messages"', "42501")
        )
        assert classify_store_error(exc)[0] == StoreErrorKind.PERMISSION_DENIED

    def test_integrity_error_is_constraint(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.username"))
        assert classify_store_error(exc)[0] == StoreErrorKind.CONSTRAINT

    def test_anything_else_is_unavailable(self):
        exc = OperationalError("SELECT 1", {}, Exception("could not connect to server"))
        assert classify_store_error(exc)[0] == StoreErrorKind.UNAVAILABLE

    def test_remediation_for_missing_column_has_alter_table(self):
        exc = OperationalError("INSERT", {}, Exception("table voters has no column named notes"))
        error = to_store_error(exc)
        assert error.status_code == 503
        assert "ALTER TABLE voters ADD COLUMN notes" in error.remediation

    def test_remediation_for_permissions(self):
        exc = ProgrammingError("DELETE", {}, PgError("permission denied for table voters", "42501"))
        error = to_store_error(exc)
        assert error.status_code == 403
        assert "GRANT" in error.remediation


class TestMissingTable:

    def test_dropped_table_reports_setup_sql(self, store, db_session):
        Message.__table__.drop(db_session.get_bind())
        with pytest.raises(StoreError) as exc_info:
            store.list_messages(10)
        error = exc_info.value
        assert error.kind == StoreErrorKind.MISSING_TABLE
        assert "CREATE TABLE IF NOT EXISTS messages" in error.remediation
        assert error.to_dict()["details"]["kind"] == "missing_table"

    def test_store_usable_after_failure(self, store, db_session):
        Message.__table__.drop(db_session.get_bind())
        with pytest.raises(StoreError):
            store.list_messages(10)
        assert store.list_voters() == []


class TestNamedLists:

    def test_defaults_when_empty(self, store):
        assert store.list_islands() == DEFAULT_ISLANDS
        assert store.list_parties() == DEFAULT_PARTIES

    def test_stored_list_replaces_defaults(self, store):
        store.add_island("Kudafari")
        store.add_island("Hulhumale")
        assert store.list_islands() == ["Hulhumale", "Kudafari"]

    def test_duplicate_name_conflicts(self, store):
        store.add_party("MDP")
        with pytest.raises(Conflict):
            store.add_party("MDP")

    def test_delete_unknown_name(self, store):
        with pytest.raises(NotFound):
            store.delete_island("Atlantis")


class TestRecords:

    def test_voter_round_trip_is_typed(self, store):
        created = store.create_voter(VoterCandidate(
            id_card_number="A000001", full_name="Ali", gender="Male", address="Blue House", island="Male",
        ))
        fetched = store.get_voter(created.id)
        assert fetched.full_name == "Ali"
        assert fetched.has_voted is False
        assert fetched.created_at > 0

    def test_update_voter_touches_updated_at(self, store):
        created = store.create_voter(VoterCandidate(
            id_card_number="A000002", full_name="Ali", gender="Male", address="x", island="Male",
        ))
        updated = store.update_voter(created.id, {"has_voted": True})
        assert updated.has_voted is True
        assert updated.updated_at >= created.updated_at

    def test_unknown_voter(self, store):
        with pytest.raises(NotFound):
            store.get_voter("missing")

    def test_duplicate_username(self, store):
        req = UserCreate(username="ali", password="pw", full_name="Ali", role="user")
        store.create_user(req)
        with pytest.raises(Conflict):
            store.create_user(req)

    def test_messages_latest_in_chronological_order(self, store, db_session, make_user):
        author = make_user()
        for i in range(5):
            db_session.add(Message(user_id=author.id, user_name=author.full_name, content=f"m{i}", created_at=1000 + i))
        db_session.commit()
        assert [m.content for m in store.list_messages(3)] == ["m2", "m3", "m4"]

    def test_election_settings_default_to_zero(self, store):
        config = store.get_election_settings()
        assert (config.election_start, config.election_end) == (0, 0)
