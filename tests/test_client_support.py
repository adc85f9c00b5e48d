"""
Client support tests: local session store, notices, API error parsing
"""
from voterdesk.client.api import ApiError
from voterdesk.client.notices import NoticeBoard
from voterdesk.client.session import SESSION_KEY, ConsoleSession, LocalStore


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestLocalStore:

    def test_set_get_remove(self, tmp_path):
        store = LocalStore(str(tmp_path / "nested" / "session.json"))
        assert store.get(SESSION_KEY) is None
        store.set(SESSION_KEY, {"token": "t"})
        store.set("other", 1)
        assert store.get(SESSION_KEY) == {"token": "t"}
        store.remove(SESSION_KEY)
        assert store.get(SESSION_KEY) is None
        assert store.get("other") == 1

    def test_unreadable_file_is_treated_as_empty(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json", encoding="utf-8")
        assert LocalStore(str(path)).get(SESSION_KEY) is None


def test_console_session_round_trip():
    session = ConsoleSession(token="t", user={"id": "u1", "role": "user"}, capabilities={"is_read_only": True})
    restored = ConsoleSession.from_dict(session.to_dict())
    assert restored == session
    assert restored.user_id == "u1"
    assert restored.role == "user"


class TestNoticeBoard:

    def test_notices_expire_after_ttl(self):
        clock = FakeClock()
        board = NoticeBoard(ttl=3.0, clock=clock)
        board.push("Record created successfully!")
        clock.now += 2.9
        assert [n.message for n in board.active()] == ["Record created successfully!"]
        clock.now += 0.2
        assert board.active() == []

    def test_error_level(self):
        board = NoticeBoard(ttl=3.0, clock=FakeClock())
        assert board.error("Failed to delete record.").level == "error"


class TestApiError:

    def test_domain_payload(self):
        error = ApiError(503, {
            "code": "STORE_MISSING_TABLE",
            "message": "Database error (missing_table)",
            "details": {"kind": "missing_table", "remediation": "CREATE TABLE ..."},
        })
        assert error.kind == "missing_table"
        assert error.remediation == "CREATE TABLE ..."
        assert str(error) == "Database error (missing_table)"

    def test_fastapi_detail_payload(self):
        error = ApiError(401, {"detail": "Token required"})
        assert error.message == "Token required"
        assert error.kind is None
        assert error.field_errors == {}

    def test_plain_text_payload(self):
        assert ApiError(500, "Internal Server Error").message == "Internal Server Error"
