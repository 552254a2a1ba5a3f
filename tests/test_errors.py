"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from sqlalchemy.exc import OperationalError

from conftest import utc
from signal_app.core.errors import (
    DayNotFoundError,
    DayNotReopenableError,
    EntryAlreadyFinalError,
    EntryNotFoundError,
    FutureTimestampError,
    InvalidDurationError,
    MissingFieldError,
    StoreError,
    TimerAlreadyRunningError,
    TimerNotRunningError,
)
from signal_app.db.base import atomic
from signal_app.models.day import Day


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_missing_field(self):
        err = MissingFieldError("content")
        assert err.http_status == 422
        assert err.code == "VALIDATION_ERROR"
        assert err.to_dict()["details"] == {"field": "content"}

    def test_future_timestamp(self):
        err = FutureTimestampError("sleep_time", utc(2030, 1, 1))
        assert err.http_status == 422
        assert err.code == "FUTURE_TIMESTAMP"
        assert err.details["value"] == "2030-01-01T00:00:00+00:00"

    def test_invalid_duration(self):
        err = InvalidDurationError(-4)
        assert err.http_status == 422
        assert err.code == "INVALID_DURATION"
        assert "-4" in err.message

    def test_not_found(self):
        assert DayNotFoundError(3).http_status == 404
        assert DayNotFoundError(3).details == {"day_id": 3}
        assert EntryNotFoundError(8).code == "ENTRY_NOT_FOUND"

    def test_conflicts(self):
        for err in (
            DayNotReopenableError(1, "another day is still open"),
            EntryAlreadyFinalError(2),
            TimerAlreadyRunningError(5),
            TimerNotRunningError(),
        ):
            assert err.http_status == 409
        assert "another day is still open" in DayNotReopenableError(1, "another day is still open").message

    def test_store_error(self):
        err = StoreError("Failed to open day.", operation="open day")
        assert err.http_status == 500
        assert err.to_dict() == {
            "code": "STORE_ERROR",
            "message": "Failed to open day.",
            "details": {"operation": "open day"},
        }

    def test_to_dict_without_details(self):
        d = TimerNotRunningError().to_dict()
        assert set(d) == {"code", "message"}


# ---------------------------------------------------------------------------
# atomic() unit of work
# ---------------------------------------------------------------------------

class TestAtomic:
    def test_commits_on_success(self, db):
        with atomic(db, "add day"):
            db.add(Day(wake_time=utc(2024, 3, 15, 8), signal_total=0, wasted_total=0))
        assert db.query(Day).count() == 1

    def test_rolls_back_domain_errors(self, db):
        with pytest.raises(DayNotFoundError):
            with atomic(db, "add day"):
                db.add(Day(wake_time=utc(2024, 3, 15, 8), signal_total=0, wasted_total=0))
                db.flush()
                raise DayNotFoundError(1)
        assert db.query(Day).count() == 0

    def test_wraps_database_errors(self, db):
        with pytest.raises(StoreError) as exc_info:
            with atomic(db, "add day"):
                db.add(Day(wake_time=utc(2024, 3, 15, 8), signal_total=0, wasted_total=0))
                db.flush()
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        assert exc_info.value.details == {"operation": "add day"}
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert db.query(Day).count() == 0

    def test_check_constraint_surfaces_as_store_error(self, db):
        with pytest.raises(StoreError):
            with atomic(db, "add day"):
                db.add(Day(wake_time=utc(2024, 3, 15, 8), signal_total=-1, wasted_total=0))


# ---------------------------------------------------------------------------
# Error envelopes over HTTP
# ---------------------------------------------------------------------------

class TestErrorEnvelopes:
    def test_404_envelope(self, client):
        r = client.get("/days/42")
        assert r.status_code == 404
        body = r.json()
        assert body["code"] == "DAY_NOT_FOUND"
        assert "42" in body["message"]

    def test_request_validation_envelope(self, client):
        r = client.post("/entries", json={"content": "work", "quality": "stellar"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "quality"

    def test_invalid_order_param(self, client):
        r = client.get("/entries", params={"day_id": 1, "order": "sideways"})
        assert r.status_code == 422
        assert r.json()["details"]["errors"][0]["field"] == "query.order"

    def test_409_envelope(self, client):
        r = client.post("/timer/stop")
        assert r.status_code == 409
        assert r.json() == {"code": "TIMER_NOT_RUNNING", "message": "No timer session is active."}

    def test_openapi_documents_error_envelope(self, client):
        schema = client.get("/openapi.json").json()
        assert "ErrorResponse" in schema["components"]["schemas"]
        not_found = schema["paths"]["/days/{day_id}"]["get"]["responses"]["404"]
        assert not_found["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
