"""Tests for session start/end and session listings."""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from coinledger import sessions
from coinledger.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from coinledger.extensions import db
from coinledger.models import LoginSession
from coinledger.sessions import (
    end_session,
    latest_session_for,
    list_sessions,
    parse_timestamp,
    purge_sessions,
    start_session,
)
from factories import account, at, session_row


pytestmark = pytest.mark.usefixtures("ctx")


def add(*rows):
    db.session.add_all(rows)
    db.session.commit()


class TestStartSession:
    def test_active_user_by_email(self):
        add(account("Bob", status="active"))

        s = start_session(email="BOB@example.com", sign_in_at=at(1))

        assert s.username == "Bob"
        assert s.email == "bob@example.com"
        assert s.sign_in_at == at(1)
        assert s.is_online

    def test_lookup_by_username_is_case_insensitive(self):
        add(account("Bob", status="active"))

        assert start_session(username=" bob ").username == "Bob"

    def test_approved_flag_is_enough(self):
        add(account("Eve", is_approved=True))

        assert start_session(username="eve").is_online

    def test_pending_user_rejected(self):
        add(account("Bob"))

        with pytest.raises(ForbiddenError):
            start_session(username="Bob")
        assert LoginSession.query.count() == 0

    def test_blocked_user_rejected(self):
        add(account("Bob", status="blocked"))

        with pytest.raises(ForbiddenError):
            start_session(username="Bob")

    def test_unknown_user(self):
        with pytest.raises(NotFoundError):
            start_session(email="nobody@example.com")

    def test_repeated_starts_leave_one_open_session(self):
        add(account("Bob", status="active"))

        for day in range(1, 6):
            start_session(username="Bob", sign_in_at=at(day))

        sessions = LoginSession.query.filter_by(username_key="bob").all()
        assert len(sessions) == 5
        open_sessions = [s for s in sessions if s.sign_out_at is None]
        assert len(open_sessions) == 1
        assert open_sessions[0].sign_in_at == at(5)


class TestEndSession:
    def test_sets_sign_out(self):
        add(account("Bob", status="active"))
        s = start_session(username="Bob", sign_in_at=at(1))

        ended = end_session(s.id, at(1, 15))

        assert ended.sign_out_at == at(1, 15)
        assert ended.is_online is False

    def test_string_id_accepted(self):
        add(account("Bob", status="active"))
        s = start_session(username="Bob")

        assert end_session(str(s.id)).sign_out_at is not None

    def test_invalid_id(self):
        with pytest.raises(ValidationError):
            end_session("not-a-session")

    def test_missing_session(self):
        with pytest.raises(NotFoundError):
            end_session(987654)


class TestListings:
    def test_only_approved_users_with_email(self):
        add(account("Bob", status="active"), account("Eve", is_approved=True))
        start_session(username="Bob", sign_in_at=at(1))
        start_session(username="Eve", sign_in_at=at(2))

        rows = list_sessions()

        # Eve is approved by flag but not active, so her sessions are hidden.
        assert [r["username"] for r in rows] == ["Bob"]
        assert rows[0]["isOnline"] is True

    def test_latest_only(self):
        add(account("Bob", status="active"))
        start_session(username="Bob", sign_in_at=at(1))
        start_session(username="Bob", sign_in_at=at(2))

        rows = list_sessions(username="BOB", latest=True)

        assert len(rows) == 1
        assert rows[0]["signInAt"].startswith("2024-03-02T12:00:00")

    def test_latest_session_for_user(self):
        add(account("Bob", status="active"))
        start_session(username="Bob", sign_in_at=at(1))
        start_session(username="Bob", sign_in_at=at(3))

        assert latest_session_for("bob").sign_in_at == at(3)

    def test_latest_session_for_unapproved_user(self):
        add(account("Bob"))

        with pytest.raises(ForbiddenError):
            latest_session_for("Bob")

    def test_purge(self):
        add(account("Bob", status="active"))
        start_session(username="Bob", sign_in_at=at(1))
        start_session(username="Bob", sign_in_at=at(2))

        assert purge_sessions(" bob") == 2
        assert LoginSession.query.count() == 0


class TestParseTimestamp:
    def test_utc_suffix(self):
        assert parse_timestamp("2024-03-01T10:00:00.000Z", "signInAt") == datetime(2024, 3, 1, 10, 0)

    def test_offset_converted_to_utc(self):
        assert parse_timestamp("2024-03-01T12:00:00+02:00", "signInAt") == datetime(2024, 3, 1, 10, 0)

    def test_empty(self):
        assert parse_timestamp(None, "signInAt") is None

    def test_garbage(self):
        with pytest.raises(ValidationError):
            parse_timestamp("yesterday", "signInAt")

    def test_epoch_milliseconds(self):
        assert parse_timestamp(1709287200000, "signInAt") == datetime(2024, 3, 1, 10, 0)

    def test_boolean_rejected(self):
        with pytest.raises(ValidationError):
            parse_timestamp(True, "signInAt")


class TestConcurrentStart:
    def test_retries_once_after_unique_violation(self, monkeypatch):
        add(account("Bob", status="active"))
        real_open = sessions._open_session
        calls = []

        def flaky_open(*args):
            calls.append(args)
            if len(calls) == 1:
                raise IntegrityError("INSERT INTO login_session", {}, Exception("UNIQUE constraint failed"))
            return real_open(*args)

        monkeypatch.setattr(sessions, "_open_session", flaky_open)

        s = start_session(username="Bob", sign_in_at=at(1))

        assert len(calls) == 2
        assert s.is_online
        assert LoginSession.query.count() == 1

    def test_second_violation_is_a_conflict(self, monkeypatch):
        add(account("Bob", status="active"))

        def always_conflicts(*args):
            raise IntegrityError("INSERT INTO login_session", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(sessions, "_open_session", always_conflicts)

        with pytest.raises(ConflictError):
            start_session(username="Bob")
        assert LoginSession.query.count() == 0

    def test_open_session_index_rejects_second_open_row(self):
        add(session_row("Bob", at(1)))

        db.session.add(session_row("bob", at(2)))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

        assert LoginSession.query.count() == 1
