from __future__ import annotations

from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError

from .errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .extensions import db
from .identity import normalize_username
from .models import LoginSession, User, isoformat


SESSION_LIST_LIMIT = 200


def parse_timestamp(value, field: str) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds into naive UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValidationError(f"{field} is out of range") from e
        return parsed.replace(tzinfo=None)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 timestamp")

    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"{field} must be an ISO-8601 timestamp") from e

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_session(s: LoginSession) -> dict:
    return {
        "_id": str(s.id),
        "username": s.username,
        "email": s.email,
        "signInAt": isoformat(s.sign_in_at),
        "signOutAt": isoformat(s.sign_out_at),
        "isOnline": s.is_online,
        "createdAt": isoformat(s.created_at),
        "updatedAt": isoformat(s.updated_at),
    }


def _find_account(email: str | None, username: str | None) -> User:
    user = None
    if email:
        user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None and username:
        user = User.query.filter_by(username_key=normalize_username(username)).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def _open_session(user: User, email: str | None, sign_in_at: datetime) -> LoginSession:
    now = datetime.utcnow()
    LoginSession.query.filter(
        LoginSession.username_key == user.username_key,
        LoginSession.sign_out_at.is_(None),
    ).update({LoginSession.sign_out_at: now, LoginSession.updated_at: now}, synchronize_session=False)

    session = LoginSession(
        username=user.username,
        username_key=user.username_key,
        email=(email or user.email or "").strip().lower() or None,
        sign_in_at=sign_in_at,
    )
    db.session.add(session)
    db.session.commit()
    return session


def start_session(email: str | None = None, username: str | None = None, sign_in_at: datetime | None = None) -> LoginSession:
    """Open a session for an approved account, closing any it left open."""
    user = _find_account(email, username)
    if not user.can_sign_in:
        raise ForbiddenError("User is not approved yet. Login will not be recorded.")

    sign_in_at = sign_in_at or datetime.utcnow()
    # The open-session index rejects a racing start; one retry closes the
    # session the other request just opened.
    for attempt in range(2):
        try:
            return _open_session(user, email, sign_in_at)
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(
                "Concurrent session start for %r (attempt %d)", user.username, attempt + 1
            )

    raise ConflictError("Another session start is in progress for this user")


def end_session(session_id, sign_out_at: datetime | None = None) -> LoginSession:
    try:
        sid = int(str(session_id).strip())
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid sessionId") from e

    session = db.session.get(LoginSession, sid)
    if session is None:
        raise NotFoundError("Session not found")

    session.sign_out_at = sign_out_at or datetime.utcnow()
    db.session.commit()
    return session


def _approved_keys(keys: set[str]) -> set[str]:
    if not keys:
        return set()
    rows = (
        db.session.query(User.username_key)
        .filter(User.username_key.in_(keys), User.status == "active")
        .all()
    )
    return {key for (key,) in rows}


def list_sessions(username: str | None = None, latest: bool = False) -> list[dict]:
    query = LoginSession.query.filter(LoginSession.email.isnot(None), LoginSession.email != "")
    if username:
        query = query.filter(LoginSession.username_key == normalize_username(username))

    query = query.order_by(LoginSession.sign_in_at.desc(), LoginSession.id.desc())
    sessions = query.limit(1 if latest else SESSION_LIST_LIMIT).all()

    approved = _approved_keys({s.username_key for s in sessions})
    visible = [format_session(s) for s in sessions if s.username_key in approved]

    current_app.logger.debug(
        "GET /api/logins username=%r latest=%s total=%d approved=%d",
        username,
        latest,
        len(sessions),
        len(visible),
    )
    return visible


def latest_session_for(username: str) -> LoginSession:
    key = normalize_username(username)
    user = User.query.filter_by(username_key=key).first()
    if user is None:
        raise NotFoundError("User not found")
    if user.status != "active":
        raise ForbiddenError("User is not approved. No login sessions available.")

    session = (
        LoginSession.query.filter(
            LoginSession.username_key == key,
            LoginSession.email.isnot(None),
        )
        .order_by(LoginSession.sign_in_at.desc(), LoginSession.id.desc())
        .first()
    )
    if session is None:
        raise NotFoundError("No session with username and email found for this user")
    return session


def purge_sessions(username: str) -> int:
    deleted = LoginSession.query.filter_by(username_key=normalize_username(username)).delete(
        synchronize_session=False
    )
    db.session.commit()
    return deleted
