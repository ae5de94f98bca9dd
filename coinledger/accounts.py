from __future__ import annotations

from .errors import NotFoundError, ValidationError
from .extensions import db
from .identity import clean_username, normalize_username, parse_virtual_id
from .models import DeletedUsername, GameEntry, LoginSession, User


def resolve_user(raw_id: str) -> tuple[User | None, str | None]:
    """Return ``(user, virtual_username)`` for a route id.

    ``virtual:<name>`` ids are looked up by username and may resolve to no
    account; plain ids must be integers.
    """
    virtual_name = parse_virtual_id(raw_id)
    if virtual_name is not None:
        user = User.query.filter_by(username_key=normalize_username(virtual_name)).first()
        return user, virtual_name

    try:
        user_id = int(raw_id)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid user id") from e
    return db.session.get(User, user_id), None


def _require_user(raw_id: str) -> User:
    user, _ = resolve_user(raw_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def approve_user(raw_id: str) -> User:
    user = _require_user(raw_id)
    user.approve()
    db.session.commit()
    return user


def block_user(raw_id: str) -> User:
    user = _require_user(raw_id)
    user.block()
    db.session.commit()
    return user


def tombstone(username: str) -> None:
    key = normalize_username(username)
    if DeletedUsername.query.filter_by(username_key=key).first() is None:
        db.session.add(DeletedUsername(username=clean_username(username), username_key=key))
        db.session.flush()


def _ledger_entry_ids(key: str) -> list[int]:
    # SQL lower()/LIKE only fold ASCII on SQLite, so matching stays in Python.
    rows = db.session.query(GameEntry.id, GameEntry.username).filter(GameEntry.username.isnot(None))
    return [entry_id for entry_id, raw in rows if normalize_username(raw) == key]


def delete_user(raw_id: str) -> str:
    """Tombstone a username and purge its account, sessions and ledger rows.

    Everything happens in one transaction, so a failure leaves nothing half
    deleted. Returns the display username that was removed.
    """
    user, virtual_name = resolve_user(raw_id)
    if user is None and virtual_name is None:
        raise NotFoundError("User not found")

    username = user.username if user is not None else virtual_name
    key = normalize_username(username)

    try:
        tombstone(username)
        LoginSession.query.filter_by(username_key=key).delete(synchronize_session=False)
        entry_ids = _ledger_entry_ids(key)
        if entry_ids:
            GameEntry.query.filter(GameEntry.id.in_(entry_ids)).delete(synchronize_session=False)
        if user is not None:
            db.session.delete(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return username
