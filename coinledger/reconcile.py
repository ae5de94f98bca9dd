"""Roster reconciliation.

The admin roster is rebuilt on every request from three sources: the user
table, the ledger (``GameEntry``) and the tombstones (``DeletedUsername``).
Ledger usernames with no account get a pending placeholder account, unless
the name was deleted before. Totals and session state are then joined onto
each account.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from .errors import ValidationError
from .extensions import db
from .identity import PLACEHOLDER_EMAIL_DOMAIN, clean_username, normalize_username, placeholder_email
from .models import USER_STATUSES, DeletedUsername, GameEntry, LoginSession, User, isoformat


@dataclass(frozen=True)
class BatchInsertResult:
    inserted: tuple[str, ...] = ()
    failed: tuple[tuple[str, str], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class Totals:
    deposit: float = 0.0
    redeem: float = 0.0
    freeplay: float = 0.0

    @property
    def payments(self) -> float:
        return self.redeem


@dataclass(frozen=True)
class SessionInfo:
    last_sign_in_at: datetime | None = None
    last_sign_out_at: datetime | None = None

    @property
    def is_online(self) -> bool:
        return self.last_sign_in_at is not None and self.last_sign_out_at is None


def effective_amount():
    return func.coalesce(GameEntry.amount_final, GameEntry.amount, 0)


def sum_of_type(entry_type: str):
    return func.coalesce(
        func.sum(case((GameEntry.type == entry_type, effective_amount()), else_=0)),
        0,
    )


def ledger_usernames() -> dict[str, str]:
    """Distinct ledger usernames as ``{key: display}``, first-seen casing wins."""
    trimmed = func.trim(GameEntry.username)
    first_id = func.min(GameEntry.id).label("first_id")
    rows = (
        db.session.query(trimmed, first_id)
        .filter(GameEntry.username.isnot(None), GameEntry.username != "")
        .group_by(trimmed)
        .order_by(first_id)
        .all()
    )

    names: dict[str, str] = {}
    for raw, _ in rows:
        display = clean_username(raw)
        if display:
            names.setdefault(normalize_username(display), display)
    return names


def synthesize_virtual_users() -> BatchInsertResult:
    accounts = db.session.query(User.username_key, User.email).all()
    existing = {key for key, _ in accounts}
    taken_emails = {(email or "").strip().lower() for _, email in accounts if email}
    tombstoned = {key for (key,) in db.session.query(DeletedUsername.username_key).all()}

    inserted: list[str] = []
    failed: list[tuple[str, str]] = []
    for key, username in ledger_usernames().items():
        if key in existing or key in tombstoned:
            continue

        email = placeholder_email(username, taken_emails)
        try:
            # Savepoint per row: a concurrent pass may have inserted the same
            # name already, which must not undo the other rows.
            with db.session.begin_nested():
                db.session.add(
                    User(
                        username=username,
                        email=email,
                        role="user",
                        is_admin=False,
                        is_approved=False,
                        status="pending",
                    )
                )
        except IntegrityError as e:
            failed.append((username, str(e.orig)))
            continue

        existing.add(key)
        inserted.append(username)

    db.session.commit()

    if inserted:
        current_app.logger.info("Created %d virtual users from ledger activity", len(inserted))
    for username, reason in failed:
        current_app.logger.warning("Could not create virtual user %r: %s", username, reason)

    return BatchInsertResult(inserted=tuple(inserted), failed=tuple(failed))


def user_totals(keys: Iterable[str] | None = None) -> dict[str, Totals]:
    trimmed = func.trim(GameEntry.username)
    rows = (
        db.session.query(
            trimmed,
            sum_of_type("deposit"),
            sum_of_type("redeem"),
            sum_of_type("freeplay"),
        )
        .filter(GameEntry.username.isnot(None))
        .group_by(trimmed)
        .all()
    )

    wanted = set(keys) if keys is not None else None
    sums: dict[str, list[float]] = {}
    for raw, deposit, redeem, freeplay in rows:
        key = normalize_username(raw)
        if not key or (wanted is not None and key not in wanted):
            continue
        acc = sums.setdefault(key, [0.0, 0.0, 0.0])
        acc[0] += float(deposit or 0)
        acc[1] += float(redeem or 0)
        acc[2] += float(freeplay or 0)

    return {key: Totals(*values) for key, values in sums.items()}


def latest_sessions(keys: Iterable[str]) -> dict[str, SessionInfo]:
    keys = list(set(keys))
    if not keys:
        return {}

    latest = (
        db.session.query(
            LoginSession.username_key.label("key"),
            func.max(LoginSession.sign_in_at).label("sign_in_at"),
        )
        .filter(LoginSession.username_key.in_(keys))
        .group_by(LoginSession.username_key)
        .subquery()
    )
    rows = (
        db.session.query(LoginSession)
        .join(
            latest,
            (LoginSession.username_key == latest.c.key) & (LoginSession.sign_in_at == latest.c.sign_in_at),
        )
        .order_by(LoginSession.id.desc())
        .all()
    )

    sessions: dict[str, SessionInfo] = {}
    for s in rows:
        # Same sign-in time twice: the newer row wins.
        sessions.setdefault(s.username_key, SessionInfo(s.sign_in_at, s.sign_out_at))
    return sessions


def build_roster(status: str | None = None) -> list[dict]:
    if status and status not in USER_STATUSES:
        raise ValidationError("Invalid status filter")

    synthesize_virtual_users()

    query = User.query
    if status:
        query = query.filter(User.status == status)
    if status == "active":
        # Approved list stays free of placeholder accounts.
        query = query.filter(~User.email.ilike(f"%@{PLACEHOLDER_EMAIL_DOMAIN}"))
    users = query.order_by(User.created_at.desc(), User.id.desc()).all()
    if not users:
        return []

    keys = [u.username_key for u in users]
    totals = user_totals(keys)
    sessions = latest_sessions(keys)

    rows = []
    for u in users:
        t = totals.get(u.username_key, Totals())
        s = sessions.get(u.username_key, SessionInfo())
        row = u.to_dict()
        row.update(
            totalDeposit=t.deposit,
            totalRedeem=t.redeem,
            totalFreeplay=t.freeplay,
            totalPayments=t.payments,
            lastSignInAt=isoformat(s.last_sign_in_at),
            lastSignOutAt=isoformat(s.last_sign_out_at),
            isOnline=s.is_online,
            isVirtual=u.is_virtual,
        )
        rows.append(row)
    return rows
