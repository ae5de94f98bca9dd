from __future__ import annotations

from datetime import datetime

from flask import jsonify
from flask_login import UserMixin

from .extensions import db, login_manager
from .identity import PLACEHOLDER_EMAIL_DOMAIN, clean_username, normalize_username
from .tokens import bearer_token, verify_api_token


USER_STATUSES = ("pending", "active", "blocked")
ENTRY_TYPES = ("deposit", "redeem", "freeplay")


class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), nullable=False)
    # normalize_username(username); the case-insensitive identity key.
    username_key = db.Column(db.String(120), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), default="pending", nullable=False)  # pending/active/blocked
    is_approved = db.Column(db.Boolean, default=False, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    role = db.Column(db.String(20), default="user", nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __init__(self, **kwargs):
        if "username" in kwargs:
            kwargs["username"] = clean_username(kwargs["username"])
            kwargs.setdefault("username_key", normalize_username(kwargs["username"]))
        if kwargs.get("email"):
            kwargs["email"] = kwargs["email"].strip().lower()
        super().__init__(**kwargs)

    @property
    def is_virtual(self) -> bool:
        return (self.email or "").endswith("@" + PLACEHOLDER_EMAIL_DOMAIN)

    @property
    def can_sign_in(self) -> bool:
        if self.status == "blocked":
            return False
        return self.status == "active" or bool(self.is_approved)

    def approve(self) -> None:
        self.status = "active"
        self.is_approved = True

    def block(self) -> None:
        self.status = "blocked"
        self.is_approved = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "isAdmin": bool(self.is_admin),
            "isApproved": bool(self.is_approved),
            "status": self.status,
            "createdAt": isoformat(self.created_at),
        }


@login_manager.request_loader
def load_user_from_request(request):
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        return None

    data = verify_api_token(token)
    if not data:
        return None
    return User.query.filter_by(email=data["email"].lower().strip()).first()


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(message="Authentication required"), 401


class GameEntry(db.Model):
    """One ledger row. Rows are appended by the entry-submission flow and are
    only ever removed when their user is purged."""

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), nullable=True, index=True)
    game_name = db.Column(db.String(120), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # deposit/redeem/freeplay
    amount = db.Column(db.Float, nullable=True)
    # Post-adjustment value; overrides amount when set.
    amount_final = db.Column(db.Float, nullable=True)
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    created_by = db.Column(db.String(120), nullable=True)
    method = db.Column(db.String(40), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def effective_amount(self) -> float:
        value = self.amount_final if self.amount_final is not None else self.amount
        return float(value or 0)


class DeletedUsername(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), nullable=False)
    username_key = db.Column(db.String(120), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class LoginSession(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), nullable=False)
    username_key = db.Column(db.String(120), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    sign_in_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    sign_out_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # At most one open session per username.
    __table_args__ = (
        db.Index(
            "uq_login_session_open",
            "username_key",
            unique=True,
            sqlite_where=db.text("sign_out_at IS NULL"),
            postgresql_where=db.text("sign_out_at IS NULL"),
        ),
    )

    @property
    def is_online(self) -> bool:
        return self.sign_in_at is not None and self.sign_out_at is None


class Game(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    # Manually set baseline; ledger totals are derived at read time.
    coins_recharged = db.Column(db.Float, default=0, nullable=False)
    last_recharge_date = db.Column(db.String(10), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "coinsRecharged": float(self.coins_recharged or 0),
            "lastRechargeDate": self.last_recharge_date,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class UserActivity(db.Model):
    """Move deltas logged against a game. Informational only: game totals
    are always derived from the ledger."""

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(120), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey("game.id", ondelete="SET NULL"), nullable=True, index=True)
    game_name = db.Column(db.String(120), nullable=False)
    freeplay = db.Column(db.Float, default=0, nullable=False)
    redeem = db.Column(db.Float, default=0, nullable=False)
    deposit = db.Column(db.Float, default=0, nullable=False)
    freeplay_total = db.Column(db.Float, nullable=True)
    redeem_total = db.Column(db.Float, nullable=True)
    deposit_total = db.Column(db.Float, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "gameId": self.game_id,
            "gameName": self.game_name,
            "freeplay": self.freeplay,
            "redeem": self.redeem,
            "deposit": self.deposit,
            "freeplayTotal": self.freeplay_total,
            "redeemTotal": self.redeem_total,
            "depositTotal": self.deposit_total,
            "createdAt": isoformat(self.created_at),
        }


class AdminAuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    admin_user_id = db.Column(
        db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True
    )
    action = db.Column(db.String(80), nullable=False)
    target_type = db.Column(db.String(40), nullable=True)
    target_id = db.Column(db.String(160), nullable=True)
    detail = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    admin = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "adminUserId": self.admin_user_id,
            "action": self.action,
            "targetType": self.target_type,
            "targetId": self.target_id,
            "detail": self.detail,
            "ipAddress": self.ip_address,
            "createdAt": isoformat(self.created_at),
        }


def isoformat(value: datetime | None) -> str | None:
    # Stored datetimes are naive UTC.
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds") + "Z"
