from __future__ import annotations

from flask import current_app

from .extensions import db
from .identity import normalize_username
from .models import User


def ensure_seed_data() -> None:
    _ensure_admin_user()


def _ensure_admin_user() -> None:
    email = (current_app.config.get("ADMIN_EMAIL") or "").strip().lower()
    if not email:
        return

    admin = User.query.filter_by(email=email).first()
    if admin:
        if not admin.is_admin or admin.status != "active":
            admin.is_admin = True
            admin.role = "admin"
            admin.approve()
            db.session.commit()
        return

    username = current_app.config.get("ADMIN_USERNAME") or email.split("@", 1)[0]
    if User.query.filter_by(username_key=normalize_username(username)).first():
        current_app.logger.warning("Admin username %r is taken; skipping admin seed", username)
        return

    admin = User(username=username, email=email, is_admin=True, role="admin")
    admin.approve()
    db.session.add(admin)
    db.session.commit()
