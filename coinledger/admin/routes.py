from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ..accounts import approve_user, block_user, delete_user
from ..errors import ForbiddenError, store_errors
from ..extensions import db
from ..models import AdminAuditLog
from ..reconcile import build_roster

bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@bp.before_request
@login_required
def _require_admin():
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")


def _audit(
    action: str,
    *,
    target_type: str | None = None,
    target_id: str | None = None,
    detail: str | None = None,
) -> None:
    try:
        db.session.add(
            AdminAuditLog(
                admin_user_id=current_user.id,
                action=action,
                target_type=target_type,
                target_id=target_id,
                detail=detail,
                ip_address=request.headers.get("X-Forwarded-For", request.remote_addr),
                user_agent=(request.headers.get("User-Agent") or "")[:255],
            )
        )
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning("Audit write failed for %s: %s", action, e)


@bp.get("/users")
@store_errors("Failed to fetch users")
def users():
    status = (request.args.get("status") or "").strip().lower() or None
    return jsonify(build_roster(status))


@bp.patch("/users/<user_id>/approve")
@store_errors("Failed to approve user")
def approve(user_id: str):
    user = approve_user(user_id)
    _audit("approve_user", target_type="User", target_id=user_id, detail=user.username)
    return jsonify(message="User approved", user=user.to_dict())


@bp.patch("/users/<user_id>/block")
@store_errors("Failed to block user")
def block(user_id: str):
    user = block_user(user_id)
    _audit("block_user", target_type="User", target_id=user_id, detail=user.username)
    return jsonify(message="User blocked", user=user.to_dict())


@bp.delete("/users/<user_id>")
@store_errors("Failed to delete user")
def delete(user_id: str):
    username = delete_user(user_id)
    _audit("delete_user", target_type="User", target_id=user_id, detail=username)

    if user_id.startswith("virtual:"):
        return jsonify(message=f'Deleted virtual user "{username}" (and related data).')
    return jsonify(message="User deleted")


@bp.get("/audit")
@store_errors("Failed to load audit log")
def audit_log():
    logs = AdminAuditLog.query.order_by(AdminAuditLog.created_at.desc(), AdminAuditLog.id.desc()).limit(200).all()
    return jsonify([row.to_dict() for row in logs])
