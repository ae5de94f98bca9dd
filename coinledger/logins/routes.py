from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..errors import ValidationError, store_errors
from ..identity import clean_username
from ..sessions import (
    end_session,
    format_session,
    latest_session_for,
    list_sessions,
    parse_timestamp,
    purge_sessions,
    start_session,
)
from .forms import SessionEndForm, SessionStartForm

bp = Blueprint("logins", __name__, url_prefix="/api/logins")


@bp.post("/start")
@store_errors("Failed to start session")
def start():
    form = SessionStartForm.from_request()
    session = start_session(
        email=form.email.data,
        username=form.username.data,
        sign_in_at=parse_timestamp(form.payload.get("signInAt"), "signInAt"),
    )
    return jsonify(format_session(session)), 201


@bp.post("/end")
@store_errors("Failed to end session")
def end():
    form = SessionEndForm.from_request()
    session = end_session(
        form.sessionId.data,
        sign_out_at=parse_timestamp(form.payload.get("signOutAt"), "signOutAt"),
    )
    return jsonify(format_session(session))


@bp.get("")
@store_errors("Failed to load sessions")
def index():
    username = clean_username(request.args.get("username")) or None
    latest = (request.args.get("latest") or "").lower() in {"1", "true"}
    return jsonify(list_sessions(username=username, latest=latest))


@bp.get("/<username>")
@store_errors("Failed to load user session")
def latest_for_user(username: str):
    if not clean_username(username):
        raise ValidationError("username is required")
    return jsonify(format_session(latest_session_for(username)))


@bp.delete("/user/<username>")
@store_errors("Failed to delete user login activity")
def delete_for_user(username: str):
    username = clean_username(username)
    if not username:
        raise ValidationError("Username is required")

    deleted = purge_sessions(username)
    return jsonify(message="User login activity deleted", username=username, deletedCount=deleted)
