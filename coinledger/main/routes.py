from __future__ import annotations

from flask import Blueprint, jsonify

bp = Blueprint("main", __name__)


@bp.get("/healthz")
def healthz():
    return jsonify(ok=True)
