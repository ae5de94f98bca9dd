from __future__ import annotations

from typing import Any

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer


API_PURPOSE = "api"
DEFAULT_MAX_AGE = 7 * 24 * 60 * 60


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=f"token:{API_PURPOSE}")


def issue_api_token(email: str) -> str:
    return _serializer().dumps({"purpose": API_PURPOSE, "email": email.lower().strip()})


def bearer_token(header: str | None) -> str | None:
    scheme, _, token = (header or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def verify_api_token(token: str) -> dict[str, Any] | None:
    max_age = int(current_app.config.get("API_TOKEN_MAX_AGE") or DEFAULT_MAX_AGE)
    try:
        data = _serializer().loads(token, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None

    if not isinstance(data, dict) or data.get("purpose") != API_PURPOSE:
        return None
    if not data.get("email"):
        return None
    return data
