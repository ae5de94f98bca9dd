from __future__ import annotations

from functools import wraps

from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status_code = 400


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class StoreError(ApiError):
    status_code = 500


def store_errors(message: str):
    """Turn data-store failures inside a view into a StoreError with a
    generic client-facing message."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.exception("%s: %s", message, e)
                raise StoreError(message) from e

        return wrapper

    return decorator


def register_error_handlers(app) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):
        return jsonify(message=e.message), e.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return jsonify(message=e.description or e.name), e.code
