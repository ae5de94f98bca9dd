from __future__ import annotations

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict

from .errors import ValidationError


def _formdata_value(key: str, value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValidationError(f"{key} must be a string or a number")


class JsonForm(FlaskForm):
    """A WTForms schema filled from the JSON request body.

    ``null`` values count as absent. The raw body stays available as
    ``form.payload`` for callers that need to know whether a key was sent or
    what JSON type it had.
    """

    class Meta:
        csrf = False

    @classmethod
    def from_request(cls):
        payload = request.get_json(silent=True)
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        formdata = MultiDict(
            {k: _formdata_value(k, v) for k, v in payload.items() if v is not None}
        )
        form = cls(formdata=formdata)
        form.payload = payload
        if not form.validate():
            raise ValidationError(form.first_error())
        return form

    def first_error(self) -> str:
        for field in self:
            if field.errors:
                return field.errors[0]
        return "Invalid request"

    def sent(self, key: str) -> bool:
        return key in self.payload
