from __future__ import annotations

from wtforms import StringField
from wtforms.validators import Email, InputRequired, Length, Optional

from ..forms import JsonForm


class SessionStartForm(JsonForm):
    email = StringField("Email", validators=[Optional(), Email(), Length(max=255)])
    username = StringField("Username", validators=[Optional(), Length(max=120)])
    signInAt = StringField("Sign in at", validators=[Optional()])

    def validate(self, extra_validators=None) -> bool:
        if not super().validate(extra_validators):
            return False
        # Either identifier will do; clients normally send the email.
        if not (self.email.data or "").strip() and not (self.username.data or "").strip():
            self.email.errors.append("email is required")
            return False
        return True


class SessionEndForm(JsonForm):
    sessionId = StringField("Session id", validators=[InputRequired(message="sessionId is required")])
    signOutAt = StringField("Sign out at", validators=[Optional()])
