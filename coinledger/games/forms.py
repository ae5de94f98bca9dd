from __future__ import annotations

from wtforms import FloatField, StringField
from wtforms.validators import DataRequired, Length, Optional, Regexp
from wtforms.validators import ValidationError as FieldError

from ..forms import JsonForm


DATE_RE = r"^\d{4}-\d{2}-\d{2}$"


class GameCreateForm(JsonForm):
    name = StringField("Name", validators=[DataRequired(message="Game name is required")])
    coinsRecharged = FloatField("Coins recharged", validators=[Optional()], default=0)
    lastRechargeDate = StringField(
        "Last recharge date",
        validators=[Optional(), Regexp(DATE_RE, message="lastRechargeDate must be YYYY-MM-DD")],
    )

    def validate_name(self, field):
        if not isinstance(self.payload.get("name"), str):
            raise FieldError("Game name is required")
        if len(field.data.strip()) > 120:
            raise FieldError("Game name is too long")


class GameMovesForm(JsonForm):
    username = StringField("Username", validators=[Optional(), Length(max=120)])
    freeplayDelta = FloatField("Freeplay delta", validators=[Optional()])
    redeemDelta = FloatField("Redeem delta", validators=[Optional()])
    depositDelta = FloatField("Deposit delta", validators=[Optional()])
    freeplayTotal = FloatField("Freeplay total", validators=[Optional()])
    redeemTotal = FloatField("Redeem total", validators=[Optional()])
    depositTotal = FloatField("Deposit total", validators=[Optional()])


class GameUpdateForm(JsonForm):
    coinsRecharged = FloatField("Coins recharged", validators=[Optional()])
    lastRechargeDate = StringField(
        "Last recharge date",
        validators=[
            Optional(),
            Length(max=10),
            Regexp(DATE_RE, message="lastRechargeDate must be YYYY-MM-DD"),
        ],
    )
