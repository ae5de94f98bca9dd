from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, store_errors
from ..extensions import db
from ..game_totals import list_games, month_prefix, recharge_history, search_game_names
from ..identity import clean_username
from ..models import Game, UserActivity
from .forms import GameCreateForm, GameMovesForm, GameUpdateForm

bp = Blueprint("games", __name__, url_prefix="/api")


def _get_game(game_id: int) -> Game:
    game = db.session.get(Game, game_id)
    if not game:
        raise NotFoundError("Game not found")
    return game


def _requested_month() -> str | None:
    return month_prefix(request.args.get("year"), request.args.get("month"))


@bp.get("/games")
@store_errors("Failed to load games")
def games_list():
    q = (request.args.get("q") or "").strip()
    if q:
        return jsonify(search_game_names(q))

    return jsonify(list_games(_requested_month()))


@bp.post("/games")
@store_errors("Failed to create game")
def games_create():
    form = GameCreateForm.from_request()
    name = form.name.data.strip()

    if Game.query.filter_by(name=name).first():
        raise ConflictError("Game with this name already exists")

    game = Game(
        name=name,
        coins_recharged=form.coinsRecharged.data or 0,
        last_recharge_date=form.lastRechargeDate.data or None,
    )
    db.session.add(game)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError("Game with this name already exists") from e

    current_app.logger.info("Created game %r (id=%s)", game.name, game.id)
    return jsonify(game.to_dict()), 201


@bp.put("/games/<int:game_id>")
@store_errors("Failed to update game")
def games_update(game_id: int):
    game = _get_game(game_id)
    form = GameUpdateForm.from_request()

    if form.coinsRecharged.data is not None:
        game.coins_recharged = form.coinsRecharged.data
    if form.sent("lastRechargeDate"):
        game.last_recharge_date = form.lastRechargeDate.data or None

    db.session.commit()
    return jsonify(game.to_dict())


@bp.delete("/games/<int:game_id>")
@store_errors("Failed to delete game")
def games_delete(game_id: int):
    game = _get_game(game_id)
    payload = game.to_dict()

    db.session.delete(game)
    db.session.commit()
    return jsonify(payload)


@bp.post("/games/<int:game_id>/reset-recharge")
@store_errors("Failed to reset game recharge")
def games_reset_recharge(game_id: int):
    game = _get_game(game_id)
    game.coins_recharged = 0
    game.last_recharge_date = None
    db.session.commit()
    return jsonify(game.to_dict())


@bp.get("/games/<int:game_id>/recharge-history")
@store_errors("Failed to load recharge history")
def games_recharge_history(game_id: int):
    game = _get_game(game_id)
    return jsonify(recharge_history(game, _requested_month()))


@bp.post("/games/<int:game_id>/add-moves")
@store_errors("Failed to update game moves")
def games_add_moves(game_id: int):
    """Log move deltas for a game. Coin fields are never touched here; a
    positive deposit only stamps today's date as the last recharge."""
    game = _get_game(game_id)
    form = GameMovesForm.from_request()

    freeplay = form.freeplayDelta.data or 0
    redeem = form.redeemDelta.data or 0
    deposit = form.depositDelta.data or 0

    if deposit > 0:
        game.last_recharge_date = date.today().isoformat()

    if freeplay or redeem or deposit:
        db.session.add(
            UserActivity(
                username=clean_username(form.username.data) or "Unknown User",
                game_id=game.id,
                game_name=game.name,
                freeplay=freeplay,
                redeem=redeem,
                deposit=deposit,
                freeplay_total=form.freeplayTotal.data,
                redeem_total=form.redeemTotal.data,
                deposit_total=form.depositTotal.data,
            )
        )

    db.session.commit()
    return jsonify(message="Moves logged", game=game.to_dict())
