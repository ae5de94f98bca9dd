from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import func

from .extensions import db
from .models import Game, GameEntry, isoformat
from .reconcile import sum_of_type


@dataclass(frozen=True)
class GameTotals:
    freeplay: float = 0.0
    deposit: float = 0.0
    redeem: float = 0.0
    # Sum over (username, date) groups of redeem - deposit - freeplay.
    net: float = 0.0


def month_prefix(year, month) -> str | None:
    """``"YYYY-MM"`` when both values are usable, else None (no filtering)."""
    try:
        year = int(str(year).strip())
        month = int(str(month).strip())
    except (TypeError, ValueError):
        return None

    if not 1 <= month <= 12:
        return None
    return f"{year:04d}-{month:02d}"


def _filter_month(query, prefix: str | None):
    if prefix:
        query = query.filter(GameEntry.date.like(f"{prefix}%"))
    return query


def game_totals(game_names: list[str], prefix: str | None = None) -> dict[str, GameTotals]:
    if not game_names:
        return {}

    query = db.session.query(
        GameEntry.game_name,
        sum_of_type("freeplay"),
        sum_of_type("deposit"),
        sum_of_type("redeem"),
    ).filter(GameEntry.game_name.in_(game_names))
    rows = (
        _filter_month(query, prefix)
        .group_by(GameEntry.game_name, GameEntry.username, GameEntry.date)
        .all()
    )

    sums: dict[str, list[float]] = {}
    for game_name, freeplay, deposit, redeem in rows:
        freeplay, deposit, redeem = float(freeplay or 0), float(deposit or 0), float(redeem or 0)
        acc = sums.setdefault(game_name, [0.0, 0.0, 0.0, 0.0])
        acc[0] += freeplay
        acc[1] += deposit
        acc[2] += redeem
        acc[3] += redeem - deposit - freeplay

    return {name: GameTotals(*values) for name, values in sums.items()}


def enrich_games(games: list[Game], prefix: str | None = None) -> list[dict]:
    totals = game_totals([g.name for g in games], prefix)

    enriched = []
    for g in games:
        t = totals.get(g.name, GameTotals())
        coins_recharged = float(g.coins_recharged or 0)
        row = g.to_dict()
        row.update(
            freeplay=t.freeplay,
            deposit=t.deposit,
            redeem=t.redeem,
            totalRecharged=t.deposit,
            coinsRecharged=coins_recharged,
            totalCoins=max(0.0, coins_recharged + t.net),
        )
        enriched.append(row)
    return enriched


def list_games(prefix: str | None = None) -> list[dict]:
    if prefix:
        current_app.logger.info("Games monthly filter: %s", prefix)
    games = Game.query.order_by(Game.created_at.asc(), Game.id.asc()).all()
    return enrich_games(games, prefix)


def search_game_names(q: str) -> list[str]:
    pattern = f"%{q.strip()}%"
    names = db.session.query(Game.name).filter(Game.name.ilike(pattern)).distinct().all()
    return sorted((n for (n,) in names if isinstance(n, str) and n.strip()), key=str.lower)


def recharge_history(game: Game, prefix: str | None = None) -> list[dict]:
    query = GameEntry.query.filter(GameEntry.game_name == game.name, GameEntry.type == "deposit")
    entries = _filter_month(query, prefix).order_by(GameEntry.date.asc(), GameEntry.id.asc()).all()

    history = []
    running = 0.0
    for e in entries:
        amount = e.effective_amount
        before = running
        running = before + amount
        history.append(
            {
                "id": e.id,
                "name": game.name,
                "lastRechargeDate": game.last_recharge_date,
                "updatedAt": isoformat(game.updated_at),
                "date": e.date,
                "amount": amount,
                "beforeCoins": before,
                "afterCoins": running,
                "username": e.username,
                "createdBy": e.created_by,
                "method": e.method,
            }
        )
    return history
