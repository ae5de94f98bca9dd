"""Tests for per-game totals, the month filter and recharge history."""

import pytest

from coinledger.extensions import db
from coinledger.game_totals import game_totals, list_games, month_prefix, recharge_history, search_game_names
from coinledger.models import Game
from factories import entry, game


pytestmark = pytest.mark.usefixtures("ctx")


def add(*rows):
    db.session.add_all(rows)
    db.session.commit()


def by_name(rows):
    return {r["name"]: r for r in rows}


class TestMonthPrefix:
    @pytest.mark.parametrize(
        "year, month, expected",
        [
            ("2024", "3", "2024-03"),
            (2024, 12, "2024-12"),
            ("2024", "13", None),
            ("2024", "0", None),
            (None, "3", None),
            ("2024", None, None),
            ("abc", "3", None),
        ],
    )
    def test_values(self, year, month, expected):
        assert month_prefix(year, month) == expected


class TestGameTotals:
    def test_bob_lucky7_scenario(self):
        add(
            game("Lucky7", coins_recharged=0),
            entry("Bob", "deposit", 100, date="2024-03-01"),
            entry("Bob", "redeem", 40, date="2024-03-01"),
        )

        row = by_name(list_games())["Lucky7"]

        assert game_totals(["Lucky7"])["Lucky7"].net == -60
        assert row["totalCoins"] == 0
        assert row["totalRecharged"] == 100
        assert row["deposit"] == 100
        assert row["redeem"] == 40

    def test_total_coins_adds_net_to_baseline(self):
        add(
            game("Fire Kirin", coins_recharged=500),
            entry("Bob", "deposit", 100, game="Fire Kirin", date="2024-03-01"),
            entry("Eve", "redeem", 250, game="Fire Kirin", date="2024-03-02"),
            entry("Eve", "freeplay", 10, game="Fire Kirin", date="2024-03-02"),
        )

        row = by_name(list_games())["Fire Kirin"]

        # (-100) + (250 - 10) on top of 500
        assert row["totalCoins"] == 640
        assert row["totalRecharged"] == 100
        assert row["freeplay"] == 10

    def test_total_coins_never_negative(self):
        add(
            game("Orion", coins_recharged=20),
            entry("Bob", "deposit", 500, game="Orion"),
        )

        assert by_name(list_games())["Orion"]["totalCoins"] == 0

    def test_amount_final_overrides_amount(self):
        add(
            game("Lucky7", coins_recharged=100),
            entry("Bob", "deposit", 30, amount_final=50),
        )

        row = by_name(list_games())["Lucky7"]

        assert row["totalRecharged"] == 50
        assert row["totalCoins"] == 50

    def test_month_filter_keeps_only_that_month(self):
        add(
            game("Lucky7"),
            entry("Bob", "deposit", 10, date="2024-03-05"),
            entry("Bob", "deposit", 99, date="2024-04-01"),
        )

        row = by_name(list_games("2024-03"))["Lucky7"]

        assert row["totalRecharged"] == 10

    def test_game_without_entries(self):
        add(game("Empty", coins_recharged=7))

        row = by_name(list_games())["Empty"]

        assert row["totalCoins"] == 7
        assert row["totalRecharged"] == 0

    def test_entries_for_unknown_games_ignored(self):
        add(game("Lucky7"), entry("Bob", "deposit", 10, game="Ghost"))

        assert set(game_totals(["Lucky7"])) == set()


class TestSearch:
    def test_case_insensitive_sorted(self):
        add(game("lucky Star"), game("Lucky7"), game("Orion"))

        assert search_game_names("LUCK") == ["lucky Star", "Lucky7"]


class TestRechargeHistory:
    def test_running_balance(self):
        add(
            game("Lucky7"),
            entry("Bob", "deposit", 100, date="2024-03-02", method="cash", created_by="ops"),
            entry("Eve", "deposit", 30, amount_final=25, date="2024-03-01"),
            entry("Bob", "redeem", 999, date="2024-03-01"),
        )
        lucky = Game.query.filter_by(name="Lucky7").one()

        history = recharge_history(lucky)

        assert [h["username"] for h in history] == ["Eve", "Bob"]
        assert [(h["beforeCoins"], h["afterCoins"]) for h in history] == [(0, 25), (25, 125)]
        assert history[1]["method"] == "cash"
        assert history[1]["createdBy"] == "ops"
        assert history[0]["name"] == "Lucky7"

    def test_month_filter(self):
        add(
            game("Lucky7"),
            entry("Bob", "deposit", 10, date="2024-03-05"),
            entry("Bob", "deposit", 20, date="2024-04-01"),
        )
        lucky = Game.query.filter_by(name="Lucky7").one()

        history = recharge_history(lucky, "2024-04")

        assert [h["amount"] for h in history] == [20]
        assert history[0]["beforeCoins"] == 0
