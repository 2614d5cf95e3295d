"""Tests for leaderboard.py: ranking and windows."""

from datetime import datetime, timedelta, timezone

import pytest

from leaderboard import build_leaderboard, window_start


def _row(user_id, co2=0.0, calories=0, trips=1, name=None):
    return {
        "user_id": user_id,
        "display_name": name or user_id.title(),
        "co2_saved": co2,
        "calories_burned": calories,
        "trip_count": trips,
    }


class TestBuildLeaderboard:
    def test_ranks_by_co2_descending(self):
        rows = [_row("user1", co2=10), _row("user2", co2=5), _row("user3", co2=20)]
        board = build_leaderboard(rows, "co2")
        assert [(e.user_id, e.metric_value, e.rank) for e in board] == [
            ("user3", 20, 1),
            ("user1", 10, 2),
            ("user2", 5, 3),
        ]

    def test_ranks_by_calories(self):
        rows = [_row("a", co2=50, calories=100), _row("b", co2=1, calories=900)]
        board = build_leaderboard(rows, "calories")
        assert [e.user_id for e in board] == ["b", "a"]
        assert board[0].metric_value == 900

    def test_empty(self):
        assert build_leaderboard([], "co2") == []

    def test_truncates_to_limit(self):
        rows = [_row(f"u{i:02d}", co2=i) for i in range(15)]
        board = build_leaderboard(rows, "co2")
        assert len(board) == 10
        assert board[0].user_id == "u14"
        assert [e.rank for e in board] == list(range(1, 11))

    def test_custom_limit(self):
        rows = [_row(f"u{i}", co2=i) for i in range(5)]
        assert len(build_leaderboard(rows, "co2", limit=3)) == 3

    def test_ties_keep_input_order(self):
        rows = [_row("first", co2=5), _row("second", co2=5), _row("third", co2=5)]
        board = build_leaderboard(rows, "co2")
        assert [e.user_id for e in board] == ["first", "second", "third"]
        assert [e.rank for e in board] == [1, 2, 3]

    def test_marks_requesting_user(self):
        rows = [_row("me", co2=1), _row("you", co2=2)]
        board = build_leaderboard(rows, "co2", requesting_user_id="me")
        flags = {e.user_id: e.is_requesting_user for e in board}
        assert flags == {"me": True, "you": False}

    def test_anonymous_display_name(self):
        rows = [{"user_id": "x", "display_name": None, "co2_saved": 1,
                 "calories_burned": 0, "trip_count": 1}]
        assert build_leaderboard(rows)[0].display_name == "Anonymous"

    def test_values_rounded(self):
        rows = [_row("a", co2=1.23456, calories=99.6)]
        entry = build_leaderboard(rows, "co2")[0]
        assert entry.co2_saved == 1.23
        assert entry.calories_burned == 100

    def test_unknown_metric(self):
        with pytest.raises(ValueError):
            build_leaderboard([], "distance")

    def test_to_dict(self):
        entry = build_leaderboard([_row("a", co2=2, trips=3, name="Ada")], "co2")[0]
        assert entry.to_dict() == {
            "rank": 1,
            "user_id": "a",
            "display_name": "Ada",
            "metric_value": 2,
            "co2_saved": 2,
            "calories_burned": 0,
            "trip_count": 3,
            "is_requesting_user": False,
        }


class TestWindowStart:
    NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_week(self):
        assert window_start("week", now=self.NOW) == self.NOW - timedelta(days=7)

    def test_month(self):
        assert window_start("month", now=self.NOW) == self.NOW - timedelta(days=30)

    def test_all_time(self):
        assert window_start("all", now=self.NOW) is None

    def test_unknown_period(self):
        with pytest.raises(KeyError):
            window_start("decade")
