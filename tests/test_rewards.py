"""Tests for rewards.py: daily login reward schedule."""

from datetime import date, timedelta

import pytest

from errors import RewardAlreadyClaimed
from rewards import RewardState, claim_reward, coins_for_day, reward_status

TODAY = date(2026, 3, 10)
YESTERDAY = (TODAY - timedelta(days=1)).isoformat()
LAST_WEEK = (TODAY - timedelta(days=7)).isoformat()


def _state(streak=0, last=None, coins=0, trees=0):
    return RewardState(
        last_login_date=last,
        total_coins_earned=coins,
        trees_planted=trees,
        reward_streak=streak,
        last_streak_date=last,
    )


class TestCoinsForDay:
    def test_schedule(self):
        assert [coins_for_day(d) for d in range(1, 8)] == [5, 10, 15, 20, 30, 40, 50]

    def test_out_of_range_falls_back(self):
        assert coins_for_day(0) == 5
        assert coins_for_day(8) == 5


class TestClaimReward:
    def test_first_claim(self):
        state, result = claim_reward(_state(), today=TODAY)
        assert result["coins_earned"] == 5
        assert result["streak"] == 1
        assert result["message"] == "+5 coins! Day 1 streak"
        assert state.last_login_date == TODAY.isoformat()
        assert state.total_coins_earned == 5

    def test_consecutive_day_advances(self):
        _, result = claim_reward(_state(streak=3, last=YESTERDAY, coins=30), today=TODAY)
        assert result["streak"] == 4
        assert result["coins_earned"] == 20
        assert result["total_coins"] == 50

    def test_wraps_after_last_day(self):
        _, result = claim_reward(_state(streak=7, last=YESTERDAY), today=TODAY)
        assert result["streak"] == 1
        assert result["coins_earned"] == 5

    def test_gap_resets(self):
        _, result = claim_reward(_state(streak=5, last=LAST_WEEK), today=TODAY)
        assert result["streak"] == 1

    def test_already_claimed(self):
        with pytest.raises(RewardAlreadyClaimed):
            claim_reward(_state(streak=2, last=TODAY.isoformat()), today=TODAY)

    def test_plants_tree_when_crossing_threshold(self):
        state, result = claim_reward(_state(streak=1, last=YESTERDAY, coins=4995, trees=2), today=TODAY)
        assert result["new_trees_planted"] == 1
        assert result["trees_planted"] == 3
        assert result["coins_to_next_tree"] == 4995
        assert result["message"] == "You planted 1 tree(s)! +10 coins (Day 2)"
        assert state.trees_planted == 3


class TestRewardStatus:
    def test_fresh_user(self):
        status = reward_status(_state(), today=TODAY)
        assert status["can_claim_reward"] is True
        assert status["streak"] == 0
        assert status["next_reward_amount"] == 5
        assert status["coins_to_next_tree"] == 5000

    def test_claimed_today(self):
        status = reward_status(_state(streak=2, last=TODAY.isoformat(), coins=15), today=TODAY)
        assert status["can_claim_reward"] is False
        assert status["streak"] == 2
        assert status["next_reward_amount"] == 15

    def test_stale_streak_reported_as_zero(self):
        status = reward_status(_state(streak=4, last=LAST_WEEK), today=TODAY)
        assert status["streak"] == 0
        assert status["next_reward_amount"] == 5

    def test_from_user_row(self):
        user = {"last_login_date": None, "total_coins_earned": 40, "trees_planted": 0,
                "reward_streak": 0, "last_streak_date": None}
        assert RewardState.from_user(user).total_coins_earned == 40
