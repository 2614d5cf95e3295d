"""Tests for achievements.py: pure evaluator and the idempotent unlock pass."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

import models
from achievements import (
    AchievementTotals,
    evaluate_achievements,
    check_and_unlock_achievements,
    load_totals,
)
from calculations import calculate_metrics
from errors import DuplicateUnlockIgnored


CATALOG = [
    {"id": 1, "code": "first_steps", "type": "journeys", "threshold": 1},
    {"id": 2, "code": "green_champion", "type": "co2", "threshold": 20},
    {"id": 3, "code": "calorie_crusher", "type": "calories", "threshold": 1000},
    {"id": 4, "code": "streak_starter", "type": "streak", "threshold": 3},
]


def _codes(achievements):
    return sorted(a["code"] for a in achievements)


# =========================================================================
# Pure evaluator
# =========================================================================

class TestEvaluateAchievements:
    def test_nothing_earned(self):
        assert evaluate_achievements(AchievementTotals(), CATALOG, set()) == []

    def test_threshold_is_inclusive(self):
        totals = AchievementTotals(total_journeys=1, total_co2_saved=20)
        earned = evaluate_achievements(totals, CATALOG, set())
        assert _codes(earned) == ["first_steps", "green_champion"]

    def test_each_type_uses_its_metric(self):
        totals = AchievementTotals(
            total_co2_saved=0, total_calories=1000, total_journeys=0, current_streak=3,
        )
        earned = evaluate_achievements(totals, CATALOG, set())
        assert _codes(earned) == ["calorie_crusher", "streak_starter"]

    def test_already_unlocked_skipped(self):
        totals = AchievementTotals(total_journeys=5, total_co2_saved=50)
        earned = evaluate_achievements(totals, CATALOG, {1})
        assert _codes(earned) == ["green_champion"]

    def test_never_revokes(self):
        # Totals dropped below every threshold; unlocked set is untouched
        unlocked = {1, 2}
        assert evaluate_achievements(AchievementTotals(), CATALOG, unlocked) == []
        assert unlocked == {1, 2}

    def test_unknown_type_ignored(self):
        catalog = CATALOG + [{"id": 9, "code": "mystery", "type": "karma", "threshold": 0}]
        earned = evaluate_achievements(AchievementTotals(), catalog, set())
        assert earned == []


# =========================================================================
# Store-backed unlock pass
# =========================================================================

def _make_user(email="rider@example.com"):
    return models.create_user("Rider", email)["id"]


def _log(user_id, distance, mode, days_ago=0):
    created = datetime.now(timezone.utc) - timedelta(days=days_ago)
    metrics = calculate_metrics(distance, mode).to_dict()
    return models.create_journey(user_id, distance, mode, metrics, created_at=created)


class TestCheckAndUnlock:
    def test_first_journey_unlocks_first_steps(self):
        uid = _make_user()
        _log(uid, 3, "bike")
        unlocked = check_and_unlock_achievements(uid)
        assert _codes(unlocked) == ["first_steps"]

    def test_second_run_is_idempotent(self):
        uid = _make_user()
        _log(uid, 3, "bike")
        check_and_unlock_achievements(uid)
        rows_before = len(models.get_user_achievements(uid))

        assert check_and_unlock_achievements(uid) == []
        assert len(models.get_user_achievements(uid)) == rows_before

    def test_streak_achievement(self):
        uid = _make_user()
        for days_ago in (0, 1, 2):
            _log(uid, 2, "walk", days_ago=days_ago)
        codes = _codes(check_and_unlock_achievements(uid))
        assert "streak_starter" in codes
        assert "first_steps" in codes

    def test_car_journeys_count_as_journeys_but_not_streak(self):
        uid = _make_user()
        for days_ago in (0, 1, 2, 3, 4):
            _log(uid, 5, "car", days_ago=days_ago)
        codes = _codes(check_and_unlock_achievements(uid))
        assert codes == ["first_steps", "regular_commuter"]

    def test_co2_achievement(self):
        uid = _make_user()
        _log(uid, 100, "train")  # saves 16.9 kg
        _log(uid, 20, "bike")    # saves 4.2 kg
        codes = _codes(check_and_unlock_achievements(uid))
        assert "green_champion" in codes

    def test_concurrent_insert_is_swallowed(self):
        """A pass that loses the insert race reports nothing and does not fail."""
        uid = _make_user()
        _log(uid, 3, "bike")
        first_steps = next(a for a in models.list_achievements() if a["code"] == "first_steps")

        # Simulate a second request that read the unlocked set before the
        # first request's insert landed.
        with patch("models.get_unlocked_achievement_ids", return_value=set()):
            models.unlock_achievement(uid, first_steps["id"])
            unlocked = check_and_unlock_achievements(uid)

        assert unlocked == []
        assert len(models.get_user_achievements(uid)) == 1

    def test_load_totals(self):
        uid = _make_user()
        _log(uid, 10, "bike")
        _log(uid, 10, "car")
        totals = load_totals(uid)
        assert totals.total_journeys == 2
        assert totals.total_co2_saved == pytest.approx(2.1)
        assert totals.total_calories == 300
        assert totals.current_streak == 1


class TestUnlockAchievement:
    def test_duplicate_raises(self):
        uid = _make_user()
        aid = models.list_achievements()[0]["id"]
        models.unlock_achievement(uid, aid)
        with pytest.raises(DuplicateUnlockIgnored) as exc:
            models.unlock_achievement(uid, aid)
        assert exc.value.achievement_id == aid
