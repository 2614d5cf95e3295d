"""
Threshold-based achievement evaluation.

evaluate_achievements() is pure: given a user's aggregate totals, the
catalog and the ids already unlocked, it returns the achievements that are
newly earned. check_and_unlock_achievements() wires it to the store and is
safe to re-run after a partial failure: an unlock that already exists is
treated as success.
"""

import logging
from dataclasses import dataclass
from typing import Collection, Iterable, List, Mapping

import models
from errors import DuplicateUnlockIgnored
from streaks import calculate_streak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementTotals:
    """Aggregate facts an achievement threshold is compared against."""
    total_co2_saved: float = 0.0
    total_calories: float = 0.0
    total_journeys: int = 0   # all journeys, car included
    current_streak: int = 0


METRIC_FOR_TYPE = {
    "co2": "total_co2_saved",
    "calories": "total_calories",
    "journeys": "total_journeys",
    "streak": "current_streak",
}


def is_earned(achievement: Mapping, totals: AchievementTotals) -> bool:
    metric = METRIC_FOR_TYPE.get(achievement["type"])
    if metric is None:
        logger.warning(
            "Achievement %s has unknown type %r; skipping",
            achievement.get("code"), achievement["type"],
        )
        return False
    return getattr(totals, metric) >= achievement["threshold"]


def evaluate_achievements(
    totals: AchievementTotals,
    catalog: Iterable[Mapping],
    unlocked_ids: Collection,
) -> List[Mapping]:
    """Return catalog entries that are earned and not yet unlocked.

    Already-unlocked achievements are never re-evaluated, so a lower total
    can never revoke an unlock.
    """
    return [
        a for a in catalog
        if a["id"] not in unlocked_ids and is_earned(a, totals)
    ]


def load_totals(user_id) -> AchievementTotals:
    """Read a user's current totals and streak from the store."""
    sums = models.get_journey_totals(user_id)
    streak = calculate_streak(models.get_sustainable_journey_times(user_id))
    return AchievementTotals(
        total_co2_saved=sums["total_co2_saved"],
        total_calories=sums["total_calories"],
        total_journeys=sums["total_journeys"],
        current_streak=streak,
    )


def check_and_unlock_achievements(user_id) -> List[dict]:
    """Evaluate and persist newly earned achievements for a user.

    Returns the achievements this call actually unlocked. A concurrent pass
    that wins the insert race is not reported here and not an error.
    """
    totals = load_totals(user_id)
    earned = evaluate_achievements(
        totals,
        models.list_achievements(),
        models.get_unlocked_achievement_ids(user_id),
    )

    unlocked = []
    for achievement in earned:
        try:
            models.unlock_achievement(user_id, achievement["id"])
        except DuplicateUnlockIgnored:
            logger.debug(
                "Achievement %s already unlocked for user %s",
                achievement["code"], user_id,
            )
            continue
        logger.info("Unlocked achievement %s for user %s", achievement["code"], user_id)
        unlocked.append(dict(achievement))
    return unlocked
