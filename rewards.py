"""
Daily login rewards.

A user may claim once per local calendar day. Claiming on the day after
the previous claim advances the reward streak (wrapping back to day 1
after the last day of the schedule); any longer gap restarts at day 1.
Coins accumulate, and every `coins_for_tree` coins plants one tree.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Optional

from errors import RewardAlreadyClaimed
from streaks import to_local_day
from transport_config import REWARD_SCHEDULE, RewardSchedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardState:
    last_login_date: Optional[str] = None
    total_coins_earned: int = 0
    trees_planted: int = 0
    reward_streak: int = 0
    last_streak_date: Optional[str] = None

    @classmethod
    def from_user(cls, user: dict) -> "RewardState":
        return cls(
            last_login_date=user.get("last_login_date"),
            total_coins_earned=user.get("total_coins_earned") or 0,
            trees_planted=user.get("trees_planted") or 0,
            reward_streak=user.get("reward_streak") or 0,
            last_streak_date=user.get("last_streak_date"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


def _day(value) -> Optional[date]:
    return to_local_day(value) if value else None


def coins_for_day(streak_day: int, schedule: RewardSchedule = REWARD_SCHEDULE) -> int:
    if 1 <= streak_day <= schedule.cycle_length:
        return schedule.coins_by_day[streak_day - 1]
    return schedule.fallback_coins


def effective_streak(state: RewardState, today: date) -> int:
    """Current reward streak, or 0 if the last claim was before yesterday."""
    last = _day(state.last_streak_date)
    if last is not None and last not in (today, today - timedelta(days=1)):
        return 0
    return state.reward_streak


def reward_status(state: RewardState, today: Optional[date] = None,
                  schedule: RewardSchedule = REWARD_SCHEDULE) -> dict:
    today = today or date.today()
    streak = effective_streak(state, today)
    next_streak = 1 if streak >= schedule.cycle_length else streak + 1
    coins = state.total_coins_earned
    return {
        "total_coins": coins,
        "trees_planted": state.trees_planted,
        "can_claim_reward": _day(state.last_login_date) != today,
        "coins_for_tree": schedule.coins_for_tree,
        "coins_to_next_tree": schedule.coins_for_tree - (coins % schedule.coins_for_tree),
        "streak": streak,
        "next_reward_amount": coins_for_day(next_streak, schedule),
        "streak_rewards": list(schedule.coins_by_day),
    }


def claim_reward(state: RewardState, today: Optional[date] = None,
                 schedule: RewardSchedule = REWARD_SCHEDULE):
    """Claim today's reward.

    Returns (new_state, result_dict). Raises RewardAlreadyClaimed if the
    last claim was today.
    """
    today = today or date.today()
    if _day(state.last_login_date) == today:
        raise RewardAlreadyClaimed("Daily reward already claimed today")

    new_streak = 1
    if _day(state.last_streak_date) == today - timedelta(days=1):
        new_streak = 1 if state.reward_streak >= schedule.cycle_length else state.reward_streak + 1

    earned = coins_for_day(new_streak, schedule)
    total = state.total_coins_earned + earned
    new_trees = total // schedule.coins_for_tree - state.total_coins_earned // schedule.coins_for_tree
    trees = state.trees_planted + new_trees

    new_state = RewardState(
        last_login_date=today.isoformat(),
        total_coins_earned=total,
        trees_planted=trees,
        reward_streak=new_streak,
        last_streak_date=today.isoformat(),
    )
    if new_trees > 0:
        message = f"You planted {new_trees} tree(s)! +{earned} coins (Day {new_streak})"
        logger.info("Reward claim planted %d tree(s); total coins %d", new_trees, total)
    else:
        message = f"+{earned} coins! Day {new_streak} streak"

    result = {
        "coins_earned": earned,
        "total_coins": total,
        "trees_planted": trees,
        "new_trees_planted": new_trees,
        "coins_for_tree": schedule.coins_for_tree,
        "coins_to_next_tree": schedule.coins_for_tree - (total % schedule.coins_for_tree),
        "streak": new_streak,
        "message": message,
    }
    return new_state, result
