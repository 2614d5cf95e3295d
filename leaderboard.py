"""
Leaderboard ranking over per-user journey totals.

Ties keep the order the rows arrived in (Python's sort is stable); the
store returns rows in user_id order, so tie order is stable but carries
no meaning.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Mapping, Optional

from calculations import round2, round_half_up

DEFAULT_LIMIT = 10

PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "all": None,
}

METRICS = ("co2", "calories")


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    display_name: str
    metric_value: float
    co2_saved: float
    calories_burned: int
    trip_count: int
    is_requesting_user: bool

    def to_dict(self) -> dict:
        return asdict(self)


def window_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of the leaderboard window, or None for all-time."""
    days = PERIOD_DAYS[period]
    if days is None:
        return None
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


def build_leaderboard(
    totals_rows: Iterable[Mapping],
    metric: str = "co2",
    requesting_user_id: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[LeaderboardEntry]:
    """Rank per-user totals by metric ("co2" or "calories"), highest first.

    Each row needs user_id, display_name, co2_saved, calories_burned and
    trip_count. Returns at most `limit` entries ranked 1..N.
    """
    if metric not in METRICS:
        raise ValueError(f"Unknown leaderboard metric: {metric!r}")

    prepared = []
    for row in totals_rows:
        co2 = round2(row.get("co2_saved") or 0)
        calories = round_half_up(row.get("calories_burned") or 0)
        prepared.append({
            "user_id": row["user_id"],
            "display_name": row.get("display_name") or "Anonymous",
            "co2_saved": co2,
            "calories_burned": calories,
            "trip_count": row.get("trip_count") or 0,
            "metric_value": calories if metric == "calories" else co2,
        })

    prepared.sort(key=lambda r: r["metric_value"], reverse=True)

    return [
        LeaderboardEntry(
            rank=position,
            is_requesting_user=(
                requesting_user_id is not None and r["user_id"] == requesting_user_id
            ),
            **r,
        )
        for position, r in enumerate(prepared[:limit], start=1)
    ]
