"""
SQLite persistence for GreenTrip users, journeys and achievements.

No ORM, just raw sqlite3. Journeys are append-only; achievement unlocks
are guarded by a UNIQUE (user_id, achievement_id) constraint so two
concurrent evaluation passes can never create a duplicate row.
"""

import sqlite3
import os
import uuid
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set

from errors import DuplicateUnlockIgnored
from transport_config import ACHIEVEMENT_CATALOG, CAR, AchievementDef

logger = logging.getLogger(__name__)

DB_PATH = os.environ.get("GREENTRIP_DB_PATH", "greentrip.db")


def _get_db():
    """Get a sqlite3 connection with WAL mode for concurrent reads."""
    conn = sqlite3.connect(DB_PATH, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def init_db():
    """Create tables if they don't exist and seed the achievement catalog.

    Safe to call on every startup.
    """
    conn = _get_db()
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS users (
            id                      TEXT PRIMARY KEY,
            name                    TEXT,
            email                   TEXT NOT NULL UNIQUE,
            created_at              TEXT NOT NULL,
            walking_goal            INTEGER NOT NULL DEFAULT 0,
            cycling_goal            INTEGER NOT NULL DEFAULT 0,
            public_transit_goal     INTEGER NOT NULL DEFAULT 0,
            max_driving_days        INTEGER NOT NULL DEFAULT 7,
            fitness_goal            TEXT NOT NULL DEFAULT 'stay_active',
            weekly_calorie_target   INTEGER NOT NULL DEFAULT 1000,
            setup_completed         INTEGER NOT NULL DEFAULT 0,
            car_plate_number        TEXT,
            car_type                TEXT,
            car_emission_factor     REAL,
            last_login_date         TEXT,
            total_coins_earned      INTEGER NOT NULL DEFAULT 0,
            trees_planted           INTEGER NOT NULL DEFAULT 0,
            reward_streak           INTEGER NOT NULL DEFAULT 0,
            last_streak_date        TEXT
        );

        CREATE TABLE IF NOT EXISTS journeys (
            id              TEXT PRIMARY KEY,
            user_id         TEXT NOT NULL REFERENCES users(id),
            distance        REAL NOT NULL,
            transport_mode  TEXT NOT NULL,
            travel_time     INTEGER NOT NULL,
            co2_emissions   REAL NOT NULL,
            calories_burned INTEGER NOT NULL,
            co2_saved       REAL NOT NULL,
            from_location   TEXT,
            to_location     TEXT,
            created_at      TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_journeys_user ON journeys(user_id);
        CREATE INDEX IF NOT EXISTS idx_journeys_created ON journeys(created_at);

        CREATE TABLE IF NOT EXISTS achievements (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            code        TEXT NOT NULL UNIQUE,
            name        TEXT NOT NULL,
            description TEXT NOT NULL,
            icon        TEXT,
            threshold   REAL NOT NULL,
            type        TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS user_achievements (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id         TEXT NOT NULL REFERENCES users(id),
            achievement_id  INTEGER NOT NULL REFERENCES achievements(id),
            unlocked_at     TEXT NOT NULL,
            UNIQUE (user_id, achievement_id)
        );
        CREATE INDEX IF NOT EXISTS idx_user_achievements_user ON user_achievements(user_id);
    """)
    conn.commit()
    conn.close()
    seed_achievements()


def seed_achievements(catalog: Iterable[AchievementDef] = ACHIEVEMENT_CATALOG):
    """Upsert the static achievement catalog by code."""
    conn = _get_db()
    for a in catalog:
        conn.execute(
            """INSERT INTO achievements (code, name, description, icon, threshold, type)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(code) DO UPDATE SET
                   name = excluded.name,
                   description = excluded.description,
                   icon = excluded.icon,
                   threshold = excluded.threshold,
                   type = excluded.type""",
            (a.code, a.name, a.description, a.icon, a.threshold, a.type),
        )
    conn.commit()
    conn.close()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def create_user(name, email):
    """Insert a user. Returns the user dict, or None if the email is taken."""
    user_id = uuid.uuid4().hex[:12]
    conn = _get_db()
    try:
        conn.execute(
            "INSERT INTO users (id, name, email, created_at) VALUES (?, ?, ?, ?)",
            (user_id, name, email, _now_iso()),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        logger.info("User with email %s already exists", email)
        return None
    finally:
        conn.close()
    return get_user(user_id)


def get_user(user_id) -> Optional[dict]:
    conn = _get_db()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    return dict(row) if row else None


def get_user_by_email(email) -> Optional[dict]:
    conn = _get_db()
    row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    conn.close()
    return dict(row) if row else None


_LIFESTYLE_FIELDS = (
    "walking_goal",
    "cycling_goal",
    "public_transit_goal",
    "max_driving_days",
    "fitness_goal",
    "weekly_calorie_target",
)

_REWARD_FIELDS = (
    "last_login_date",
    "total_coins_earned",
    "trees_planted",
    "reward_streak",
    "last_streak_date",
)


def update_lifestyle(user_id, prefs: dict) -> bool:
    """Save lifestyle preferences and mark setup completed."""
    values = [prefs[f] for f in _LIFESTYLE_FIELDS]
    assignments = ", ".join(f"{f} = ?" for f in _LIFESTYLE_FIELDS)
    conn = _get_db()
    cur = conn.execute(
        f"UPDATE users SET {assignments}, setup_completed = 1 WHERE id = ?",
        (*values, user_id),
    )
    changed = cur.rowcount
    conn.commit()
    conn.close()
    return changed > 0


def update_car_settings(user_id, car_plate_number, car_type, car_emission_factor) -> bool:
    conn = _get_db()
    cur = conn.execute(
        """UPDATE users
           SET car_plate_number = ?, car_type = ?, car_emission_factor = ?
           WHERE id = ?""",
        (car_plate_number, car_type, car_emission_factor, user_id),
    )
    changed = cur.rowcount
    conn.commit()
    conn.close()
    return changed > 0


def save_reward_state(user_id, state: dict, unclaimed_on=None) -> bool:
    """Persist daily-reward state (see rewards.RewardState).

    With unclaimed_on (an ISO date), the row is only written if the user
    has not already claimed on that day, so of two concurrent claims only
    one lands. Returns False when nothing was written.
    """
    values = [state[f] for f in _REWARD_FIELDS]
    assignments = ", ".join(f"{f} = ?" for f in _REWARD_FIELDS)
    sql = f"UPDATE users SET {assignments} WHERE id = ?"
    params = [*values, user_id]
    if unclaimed_on is not None:
        sql += " AND (last_login_date IS NULL OR last_login_date != ?)"
        params.append(unclaimed_on)
    conn = _get_db()
    cur = conn.execute(sql, params)
    changed = cur.rowcount
    conn.commit()
    conn.close()
    return changed > 0


# ---------------------------------------------------------------------------
# Journeys
# ---------------------------------------------------------------------------

def create_journey(user_id, distance, transport_mode, metrics: dict,
                   from_location=None, to_location=None, created_at=None):
    """Persist a journey with its precomputed metrics. Returns the row dict.

    metrics is JourneyMetrics.to_dict(); its values are stored verbatim.
    """
    journey_id = uuid.uuid4().hex[:12]
    created = created_at.astimezone(timezone.utc).isoformat() if created_at else _now_iso()
    conn = _get_db()
    conn.execute(
        """INSERT INTO journeys
           (id, user_id, distance, transport_mode, travel_time, co2_emissions,
            calories_burned, co2_saved, from_location, to_location, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            journey_id,
            user_id,
            distance,
            transport_mode,
            metrics["travel_time"],
            metrics["co2_emissions"],
            metrics["calories_burned"],
            metrics["co2_saved"],
            from_location,
            to_location,
            created,
        ),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM journeys WHERE id = ?", (journey_id,)).fetchone()
    conn.close()
    return dict(row)


def list_journeys(user_id, limit=50, offset=0) -> List[dict]:
    """A user's journeys, newest first."""
    conn = _get_db()
    rows = conn.execute(
        """SELECT * FROM journeys WHERE user_id = ?
           ORDER BY created_at DESC LIMIT ? OFFSET ?""",
        (user_id, limit, offset),
    ).fetchall()
    conn.close()
    return [dict(row) for row in rows]


def count_journeys(user_id) -> int:
    conn = _get_db()
    row = conn.execute(
        "SELECT COUNT(*) AS cnt FROM journeys WHERE user_id = ?", (user_id,)
    ).fetchone()
    conn.close()
    return row["cnt"]


def get_journey_totals(user_id) -> dict:
    """Aggregate sums for one user. Sums are 0 (not NULL) when there are no journeys."""
    conn = _get_db()
    row = conn.execute(
        """SELECT COUNT(*)                       AS total_journeys,
                  COALESCE(SUM(distance), 0)        AS total_distance,
                  COALESCE(SUM(co2_saved), 0)       AS total_co2_saved,
                  COALESCE(SUM(calories_burned), 0) AS total_calories,
                  COALESCE(SUM(CASE WHEN transport_mode != ? THEN 1 ELSE 0 END), 0)
                                                    AS sustainable_trips
           FROM journeys WHERE user_id = ?""",
        (CAR, user_id),
    ).fetchone()
    conn.close()
    return dict(row)


def get_sustainable_journey_times(user_id) -> List[str]:
    """created_at of every non-car journey for a user, newest first."""
    conn = _get_db()
    rows = conn.execute(
        """SELECT created_at FROM journeys
           WHERE user_id = ? AND transport_mode != ?
           ORDER BY created_at DESC""",
        (user_id, CAR),
    ).fetchall()
    conn.close()
    return [row["created_at"] for row in rows]


def get_leaderboard_totals(since: Optional[datetime] = None) -> List[dict]:
    """Per-user sums of co2_saved and calories inside an optional window.

    Returns dicts with user_id, display_name, co2_saved, calories_burned and
    trip_count, in user_id order.
    """
    where = ""
    params = []
    if since is not None:
        where = "WHERE j.created_at >= ?"
        params.append(since.astimezone(timezone.utc).isoformat())
    conn = _get_db()
    rows = conn.execute(
        f"""SELECT j.user_id                 AS user_id,
                   u.name                    AS display_name,
                   SUM(j.co2_saved)          AS co2_saved,
                   SUM(j.calories_burned)    AS calories_burned,
                   COUNT(*)                  AS trip_count
            FROM journeys j
            LEFT JOIN users u ON u.id = j.user_id
            {where}
            GROUP BY j.user_id
            ORDER BY j.user_id""",
        params,
    ).fetchall()
    conn.close()
    return [dict(row) for row in rows]


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------

def list_achievements() -> List[dict]:
    """The catalog ordered by type, then threshold."""
    conn = _get_db()
    rows = conn.execute(
        "SELECT * FROM achievements ORDER BY type ASC, threshold ASC"
    ).fetchall()
    conn.close()
    return [dict(row) for row in rows]


def get_unlocked_achievement_ids(user_id) -> Set[int]:
    conn = _get_db()
    rows = conn.execute(
        "SELECT achievement_id FROM user_achievements WHERE user_id = ?",
        (user_id,),
    ).fetchall()
    conn.close()
    return {row["achievement_id"] for row in rows}


def unlock_achievement(user_id, achievement_id) -> None:
    """Insert an unlock row.

    Raises DuplicateUnlockIgnored if the (user_id, achievement_id) pair
    already exists, including when a concurrent request inserted it first.
    """
    conn = _get_db()
    try:
        conn.execute(
            """INSERT INTO user_achievements (user_id, achievement_id, unlocked_at)
               VALUES (?, ?, ?)""",
            (user_id, achievement_id, _now_iso()),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        raise DuplicateUnlockIgnored(user_id, achievement_id) from None
    finally:
        conn.close()


def get_user_achievements(user_id) -> List[dict]:
    """Unlocked achievements for a user, with unlocked_at, oldest unlock first."""
    conn = _get_db()
    rows = conn.execute(
        """SELECT a.*, ua.unlocked_at
           FROM user_achievements ua
           JOIN achievements a ON a.id = ua.achievement_id
           WHERE ua.user_id = ?
           ORDER BY ua.unlocked_at ASC, a.id ASC""",
        (user_id,),
    ).fetchall()
    conn.close()
    return [dict(row) for row in rows]
