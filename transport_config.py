"""
Reference data for GreenTrip.

Owns every constant that affects journey metrics, achievements, levels
and the daily reward schedule. Frozen dataclasses keep the tables
immutable after import; calculators take them as arguments with these
module-level instances as defaults.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple


# =============================================================================
# Dataclasses
# =============================================================================

@dataclass(frozen=True)
class TransportProfile:
    """Per-mode constants used by the metrics calculator."""
    mode: str
    co2_per_km: float   # kg CO2 per km
    speed_kmh: float    # average door-to-door speed
    cal_per_km: float   # kcal burned per km
    label: str
    icon: str
    color: str


@dataclass(frozen=True)
class AchievementDef:
    """One entry of the static achievement catalog."""
    code: str
    name: str
    description: str
    icon: str
    threshold: float
    type: str  # co2 | calories | journeys | streak


@dataclass(frozen=True)
class Level:
    """Sustainability level band: min_score <= score < max_score."""
    name: str
    min_score: float
    max_score: float


@dataclass(frozen=True)
class RewardSchedule:
    """Daily login reward parameters."""
    coins_by_day: Tuple[int, ...] = (5, 10, 15, 20, 30, 40, 50)
    coins_for_tree: int = 5000
    fallback_coins: int = 5

    @property
    def cycle_length(self) -> int:
        return len(self.coins_by_day)


# =============================================================================
# Transport profiles
# =============================================================================

CAR = "car"

TRANSPORT_PROFILES: Mapping[str, TransportProfile] = MappingProxyType({
    "car": TransportProfile("car", 0.21, 40, 0, "Car", "🚗", "#ef4444"),
    "bus": TransportProfile("bus", 0.089, 25, 0, "Bus", "🚌", "#f97316"),
    "train": TransportProfile("train", 0.041, 60, 0, "Train", "🚆", "#eab308"),
    "bike": TransportProfile("bike", 0, 15, 30, "Bicycle", "🚲", "#22c55e"),
    "walk": TransportProfile("walk", 0, 5, 60, "Walking", "🚶", "#10b981"),
    "ebike": TransportProfile("ebike", 0.006, 20, 15, "E-Bike", "⚡", "#06b6d4"),
})

TRANSPORT_MODES: Tuple[str, ...] = tuple(TRANSPORT_PROFILES)


# =============================================================================
# Achievements
# =============================================================================

ACHIEVEMENT_TYPES: Tuple[str, ...] = ("co2", "calories", "journeys", "streak")

ACHIEVEMENT_CATALOG: Tuple[AchievementDef, ...] = (
    AchievementDef("first_steps", "First Steps", "Log your first journey", "🎯", 1, "journeys"),
    AchievementDef("regular_commuter", "Regular Commuter", "Log 5 journeys", "🚀", 5, "journeys"),
    AchievementDef("journey_master", "Journey Master", "Log 20 journeys", "🏆", 20, "journeys"),
    AchievementDef("green_champion", "Green Champion", "Save 20 kg of CO2", "🌱", 20, "co2"),
    AchievementDef("carbon_hero", "Carbon Hero", "Save 100 kg of CO2", "🌍", 100, "co2"),
    AchievementDef("climate_champion", "Climate Champion", "Save 500 kg of CO2", "🌳", 500, "co2"),
    AchievementDef("calorie_crusher", "Calorie Crusher", "Burn 1000 calories", "🔥", 1000, "calories"),
    AchievementDef("fitness_fanatic", "Fitness Fanatic", "Burn 5000 calories", "💪", 5000, "calories"),
    AchievementDef("streak_starter", "Streak Starter", "3-day sustainable streak", "⚡", 3, "streak"),
    AchievementDef("streak_master", "Streak Master", "7-day sustainable streak", "🔥", 7, "streak"),
    AchievementDef("green_habit", "Green Habit", "30-day sustainable streak", "🏅", 30, "streak"),
)


# =============================================================================
# Levels and scoring weights
# =============================================================================

LEVELS: Tuple[Level, ...] = (
    Level("Eco Beginner", 0, 100),
    Level("Green Starter", 100, 300),
    Level("Climate Conscious", 300, 600),
    Level("Eco Warrior", 600, 1000),
    Level("Planet Protector", 1000, 2000),
    Level("Carbon Hero", 2000, 5000),
    Level("Climate Champion", 5000, float("inf")),
)

SCORE_POINTS_PER_KG_CO2 = 10
SCORE_POINTS_PER_KCAL = 0.1
SCORE_POINTS_PER_TRIP = 5
SCORE_POINTS_PER_STREAK_DAY = 2

# One tree absorbs roughly 21 kg CO2 per year
KG_CO2_PER_TREE = 21


# =============================================================================
# Daily rewards and car settings
# =============================================================================

REWARD_SCHEDULE = RewardSchedule()

# g CO2 per km by car type; unknown types fall back to DEFAULT_CAR_EMISSION_FACTOR
CAR_EMISSION_FACTORS: Mapping[str, float] = MappingProxyType({
    "petrol": 171,
    "diesel": 171,
    "hybrid": 92,
    "electric": 0,
})
DEFAULT_CAR_EMISSION_FACTOR = 171


# =============================================================================
# Directions (Google travel modes)
# =============================================================================

# g CO2 per km and kcal per km for Google Directions travel modes
DIRECTIONS_CO2_G_PER_KM: Mapping[str, float] = MappingProxyType({
    "driving": 171,
    "walking": 0,
    "bicycling": 0,
    "transit": 89,
})
DIRECTIONS_CAL_PER_KM: Mapping[str, float] = MappingProxyType({
    "driving": 0,
    "walking": 50,
    "bicycling": 30,
    "transit": 10,
})
DIRECTIONS_MODE_MAP: Mapping[str, str] = MappingProxyType({
    "car": "driving",
    "bike": "bicycling",
    "ebike": "bicycling",
    "e-bike": "bicycling",
    "walk": "walking",
})
