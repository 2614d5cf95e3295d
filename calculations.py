"""
Journey metrics for GreenTrip.

Pure functions over the immutable tables in transport_config. Every
function that needs a table takes it as a keyword argument so tests and
alternative deployments can inject their own.
"""

import math
from dataclasses import dataclass, asdict
from typing import List, Mapping, Tuple

from errors import InvalidDistanceError, InvalidModeError
from transport_config import (
    CAR,
    KG_CO2_PER_TREE,
    LEVELS,
    SCORE_POINTS_PER_KCAL,
    SCORE_POINTS_PER_KG_CO2,
    SCORE_POINTS_PER_STREAK_DAY,
    SCORE_POINTS_PER_TRIP,
    TRANSPORT_PROFILES,
    Level,
    TransportProfile,
)


@dataclass(frozen=True)
class JourneyMetrics:
    travel_time: int        # minutes
    co2_emissions: float    # kg
    calories_burned: int    # kcal
    co2_saved: float        # kg vs driving the same distance

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ComparisonResult:
    """One mode's metrics plus its difference from driving (mode minus car)."""
    mode: str
    metrics: JourneyMetrics
    time_difference: int
    co2_difference: float
    calorie_difference: int

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# Rounding
# =============================================================================

def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from -inf.

    Python's round() uses banker's rounding (round(2.5) -> 2); journey
    metrics round .5 up so 2.5 km of walking reports the same minutes on
    every client.
    """
    return int(math.floor(x + 0.5))


def round2(x: float) -> float:
    """Round to 2 decimal places, halves up."""
    return round_half_up(x * 100) / 100


# =============================================================================
# Lookups
# =============================================================================

def get_profile(
    mode: str,
    profiles: Mapping[str, TransportProfile] = TRANSPORT_PROFILES,
) -> TransportProfile:
    """Return the profile for mode, raising InvalidModeError if unknown."""
    try:
        return profiles[mode]
    except (KeyError, TypeError):
        raise InvalidModeError(mode) from None


def _check_distance(distance) -> float:
    if isinstance(distance, bool) or not isinstance(distance, (int, float)):
        raise InvalidDistanceError(distance)
    if not math.isfinite(distance) or distance < 0:
        raise InvalidDistanceError(distance)
    return float(distance)


def is_sustainable_mode(mode: str) -> bool:
    return mode != CAR


# =============================================================================
# Calculator
# =============================================================================

def calculate_metrics(
    distance: float,
    mode: str,
    profiles: Mapping[str, TransportProfile] = TRANSPORT_PROFILES,
) -> JourneyMetrics:
    """Convert a distance (km) and transport mode into journey metrics.

    Raises InvalidModeError for an unknown mode and InvalidDistanceError for
    a negative, NaN or infinite distance. Zero distance yields all-zero
    metrics.
    """
    distance = _check_distance(distance)
    profile = get_profile(mode, profiles)
    car = get_profile(CAR, profiles)

    # co2_saved is taken from the unrounded emissions
    raw_emissions = distance * profile.co2_per_km
    return JourneyMetrics(
        travel_time=round_half_up(distance / profile.speed_kmh * 60),
        co2_emissions=round2(raw_emissions),
        calories_burned=round_half_up(distance * profile.cal_per_km),
        co2_saved=round2(distance * car.co2_per_km - raw_emissions),
    )


def compare_with_car(
    distance: float,
    mode: str,
    profiles: Mapping[str, TransportProfile] = TRANSPORT_PROFILES,
) -> ComparisonResult:
    mode_metrics = calculate_metrics(distance, mode, profiles)
    car_metrics = calculate_metrics(distance, CAR, profiles)
    return ComparisonResult(
        mode=mode,
        metrics=mode_metrics,
        time_difference=mode_metrics.travel_time - car_metrics.travel_time,
        co2_difference=round2(mode_metrics.co2_emissions - car_metrics.co2_emissions),
        calorie_difference=mode_metrics.calories_burned - car_metrics.calories_burned,
    )


def calculate_all_modes(
    distance: float,
    profiles: Mapping[str, TransportProfile] = TRANSPORT_PROFILES,
) -> List[ComparisonResult]:
    """Compare every profile against driving, in table order."""
    return [compare_with_car(distance, mode, profiles) for mode in profiles]


# =============================================================================
# Equivalents, score and level
# =============================================================================

def co2_to_trees(co2_kg: float) -> float:
    """Trees needed for a year to absorb co2_kg."""
    return round2(co2_kg / KG_CO2_PER_TREE)


def calories_to_food(calories: float) -> str:
    if calories >= 500:
        return f"{round_half_up(calories / 500)} burger(s)"
    if calories >= 250:
        return f"{round_half_up(calories / 250)} donut(s)"
    if calories >= 100:
        return f"{round_half_up(calories / 100)} apple(s)"
    return f"{calories} kcal"


def calculate_sustainability_score(
    total_co2_saved: float,
    total_calories: float,
    sustainable_trips: int,
    current_streak: int,
) -> int:
    return round_half_up(
        total_co2_saved * SCORE_POINTS_PER_KG_CO2
        + total_calories * SCORE_POINTS_PER_KCAL
        + sustainable_trips * SCORE_POINTS_PER_TRIP
        + current_streak * SCORE_POINTS_PER_STREAK_DAY
    )


def get_level(score: float, levels: Tuple[Level, ...] = LEVELS) -> Level:
    """Return the band containing score; scores below every band get the first."""
    for level in levels:
        if level.min_score <= score < level.max_score:
            return level
    return levels[0]


# =============================================================================
# Recommendations
# =============================================================================

def get_recommendation(
    distance: float,
    current_mode: str,
    frequency: int = 5,
    profiles: Mapping[str, TransportProfile] = TRANSPORT_PROFILES,
) -> str:
    """Suggest a greener alternative (or praise) for a regular trip.

    frequency is trips per week; monthly figures assume four weeks.
    """
    profile = get_profile(current_mode, profiles)
    car = get_profile(CAR, profiles)
    monthly_trips = frequency * 4

    if current_mode == CAR:
        if distance <= 5:
            savings = distance * car.co2_per_km * monthly_trips
            return (
                f"If you cycle instead of driving {frequency}x per week, "
                f"you could save {savings:.1f} kg CO2 per month!"
            )
        if distance <= 15:
            ebike = get_profile("ebike", profiles)
            savings = distance * (car.co2_per_km - ebike.co2_per_km) * monthly_trips
            return f"An e-bike could save you {savings:.1f} kg CO2 per month for this commute!"
        train = get_profile("train", profiles)
        savings = distance * (car.co2_per_km - train.co2_per_km) * monthly_trips
        return f"Taking the train would save {savings:.1f} kg CO2 per month!"

    calories = round_half_up(distance * profile.cal_per_km * monthly_trips)
    if calories > 0:
        return (
            f"Great choice! You're burning {calories} calories per month "
            f"with this sustainable transport!"
        )
    return "You're making a sustainable choice! Keep it up!"
