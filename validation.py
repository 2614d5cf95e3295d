"""
Validated request inputs, one dataclass per endpoint.

JSON bodies are rejected when they carry unknown fields, miss a required
field, or hold a value of the wrong type. Query-string inputs ignore
extra parameters but validate the ones they read.
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from errors import ValidationError
from leaderboard import METRICS, PERIOD_DAYS
from transport_config import CAR_EMISSION_FACTORS, TRANSPORT_MODES

MAX_JOURNEY_KM = 10000
MAX_PAGE_SIZE = 200
MAX_OFFSET = 2**31 - 1


# =============================================================================
# Helpers
# =============================================================================

def _as_body(data) -> dict:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _reject_unknown(data: Mapping, allowed: Tuple[str, ...]):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", field=unknown[0])


def _require(data: Mapping, name: str):
    value = data.get(name)
    if value is None or value == "":
        raise ValidationError(f"{name} is required", field=name)
    return value


def _number(value, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number", field=name)
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite", field=name)
    return float(value)


def _int(value, name: str, minimum: int = 0, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer", field=name)
    if value < minimum or (maximum is not None and value > maximum):
        raise ValidationError(f"{name} is out of range", field=name)
    return value


def _optional_str(data: Mapping, name: str, max_len: int = 200) -> Optional[str]:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", field=name)
    value = value.strip()
    if len(value) > max_len:
        raise ValidationError(f"{name} is too long", field=name)
    return value or None


def _query_number(args: Mapping, name: str, default=None) -> Optional[float]:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number", field=name) from None
    if not math.isfinite(value):
        raise ValidationError(f"{name} must be finite", field=name)
    return value


def _query_int(args: Mapping, name: str, default: int, minimum: int = 0,
               maximum: Optional[int] = None) -> int:
    raw = args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name) from None
    return _int(value, name, minimum, maximum)


# =============================================================================
# Users
# =============================================================================

@dataclass(frozen=True)
class RegisterInput:
    name: str
    email: str

    FIELDS = ("name", "email")

    @classmethod
    def from_json(cls, data) -> "RegisterInput":
        data = _as_body(data)
        _reject_unknown(data, cls.FIELDS)
        name = _optional_str(data, "name", max_len=100)
        if not name:
            raise ValidationError("name is required", field="name")
        email = _optional_str(data, "email", max_len=254)
        if not email or "@" not in email:
            raise ValidationError("A valid email is required", field="email")
        return cls(name=name, email=email.lower())


@dataclass(frozen=True)
class SessionInput:
    email: str

    FIELDS = ("email",)

    @classmethod
    def from_json(cls, data) -> "SessionInput":
        data = _as_body(data)
        _reject_unknown(data, cls.FIELDS)
        email = _optional_str(data, "email", max_len=254)
        if not email:
            raise ValidationError("email is required", field="email")
        return cls(email=email.lower())


# =============================================================================
# Journeys
# =============================================================================

@dataclass(frozen=True)
class JourneyInput:
    distance: float
    transport_mode: str
    from_location: Optional[str] = None
    to_location: Optional[str] = None

    FIELDS = ("distance", "transport_mode", "from_location", "to_location")

    @classmethod
    def from_json(cls, data) -> "JourneyInput":
        data = _as_body(data)
        _reject_unknown(data, cls.FIELDS)
        distance = _number(_require(data, "distance"), "distance")
        if distance <= 0 or distance > MAX_JOURNEY_KM:
            raise ValidationError(
                f"distance must be greater than 0 and at most {MAX_JOURNEY_KM} km",
                field="distance",
            )
        mode = _require(data, "transport_mode")
        if mode not in TRANSPORT_MODES:
            raise ValidationError(
                f"transport_mode must be one of: {', '.join(TRANSPORT_MODES)}",
                field="transport_mode",
            )
        return cls(
            distance=distance,
            transport_mode=mode,
            from_location=_optional_str(data, "from_location"),
            to_location=_optional_str(data, "to_location"),
        )


@dataclass(frozen=True)
class JourneyListQuery:
    limit: int = 50
    offset: int = 0

    @classmethod
    def from_args(cls, args: Mapping) -> "JourneyListQuery":
        return cls(
            limit=_query_int(args, "limit", 50, minimum=1, maximum=MAX_PAGE_SIZE),
            offset=_query_int(args, "offset", 0, minimum=0, maximum=MAX_OFFSET),
        )


# =============================================================================
# Leaderboard and comparison
# =============================================================================

@dataclass(frozen=True)
class LeaderboardQuery:
    period: str = "week"
    type: str = "co2"

    @classmethod
    def from_args(cls, args: Mapping) -> "LeaderboardQuery":
        period = args.get("period") or "week"
        metric = args.get("type") or "co2"
        if period not in PERIOD_DAYS:
            raise ValidationError(
                f"period must be one of: {', '.join(PERIOD_DAYS)}", field="period"
            )
        if metric not in METRICS:
            raise ValidationError(
                f"type must be one of: {', '.join(METRICS)}", field="type"
            )
        return cls(period=period, type=metric)


@dataclass(frozen=True)
class CompareQuery:
    distance: float
    mode: Optional[str] = None
    frequency: int = 5

    @classmethod
    def from_args(cls, args: Mapping) -> "CompareQuery":
        distance = _query_number(args, "distance")
        if distance is None:
            raise ValidationError("distance is required", field="distance")
        if distance <= 0 or distance > MAX_JOURNEY_KM:
            raise ValidationError(
                f"distance must be greater than 0 and at most {MAX_JOURNEY_KM} km",
                field="distance",
            )
        mode = args.get("mode") or None
        if mode is not None and mode not in TRANSPORT_MODES:
            raise ValidationError(
                f"mode must be one of: {', '.join(TRANSPORT_MODES)}", field="mode"
            )
        frequency = _query_int(args, "frequency", 5, minimum=1, maximum=50)
        return cls(distance=distance, mode=mode, frequency=frequency)


# =============================================================================
# User preferences
# =============================================================================

FITNESS_GOALS = ("stay_active", "lose_weight", "build_endurance", "improve_health")


@dataclass(frozen=True)
class LifestyleInput:
    walking_goal: int = 0
    cycling_goal: int = 0
    public_transit_goal: int = 0
    max_driving_days: int = 7
    fitness_goal: str = "stay_active"
    weekly_calorie_target: int = 1000

    FIELDS = (
        "walking_goal",
        "cycling_goal",
        "public_transit_goal",
        "max_driving_days",
        "fitness_goal",
        "weekly_calorie_target",
    )

    @classmethod
    def from_json(cls, data) -> "LifestyleInput":
        data = _as_body(data)
        _reject_unknown(data, cls.FIELDS)
        values = {}
        for name in ("walking_goal", "cycling_goal", "public_transit_goal"):
            if data.get(name) is not None:
                values[name] = _int(data[name], name, 0, 100)
        if data.get("max_driving_days") is not None:
            values["max_driving_days"] = _int(data["max_driving_days"], "max_driving_days", 0, 7)
        if data.get("weekly_calorie_target") is not None:
            values["weekly_calorie_target"] = _int(
                data["weekly_calorie_target"], "weekly_calorie_target", 0, 100000
            )
        goal = _optional_str(data, "fitness_goal", max_len=50)
        if goal is not None:
            if goal not in FITNESS_GOALS:
                raise ValidationError(
                    f"fitness_goal must be one of: {', '.join(FITNESS_GOALS)}",
                    field="fitness_goal",
                )
            values["fitness_goal"] = goal
        return cls(**values)

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in self.FIELDS}


@dataclass(frozen=True)
class CarSettingsInput:
    car_plate_number: Optional[str] = None
    car_type: Optional[str] = None
    car_emission_factor: Optional[float] = None

    FIELDS = ("car_plate_number", "car_type", "car_emission_factor")

    @classmethod
    def from_json(cls, data) -> "CarSettingsInput":
        data = _as_body(data)
        _reject_unknown(data, cls.FIELDS)
        car_type = _optional_str(data, "car_type", max_len=20)
        if car_type is not None and car_type not in CAR_EMISSION_FACTORS:
            raise ValidationError(
                f"car_type must be one of: {', '.join(CAR_EMISSION_FACTORS)}",
                field="car_type",
            )
        factor = data.get("car_emission_factor")
        if factor is not None:
            factor = _number(factor, "car_emission_factor")
            if factor < 0:
                raise ValidationError("car_emission_factor must be >= 0", field="car_emission_factor")
        plate = _optional_str(data, "car_plate_number", max_len=16)
        return cls(
            car_plate_number=plate.upper().replace(" ", "") if plate else None,
            car_type=car_type,
            car_emission_factor=factor,
        )


# =============================================================================
# Directions
# =============================================================================

def _lat_lng(data: Mapping, name: str) -> Tuple[float, float]:
    point = _require(data, name)
    if not isinstance(point, dict) or set(point) != {"lat", "lng"}:
        raise ValidationError(f"{name} must be an object with lat and lng", field=name)
    lat = _number(point["lat"], f"{name}.lat")
    lng = _number(point["lng"], f"{name}.lng")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError(f"{name} is out of range", field=name)
    return lat, lng


@dataclass(frozen=True)
class DirectionsInput:
    origin: Tuple[float, float]
    destination: Tuple[float, float]
    mode: str = "car"

    FIELDS = ("origin", "destination", "mode")

    @classmethod
    def from_json(cls, data) -> "DirectionsInput":
        data = _as_body(data)
        _reject_unknown(data, cls.FIELDS)
        mode = data.get("mode") or "car"
        if not isinstance(mode, str):
            raise ValidationError("mode must be a string", field="mode")
        return cls(
            origin=_lat_lng(data, "origin"),
            destination=_lat_lng(data, "destination"),
            mode=mode,
        )
