"""Exception hierarchy for GreenTrip domain code."""


class GreenTripError(Exception):
    """Base class for all GreenTrip domain errors."""


class InvalidModeError(GreenTripError, ValueError):
    """Transport mode is not one of the known profiles."""

    def __init__(self, mode):
        self.mode = mode
        super().__init__(f"Unknown transport mode: {mode!r}")


class InvalidDistanceError(GreenTripError, ValueError):
    """Distance is negative, NaN or infinite."""

    def __init__(self, distance):
        self.distance = distance
        super().__init__(f"Invalid distance: {distance!r}")


class MalformedPolylineError(GreenTripError, ValueError):
    """Encoded polyline is truncated or contains characters outside the alphabet."""


class DuplicateUnlockIgnored(GreenTripError):
    """An achievement unlock row already exists for this user.

    Not a failure: callers treat it as a successful, idempotent unlock.
    """

    def __init__(self, user_id, achievement_id):
        self.user_id = user_id
        self.achievement_id = achievement_id
        super().__init__(
            f"Achievement {achievement_id} already unlocked for user {user_id}"
        )


class ValidationError(GreenTripError, ValueError):
    """Request body failed validation."""

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)


class RewardAlreadyClaimed(GreenTripError):
    """The daily reward was already claimed today."""


class DirectionsError(GreenTripError):
    """Upstream routing provider returned an error or no route."""

    def __init__(self, message, provider_status=None):
        self.provider_status = provider_status
        super().__init__(message)
