import os
import sys
import logging
import uuid
from functools import wraps

from flask import Flask, request, jsonify, g, session
from flask_wtf.csrf import CSRFProtect, CSRFError, generate_csrf
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix
from dotenv import load_dotenv

from errors import (
    GreenTripError,
    ValidationError,
    DirectionsError,
    RewardAlreadyClaimed,
)
from calculations import (
    calculate_metrics,
    calculate_all_modes,
    calculate_sustainability_score,
    co2_to_trees,
    calories_to_food,
    get_level,
    get_recommendation,
    round2,
    round_half_up,
)
from streaks import calculate_streak, longest_streak
from achievements import check_and_unlock_achievements
from leaderboard import build_leaderboard, window_start
from rewards import RewardState, reward_status, claim_reward
from directions import GoogleDirectionsClient
from transport_config import (
    CAR_EMISSION_FACTORS,
    DEFAULT_CAR_EMISSION_FACTOR,
    TRANSPORT_PROFILES,
)
from validation import (
    RegisterInput,
    SessionInput,
    JourneyInput,
    JourneyListQuery,
    LeaderboardQuery,
    CompareQuery,
    LifestyleInput,
    CarSettingsInput,
    DirectionsInput,
)
from models import (
    init_db,
    create_user,
    get_user,
    get_user_by_email,
    update_lifestyle,
    update_car_settings,
    save_reward_state,
    create_journey,
    list_journeys,
    count_journeys,
    get_journey_totals,
    get_sustainable_journey_times,
    get_leaderboard_totals,
    list_achievements,
    get_user_achievements,
)

load_dotenv()

# ---------------------------------------------------------------------------
# Sentry error tracking, gated on SENTRY_DSN; silent when unset (local dev)
# ---------------------------------------------------------------------------
_sentry_dsn = os.environ.get("SENTRY_DSN")
if _sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    import requests.exceptions

    def _sentry_before_send(event, hint):
        """Demote expected failures to breadcrumbs; only unexpected errors become Sentry events."""
        exc_info = hint.get("exc_info")
        if exc_info:
            exc_type, exc_value, _ = exc_info
            msg = str(exc_value) if exc_value else ""
            if exc_type is not None and issubclass(exc_type, ValidationError):
                sentry_sdk.add_breadcrumb(category="validation", message=msg, level="info")
                return None
            # Google Directions timeouts / request failures / provider errors
            if exc_type is not None and issubclass(
                exc_type, (requests.exceptions.RequestException, DirectionsError)
            ):
                sentry_sdk.add_breadcrumb(category="directions", message=msg, level="warning")
                return None
        return event

    sentry_sdk.init(
        dsn=_sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.0,
        release=os.environ.get("GIT_COMMIT_SHA"),
        environment=os.environ.get("GREENTRIP_ENVIRONMENT", "production"),
        before_send=_sentry_before_send,
    )

app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'greentrip-dev-key')
if (not app.config['SECRET_KEY'] or app.config['SECRET_KEY'] == 'greentrip-dev-key') and os.environ.get('FLASK_DEBUG') != '1':
    print("FATAL: SECRET_KEY is not set. Refusing to start with insecure default.", file=sys.stderr)
    print("Set SECRET_KEY in your environment or .env file.", file=sys.stderr)
    sys.exit(1)
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# Behind a reverse proxy: trust one hop of X-Forwarded-For so the limiter
# and logs see the client address.
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1)

# CSRF protection. JSON clients fetch /api/csrf-token and send it back
# in the X-CSRFToken header on every POST.
csrf = CSRFProtect(app)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Rate limiting. In-memory storage is per-process.
# ---------------------------------------------------------------------------
RATE_LIMIT_DEFAULT = os.environ.get("RATE_LIMIT_DEFAULT", "60/minute")
RATE_LIMIT_WRITE = os.environ.get("RATE_LIMIT_WRITE", "30/minute")

limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri="memory://",
)
logging.getLogger("flask-limiter").setLevel(logging.WARNING)

if not os.environ.get("GOOGLE_MAPS_API_KEY"):
    logger.warning(
        "GOOGLE_MAPS_API_KEY is not set. "
        "Route directions will be unavailable until it is configured."
    )


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------
def _generate_request_id():
    return uuid.uuid4().hex[:10]


@app.before_request
def _set_request_context():
    """Set request ID and the signed-in user on every request."""
    g.request_id = _generate_request_id()
    g.user_id = session.get("user_id")


def _error(message, status, **extra):
    payload = {"success": False, "error": message, "request_id": g.get("request_id", "unknown")}
    payload.update(extra)
    return jsonify(payload), status


def _ok(data, status=200):
    return jsonify({"success": True, "data": data}), status


def login_required(view):
    """Reject requests without a signed-in user that still exists."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not g.user_id or get_user(g.user_id) is None:
            return _error("Unauthorized", 401)
        return view(*args, **kwargs)
    return wrapper


# ---------------------------------------------------------------------------
# Users and session
# ---------------------------------------------------------------------------

@app.route("/api/csrf-token")
@limiter.exempt
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


@app.route("/api/users", methods=["POST"])
@limiter.limit(RATE_LIMIT_WRITE)
def register_user():
    body = RegisterInput.from_json(request.get_json(silent=True))
    user = create_user(body.name, body.email)
    if user is None:
        return _error("An account with this email already exists", 409)
    session["user_id"] = user["id"]
    logger.info("[%s] Registered user %s", g.request_id, user["id"])
    return _ok({"id": user["id"], "name": user["name"], "email": user["email"]}, 201)


@app.route("/api/session", methods=["POST"])
@limiter.limit(RATE_LIMIT_WRITE)
def sign_in():
    body = SessionInput.from_json(request.get_json(silent=True))
    user = get_user_by_email(body.email)
    if user is None:
        return _error("User not found", 404)
    session["user_id"] = user["id"]
    return _ok({"id": user["id"], "name": user["name"], "email": user["email"]})


@app.route("/api/session", methods=["DELETE"])
def sign_out():
    session.pop("user_id", None)
    return _ok(None)


# ---------------------------------------------------------------------------
# Journeys
# ---------------------------------------------------------------------------

@app.route("/api/journeys", methods=["GET"])
@login_required
def get_journeys():
    query = JourneyListQuery.from_args(request.args)
    journeys = list_journeys(g.user_id, limit=query.limit, offset=query.offset)
    total = count_journeys(g.user_id)
    return _ok({
        "journeys": journeys,
        "total": total,
        "has_more": query.offset + len(journeys) < total,
    })


@app.route("/api/journeys", methods=["POST"])
@limiter.limit(RATE_LIMIT_WRITE)
@login_required
def log_journey():
    body = JourneyInput.from_json(request.get_json(silent=True))
    metrics = calculate_metrics(body.distance, body.transport_mode)
    journey = create_journey(
        g.user_id,
        body.distance,
        body.transport_mode,
        metrics.to_dict(),
        from_location=body.from_location,
        to_location=body.to_location,
    )
    logger.info(
        "[%s] Journey %s logged: %s %.2f km, saved %.2f kg",
        g.request_id, journey["id"], body.transport_mode, body.distance, metrics.co2_saved,
    )

    # The journey is already stored; a failed achievement pass is retried
    # on the next journey rather than failing this request.
    try:
        unlocked = check_and_unlock_achievements(g.user_id)
    except Exception:
        logger.exception("[%s] Achievement check failed for user %s", g.request_id, g.user_id)
        unlocked = []

    return jsonify({
        "success": True,
        "data": journey,
        "unlocked_achievements": unlocked,
    }), 201


# ---------------------------------------------------------------------------
# Achievements, leaderboard, stats
# ---------------------------------------------------------------------------

@app.route("/api/achievements")
def get_achievements():
    return _ok(list_achievements())


@app.route("/api/leaderboard")
def get_leaderboard():
    query = LeaderboardQuery.from_args(request.args)
    rows = get_leaderboard_totals(window_start(query.period))
    entries = build_leaderboard(rows, query.type, requesting_user_id=g.user_id)
    return _ok({
        "leaderboard": [e.to_dict() for e in entries],
        "period": query.period,
        "type": query.type,
    })


@app.route("/api/user/stats")
@login_required
def get_user_stats():
    totals = get_journey_totals(g.user_id)
    sustainable_times = get_sustainable_journey_times(g.user_id)
    streak = calculate_streak(sustainable_times)
    score = calculate_sustainability_score(
        totals["total_co2_saved"],
        totals["total_calories"],
        totals["sustainable_trips"],
        streak,
    )
    level = get_level(score)
    total_co2 = round2(totals["total_co2_saved"])
    total_calories = round_half_up(totals["total_calories"])
    return _ok({
        "total_journeys": totals["total_journeys"],
        "total_distance": round2(totals["total_distance"]),
        "total_co2_saved": total_co2,
        "total_calories_burned": total_calories,
        "sustainable_trips": totals["sustainable_trips"],
        "current_streak": streak,
        "longest_streak": longest_streak(sustainable_times),
        "sustainability_score": score,
        "level": level.name,
        "trees_equivalent": co2_to_trees(total_co2),
        "food_equivalent": calories_to_food(total_calories),
        "achievements": get_user_achievements(g.user_id),
    })


# ---------------------------------------------------------------------------
# User preferences
# ---------------------------------------------------------------------------

@app.route("/api/user/lifestyle", methods=["GET"])
@login_required
def get_lifestyle():
    user = get_user(g.user_id)
    data = {name: user[name] for name in LifestyleInput.FIELDS}
    data["setup_completed"] = bool(user["setup_completed"])
    return _ok(data)


@app.route("/api/user/lifestyle", methods=["POST"])
@login_required
def save_lifestyle():
    prefs = LifestyleInput.from_json(request.get_json(silent=True))
    update_lifestyle(g.user_id, prefs.to_dict())
    return jsonify({"success": True, "message": "Preferences saved"})


@app.route("/api/user/settings", methods=["GET"])
@login_required
def get_settings():
    user = get_user(g.user_id)
    return _ok({
        "name": user["name"],
        "email": user["email"],
        "car_plate_number": user["car_plate_number"],
        "car_type": user["car_type"],
        "car_emission_factor": user["car_emission_factor"],
    })


@app.route("/api/user/settings", methods=["POST"])
@login_required
def save_settings():
    body = CarSettingsInput.from_json(request.get_json(silent=True))
    factor = body.car_emission_factor
    if factor is None:
        factor = CAR_EMISSION_FACTORS.get(body.car_type, DEFAULT_CAR_EMISSION_FACTOR)
    update_car_settings(g.user_id, body.car_plate_number, body.car_type, factor)
    return jsonify({"success": True, "message": "Settings updated successfully"})


@app.route("/api/user/daily-reward", methods=["GET"])
@login_required
def daily_reward_status():
    state = RewardState.from_user(get_user(g.user_id))
    return _ok(reward_status(state))


@app.route("/api/user/daily-reward", methods=["POST"])
@limiter.limit(RATE_LIMIT_WRITE)
@login_required
def claim_daily_reward():
    state = RewardState.from_user(get_user(g.user_id))
    try:
        new_state, result = claim_reward(state)
    except RewardAlreadyClaimed as e:
        return _error(str(e), 400)
    if not save_reward_state(g.user_id, new_state.to_dict(), unclaimed_on=new_state.last_login_date):
        # a concurrent claim for the same day was written first
        logger.info("[%s] Concurrent daily reward claim rejected for user %s", g.request_id, g.user_id)
        return _error("Daily reward already claimed today", 400)
    return _ok(result)


# ---------------------------------------------------------------------------
# Comparison and directions
# ---------------------------------------------------------------------------

@app.route("/api/compare")
def compare_modes():
    query = CompareQuery.from_args(request.args)
    comparisons = calculate_all_modes(query.distance)
    data = {
        "distance": query.distance,
        "modes": [
            dict(c.to_dict(), label=TRANSPORT_PROFILES[c.mode].label, icon=TRANSPORT_PROFILES[c.mode].icon)
            for c in comparisons
        ],
    }
    if query.mode:
        data["recommendation"] = get_recommendation(query.distance, query.mode, query.frequency)
    return _ok(data)


@app.route("/api/directions", methods=["GET"])
def directions_status():
    configured = bool(os.environ.get("GOOGLE_MAPS_API_KEY"))
    return jsonify({
        "success": True,
        "configured": configured,
        "message": "Directions API ready" if configured else "Google Maps API key not configured",
    })


@app.route("/api/directions", methods=["POST"])
def get_directions():
    api_key = os.environ.get("GOOGLE_MAPS_API_KEY")
    if not api_key:
        return _error("Google Maps API key not configured", 503)

    body = DirectionsInput.from_json(request.get_json(silent=True))
    client = GoogleDirectionsClient(api_key)
    try:
        route = client.route(body.origin, body.destination, body.mode)
    except DirectionsError as e:
        logger.warning("[%s] Directions failed: %s", g.request_id, e)
        status = 404 if e.provider_status == "ZERO_RESULTS" else 502
        return _error(str(e), status)
    return jsonify({"success": True, "route": route})


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.route("/healthz")
@limiter.exempt
def healthz():
    """Lightweight health-check endpoint for monitoring."""
    return jsonify({
        "status": "ok",
        "directions_configured": bool(os.environ.get("GOOGLE_MAPS_API_KEY")),
    })


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.errorhandler(ValidationError)
def validation_error(e):
    return _error(str(e), 400, field=e.field)


@app.errorhandler(GreenTripError)
def domain_error(e):
    logger.warning("[%s] %s: %s", g.get("request_id"), type(e).__name__, e)
    return _error(str(e), 400)


@app.errorhandler(CSRFError)
def csrf_error(e):
    return _error(e.description, 400)


@app.errorhandler(429)
def rate_limit_exceeded(e):
    return _error("Too many requests. Please wait and try again.", 429)


@app.errorhandler(404)
def not_found(e):
    return _error("Not found", 404)


@app.errorhandler(405)
def method_not_allowed(e):
    return _error("Method not allowed", 405)


@app.errorhandler(500)
def internal_error(e):
    return _error("Internal server error", 500)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

# Initialize database on import (safe to call repeatedly)
init_db()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
