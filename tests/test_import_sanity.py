"""Import sanity tests.

These lightweight tests verify that the WSGI entrypoint and core modules
can be imported without errors, the minimum bar for a deploy.
"""


def test_app_module_imports():
    """The Flask app module must import without errors."""
    import app  # noqa: F401


def test_wsgi_app_object():
    """Gunicorn's 'app:app' entrypoint must resolve to a Flask instance."""
    from app import app as flask_app
    assert flask_app is not None
    assert hasattr(flask_app, "route"), "app object is not a Flask instance"


def test_core_symbols_import():
    """Symbols app.py wires together must be importable on their own."""
    from calculations import calculate_metrics, JourneyMetrics
    from streaks import calculate_streak
    from achievements import evaluate_achievements, check_and_unlock_achievements
    from leaderboard import build_leaderboard
    from route_polyline import decode_polyline
    assert all([calculate_metrics, JourneyMetrics, calculate_streak, evaluate_achievements,
                check_and_unlock_achievements, build_leaderboard, decode_polyline])


def test_gunicorn_hooks_defined():
    import gunicorn_config
    assert callable(gunicorn_config.on_starting)
    assert callable(gunicorn_config.when_ready)
