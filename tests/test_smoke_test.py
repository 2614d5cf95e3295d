"""Tests for smoke_test.py.

fetch_json is redirected into the Flask test client so each check runs
against the real app without a live server.
"""

from unittest.mock import patch, MagicMock

import pytest

import smoke_test

BASE = "http://smoke.test"


@pytest.fixture
def live_fetch(client):
    """Patch smoke_test.fetch_json to answer from the test client."""
    def _fetch(url):
        resp = client.get(url[len(BASE):])
        return resp.status_code, resp.get_json(silent=True)

    with patch("smoke_test.fetch_json", side_effect=_fetch) as fetch:
        yield fetch


class TestChecksAgainstApp:
    def test_all_checks_pass(self, live_fetch, monkeypatch):
        monkeypatch.delenv("SMOKE_ALERT_WEBHOOK", raising=False)
        assert smoke_test.run_tests(BASE) is True

    def test_each_check_passes(self, live_fetch):
        for _, check in smoke_test.CHECKS:
            assert check(BASE) is None


class TestCheckFailures:
    def test_health_down(self):
        with patch("smoke_test.fetch_json", return_value=(502, None)):
            assert "healthz" in smoke_test.check_health(BASE)

    def test_missing_achievement_code(self):
        data = {"data": [{"code": "first_steps"}]}
        with patch("smoke_test.fetch_json", return_value=(200, data)):
            failure = smoke_test.check_achievements(BASE)
        assert "green_champion" in failure

    def test_drifted_bike_metrics(self):
        data = {"data": {"modes": [{"mode": "bike", "metrics": {
            "travel_time": 40, "co2_emissions": 0, "calories_burned": 300, "co2_saved": 2.0,
        }}]}}
        with patch("smoke_test.fetch_json", return_value=(200, data)):
            assert "bike metrics" in smoke_test.check_compare(BASE)

    def test_bike_missing(self):
        with patch("smoke_test.fetch_json", return_value=(200, {"data": {"modes": []}})):
            assert smoke_test.check_compare(BASE) == "compare: bike missing from comparison"

    def test_leaderboard_shape(self):
        with patch("smoke_test.fetch_json", return_value=(200, {"data": {}})):
            assert smoke_test.check_leaderboard(BASE) is not None


class TestAlerting:
    def test_failures_trigger_webhook(self):
        with patch("smoke_test.fetch_json", return_value=(500, None)), \
             patch("smoke_test.send_webhook_alert") as alert:
            assert smoke_test.run_tests(BASE) is False
        failures = alert.call_args[0][0]
        assert len(failures) == len(smoke_test.CHECKS)

    def test_webhook_skipped_when_unset(self, monkeypatch):
        monkeypatch.delenv("SMOKE_ALERT_WEBHOOK", raising=False)
        with patch("smoke_test.urllib.request.urlopen") as urlopen:
            smoke_test.send_webhook_alert(["healthz: HTTP 500"])
        urlopen.assert_not_called()

    def test_webhook_posts_summary(self, monkeypatch):
        monkeypatch.setenv("SMOKE_ALERT_WEBHOOK", "https://hooks.example.test/x")
        monkeypatch.setenv("GIT_COMMIT_SHA", "abcdef123456")
        with patch("smoke_test.urllib.request.urlopen", return_value=MagicMock()) as urlopen:
            smoke_test.send_webhook_alert(["healthz: HTTP 500"])
        req = urlopen.call_args[0][0]
        assert req.get_method() == "POST"
        assert b"abcdef1" in req.data
        assert b"healthz: HTTP 500" in req.data
