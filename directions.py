"""
Google Directions API client.

Fetches a single route between two points and reduces it to what the
journey planner needs: decoded geometry, distance, duration, an emissions
and calorie estimate, and plain-text steps.
"""

import logging
import re
import time
from typing import Dict, List, Tuple

import requests

from errors import DirectionsError
from route_polyline import decode_polyline
from transport_config import (
    DIRECTIONS_CAL_PER_KM,
    DIRECTIONS_CO2_G_PER_KM,
    DIRECTIONS_MODE_MAP,
)
from calculations import round_half_up

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


def google_travel_mode(mode: str) -> str:
    """Map a GreenTrip transport mode to a Google travel mode (default driving)."""
    return DIRECTIONS_MODE_MAP.get(mode, "driving")


def _strip_html(text: str) -> str:
    return _TAG_RE.sub("", text or "")


class GoogleDirectionsClient:
    """Client for the Google Directions API"""

    # Per-call timeout in seconds.
    DEFAULT_TIMEOUT = 10

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.base_url = "https://maps.googleapis.com/maps/api"
        self.session = requests.Session()
        self.session.trust_env = False

    def _get(self, endpoint_name: str, url: str, params: dict) -> dict:
        """GET request with timing logged at debug level."""
        t0 = time.time()
        try:
            response = self.session.get(url, params=params, timeout=self.DEFAULT_TIMEOUT)
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("google_maps %s request failed: %s", endpoint_name, e)
            raise DirectionsError(f"Google Maps request failed: {e}") from e
        elapsed_ms = int((time.time() - t0) * 1000)
        logger.debug(
            "google_maps %s status=%s http=%d %dms",
            endpoint_name,
            data.get("status", "") if isinstance(data, dict) else "",
            response.status_code,
            elapsed_ms,
        )
        return data

    def route(
        self,
        origin: Tuple[float, float],
        destination: Tuple[float, float],
        mode: str,
    ) -> Dict:
        """Fetch the first route from origin to destination.

        origin and destination are (lat, lng). Raises DirectionsError when
        Google returns anything but OK; ZERO_RESULTS gets a friendlier
        message.
        """
        travel_mode = google_travel_mode(mode)
        url = f"{self.base_url}/directions/json"
        params = {
            "origin": f"{origin[0]},{origin[1]}",
            "destination": f"{destination[0]},{destination[1]}",
            "mode": travel_mode,
            "key": self.api_key,
        }
        data = self._get("directions", url, params)

        status = data.get("status")
        if status == "ZERO_RESULTS":
            raise DirectionsError(f"No {mode} route found for this journey", status)
        if status != "OK" or not data.get("routes"):
            raise DirectionsError(f"Google Maps API error: {status}", status)

        return summarize_route(data["routes"][0], travel_mode)


def summarize_route(route: Dict, travel_mode: str) -> Dict:
    """Reduce one Directions API route object to the planner's route dict."""
    leg = route["legs"][0]
    distance_km = leg["distance"]["value"] / 1000
    steps: List[Dict] = [
        {
            "instruction": _strip_html(step.get("html_instructions", "")),
            "distance": step["distance"]["value"],
            "duration": step["duration"]["value"],
        }
        for step in leg.get("steps", [])
    ]
    return {
        "polyline": decode_polyline(route["overview_polyline"]["points"]),
        "distance": round_half_up(distance_km * 10) / 10,
        "duration": round_half_up(leg["duration"]["value"] / 60),
        "co2_emissions": round_half_up(distance_km * DIRECTIONS_CO2_G_PER_KM.get(travel_mode, 0)),
        "calories": round_half_up(distance_km * DIRECTIONS_CAL_PER_KM.get(travel_mode, 0)),
        "steps": steps,
    }
