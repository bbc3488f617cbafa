"""
Travel-time provider adapter.

Provides:
- TravelTimeProvider: the capability the ETA engine consumes.
- GoogleDirectionsProvider: Directions API over a shared httpx.AsyncClient.

The returned TravelTimeResult is normalized so the engine never sees provider JSON:
    {
        "duration_seconds": int,   # leg duration in seconds
        "duration_text": str,     # provider label, e.g. "10 分鐘"
        "distance_text": str,     # provider label, e.g. "2.0 公里"
        "distance_meters": int,   # leg distance in meters
    }
Every non-success outcome (missing key, transport error, HTTP error, non-OK
status, empty routes) raises ProviderFailure; callers treat them identically.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from core.exceptions import ProviderFailure
from models.eta import LatLng, TravelMode, TravelTimeResult

logger = logging.getLogger(__name__)

DIRECTIONS_API_URL = "https://maps.googleapis.com/maps/api/directions/json"


class TravelTimeProvider(Protocol):
    async def query(
        self,
        origin: LatLng,
        destination: LatLng,
        mode: TravelMode,
        departure_time: int,
    ) -> TravelTimeResult:
        ...


def map_travel_mode(mode: TravelMode) -> str:
    """Provider has no motorcycle mode; motorcycle routes as driving."""
    if mode == TravelMode.MOTORCYCLE:
        return TravelMode.DRIVING.value
    return mode.value


def _format_latlng(point: LatLng) -> str:
    return f"{point[0]},{point[1]}"


def _normalize_directions_response(data: Dict[str, Any]) -> TravelTimeResult:
    """
    Convert raw Directions JSON into a TravelTimeResult using the first leg of the first route.
    """
    status = data.get("status")
    if status != "OK":
        message = data.get("error_message") or ""
        raise ProviderFailure(f"directions status {status} {message}".strip(), kind="status")

    routes = data.get("routes") or []
    if not routes:
        raise ProviderFailure("directions returned no routes", kind="no_route")
    legs = routes[0].get("legs") or []
    if not legs:
        raise ProviderFailure("directions route has no legs", kind="no_route")

    leg = legs[0]
    try:
        duration = leg["duration"]
        distance = leg["distance"]
        return TravelTimeResult(
            duration_seconds=int(duration["value"]),
            duration_text=str(duration.get("text", "")),
            distance_text=str(distance.get("text", "")),
            distance_meters=int(distance["value"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderFailure(f"malformed directions leg: {e}", kind="bad_response") from e


class GoogleDirectionsProvider:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DIRECTIONS_API_URL,
        language: str = "zh-TW",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.language = language
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def query(
        self,
        origin: LatLng,
        destination: LatLng,
        mode: TravelMode,
        departure_time: int,
    ) -> TravelTimeResult:
        if not self.api_key:
            raise ProviderFailure("GOOGLE_MAPS_SERVER_KEY not configured", kind="not_configured")

        params = {
            "origin": _format_latlng(origin),
            "destination": _format_latlng(destination),
            "mode": map_travel_mode(mode),
            "departure_time": int(departure_time),
            "language": self.language,
            "key": self.api_key,
        }
        try:
            resp = await self._get_client().get(self.base_url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderFailure("directions HTTP error", status=e.response.status_code, kind="http_status") from e
        except httpx.HTTPError as e:
            raise ProviderFailure(f"directions transport error: {e!r}", kind="transport") from e
        except ValueError as e:
            raise ProviderFailure("directions response is not JSON", kind="bad_response") from e

        result = _normalize_directions_response(data)
        logger.info(
            "Directions query ok: mode=%s duration=%s distance=%s",
            params["mode"], result.duration_text, result.distance_text,
        )
        return result

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
