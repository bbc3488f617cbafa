# tools/eta_calculator.py
import math

from core.exceptions import InvalidCoordinatesError

EARTH_RADIUS_M = 6371000.0
ARRIVING_NOW_LABEL = "即將到達"


def haversine_meters(lat1, lon1, lat2, lon2):
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi/2.0)**2 + math.cos(phi1)*math.cos(phi2)*(math.sin(dlambda/2.0)**2)
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two (lat, lng) points in degrees."""
    return haversine_meters(lat1, lng1, lat2, lng2)


def validate_coordinates(lat, lng) -> None:
    """Raise InvalidCoordinatesError unless lat in [-90, 90] and lng in [-180, 180]."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(lat, lng) from None
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise InvalidCoordinatesError(lat, lng)
    if not (-90.0 <= lat_f <= 90.0) or not (-180.0 <= lng_f <= 180.0):
        raise InvalidCoordinatesError(lat, lng)


def format_duration(seconds) -> str:
    """
    Human-readable label for a remaining duration.

    <= 0      -> "即將到達"
    < 1 hour  -> "{minutes} 分鐘"
    otherwise -> "{hours} 小時 {minutes} 分鐘"
    """
    if seconds <= 0:
        return ARRIVING_NOW_LABEL
    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours} 小時 {minutes} 分鐘"
    return f"{minutes} 分鐘"
