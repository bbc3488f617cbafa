"""
Time-and-distance gate for point-to-point travel modes.

A fresh travel-time query is allowed only when both:
- at least `min_interval_ms` has passed since the last successful query, and
- the attendee moved at least `min_distance_m` from where that query was made.
The very first query after movement starts is always allowed.
"""
import logging

from core.clock import Clock
from models.eta import MemberETAState
from tools.eta_calculator import calculate_distance

logger = logging.getLogger(__name__)


class ThrottlePolicy:
    def __init__(self, min_interval_ms: int, min_distance_m: float, clock: Clock):
        self.min_interval_ms = min_interval_ms
        self.min_distance_m = min_distance_m
        self.clock = clock

    def should_query(self, state: MemberETAState, lat: float, lng: float) -> bool:
        if state.last_query_at is None:
            return True

        elapsed = self.clock.now_ms() - state.last_query_at
        if elapsed < self.min_interval_ms:
            logger.debug("Member %s throttled by time gate (%d ms since last query)", state.member_id, elapsed)
            return False

        if state.last_queried_location is not None:
            last_lat, last_lng = state.last_queried_location
            moved = calculate_distance(last_lat, last_lng, lat, lng)
            if moved < self.min_distance_m:
                logger.debug("Member %s throttled by distance gate (moved %.1f m)", state.member_id, moved)
                return False

        return True
