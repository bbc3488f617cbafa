# services/movement_detector.py
import logging

from core.clock import Clock
from models.eta import MemberETAState
from tools.eta_calculator import calculate_distance

logger = logging.getLogger(__name__)


class MovementDetector:
    """Sticky "has this attendee left their starting point?" flag."""

    def __init__(self, threshold_m: float, clock: Clock):
        self.threshold_m = threshold_m
        self.clock = clock

    def detect(self, state: MemberETAState, lat: float, lng: float) -> bool:
        if state.movement_started:
            return True

        # first sighting only records the origin
        if state.initial_location is None:
            state.initial_location = (lat, lng)
            return False

        init_lat, init_lng = state.initial_location
        distance = calculate_distance(init_lat, init_lng, lat, lng)
        if distance >= self.threshold_m:
            state.movement_started = True
            state.movement_started_at = self.clock.now_ms()
            logger.info(
                "Member %s started moving (%.1f m from origin, mode=%s)",
                state.member_id, distance, state.travel_mode.value,
            )
            return True
        return False
