"""
Core data models for the member ETA engine.

Plain dataclasses, no persistence: the engine owns these in memory.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Tuple

LatLng = Tuple[float, float]


class TravelMode(str, Enum):
    DRIVING = "driving"
    TRANSIT = "transit"
    WALKING = "walking"
    BICYCLING = "bicycling"
    MOTORCYCLE = "motorcycle"


@dataclass
class MemberETAState:
    """
    Mutable per-attendee state.

    `initial_location` is fixed for a travel-mode epoch and `movement_started`
    only goes False -> True within one. `base_eta_seconds` / `base_computed_at`
    are only read in transit mode.
    """
    member_id: int
    event_id: int
    travel_mode: TravelMode

    initial_location: Optional[LatLng] = None
    last_queried_location: Optional[LatLng] = None

    movement_started: bool = False
    movement_started_at: Optional[int] = None

    last_query_at: Optional[int] = None

    base_eta_seconds: Optional[int] = None
    base_computed_at: Optional[int] = None

    cached_eta_seconds: Optional[int] = None
    cached_distance_text: Optional[str] = None
    cached_distance_meters: Optional[int] = None

    def reset_epoch(self, travel_mode: TravelMode) -> None:
        """Start a new travel-mode epoch. initial_location is kept on purpose."""
        self.travel_mode = travel_mode
        self.movement_started = False
        self.movement_started_at = None
        self.base_eta_seconds = None
        self.base_computed_at = None
        self.last_query_at = None


@dataclass(frozen=True)
class TravelTimeResult:
    """Normalized provider response."""
    duration_seconds: int
    duration_text: str
    distance_text: str
    distance_meters: int


@dataclass(frozen=True)
class ETAResult:
    member_id: int
    eta_seconds: Optional[int]
    eta_text: Optional[str]
    distance_text: Optional[str]
    distance_meters: Optional[int]
    movement_started: bool
    is_countdown: bool

    @classmethod
    def not_moving(cls, member_id: int) -> ETAResult:
        return cls(
            member_id=member_id,
            eta_seconds=None,
            eta_text=None,
            distance_text=None,
            distance_meters=None,
            movement_started=False,
            is_countdown=False,
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def to_broadcast_payload(self, nickname: str, timestamp_ms: int) -> dict:
        """Shape pushed to subscribers on the event channel."""
        return {
            "memberId": self.member_id,
            "nickname": nickname,
            "eta": self.eta_seconds,
            "etaText": self.eta_text,
            "distance": self.distance_text,
            "distanceValue": self.distance_meters,
            "movementStarted": self.movement_started,
            "isCountdown": self.is_countdown,
            "timestamp": timestamp_ms,
        }
