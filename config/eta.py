"""
ETA engine policy.

Frozen snapshot of the ETA-related settings; built once at startup and passed
to the engine so the policy cannot drift at runtime.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class ETAConfig:
    movement_threshold_m: float = 100.0
    throttle_min_interval_ms: int = 30_000
    throttle_min_distance_m: float = 50.0
    transit_refresh_interval_ms: int = 10 * 60 * 1000
    window_before_start_ms: int = 30 * 60 * 1000
    window_after_end_ms: int = 30 * 60 * 1000
    provider_timeout_sec: float = 5.0

    @classmethod
    def from_settings(cls, settings) -> "ETAConfig":
        return cls(
            movement_threshold_m=settings.ETA_MOVEMENT_THRESHOLD_M,
            throttle_min_interval_ms=settings.ETA_THROTTLE_MIN_INTERVAL_MS,
            throttle_min_distance_m=settings.ETA_THROTTLE_MIN_DISTANCE_M,
            transit_refresh_interval_ms=settings.ETA_TRANSIT_REFRESH_INTERVAL_MS,
            window_before_start_ms=settings.ETA_WINDOW_BEFORE_START_MS,
            window_after_end_ms=settings.ETA_WINDOW_AFTER_END_MS,
            provider_timeout_sec=settings.PROVIDER_TIMEOUT_SEC,
        )
