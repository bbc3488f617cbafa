"""
Base ETA + countdown for transit.

A provider-reported duration is captured as the base; between refreshes the live
value is base minus whole seconds elapsed, so polling never costs a query.
"""
from typing import Optional

from core.clock import Clock
from models.eta import MemberETAState


class TransitCountdown:
    def __init__(self, refresh_interval_ms: int, clock: Clock):
        self.refresh_interval_ms = refresh_interval_ms
        self.clock = clock

    def _raw_remaining(self, state: MemberETAState, now_ms: int) -> int:
        elapsed_sec = (now_ms - state.base_computed_at) // 1000
        return state.base_eta_seconds - elapsed_sec

    def needs_refresh(self, state: MemberETAState) -> bool:
        """True when there is no base, the base is stale, or the countdown is exhausted."""
        if state.base_eta_seconds is None or state.base_computed_at is None:
            return True
        now = self.clock.now_ms()
        if now - state.base_computed_at >= self.refresh_interval_ms:
            return True
        # overdue: re-query instead of freezing at zero
        return self._raw_remaining(state, now) <= 0

    def remaining_seconds(self, state: MemberETAState) -> Optional[int]:
        """Live countdown from the stored base, floored at 0; None without a base."""
        if state.base_eta_seconds is None or state.base_computed_at is None:
            return None
        return max(0, self._raw_remaining(state, self.clock.now_ms()))

    def capture_base(self, state: MemberETAState, duration_seconds: int) -> None:
        state.base_eta_seconds = duration_seconds
        state.base_computed_at = self.clock.now_ms()
