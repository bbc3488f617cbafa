# services/eta_service.py
"""
Member ETA engine.

Per attendee and per location update it decides:
- whether the attendee has departed (sticky movement detection),
- whether a fresh travel-time query is warranted
  (time/distance throttle for driving, walking, bicycling, motorcycle;
  base ETA + countdown for transit),
- what to serve otherwise (last good cached value, or the live countdown).

No provider query is ever made before movement starts. Provider and broadcast
failures are logged and counted, never raised: callers always get a result,
stale-but-present when the provider is down.

State is in-memory and process-local. Updates for one attendee are serialized
by a per-attendee asyncio.Lock; different attendees never wait on each other.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Set

from config.eta import ETAConfig
from core.clock import Clock, SystemClock
from core.exceptions import BroadcastFailure, InvalidInput, ProviderFailure
from models.eta import ETAResult, LatLng, MemberETAState, TravelMode, TravelTimeResult
from services.broadcast_service import ETA_UPDATE, BroadcastSink, NullBroadcastSink
from services.eta_metrics import ETAMetrics
from services.movement_detector import MovementDetector
from services.throttle_policy import ThrottlePolicy
from services.transit_countdown import TransitCountdown
from services.travel_time_provider import TravelTimeProvider
from tools.eta_calculator import calculate_distance, format_duration, validate_coordinates

logger = logging.getLogger(__name__)


def parse_travel_mode(value) -> TravelMode:
    if isinstance(value, TravelMode):
        return value
    try:
        return TravelMode(str(value).lower())
    except ValueError:
        raise InvalidInput(f"Unknown travel mode: {value!r}") from None


class _MemberLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class ETAService:
    def __init__(
        self,
        provider: TravelTimeProvider,
        broadcaster: Optional[BroadcastSink] = None,
        config: Optional[ETAConfig] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[ETAMetrics] = None,
    ):
        self.provider = provider
        self.broadcaster = broadcaster or NullBroadcastSink()
        self.config = config or ETAConfig()
        self.clock = clock or SystemClock()
        self.metrics = metrics or ETAMetrics()

        self.movement = MovementDetector(self.config.movement_threshold_m, self.clock)
        self.throttle = ThrottlePolicy(
            self.config.throttle_min_interval_ms, self.config.throttle_min_distance_m, self.clock
        )
        self.countdown = TransitCountdown(self.config.transit_refresh_interval_ms, self.clock)

        self._states: Dict[int, MemberETAState] = {}
        self._locks: Dict[int, _MemberLock] = {}
        self._pending_broadcasts: Set[asyncio.Task] = set()

    # ------------- PURE HELPERS -------------
    @staticmethod
    def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
        return calculate_distance(lat1, lng1, lat2, lng2)

    @staticmethod
    def format_duration(seconds) -> str:
        return format_duration(seconds)

    # ------------- STATE -------------
    @asynccontextmanager
    async def _member_lock(self, member_id: int):
        """
        Serialize work on one attendee. The lock entry lives while anyone holds
        or waits on it, so a clear never hands later callers a second lock.
        """
        entry = self._locks.get(member_id)
        if entry is None:
            entry = self._locks[member_id] = _MemberLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and member_id not in self._states:
                self._locks.pop(member_id, None)

    def _get_or_create_state(self, member_id: int, event_id: int, travel_mode: TravelMode) -> MemberETAState:
        state = self._states.get(member_id)
        if state is None:
            state = MemberETAState(member_id=member_id, event_id=event_id, travel_mode=travel_mode)
            self._states[member_id] = state
            logger.info("Tracking ETA for member %s in event %s (mode=%s)", member_id, event_id, travel_mode.value)
            return state

        if state.travel_mode != travel_mode:
            logger.info(
                "Member %s switched travel mode %s -> %s; movement and base ETA reset",
                member_id, state.travel_mode.value, travel_mode.value,
            )
            state.reset_epoch(travel_mode)
        return state

    def _cached_result(self, state: MemberETAState, is_countdown: bool) -> ETAResult:
        eta = state.cached_eta_seconds
        return ETAResult(
            member_id=state.member_id,
            eta_seconds=eta,
            eta_text=format_duration(eta) if eta is not None else None,
            distance_text=state.cached_distance_text,
            distance_meters=state.cached_distance_meters,
            movement_started=state.movement_started,
            is_countdown=is_countdown,
        )

    def _store_fresh(self, state: MemberETAState, origin: LatLng, fresh: TravelTimeResult) -> None:
        state.last_query_at = self.clock.now_ms()
        state.last_queried_location = origin
        state.cached_eta_seconds = fresh.duration_seconds
        state.cached_distance_text = fresh.distance_text
        state.cached_distance_meters = fresh.distance_meters

    # ------------- PROVIDER -------------
    async def _query_provider(
        self, state: MemberETAState, origin: LatLng, destination: LatLng, mode: TravelMode
    ) -> Optional[TravelTimeResult]:
        """One bounded provider call; None on any failure."""
        departure_time = self.clock.now_ms() // 1000
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self.provider.query(origin, destination, mode, departure_time),
                timeout=self.config.provider_timeout_sec,
            )
        except asyncio.TimeoutError:
            self._provider_failed(state, ProviderFailure(
                f"no response within {self.config.provider_timeout_sec}s", kind="timeout"
            ))
            return None
        except ProviderFailure as e:
            self._provider_failed(state, e)
            return None
        except Exception as e:
            logger.exception("Unexpected travel-time provider error for member %s", state.member_id)
            self._provider_failed(state, ProviderFailure(repr(e), kind="unexpected"))
            return None

        self.metrics.record_provider_query((time.perf_counter() - started) * 1000.0)
        return result

    def _provider_failed(self, state: MemberETAState, failure: ProviderFailure) -> None:
        self.metrics.record_provider_failure(failure.kind)
        logger.warning(
            "%s; member=%s mode=%s serving cached ETA=%s",
            failure, state.member_id, state.travel_mode.value, state.cached_eta_seconds,
        )

    # ------------- MODE HANDLERS -------------
    async def _handle_realtime_eta(
        self, state: MemberETAState, lat: float, lng: float, destination: LatLng
    ) -> ETAResult:
        if not self.throttle.should_query(state, lat, lng):
            self.metrics.record_cache_hit()
            return self._cached_result(state, is_countdown=False)

        origin = (lat, lng)
        fresh = await self._query_provider(state, origin, destination, state.travel_mode)
        if fresh is None:
            return self._cached_result(state, is_countdown=False)

        self._store_fresh(state, origin, fresh)
        return self._cached_result(state, is_countdown=False)

    async def _handle_transit_eta(
        self, state: MemberETAState, lat: float, lng: float, destination: LatLng
    ) -> ETAResult:
        if self.countdown.needs_refresh(state):
            origin = (lat, lng)
            fresh = await self._query_provider(state, origin, destination, TravelMode.TRANSIT)
            if fresh is not None:
                self.countdown.capture_base(state, fresh.duration_seconds)
                self._store_fresh(state, origin, fresh)
                return self._cached_result(state, is_countdown=True)

        remaining = self.countdown.remaining_seconds(state)
        if remaining is None:
            # never had a successful transit query
            return ETAResult(
                member_id=state.member_id,
                eta_seconds=None,
                eta_text=None,
                distance_text=None,
                distance_meters=None,
                movement_started=True,
                is_countdown=True,
            )
        self.metrics.record_countdown()
        state.cached_eta_seconds = remaining
        return self._cached_result(state, is_countdown=True)

    # ------------- ENTRY POINTS -------------
    async def handle_location_update(
        self,
        member_id: int,
        event_id: int,
        lat: float,
        lng: float,
        travel_mode,
        dest_lat: float,
        dest_lng: float,
        nickname: str,
    ) -> ETAResult:
        """
        Process one location update and return the attendee's ETA.

        Raises:
            InvalidCoordinatesError: position or destination out of range
            InvalidInput: unknown travel mode
        """
        validate_coordinates(lat, lng)
        validate_coordinates(dest_lat, dest_lng)
        mode = parse_travel_mode(travel_mode)
        destination = (float(dest_lat), float(dest_lng))
        lat, lng = float(lat), float(lng)

        async with self._member_lock(member_id):
            state = self._get_or_create_state(member_id, event_id, mode)

            if not self.movement.detect(state, lat, lng):
                logger.debug("Member %s has not started moving; no ETA query", member_id)
                result = ETAResult.not_moving(member_id)
            elif mode == TravelMode.TRANSIT:
                result = await self._handle_transit_eta(state, lat, lng, destination)
            else:
                result = await self._handle_realtime_eta(state, lat, lng, destination)

        logger.debug(
            "ETA for member %s: eta=%s countdown=%s moving=%s",
            member_id, result.eta_seconds, result.is_countdown, result.movement_started,
        )
        if result.eta_seconds is not None or result.movement_started:
            self.publish_event(event_id, ETA_UPDATE, result.to_broadcast_payload(nickname, self.clock.now_ms()))
        return result

    def get_member_eta(self, member_id: int) -> Optional[ETAResult]:
        """Last known ETA without any provider call; transit is recomputed as a live countdown."""
        state = self._states.get(member_id)
        if state is None:
            return None

        if state.travel_mode == TravelMode.TRANSIT:
            remaining = self.countdown.remaining_seconds(state)
            if remaining is not None:
                self.metrics.record_countdown()
                state.cached_eta_seconds = remaining
                return self._cached_result(state, is_countdown=True)

        return self._cached_result(state, is_countdown=False)

    def get_event_etas(self, event_id: int) -> List[ETAResult]:
        member_ids = [s.member_id for s in self._states.values() if s.event_id == event_id]
        results = []
        for member_id in sorted(member_ids):
            result = self.get_member_eta(member_id)
            if result is not None:
                results.append(result)
        return results

    async def clear_member_state(self, member_id: int) -> None:
        """Drop the attendee's state once every update already queued for them has run."""
        async with self._member_lock(member_id):
            if self._states.pop(member_id, None) is not None:
                logger.info("Cleared ETA state for member %s", member_id)

    async def clear_event_states(self, event_id: int) -> None:
        member_ids = [m for m, s in self._states.items() if s.event_id == event_id]
        cleared = 0
        for member_id in member_ids:
            async with self._member_lock(member_id):
                state = self._states.get(member_id)
                if state is not None and state.event_id == event_id:
                    del self._states[member_id]
                    cleared += 1
        if cleared:
            logger.info("Cleared ETA state for %d members of event %s", cleared, event_id)

    # ------------- BROADCAST -------------
    def publish_event(self, event_id: int, event_name: str, payload: dict) -> None:
        """Fire-and-forget publish on the event channel. Must be called from a running loop."""
        task = asyncio.create_task(self._publish(event_id, event_name, payload))
        self._pending_broadcasts.add(task)
        task.add_done_callback(self._pending_broadcasts.discard)

    async def _publish(self, event_id: int, event_name: str, payload: dict) -> None:
        try:
            await self.broadcaster.publish(event_id, event_name, payload)
        except BroadcastFailure as e:
            self.metrics.record_broadcast_failure(event_name)
            logger.warning("%s", e)
            return
        except Exception as e:
            self.metrics.record_broadcast_failure(event_name)
            logger.warning("Unexpected broadcast error for %s on event %s: %r", event_name, event_id, e)
            return
        self.metrics.record_broadcast()

    async def flush_broadcasts(self) -> None:
        """Wait for every scheduled publish to finish."""
        while self._pending_broadcasts:
            await asyncio.gather(*list(self._pending_broadcasts), return_exceptions=True)

    async def aclose(self) -> None:
        await self.flush_broadcasts()
        await self.broadcaster.close()
        close = getattr(self.provider, "aclose", None)
        if close is not None:
            await close()
