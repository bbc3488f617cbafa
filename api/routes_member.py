# api/routes_member.py
from fastapi import APIRouter, Depends, HTTPException, Path
import logging

from core.dependencies import clock_now, get_eta_service
from core.exceptions import OutsideTimeWindowError
from core.response import ok
from models.schemas import ArrivalRequest, LocationUpdate
from services.broadcast_service import LOCATION_UPDATE, MEMBER_ARRIVED
from services.eta_service import ETAService
from services.event_timing import calculate_arrival_status, is_within_time_window

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{member_id}/location")
async def post_location(
    payload: LocationUpdate,
    member_id: int = Path(..., gt=0),
    eta_service: ETAService = Depends(get_eta_service),
):
    """
    Attendee reports their position; returns their current ETA.

    Request JSON (LocationUpdate):
    {
      "event_id": 7,
      "lat": 25.0380, "lng": 121.5700,
      "travel_mode": "transit",
      "dest_lat": 25.0478, "dest_lng": 121.5170,
      "nickname": "Amy"
    }

    Response JSON:
    {
      "ok": true,
      "data": {
        "member_id": 3,
        "eta_seconds": 600,
        "eta_text": "10 分鐘",
        "distance_text": "2 公里",
        "distance_meters": 2000,
        "movement_started": true,
        "is_countdown": true
      }
    }
    """
    now = clock_now(eta_service)
    if payload.event_start is not None and payload.event_end is not None:
        config = eta_service.config
        if not is_within_time_window(
            payload.event_start, payload.event_end, now,
            config.window_before_start_ms, config.window_after_end_ms,
        ):
            raise OutsideTimeWindowError("Location updates are only allowed within the event time window")

    eta_service.publish_event(payload.event_id, LOCATION_UPDATE, {
        "memberId": member_id,
        "nickname": payload.nickname,
        "lat": payload.lat,
        "lng": payload.lng,
        "timestamp": now.isoformat(),
    })

    result = await eta_service.handle_location_update(
        member_id,
        payload.event_id,
        payload.lat,
        payload.lng,
        payload.travel_mode,
        payload.dest_lat,
        payload.dest_lng,
        payload.nickname,
    )
    return ok(result.to_dict())


@router.get("/{member_id}/eta")
async def get_member_eta(
    member_id: int = Path(..., gt=0),
    eta_service: ETAService = Depends(get_eta_service),
):
    """Cheap polling endpoint: never calls the travel-time provider."""
    result = eta_service.get_member_eta(member_id)
    if result is None:
        raise HTTPException(status_code=404, detail="No ETA state for member")
    return ok(result.to_dict())


@router.delete("/{member_id}/eta")
async def clear_member_eta(
    member_id: int = Path(..., gt=0),
    eta_service: ETAService = Depends(get_eta_service),
):
    await eta_service.clear_member_state(member_id)
    return ok({"member_id": member_id, "cleared": True})


@router.post("/{member_id}/arrival")
async def post_arrival(
    payload: ArrivalRequest,
    member_id: int = Path(..., gt=0),
    eta_service: ETAService = Depends(get_eta_service),
):
    """
    Mark the attendee as arrived: ETA tracking stops and the event channel is told.
    """
    arrival_time = clock_now(eta_service)
    arrival = calculate_arrival_status(payload.event_start, arrival_time)

    await eta_service.clear_member_state(member_id)
    eta_service.publish_event(payload.event_id, MEMBER_ARRIVED, {
        "memberId": member_id,
        "nickname": payload.nickname,
        "arrivalTime": arrival_time.isoformat(),
        "status": arrival["status"],
    })
    logger.info("Member %s arrived at event %s (%s)", member_id, payload.event_id, arrival["status"])

    return ok({
        "member_id": member_id,
        "arrival_time": arrival_time.isoformat(),
        "status": arrival["status"],
        "late_minutes": arrival["late_minutes"],
    })
