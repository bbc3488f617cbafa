# api/routes_event.py
from fastapi import APIRouter, Depends, Path

from core.dependencies import get_eta_service
from core.response import ok
from services.eta_service import ETAService

router = APIRouter()


@router.get("/{event_id}/members/eta")
async def get_event_member_etas(
    event_id: int = Path(..., gt=0),
    eta_service: ETAService = Depends(get_eta_service),
):
    """ETA of every tracked attendee of the event (no provider calls)."""
    members = [r.to_dict() for r in eta_service.get_event_etas(event_id)]
    return ok({"event_id": event_id, "members": members})


@router.delete("/{event_id}/eta")
async def clear_event_etas(
    event_id: int = Path(..., gt=0),
    eta_service: ETAService = Depends(get_eta_service),
):
    await eta_service.clear_event_states(event_id)
    return ok({"event_id": event_id, "cleared": True})
