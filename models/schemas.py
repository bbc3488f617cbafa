from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.eta import TravelMode


class LocationUpdate(BaseModel):
    event_id: int = Field(..., gt=0)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    travel_mode: TravelMode = TravelMode.DRIVING
    dest_lat: float = Field(..., ge=-90, le=90)
    dest_lng: float = Field(..., ge=-180, le=180)
    nickname: str = Field("Unknown", max_length=100)
    event_start: Optional[datetime] = None
    event_end: Optional[datetime] = None


class ArrivalRequest(BaseModel):
    event_id: int = Field(..., gt=0)
    event_start: datetime
    nickname: str = Field("Unknown", max_length=100)
