from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from app.models.slot import BookingStatus, SlotStatus
from app.schemas.common import UTCDateTime

# Statuses accepted when a slot is created; FULL is derived from occupancy
CREATABLE_SLOT_STATUSES = (SlotStatus.AVAILABLE, SlotStatus.CLOSED, SlotStatus.MAINTENANCE)


class SlotCreate(BaseModel):
    terminal_id: str
    window_start: UTCDateTime
    window_end: UTCDateTime
    capacity: int = Field(..., gt=0)
    status: SlotStatus = SlotStatus.AVAILABLE

    @model_validator(mode="after")
    def _check_window(self) -> "SlotCreate":
        if self.window_end <= self.window_start:
            raise ValueError("window_end must be after window_start")
        if self.status not in CREATABLE_SLOT_STATUSES:
            raise ValueError("A new slot cannot start as FULL")
        return self


class SlotUpdate(BaseModel):
    terminal_id: Optional[str] = None
    window_start: Optional[UTCDateTime] = None
    window_end: Optional[UTCDateTime] = None
    capacity: Optional[int] = Field(None, gt=0)
    status: Optional[SlotStatus] = None


class SlotStatusUpdate(BaseModel):
    status: SlotStatus


class SlotBookingCreate(BaseModel):
    trip_id: str
    driver_id: str
    container_id: str


class SlotBookingResponse(BaseModel):
    id: str
    slot_id: str
    trip_id: str
    driver_id: str
    container_id: str
    status: BookingStatus
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SlotResponse(BaseModel):
    id: str
    terminal_id: str
    window_start: datetime
    window_end: datetime
    capacity: int
    booked: int
    status: SlotStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SlotDetailResponse(SlotResponse):
    bookings: List[SlotBookingResponse] = Field(default_factory=list)


class SlotStatistics(BaseModel):
    total: int
    available: int
    full: int
    closed: int
    maintenance: int
    average_utilization: int  # Percent of total capacity booked


class HourlyUtilization(BaseModel):
    hour: int
    total_slots: int
    total_capacity: int
    total_booked: int
    utilization: int
