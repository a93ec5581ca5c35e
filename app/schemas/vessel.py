from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from app.models.vessel import ScheduleStatus, VesselStatus
from app.schemas.common import UTCDateTime


class VesselScheduleCreate(BaseModel):
    terminal_id: str
    eta: UTCDateTime
    etd: UTCDateTime
    actual_arrival: Optional[UTCDateTime] = None
    actual_departure: Optional[UTCDateTime] = None
    status: ScheduleStatus = ScheduleStatus.SCHEDULED

    @model_validator(mode="after")
    def _etd_after_eta(self) -> "VesselScheduleCreate":
        if self.etd < self.eta:
            raise ValueError("etd must not be before eta")
        return self


class VesselScheduleResponse(BaseModel):
    id: str
    vessel_id: str
    terminal_id: str
    eta: datetime
    etd: datetime
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    status: ScheduleStatus

    model_config = {"from_attributes": True}


class VesselCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    eta: UTCDateTime
    terminal_id: str
    status: VesselStatus = VesselStatus.ARRIVING
    container_count: int = Field(default=0, ge=0)
    schedules: Optional[List[VesselScheduleCreate]] = None


class VesselUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    eta: Optional[UTCDateTime] = None
    terminal_id: Optional[str] = None
    status: Optional[VesselStatus] = None
    container_count: Optional[int] = Field(None, ge=0)
    schedules: Optional[List[VesselScheduleCreate]] = None  # Replaces all schedules when given


class VesselStatusUpdate(BaseModel):
    status: VesselStatus


class VesselResponse(BaseModel):
    id: str
    name: str
    eta: datetime
    terminal_id: str
    status: VesselStatus
    container_count: int
    schedules: List[VesselScheduleResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VesselContainerCount(BaseModel):
    total: int
    ready: int
    hold: int
