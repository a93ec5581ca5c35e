from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.models.driver import AvailabilityStatus, DriverStatus
from app.schemas.common import UTCDateTime

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class DriverAvailabilityCreate(BaseModel):
    date: date_type
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    end_time: str = Field(..., pattern=HHMM_PATTERN)
    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE

    @model_validator(mode="after")
    def _end_after_start(self) -> "DriverAvailabilityCreate":
        # HH:MM strings compare correctly as text
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class DriverAvailabilityUpdate(BaseModel):
    date: Optional[date_type] = None
    start_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    end_time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    status: Optional[AvailabilityStatus] = None


class DriverAvailabilityResponse(BaseModel):
    id: str
    driver_id: str
    date: date_type
    start_time: str
    end_time: str
    status: AvailabilityStatus

    model_config = {"from_attributes": True}


class DriverMetricsUpdate(BaseModel):
    total_trips: Optional[int] = Field(None, ge=0)
    completed_trips: Optional[int] = Field(None, ge=0)
    failed_trips: Optional[int] = Field(None, ge=0)
    average_turn_time: Optional[float] = Field(None, ge=0)
    total_distance: Optional[float] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=1, le=5)


class DriverMetricsResponse(BaseModel):
    driver_id: str
    total_trips: int
    completed_trips: int
    failed_trips: int
    average_turn_time: float
    total_distance: float
    rating: Optional[float] = None

    model_config = {"from_attributes": True}


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    status: DriverStatus = DriverStatus.ACTIVE
    license_number: str = Field(..., min_length=1, max_length=50)
    license_expiry: UTCDateTime
    carrier_id: str
    availability: Optional[List[DriverAvailabilityCreate]] = None
    metrics: Optional[DriverMetricsUpdate] = None


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    status: Optional[DriverStatus] = None
    license_number: Optional[str] = Field(None, min_length=1, max_length=50)
    license_expiry: Optional[UTCDateTime] = None
    carrier_id: Optional[str] = None


class DriverStatusUpdate(BaseModel):
    status: DriverStatus


class DriverResponse(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    status: DriverStatus
    license_number: str
    license_expiry: datetime
    carrier_id: str
    availability: List[DriverAvailabilityResponse] = Field(default_factory=list)
    metrics: Optional[DriverMetricsResponse] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DriverStatistics(BaseModel):
    total: int
    active: int
    on_trip: int
    suspended: int
    inactive: int
