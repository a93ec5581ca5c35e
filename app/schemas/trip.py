from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.trip import TripEventType, TripStatus
from app.schemas.common import UTCDateTime


class TripMetricsUpdate(BaseModel):
    total_distance: Optional[float] = Field(None, ge=0)  # km
    estimated_duration: Optional[float] = Field(None, ge=0)  # Minutes
    actual_duration: Optional[float] = Field(None, ge=0)  # Minutes
    fuel_consumption: Optional[float] = Field(None, ge=0)  # Liters
    carbon_footprint: Optional[float] = Field(None, ge=0)  # kg CO2


class TripMetricsResponse(BaseModel):
    trip_id: str
    total_distance: Optional[float] = None
    estimated_duration: Optional[float] = None
    actual_duration: Optional[float] = None
    fuel_consumption: Optional[float] = None
    carbon_footprint: Optional[float] = None

    model_config = {"from_attributes": True}


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class TripEventCreate(BaseModel):
    type: TripEventType
    timestamp: Optional[UTCDateTime] = None  # Defaults to now
    location: Optional[GeoPoint] = None
    metadata: Optional[dict] = None


class TripEventResponse(BaseModel):
    id: str
    trip_id: str
    type: TripEventType
    timestamp: datetime
    location: Optional[dict] = None
    metadata: Optional[dict] = Field(default=None, validation_alias="event_metadata")

    model_config = {"from_attributes": True, "populate_by_name": True}


class TripCreate(BaseModel):
    driver_id: str
    container_id: str
    pickup_slot_id: Optional[str] = None
    return_empty: bool = False
    status: TripStatus = TripStatus.ASSIGNED
    eta: Optional[UTCDateTime] = None
    metrics: Optional[TripMetricsUpdate] = None
    events: Optional[List[TripEventCreate]] = None


class TripUpdate(BaseModel):
    driver_id: Optional[str] = None
    container_id: Optional[str] = None
    pickup_slot_id: Optional[str] = None
    return_empty: Optional[bool] = None
    status: Optional[TripStatus] = None
    eta: Optional[UTCDateTime] = None
    metrics: Optional[TripMetricsUpdate] = None
    events: Optional[List[TripEventCreate]] = None  # Replaces all events when given


class TripStatusUpdate(BaseModel):
    status: TripStatus


class TripResponse(BaseModel):
    id: str
    driver_id: str
    container_id: str
    pickup_slot_id: Optional[str] = None
    return_empty: bool
    status: TripStatus
    eta: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    turn_minutes: Optional[int] = None
    metrics: Optional[TripMetricsResponse] = None
    events: List[TripEventResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TurnTimeResponse(BaseModel):
    trip_id: str
    turn_time_minutes: Optional[int] = None


class TripStatistics(BaseModel):
    total: int
    assigned: int
    in_progress: int
    completed: int
    failed: int
    cancelled: int
    average_turn_time: int  # Minutes


class DriverPerformance(BaseModel):
    driver_id: str
    total_trips: int
    completed_trips: int
    failed_trips: int
    average_turn_time: int  # Minutes
    total_distance: float
