from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.terminal import TerminalStatus

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class OperatingWindow(BaseModel):
    start: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    end: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class TerminalSettingsCreate(BaseModel):
    slot_duration: int = Field(default=60, gt=0, le=24 * 60)  # Minutes
    max_slots_per_window: int = Field(default=10, gt=0)
    operating_hours: Dict[str, OperatingWindow] = Field(default_factory=dict)
    closed_days: List[str] = Field(default_factory=list)
    special_rules: Optional[dict] = None

    @field_validator("operating_hours")
    @classmethod
    def _known_weekdays(cls, value: Dict[str, OperatingWindow]) -> Dict[str, OperatingWindow]:
        unknown = set(value) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
        return value

    @field_validator("closed_days")
    @classmethod
    def _normalize_closed_days(cls, value: List[str]) -> List[str]:
        days = [day.lower() for day in value]
        unknown = set(days) - set(WEEKDAYS)
        if unknown:
            raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
        return days


class TerminalSettingsResponse(BaseModel):
    id: str
    terminal_id: str
    slot_duration: int
    max_slots_per_window: int
    operating_hours: dict
    closed_days: Optional[List[str]] = None
    special_rules: Optional[dict] = None

    model_config = {"from_attributes": True}


class TerminalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=2, max_length=20)
    capacity: int = Field(..., gt=0)
    timezone: str = Field(default="UTC", max_length=64)
    status: TerminalStatus = TerminalStatus.ACTIVE
    settings: Optional[TerminalSettingsCreate] = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()


class TerminalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, min_length=2, max_length=20)
    capacity: Optional[int] = Field(None, gt=0)
    timezone: Optional[str] = Field(None, max_length=64)
    status: Optional[TerminalStatus] = None
    settings: Optional[TerminalSettingsCreate] = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else value


class TerminalResponse(BaseModel):
    id: str
    name: str
    code: str
    capacity: int
    timezone: str
    status: TerminalStatus
    settings: Optional[TerminalSettingsResponse] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TerminalCapacityResponse(BaseModel):
    current: int
    max: int
    percentage: int
