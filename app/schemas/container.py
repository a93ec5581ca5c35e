from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.container import ContainerStatus, ContainerType, HoldReason
from app.schemas.common import UTCDateTime


class ContainerHoldCreate(BaseModel):
    reason: HoldReason
    description: Optional[str] = Field(None, max_length=2000)


class ContainerHoldResponse(BaseModel):
    id: str
    container_id: str
    reason: HoldReason
    description: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContainerCreate(BaseModel):
    cntr_no: str = Field(..., pattern=r"^[A-Za-z]{4}\d{7}$", description="ISO 6346 container number")
    type: ContainerType
    line: str = Field(..., min_length=1, max_length=50)
    ready_at: Optional[UTCDateTime] = None
    hold: bool = False
    status: ContainerStatus = ContainerStatus.NOT_READY
    terminal_id: str
    vessel_id: Optional[str] = None
    holds: Optional[List[ContainerHoldCreate]] = None

    @field_validator("cntr_no")
    @classmethod
    def _upper_cntr_no(cls, value: str) -> str:
        return value.upper()


class ContainerUpdate(BaseModel):
    cntr_no: Optional[str] = Field(None, pattern=r"^[A-Za-z]{4}\d{7}$")
    type: Optional[ContainerType] = None
    line: Optional[str] = Field(None, min_length=1, max_length=50)
    ready_at: Optional[UTCDateTime] = None
    hold: Optional[bool] = None
    status: Optional[ContainerStatus] = None
    terminal_id: Optional[str] = None
    vessel_id: Optional[str] = None

    @field_validator("cntr_no")
    @classmethod
    def _upper_cntr_no(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class ContainerStatusUpdate(BaseModel):
    status: ContainerStatus


class ContainerResponse(BaseModel):
    id: str
    cntr_no: str
    type: ContainerType
    line: str
    ready_at: Optional[datetime] = None
    hold: bool
    status: ContainerStatus
    terminal_id: str
    vessel_id: Optional[str] = None
    holds: List[ContainerHoldResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ContainerStatistics(BaseModel):
    total: int
    ready: int
    not_ready: int
    hold: int
    picked: int
    delivered: int
