import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, enum_type


class VesselStatus(str, enum.Enum):
    ARRIVING = "ARRIVING"
    BERTHED = "BERTHED"
    DISCHARGING = "DISCHARGING"
    DEPARTED = "DEPARTED"


ACTIVE_VESSEL_STATUSES = (VesselStatus.ARRIVING, VesselStatus.BERTHED, VesselStatus.DISCHARGING)


class ScheduleStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    ARRIVED = "ARRIVED"
    DEPARTED = "DEPARTED"
    DELAYED = "DELAYED"
    CANCELLED = "CANCELLED"


class Vessel(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "vessel"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    eta: Mapped[datetime] = mapped_column(DateTime, index=True)
    terminal_id: Mapped[str] = mapped_column(String(36), ForeignKey("terminal.id"), index=True)
    status: Mapped[VesselStatus] = mapped_column(enum_type(VesselStatus), default=VesselStatus.ARRIVING)
    container_count: Mapped[int] = mapped_column(Integer, default=0)

    terminal = relationship("Terminal", back_populates="vessels")
    schedules = relationship(
        "VesselSchedule",
        back_populates="vessel",
        cascade="all, delete-orphan",
        order_by="VesselSchedule.eta",
    )
    containers = relationship("Container", back_populates="vessel")


class VesselSchedule(TimestampMixin, Base):
    __tablename__ = "vessel_schedule"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    vessel_id: Mapped[str] = mapped_column(String(36), ForeignKey("vessel.id"), index=True)
    terminal_id: Mapped[str] = mapped_column(String(36), ForeignKey("terminal.id"), index=True)

    eta: Mapped[datetime] = mapped_column(DateTime)
    etd: Mapped[datetime] = mapped_column(DateTime)
    actual_arrival: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    actual_departure: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[ScheduleStatus] = mapped_column(enum_type(ScheduleStatus), default=ScheduleStatus.SCHEDULED)

    vessel = relationship("Vessel", back_populates="schedules")
