import enum
from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, enum_type


class DriverStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    ON_TRIP = "ON_TRIP"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BUSY = "BUSY"
    OFF_DUTY = "OFF_DUTY"
    SICK_LEAVE = "SICK_LEAVE"


class Driver(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "driver"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[DriverStatus] = mapped_column(enum_type(DriverStatus), default=DriverStatus.ACTIVE)
    license_number: Mapped[str] = mapped_column(String(50), index=True)  # Unique among live rows
    license_expiry: Mapped[datetime] = mapped_column(DateTime)
    carrier_id: Mapped[str] = mapped_column(String(36), index=True)

    availability = relationship(
        "DriverAvailability",
        back_populates="driver",
        cascade="all, delete-orphan",
        order_by="DriverAvailability.date",
    )
    metrics = relationship("DriverMetrics", back_populates="driver", uselist=False, cascade="all, delete-orphan")


class DriverAvailability(TimestampMixin, Base):
    __tablename__ = "driver_availability"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    driver_id: Mapped[str] = mapped_column(String(36), ForeignKey("driver.id"), index=True)
    date: Mapped[date_type] = mapped_column(Date, index=True)
    start_time: Mapped[str] = mapped_column(String(5))  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5))  # HH:MM
    status: Mapped[AvailabilityStatus] = mapped_column(
        enum_type(AvailabilityStatus), default=AvailabilityStatus.AVAILABLE
    )

    driver = relationship("Driver", back_populates="availability")


class DriverMetrics(TimestampMixin, Base):
    __tablename__ = "driver_metrics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    driver_id: Mapped[str] = mapped_column(String(36), ForeignKey("driver.id"), unique=True, index=True)
    total_trips: Mapped[int] = mapped_column(Integer, default=0)
    completed_trips: Mapped[int] = mapped_column(Integer, default=0)
    failed_trips: Mapped[int] = mapped_column(Integer, default=0)
    average_turn_time: Mapped[float] = mapped_column(Float, default=0)  # Minutes
    total_distance: Mapped[float] = mapped_column(Float, default=0)  # km
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # 1-5

    driver = relationship("Driver", back_populates="metrics")
