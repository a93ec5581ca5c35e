import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, JSON, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, enum_type
from app.utils.time import turn_time_minutes


class TripStatus(str, enum.Enum):
    ASSIGNED = "ASSIGNED"
    STARTED = "STARTED"
    EN_ROUTE = "EN_ROUTE"
    GATE_READY = "GATE_READY"
    AT_GATE = "AT_GATE"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


IN_PROGRESS_TRIP_STATUSES = (
    TripStatus.STARTED,
    TripStatus.EN_ROUTE,
    TripStatus.GATE_READY,
    TripStatus.AT_GATE,
    TripStatus.PROCESSING,
)
ACTIVE_TRIP_STATUSES = (TripStatus.ASSIGNED,) + IN_PROGRESS_TRIP_STATUSES
TERMINAL_TRIP_STATUSES = (TripStatus.COMPLETED, TripStatus.FAILED, TripStatus.CANCELLED)


class TripEventType(str, enum.Enum):
    TRIP_STARTED = "TRIP_STARTED"
    ETA_UPDATED = "ETA_UPDATED"
    ARRIVED_AT_GATE = "ARRIVED_AT_GATE"
    GATE_PROCESSING = "GATE_PROCESSING"
    CONTAINER_PICKED = "CONTAINER_PICKED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    TRIP_FAILED = "TRIP_FAILED"
    DELAY_DETECTED = "DELAY_DETECTED"


class Trip(SoftDeleteMixin, TimestampMixin, Base):
    """A driver's run to pick up a container, optionally inside a booked slot."""

    __tablename__ = "trip"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    driver_id: Mapped[str] = mapped_column(String(36), ForeignKey("driver.id"), index=True)
    container_id: Mapped[str] = mapped_column(String(36), ForeignKey("container.id"), index=True)
    pickup_slot_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("slot.id"), nullable=True, index=True)
    return_empty: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[TripStatus] = mapped_column(enum_type(TripStatus), default=TripStatus.ASSIGNED, index=True)
    eta: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    driver = relationship("Driver")
    container = relationship("Container")
    pickup_slot = relationship("Slot", back_populates="trips")
    metrics = relationship("TripMetrics", back_populates="trip", uselist=False, cascade="all, delete-orphan")
    events = relationship(
        "TripEvent",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="TripEvent.timestamp.desc()",
    )
    bookings = relationship("SlotBooking", back_populates="trip")

    @property
    def turn_minutes(self) -> Optional[int]:
        return turn_time_minutes(self.started_at, self.completed_at)


class TripMetrics(TimestampMixin, Base):
    __tablename__ = "trip_metrics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    trip_id: Mapped[str] = mapped_column(String(36), ForeignKey("trip.id"), unique=True, index=True)
    total_distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # km
    estimated_duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # Minutes
    actual_duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # Minutes
    fuel_consumption: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # Liters
    carbon_footprint: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # kg CO2

    trip = relationship("Trip", back_populates="metrics")


class TripEvent(Base):
    __tablename__ = "trip_event"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    trip_id: Mapped[str] = mapped_column(String(36), ForeignKey("trip.id"), index=True)
    type: Mapped[TripEventType] = mapped_column(enum_type(TripEventType))
    timestamp: Mapped[datetime] = mapped_column(DateTime, index=True)
    location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # {"lat": .., "lng": ..}
    event_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    trip = relationship("Trip", back_populates="events")
