import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, enum_type


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    FULL = "FULL"
    CLOSED = "CLOSED"
    MAINTENANCE = "MAINTENANCE"


# Statuses set by operators; occupancy changes never override them
MANUAL_SLOT_STATUSES = (SlotStatus.CLOSED, SlotStatus.MAINTENANCE)


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Slot(SoftDeleteMixin, TimestampMixin, Base):
    """
    Time-windowed pickup capacity at a terminal.

    ``booked`` counts CONFIRMED bookings and never exceeds ``capacity``.
    ``version`` is bumped on every write so ORM updates detect concurrent
    booking activity.
    """

    __tablename__ = "slot"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    terminal_id: Mapped[str] = mapped_column(String(36), ForeignKey("terminal.id"), index=True)
    window_start: Mapped[datetime] = mapped_column(DateTime, index=True)
    window_end: Mapped[datetime] = mapped_column(DateTime)
    capacity: Mapped[int] = mapped_column(Integer)
    booked: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[SlotStatus] = mapped_column(enum_type(SlotStatus), default=SlotStatus.AVAILABLE, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    terminal = relationship("Terminal", back_populates="slots")
    bookings = relationship("SlotBooking", back_populates="slot", order_by="SlotBooking.created_at")
    trips = relationship("Trip", back_populates="pickup_slot")

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        Index("ix_slot_terminal_window", "terminal_id", "window_start", "window_end"),
        CheckConstraint("booked >= 0 AND booked <= capacity", name="ck_slot_booked_within_capacity"),
    )


class SlotBooking(TimestampMixin, Base):
    """Reservation of one unit of a slot's capacity by a trip."""

    __tablename__ = "slot_booking"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("slot.id"), index=True)
    trip_id: Mapped[str] = mapped_column(String(36), ForeignKey("trip.id"), index=True)
    driver_id: Mapped[str] = mapped_column(String(36), ForeignKey("driver.id"), index=True)
    container_id: Mapped[str] = mapped_column(String(36), ForeignKey("container.id"), index=True)
    status: Mapped[BookingStatus] = mapped_column(enum_type(BookingStatus), default=BookingStatus.CONFIRMED)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    slot = relationship("Slot", back_populates="bookings")
    trip = relationship("Trip", back_populates="bookings")
