import enum
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, enum_type


class TerminalStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"


class Terminal(SoftDeleteMixin, TimestampMixin, Base):
    """Container terminal that owns vessels, containers and pickup slots."""

    __tablename__ = "terminal"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    code: Mapped[str] = mapped_column(String(20), index=True)  # LAX, LGB, ...; unique among live rows
    capacity: Mapped[int] = mapped_column(Integer)  # Max containers on the yard
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")
    status: Mapped[TerminalStatus] = mapped_column(enum_type(TerminalStatus), default=TerminalStatus.ACTIVE)

    settings = relationship(
        "TerminalSettings",
        back_populates="terminal",
        uselist=False,
        cascade="all, delete-orphan",
    )
    vessels = relationship("Vessel", back_populates="terminal")
    containers = relationship("Container", back_populates="terminal")
    slots = relationship("Slot", back_populates="terminal")


class TerminalSettings(TimestampMixin, Base):
    """Pickup window configuration for a terminal."""

    __tablename__ = "terminal_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    terminal_id: Mapped[str] = mapped_column(String(36), ForeignKey("terminal.id"), unique=True, index=True)

    slot_duration: Mapped[int] = mapped_column(Integer, default=60)  # Minutes per pickup window
    max_slots_per_window: Mapped[int] = mapped_column(Integer, default=10)
    # {"monday": {"start": "06:00", "end": "22:00"}, ...}
    operating_hours: Mapped[dict] = mapped_column(JSON, default=dict)
    closed_days: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    special_rules: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    terminal = relationship("Terminal", back_populates="settings")
