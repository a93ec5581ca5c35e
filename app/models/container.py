import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin, enum_type


class ContainerType(str, enum.Enum):
    GP20 = "20GP"
    GP40 = "40GP"
    HC40 = "40HC"
    HC45 = "45HC"


class ContainerStatus(str, enum.Enum):
    NOT_READY = "NOT_READY"
    READY = "READY"
    PICKED = "PICKED"
    DELIVERED = "DELIVERED"
    HOLD = "HOLD"


class HoldReason(str, enum.Enum):
    CUSTOMS_HOLD = "CUSTOMS_HOLD"
    DOCUMENTATION = "DOCUMENTATION"
    CHASSIS_SHORTAGE = "CHASSIS_SHORTAGE"
    GATE_BLOCKED = "GATE_BLOCKED"
    WEATHER = "WEATHER"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


class Container(SoftDeleteMixin, TimestampMixin, Base):
    """Import/export box sitting at a terminal."""

    __tablename__ = "container"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    cntr_no: Mapped[str] = mapped_column(String(11), index=True)  # ISO 6346, e.g. MSCU1234567
    type: Mapped[ContainerType] = mapped_column(enum_type(ContainerType))
    line: Mapped[str] = mapped_column(String(50))  # Steamship line: CMA, MSC, MAE, ...
    ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    hold: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[ContainerStatus] = mapped_column(enum_type(ContainerStatus), default=ContainerStatus.NOT_READY)

    terminal_id: Mapped[str] = mapped_column(String(36), ForeignKey("terminal.id"), index=True)
    vessel_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("vessel.id"), nullable=True, index=True)

    terminal = relationship("Terminal", back_populates="containers")
    vessel = relationship("Vessel", back_populates="containers")
    holds = relationship(
        "ContainerHold",
        back_populates="container",
        cascade="all, delete-orphan",
        order_by="ContainerHold.created_at",
    )


class ContainerHold(Base):
    __tablename__ = "container_hold"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    container_id: Mapped[str] = mapped_column(String(36), ForeignKey("container.id"), index=True)
    reason: Mapped[HoldReason] = mapped_column(enum_type(HoldReason))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)  # Open while null

    container = relationship("Container", back_populates="holds")
