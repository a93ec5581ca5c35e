"""SQLAlchemy models for DriverOS."""

from app.models.terminal import Terminal, TerminalSettings  # noqa: F401
from app.models.vessel import Vessel, VesselSchedule  # noqa: F401
from app.models.container import Container, ContainerHold  # noqa: F401
from app.models.driver import Driver, DriverAvailability, DriverMetrics  # noqa: F401
from app.models.slot import Slot, SlotBooking  # noqa: F401
from app.models.trip import Trip, TripEvent, TripMetrics  # noqa: F401
