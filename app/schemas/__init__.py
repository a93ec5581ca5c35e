"""Pydantic schemas."""

from app.schemas.common import Page, PaginationParams  # noqa: F401
from app.schemas.terminal import TerminalCreate, TerminalResponse, TerminalUpdate  # noqa: F401
from app.schemas.vessel import VesselCreate, VesselResponse, VesselUpdate  # noqa: F401
from app.schemas.container import ContainerCreate, ContainerResponse, ContainerUpdate  # noqa: F401
from app.schemas.driver import DriverCreate, DriverResponse, DriverUpdate  # noqa: F401
from app.schemas.slot import SlotBookingCreate, SlotBookingResponse, SlotCreate, SlotResponse, SlotUpdate  # noqa: F401
from app.schemas.trip import TripCreate, TripResponse, TripUpdate  # noqa: F401
