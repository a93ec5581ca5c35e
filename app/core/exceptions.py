"""Domain errors raised by services.

Routers translate these into HTTP responses: ``NotFoundError`` means the
caller referenced something that does not exist (fix the input), while
``ConflictError`` means the request is valid but the current state forbids
it (retry later or against another resource).
"""

from typing import Optional


class DriverOSError(Exception):
    """Base class for domain errors."""

    status_code = 400

    def __init__(self, message: str, *, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason


class NotFoundError(DriverOSError):
    status_code = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: str, *, field: str = "ID") -> "NotFoundError":
        return cls(f"{entity} with {field} {entity_id} not found", reason="NOT_FOUND")


class ConflictError(DriverOSError):
    status_code = 409


class BookingRaceLostError(ConflictError):
    """Guarded slot update matched no row although the slot still looked bookable."""

    def __init__(self, slot_id: str) -> None:
        super().__init__(f"Slot {slot_id} was modified concurrently", reason="RACE_LOST")
        self.slot_id = slot_id
