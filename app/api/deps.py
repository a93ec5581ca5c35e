import logging

from fastapi import HTTPException, Query

from app.core.exceptions import DriverOSError
from app.schemas.common import PaginationParams

logger = logging.getLogger(__name__)


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    limit: int = Query(20, ge=1, le=100, description="Number of items per page"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)


def http_error(exc: DriverOSError) -> HTTPException:
    """Translate a domain error into the HTTP error routers raise."""
    if exc.status_code >= 409:
        logger.info("Request rejected (%s): %s", exc.reason or exc.__class__.__name__, exc.message)
    return HTTPException(status_code=exc.status_code, detail=exc.message)
