from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.core.config import get_settings
from app.core.db import check_database_connection, init_database
from app.core.exceptions import DriverOSError
from app.middleware.security import setup_security_middleware
from app.services.event_dispatcher import get_dispatcher
from app.services.websocket_manager import manager

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("Starting %s (%s)", settings.project_name, settings.environment)

    if await check_database_connection():
        try:
            await asyncio.wait_for(init_database(), timeout=30.0)
        except asyncio.TimeoutError:
            logger.error("Database initialization timed out after 30s")
    else:
        logger.error("Database connection failed; readiness probe will report not ready")

    # Forward every domain event to connected dashboards
    dispatcher = get_dispatcher()
    dispatcher.subscribe_all(manager.handle_event)
    logger.info("WebSocket event handlers registered")

    yield

    dispatcher.unsubscribe_all(manager.handle_event)
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.project_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
setup_security_middleware(app)


@app.exception_handler(DriverOSError)
async def domain_error_handler(request: Request, exc: DriverOSError) -> JSONResponse:
    """Fallback for domain errors a router did not translate itself."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(api_router, prefix="/api")


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    return {"status": "ok", "environment": settings.environment}
