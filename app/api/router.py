from fastapi import APIRouter

from app.routers import (
    containers,
    drivers,
    health,
    slots,
    terminals,
    trips,
    vessels,
    websocket,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(terminals.router, prefix="/terminals", tags=["Terminals"])
api_router.include_router(vessels.router, prefix="/vessels", tags=["Vessels"])
api_router.include_router(containers.router, prefix="/containers", tags=["Containers"])
api_router.include_router(drivers.router, prefix="/drivers", tags=["Drivers"])
api_router.include_router(slots.router, prefix="/slots", tags=["Slots"])
api_router.include_router(trips.router, prefix="/trips", tags=["Trips"])
api_router.include_router(websocket.router, tags=["Realtime"])
