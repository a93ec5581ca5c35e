from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_pagination, http_error
from app.core.db import get_db
from app.core.exceptions import DriverOSError
from app.schemas.common import Page, PaginationParams
from app.schemas.container import (
    ContainerCreate,
    ContainerHoldCreate,
    ContainerHoldResponse,
    ContainerResponse,
    ContainerStatistics,
    ContainerStatusUpdate,
    ContainerUpdate,
)
from app.services.container import ContainerService

router = APIRouter()


@router.get("", response_model=Page[ContainerResponse])
async def list_containers(
    params: PaginationParams = Depends(get_pagination),
    db: AsyncSession = Depends(get_db),
) -> Page[ContainerResponse]:
    return await ContainerService(db).list_containers(params)


@router.get("/ready", response_model=List[ContainerResponse])
async def list_ready_containers(db: AsyncSession = Depends(get_db)) -> List[ContainerResponse]:
    return await ContainerService(db).list_ready()


@router.get("/on-hold", response_model=List[ContainerResponse])
async def list_containers_on_hold(db: AsyncSession = Depends(get_db)) -> List[ContainerResponse]:
    return await ContainerService(db).list_on_hold()


@router.get("/statistics", response_model=ContainerStatistics)
async def get_container_statistics(db: AsyncSession = Depends(get_db)) -> ContainerStatistics:
    return await ContainerService(db).get_statistics()


@router.get("/number/{cntr_no}", response_model=ContainerResponse)
async def get_container_by_number(cntr_no: str, db: AsyncSession = Depends(get_db)) -> ContainerResponse:
    try:
        return await ContainerService(db).get_by_number(cntr_no)
    except DriverOSError as exc:
        raise http_error(exc)


@router.get("/terminal/{terminal_id}", response_model=List[ContainerResponse])
async def list_containers_by_terminal(terminal_id: str, db: AsyncSession = Depends(get_db)) -> List[ContainerResponse]:
    return await ContainerService(db).list_by_terminal(terminal_id)


@router.get("/vessel/{vessel_id}", response_model=List[ContainerResponse])
async def list_containers_by_vessel(vessel_id: str, db: AsyncSession = Depends(get_db)) -> List[ContainerResponse]:
    return await ContainerService(db).list_by_vessel(vessel_id)


@router.get("/{container_id}", response_model=ContainerResponse)
async def get_container(container_id: str, db: AsyncSession = Depends(get_db)) -> ContainerResponse:
    try:
        return await ContainerService(db).get_container(container_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("", response_model=ContainerResponse, status_code=status.HTTP_201_CREATED)
async def create_container(payload: ContainerCreate, db: AsyncSession = Depends(get_db)) -> ContainerResponse:
    try:
        return await ContainerService(db).create_container(payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{container_id}", response_model=ContainerResponse)
async def update_container(
    container_id: str,
    payload: ContainerUpdate,
    db: AsyncSession = Depends(get_db),
) -> ContainerResponse:
    try:
        return await ContainerService(db).update_container(container_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.delete("/{container_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_container(container_id: str, db: AsyncSession = Depends(get_db)) -> None:
    try:
        await ContainerService(db).delete_container(container_id)
    except DriverOSError as exc:
        raise http_error(exc)


@router.patch("/{container_id}/status", response_model=ContainerResponse)
async def update_container_status(
    container_id: str,
    payload: ContainerStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> ContainerResponse:
    try:
        return await ContainerService(db).update_status(container_id, payload.status)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post(
    "/{container_id}/holds",
    response_model=ContainerHoldResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_container_hold(
    container_id: str,
    payload: ContainerHoldCreate,
    db: AsyncSession = Depends(get_db),
) -> ContainerHoldResponse:
    try:
        return await ContainerService(db).add_hold(container_id, payload)
    except DriverOSError as exc:
        raise http_error(exc)


@router.post("/{container_id}/holds/{hold_id}/resolve", response_model=ContainerResponse)
async def resolve_container_hold(
    container_id: str,
    hold_id: str,
    db: AsyncSession = Depends(get_db),
) -> ContainerResponse:
    """Close a hold; the container leaves HOLD once no open holds remain."""
    try:
        return await ContainerService(db).resolve_hold(container_id, hold_id)
    except DriverOSError as exc:
        raise http_error(exc)
