"""Out-of-office endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_current_user, get_ooo_service
from app.models.user import User
from app.schemas.ooo import OOOCreate, OOOList, OOOResponse, OOOUpdate
from app.services.exceptions import OOONotFoundError
from app.services.ooo_service import OOOService

router = APIRouter()


@router.post(
    "",
    response_model=OOOResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Announce an out-of-office period",
)
def create_ooo(
    data: OOOCreate,
    _: User = Depends(get_current_user),
    ooo_service: OOOService = Depends(get_ooo_service),
) -> OOOResponse:
    """Create an out-of-office record."""
    return OOOResponse.model_validate(ooo_service.create_record(data))


@router.get(
    "",
    response_model=OOOList,
    summary="List out-of-office records",
)
def list_ooo(
    active: Optional[bool] = Query(default=None, description="Filter by active flag"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: User = Depends(get_current_user),
    ooo_service: OOOService = Depends(get_ooo_service),
) -> OOOList:
    """List out-of-office records."""
    records = ooo_service.list_records(active=active, limit=limit, offset=offset)
    return OOOList(ooo=[OOOResponse.model_validate(r) for r in records], total=len(records))


@router.get(
    "/{ooo_id}",
    response_model=OOOResponse,
    summary="Get an out-of-office record",
)
def get_ooo(
    ooo_id: int,
    _: User = Depends(get_current_user),
    ooo_service: OOOService = Depends(get_ooo_service),
) -> OOOResponse:
    """Get one out-of-office record."""
    try:
        return OOOResponse.model_validate(ooo_service.get_record(ooo_id))
    except OOONotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="OOO request not found")


@router.put(
    "/{ooo_id}",
    response_model=OOOResponse,
    summary="Update an out-of-office record",
)
def update_ooo(
    ooo_id: int,
    data: OOOUpdate,
    _: User = Depends(get_current_user),
    ooo_service: OOOService = Depends(get_ooo_service),
) -> OOOResponse:
    """Partially update an out-of-office record."""
    try:
        return OOOResponse.model_validate(ooo_service.update_record(ooo_id, data))
    except OOONotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="OOO request not found")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete(
    "/{ooo_id}",
    summary="Delete an out-of-office record",
)
def delete_ooo(
    ooo_id: int,
    _: User = Depends(get_current_user),
    ooo_service: OOOService = Depends(get_ooo_service),
) -> dict:
    """Delete an out-of-office record."""
    try:
        ooo_service.delete_record(ooo_id)
    except OOONotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="OOO request not found")
    return {"message": "OOO request deleted successfully"}
