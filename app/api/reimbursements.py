"""Reimbursement endpoints."""

import os
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status

from app.api.dependencies import get_current_user, get_reimbursement_service
from app.config import settings
from app.models.reimbursement import ReimbursementStatus
from app.models.user import User
from app.schemas.reimbursement import (
    ReimbursementList,
    ReimbursementResponse,
    ReimbursementUpdate,
)
from app.services.exceptions import InvalidStateError, ReimbursementNotFoundError
from app.services.reimbursement_service import ReimbursementService

router = APIRouter()


@router.post(
    "",
    response_model=ReimbursementResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a reimbursement request",
    description="""
    Submit a reimbursement request with its invoice attached.

    Sent as multipart form data; exactly one file is accepted.
    New requests start in the `pending` status.
    """,
)
def create_reimbursement(
    amount: Decimal = Form(..., gt=0, description="Requested amount"),
    invoice_date: datetime = Form(..., description="Invoice date"),
    currency: str = Form("USD", min_length=3, max_length=3),
    description: Optional[str] = Form(None),
    file: UploadFile = File(..., description="Invoice attachment"),
    current_user: User = Depends(get_current_user),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
) -> ReimbursementResponse:
    """Submit a reimbursement request."""
    file.file.seek(0, os.SEEK_END)
    file_size = file.file.tell()
    file.file.seek(0)

    if file_size == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if file_size > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.MAX_UPLOAD_SIZE} byte limit",
        )

    reimbursement = reimbursement_service.create_request(
        user_id=current_user.id,
        amount=amount,
        invoice_date=invoice_date,
        file_obj=file.file,
        file_name=file.filename or "attachment",
        file_size=file_size,
        mime_type=file.content_type or "application/octet-stream",
        currency=currency,
        description=description,
    )
    return ReimbursementResponse.model_validate(reimbursement)


@router.get(
    "",
    response_model=ReimbursementList,
    summary="List reimbursement requests",
    description="List the current user's reimbursement requests, newest first.",
)
def list_reimbursements(
    status_filter: Optional[ReimbursementStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=500, description="Maximum results"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    current_user: User = Depends(get_current_user),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
) -> ReimbursementList:
    """List reimbursement requests."""
    items = reimbursement_service.list_requests(
        user_id=current_user.id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return ReimbursementList(
        reimbursements=[ReimbursementResponse.model_validate(r) for r in items],
        total=len(items),
    )


@router.get(
    "/{reimbursement_id}",
    response_model=ReimbursementResponse,
    summary="Get a reimbursement request",
)
def get_reimbursement(
    reimbursement_id: int,
    current_user: User = Depends(get_current_user),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
) -> ReimbursementResponse:
    """Get one reimbursement request."""
    try:
        reimbursement = reimbursement_service.get_request(current_user.id, reimbursement_id)
    except ReimbursementNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Reimbursement not found")
    return ReimbursementResponse.model_validate(reimbursement)


@router.get(
    "/{reimbursement_id}/file",
    summary="Download the invoice attachment",
    response_class=Response,
)
def download_reimbursement_file(
    reimbursement_id: int,
    current_user: User = Depends(get_current_user),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
) -> Response:
    """Download a reimbursement's attachment."""
    try:
        reimbursement, content = reimbursement_service.get_attachment(current_user.id, reimbursement_id)
    except ReimbursementNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return Response(
        content=content,
        media_type=reimbursement.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{reimbursement.file_name}"'},
    )


@router.put(
    "/{reimbursement_id}",
    response_model=ReimbursementResponse,
    summary="Update a reimbursement request",
    description="Only the description of a pending request can be changed.",
)
def update_reimbursement(
    reimbursement_id: int,
    data: ReimbursementUpdate,
    current_user: User = Depends(get_current_user),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
) -> ReimbursementResponse:
    """Update a pending reimbursement request."""
    try:
        reimbursement = reimbursement_service.update_description(
            current_user.id, reimbursement_id, data.description
        )
    except (ReimbursementNotFoundError, InvalidStateError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reimbursement not found or cannot be updated",
        )
    return ReimbursementResponse.model_validate(reimbursement)


@router.delete(
    "/{reimbursement_id}",
    summary="Delete a reimbursement request",
    description="Only pending requests can be deleted; the attachment is removed too.",
)
def delete_reimbursement(
    reimbursement_id: int,
    current_user: User = Depends(get_current_user),
    reimbursement_service: ReimbursementService = Depends(get_reimbursement_service),
) -> dict:
    """Delete a pending reimbursement request."""
    try:
        reimbursement_service.delete_request(current_user.id, reimbursement_id)
    except (ReimbursementNotFoundError, InvalidStateError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reimbursement not found or cannot be deleted",
        )
    return {"message": "Reimbursement deleted successfully"}
