"""Reimbursement service for employee expense requests."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import BinaryIO, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.reimbursement import Reimbursement, ReimbursementStatus
from app.storage.blob_storage import BlobStorage
from app.services.exceptions import InvalidStateError, ReimbursementNotFoundError

logger = logging.getLogger(__name__)


class ReimbursementService:
    """Service for managing reimbursement requests and their attachments."""

    def __init__(self, db: Session, blob_storage: BlobStorage):
        """
        Initialize the reimbursement service.

        Args:
            db: SQLAlchemy database session
            blob_storage: Storage for invoice attachments
        """
        self.db = db
        self.blob_storage = blob_storage

    def create_request(
        self,
        user_id: int,
        amount: Decimal,
        invoice_date: datetime,
        file_obj: BinaryIO,
        file_name: str,
        file_size: int,
        mime_type: str,
        currency: str = "USD",
        description: Optional[str] = None,
    ) -> Reimbursement:
        """
        Store the attachment and create a pending reimbursement request.

        Args:
            user_id: Requesting user ID
            amount: Requested amount (positive)
            invoice_date: Invoice date
            file_obj: Attachment content
            file_name: Original filename
            file_size: Attachment size in bytes
            mime_type: Attachment MIME type
            currency: ISO 4217 currency code
            description: Optional free text

        Returns:
            Created Reimbursement instance
        """
        key = BlobStorage.build_attachment_key(user_id, file_name)
        self.blob_storage.upload_file(key, file_obj, mime_type)

        reimbursement = Reimbursement(
            user_id=user_id,
            amount=amount,
            currency=currency.upper(),
            description=description or None,
            invoice_date=invoice_date,
            status=ReimbursementStatus.PENDING,
            file_key=key,
            file_name=file_name,
            file_size=file_size,
            mime_type=mime_type,
        )

        self.db.add(reimbursement)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            # Don't leave orphaned attachments behind
            self.blob_storage.delete(key)
            raise
        self.db.refresh(reimbursement)

        logger.info(f"Created reimbursement {reimbursement.id} for user {user_id}")
        return reimbursement

    def get_request(self, user_id: int, reimbursement_id: int) -> Reimbursement:
        """
        Get a reimbursement request owned by ``user_id``.

        Raises:
            ReimbursementNotFoundError: If it doesn't exist or belongs to someone else
        """
        reimbursement = self.db.scalars(
            select(Reimbursement).where(
                Reimbursement.id == reimbursement_id,
                Reimbursement.user_id == user_id,
            )
        ).first()

        if not reimbursement:
            raise ReimbursementNotFoundError(reimbursement_id)

        return reimbursement

    def list_requests(
        self,
        user_id: int,
        status: Optional[ReimbursementStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Reimbursement]:
        """List a user's requests, newest first."""
        query = select(Reimbursement).where(Reimbursement.user_id == user_id)

        if status:
            query = query.where(Reimbursement.status == status)

        query = (
            query.order_by(Reimbursement.created_at.desc(), Reimbursement.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.scalars(query).all())

    def get_attachment(self, user_id: int, reimbursement_id: int) -> tuple[Reimbursement, bytes]:
        """
        Fetch a request together with its attachment content.

        Raises:
            ReimbursementNotFoundError: If the request or its file is missing
        """
        reimbursement = self.get_request(user_id, reimbursement_id)
        content = None
        if reimbursement.file_key:
            content = self.blob_storage.download_file(reimbursement.file_key)

        if content is None:
            raise ReimbursementNotFoundError(reimbursement_id)

        return reimbursement, content

    def update_description(
        self, user_id: int, reimbursement_id: int, description: Optional[str]
    ) -> Reimbursement:
        """
        Update the description of a pending request.

        Raises:
            ReimbursementNotFoundError: If the request doesn't exist
            InvalidStateError: If the request is no longer pending
        """
        reimbursement = self._get_pending(user_id, reimbursement_id, "updated")
        reimbursement.description = description or None
        self.db.commit()
        self.db.refresh(reimbursement)

        logger.info(f"Updated reimbursement {reimbursement_id}")
        return reimbursement

    def delete_request(self, user_id: int, reimbursement_id: int) -> None:
        """
        Delete a pending request and its attachment.

        Raises:
            ReimbursementNotFoundError: If the request doesn't exist
            InvalidStateError: If the request is no longer pending
        """
        reimbursement = self._get_pending(user_id, reimbursement_id, "deleted")

        if reimbursement.file_key:
            self.blob_storage.delete(reimbursement.file_key)

        self.db.delete(reimbursement)
        self.db.commit()
        logger.info(f"Deleted reimbursement {reimbursement_id}")

    def count_by_status(self, user_id: Optional[int] = None) -> dict[str, int]:
        """Count requests per status, optionally for one user."""
        query = select(Reimbursement.status, func.count()).group_by(Reimbursement.status)
        if user_id is not None:
            query = query.where(Reimbursement.user_id == user_id)

        counts = {status.value: 0 for status in ReimbursementStatus}
        for status, count in self.db.execute(query).all():
            counts[ReimbursementStatus(status).value] = count
        return counts

    def _get_pending(self, user_id: int, reimbursement_id: int, action: str) -> Reimbursement:
        reimbursement = self.get_request(user_id, reimbursement_id)
        if reimbursement.status != ReimbursementStatus.PENDING:
            raise InvalidStateError(
                f"Reimbursement {reimbursement_id} is {reimbursement.status.value} and cannot be {action}"
            )
        return reimbursement
