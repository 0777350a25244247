"""Out-of-office service."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.ooo import OutOfOffice
from app.schemas.ooo import OOOCreate, OOOUpdate, as_naive_utc
from app.services.exceptions import OOONotFoundError

logger = logging.getLogger(__name__)


class OOOService:
    """Service for out-of-office records."""

    def __init__(self, db: Session):
        self.db = db

    def create_record(self, data: OOOCreate) -> OutOfOffice:
        """Create an out-of-office record from validated input."""
        record = OutOfOffice(
            user_name=data.user_name,
            user_email=str(data.user_email),
            active=data.active,
            start_date=data.start_date,
            end_date=data.end_date,
            reason=data.reason,
            message=data.message,
            emergency_contact=data.emergency_contact or None,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Created OOO record {record.id} for {record.user_email}")
        return record

    def get_record(self, ooo_id: int) -> OutOfOffice:
        """
        Get an out-of-office record by ID.

        Raises:
            OOONotFoundError: If the record doesn't exist
        """
        record = self.db.get(OutOfOffice, ooo_id)
        if not record:
            raise OOONotFoundError(ooo_id)
        return record

    def list_records(
        self,
        active: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[OutOfOffice]:
        """List records, newest first, optionally filtered by ``active``."""
        query = select(OutOfOffice)
        if active is not None:
            query = query.where(OutOfOffice.active == active)

        query = (
            query.order_by(OutOfOffice.created_at.desc(), OutOfOffice.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.scalars(query).all())

    def update_record(self, ooo_id: int, data: OOOUpdate) -> OutOfOffice:
        """
        Apply a partial update.

        Raises:
            OOONotFoundError: If the record doesn't exist
            ValueError: If the resulting end date is not after the start date
        """
        record = self.get_record(ooo_id)
        changes = data.model_dump(exclude_unset=True)

        start = changes.get("start_date") or record.start_date
        end = changes.get("end_date") or record.end_date
        if as_naive_utc(end) <= as_naive_utc(start):
            raise ValueError("End date must be after start date")

        for key, value in changes.items():
            setattr(record, key, value)

        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Updated OOO record {ooo_id}")
        return record

    def delete_record(self, ooo_id: int) -> None:
        """
        Delete an out-of-office record.

        Raises:
            OOONotFoundError: If the record doesn't exist
        """
        record = self.get_record(ooo_id)
        self.db.delete(record)
        self.db.commit()
        logger.info(f"Deleted OOO record {ooo_id}")
