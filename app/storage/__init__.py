"""Attachment storage for reimbursement invoices."""

from app.storage.blob_storage import BlobStorage, S3Storage

__all__ = ["BlobStorage", "S3Storage"]
