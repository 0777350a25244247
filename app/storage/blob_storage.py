"""Blob storage abstraction for reimbursement attachments."""

import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional

import boto3
from botocore.exceptions import ClientError

from app.config import settings

logger = logging.getLogger(__name__)


class BlobStorage(ABC):
    """
    Abstract interface for attachment storage.

    Allows swapping S3 for other providers (GCS, Azure Blob, MinIO)
    by implementing this interface.
    """

    @staticmethod
    def build_attachment_key(user_id: int, filename: str) -> str:
        """
        Build a unique key for a reimbursement attachment.

        The original filename only contributes its extension; it is kept
        separately on the reimbursement row.
        """
        extension = os.path.splitext(filename or "")[1].lower()
        return f"reimbursements/{user_id}/{uuid.uuid4().hex}{extension}"

    @abstractmethod
    def upload_file(self, key: str, file_obj: BinaryIO, content_type: str) -> str:
        """
        Upload binary file to storage.

        Args:
            key: Storage key/path
            file_obj: File-like object to upload
            content_type: MIME type of the file

        Returns:
            The storage key
        """
        pass

    @abstractmethod
    def download_file(self, key: str) -> Optional[bytes]:
        """
        Download file content from storage.

        Args:
            key: Storage key/path

        Returns:
            File content as bytes, or None if the object doesn't exist
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Delete object from storage.

        Args:
            key: Storage key/path

        Returns:
            True if deleted successfully
        """
        pass


class S3Storage(BlobStorage):
    """Amazon S3 (and compatible) storage implementation."""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
    ):
        """
        Initialize S3 storage client.

        Args:
            bucket_name: S3 bucket name (defaults to settings)
            region: AWS region (defaults to settings)
            endpoint_url: Custom endpoint for S3-compatible services
            aws_access_key_id: AWS access key (defaults to settings or IAM role)
            aws_secret_access_key: AWS secret key (defaults to settings or IAM role)
        """
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self.region = region or settings.S3_REGION

        client_kwargs = {"region_name": self.region}

        if endpoint_url or settings.S3_ENDPOINT_URL:
            client_kwargs["endpoint_url"] = endpoint_url or settings.S3_ENDPOINT_URL

        if aws_access_key_id or settings.AWS_ACCESS_KEY_ID:
            client_kwargs["aws_access_key_id"] = aws_access_key_id or settings.AWS_ACCESS_KEY_ID
            client_kwargs["aws_secret_access_key"] = (
                aws_secret_access_key or settings.AWS_SECRET_ACCESS_KEY
            )

        self.s3_client = boto3.client("s3", **client_kwargs)

    def upload_file(self, key: str, file_obj: BinaryIO, content_type: str) -> str:
        """Upload binary file to S3."""
        try:
            self.s3_client.upload_fileobj(
                file_obj,
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
            )
            logger.info(f"Uploaded file to s3://{self.bucket_name}/{key}")
            return key
        except ClientError as e:
            logger.error(f"Failed to upload file to S3: {e}")
            raise

    def download_file(self, key: str) -> Optional[bytes]:
        """Download file content from S3."""
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            logger.error(f"Failed to download file from S3: {e}")
            raise

    def delete(self, key: str) -> bool:
        """Delete object from S3."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
            logger.info(f"Deleted s3://{self.bucket_name}/{key}")
            return True
        except ClientError as e:
            logger.error(f"Failed to delete from S3: {e}")
            return False
