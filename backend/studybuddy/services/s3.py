"""S3 blob store for uploaded study-material PDFs."""

import logging
from uuid import UUID, uuid4

import boto3
from botocore.exceptions import ClientError

from studybuddy.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class BlobStoreError(Exception):
    """Raised when an S3 operation fails."""


def material_key_prefix(owner: UUID) -> str:
    """Key prefix under which one user's uploads live."""
    return f"users/{owner}/materials/"


class S3Service:
    """Upload slots, downloads and deletes for user documents."""

    def __init__(self):
        """Initialize S3 client with credentials from settings."""
        client_kwargs = {
            "aws_access_key_id": settings.aws_access_key_id,
            "aws_secret_access_key": settings.aws_secret_access_key,
            "region_name": settings.aws_s3_region,
        }
        # Support MinIO / LocalStack by pointing to a custom endpoint
        if settings.aws_s3_endpoint_url:
            client_kwargs["endpoint_url"] = settings.aws_s3_endpoint_url

        self.s3_client = boto3.client("s3", **client_kwargs)
        self.bucket = settings.aws_s3_bucket

    @staticmethod
    def new_material_key(owner: UUID, filename: str) -> str:
        """Unique key for a fresh upload, scoped to the owner's prefix."""
        return f"{material_key_prefix(owner)}{uuid4()}_{filename}"

    @staticmethod
    def owns_key(owner: UUID, file_key: str) -> bool:
        """True when file_key sits under owner's prefix."""
        return file_key.startswith(material_key_prefix(owner)) and ".." not in file_key

    async def generate_presigned_upload_url(
        self,
        file_key: str,
        content_type: str = "application/pdf",
        expiration: int = 300,
    ) -> dict:
        """
        Generate presigned POST data for a direct upload from the client.

        Args:
            file_key: S3 object key for the file
            content_type: MIME type of the file (default: application/pdf)
            expiration: URL expiration time in seconds (default: 300/5 minutes)

        Returns:
            Dictionary with presigned POST data including url and fields

        Raises:
            BlobStoreError: If S3 operation fails
        """
        try:
            return self.s3_client.generate_presigned_post(
                self.bucket,
                file_key,
                Fields={"Content-Type": content_type},
                Conditions=[
                    {"Content-Type": content_type},
                    ["content-length-range", 1, settings.max_pdf_size_bytes],
                ],
                ExpiresIn=expiration,
            )
        except ClientError as e:
            raise BlobStoreError(f"Failed to generate presigned URL: {e}") from e

    async def download(self, file_key: str) -> bytes:
        """
        Download an uploaded document.

        Raises:
            BlobStoreError: If S3 operation fails
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=file_key)
            return response["Body"].read()
        except ClientError as e:
            raise BlobStoreError(f"Failed to download {file_key} from S3: {e}") from e

    async def delete(self, file_key: str) -> None:
        """
        Delete an uploaded document.

        Raises:
            BlobStoreError: If S3 operation fails
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=file_key)
        except ClientError as e:
            raise BlobStoreError(f"Failed to delete {file_key} from S3: {e}") from e


# Singleton instance
s3_service = S3Service()
