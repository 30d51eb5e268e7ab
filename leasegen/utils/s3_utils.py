### leasegen/utils/s3_utils.py

# Standard library imports
import re
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, Optional

# Third party imports
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

# Local imports
from leasegen.core.config import Settings
from leasegen.documents.exceptions import StorageException
from leasegen.utils.logger import get_logger

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def build_package_identifier(lease_data: Dict[str, Any], now: Optional[datetime] = None) -> str:
    """
    Identifier used to name the package: lease_id, else lease_number,
    else a UTC timestamp.
    """
    for key in ("lease_id", "lease_number"):
        value = lease_data.get(key)
        if value not in (None, ""):
            cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", str(value)).strip("-.")
            if cleaned:
                return cleaned
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%SZ")


class S3Utils:
    """Utility class for publishing lease packages to S3-compatible storage"""

    def __init__(self, settings: Settings, s3_client=None):
        """Initialize the S3 client from settings"""
        self.bucket_name = settings.s3_bucket_name
        self.prefix = settings.storage_prefix.strip("/")
        self.expiration = settings.signed_url_expiration
        self.s3_client = s3_client or boto3.client(
            "s3",
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if settings.s3_force_path_style else "auto"},
            ),
        )

    def build_key(self, file_name: str) -> str:
        """Object key for a package file name"""
        return f"{self.prefix}/{file_name}" if self.prefix else file_name

    def upload_file(self, data: bytes, key: str, content_type: str = PDF_CONTENT_TYPE) -> None:
        """
        Upload bytes to S3

        Args:
            data: Object content
            key: S3 key (path) where the file will be stored
            content_type: Content type of the object

        Raises:
            StorageException: If the bucket is not configured or the upload fails
        """
        if not self.bucket_name:
            raise StorageException("Storage bucket is not configured")
        try:
            self.s3_client.upload_fileobj(
                BytesIO(data),
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error uploading file to S3", key=key, error=str(e))
            raise StorageException(f"Failed to upload document: {e}", {"key": key}) from e

    def generate_presigned_url(
        self, key: str, expiration: Optional[int] = None, disposition: Optional[str] = None
    ) -> str:
        """
        Generate a presigned URL for temporary access to an S3 object

        Args:
            key: S3 key (path) of the file
            expiration: URL expiration time in seconds (default from settings)
            disposition: Optional Content-Disposition the response is served with

        Returns:
            str: Presigned URL

        Raises:
            StorageException: If the URL cannot be signed
        """
        params = {"Bucket": self.bucket_name, "Key": key}
        if disposition:
            params["ResponseContentDisposition"] = disposition
        try:
            return self.s3_client.generate_presigned_url(
                "get_object",
                Params=params,
                ExpiresIn=expiration or self.expiration,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error generating presigned URL", key=key, error=str(e))
            raise StorageException(f"Failed to sign document URL: {e}", {"key": key}) from e

    def publish_package(self, pdf_bytes: bytes, lease_data: Dict[str, Any]) -> Dict[str, str]:
        """
        Upload the assembled package and sign read URLs for it.

        Returns:
            dict with fileName, key, pdfUrl (download) and previewUrl (inline)
        """
        file_name = f"lease_{build_package_identifier(lease_data)}.pdf"
        key = self.build_key(file_name)

        self.upload_file(pdf_bytes, key)
        logger.info("Lease package uploaded", key=key, size=len(pdf_bytes))

        return {
            "fileName": file_name,
            "key": key,
            "pdfUrl": self.generate_presigned_url(
                key, disposition=f'attachment; filename="{file_name}"'
            ),
            "previewUrl": self.generate_presigned_url(
                key, disposition=f'inline; filename="{file_name}"'
            ),
        }
