"""
Object Storage Service for S3-compatible storage (MinIO, AWS S3, DigitalOcean Spaces).

Rendered quotation PDFs are published here; the returned public URL is
what gets stored on the quotation and sent to customers.
"""
import json
import logging
from io import BytesIO
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError
from flask import current_app

logger = logging.getLogger(__name__)


class StorageService:
    """
    S3-compatible object storage service.

    Usage:
        storage = StorageService()
        url = storage.upload_bytes(buffer, 'quotations/QT-20240101-101500-A1B2C3.pdf')
    """

    def __init__(self):
        """Initialize S3 client from Flask config."""
        self.endpoint = current_app.config['S3_ENDPOINT']
        self.access_key = current_app.config['S3_ACCESS_KEY']
        self.secret_key = current_app.config['S3_SECRET_KEY']
        self.bucket = current_app.config['S3_BUCKET']
        self.region = current_app.config['S3_REGION']
        self.public_url = current_app.config['S3_PUBLIC_URL']

        self.client = boto3.client(
            's3',
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=BotoConfig(signature_version='s3v4')
        )

        self._ensure_bucket_exists()

    def _ensure_bucket_exists(self):
        """Create the bucket (public-read) if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] Bucket '{self.bucket}' exists")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code != '404':
                logger.error(f"[STORAGE] Failed to check bucket: {e}")
                raise
            try:
                self.client.create_bucket(Bucket=self.bucket)
                # Customers open quotation links without credentials
                policy = {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Principal": {"AWS": "*"},
                            "Action": "s3:GetObject",
                            "Resource": f"arn:aws:s3:::{self.bucket}/*"
                        }
                    ]
                }
                self.client.put_bucket_policy(Bucket=self.bucket, Policy=json.dumps(policy))
                logger.info(f"[STORAGE] Bucket '{self.bucket}' created with public-read policy")
            except ClientError as create_error:
                logger.error(f"[STORAGE] Failed to create bucket: {create_error}")
                raise

    def upload_bytes(
        self,
        buffer: BytesIO,
        object_name: str,
        content_type: str = 'application/pdf',
        metadata: Optional[dict] = None
    ) -> str:
        """
        Upload an in-memory file.

        Args:
            buffer: File contents
            object_name: S3 object key (e.g. 'quotations/QT-...pdf')
            content_type: MIME type
            metadata: Optional metadata dict

        Returns:
            Public URL of the uploaded object

        Raises:
            ClientError: If upload fails
        """
        extra_args = {
            'ContentType': content_type,
            'ACL': 'public-read'
        }
        if metadata:
            extra_args['Metadata'] = metadata

        try:
            buffer.seek(0)
            logger.info(f"[STORAGE] Uploading '{object_name}' to bucket '{self.bucket}'...")
            self.client.upload_fileobj(buffer, self.bucket, object_name, ExtraArgs=extra_args)
            url = self.get_public_url(object_name)
            logger.info(f"[STORAGE] File uploaded: {url}")
            return url
        except ClientError as e:
            logger.exception(f"[STORAGE] Upload failed: {e}")
            raise

    def get_public_url(self, object_name: str) -> str:
        return f"{self.public_url}/{self.bucket}/{object_name}"


# Singleton instance
_storage_service = None


def get_storage_service() -> StorageService:
    """
    Get or create StorageService singleton.

    Returns:
        StorageService instance
    """
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
