"""
AWS S3 export for gold-layer report files.

Uploads the files written by SalesPipeline.export_reports to a single bucket
under a date partition, retrying transient failures with exponential backoff.
"""

import os
import time
import hashlib
import logging
from pathlib import Path
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError, EndpointConnectionError

from motor_sales.config import DEFAULT_REGION
from motor_sales.errors import ExportError

logger = logging.getLogger("motor_sales.s3_export")

DEFAULT_PREFIX = "reports"
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2  # seconds

CONTENT_TYPES = {
    '.parquet': 'application/vnd.apache-parquet',
    '.csv': 'text/csv',
    '.json': 'application/json',
}


class S3Exporter:
    """Uploads exported report files to S3."""

    def __init__(
        self,
        bucket: str,
        region: str = DEFAULT_REGION,
        profile_name: Optional[str] = None,
        prefix: str = DEFAULT_PREFIX,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        s3_client=None
    ):
        """
        Initialize the exporter.

        Args:
            bucket: Target S3 bucket name
            region: AWS region to use
            profile_name: AWS profile name to use for credentials
            prefix: Key prefix for uploaded objects
            retry_attempts: Number of attempts per file
            retry_delay: Base delay between attempts in seconds
            s3_client: Pre-built boto3 S3 client (default: built from a session)
        """
        self.bucket = bucket
        self.prefix = prefix.strip('/')
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

        if s3_client is None:
            session = boto3.Session(profile_name=profile_name, region_name=region)
            s3_client = session.client('s3')
        self.s3_client = s3_client

    @staticmethod
    def _calculate_md5(file_path: str) -> str:
        md5_hash = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                md5_hash.update(chunk)
        return md5_hash.hexdigest()

    def object_key(self, file_path: str, partition_date: Optional[str] = None) -> str:
        """Build the object key for a file: <prefix>/date=YYYY-MM-DD/<filename>."""
        if partition_date is None:
            partition_date = time.strftime("%Y-%m-%d")
        return f"{self.prefix}/date={partition_date}/{os.path.basename(file_path)}"

    def upload_file(self, file_path: str, partition_date: Optional[str] = None) -> str:
        """
        Upload a single file with retry logic.

        Args:
            file_path: Local file to upload
            partition_date: Optional date partition (default: today)

        Returns:
            S3 URI of the uploaded object

        Raises:
            ExportError: If the file is missing or every attempt fails
        """
        if not os.path.exists(file_path):
            raise ExportError(f"File not found: {file_path}")

        object_key = self.object_key(file_path, partition_date)
        content_type = CONTENT_TYPES.get(Path(file_path).suffix.lower(), 'application/octet-stream')
        extra_args = {
            'Metadata': {
                'source': 'motor_sales_pipeline',
                'md5_hash': self._calculate_md5(file_path),
                'original_size': str(os.path.getsize(file_path)),
            },
            'ContentType': content_type,
        }

        for attempt in range(1, self.retry_attempts + 1):
            try:
                logger.info(f"Uploading {file_path} to s3://{self.bucket}/{object_key} (Attempt {attempt})")
                self.s3_client.upload_file(
                    Filename=file_path,
                    Bucket=self.bucket,
                    Key=object_key,
                    ExtraArgs=extra_args
                )
                return f"s3://{self.bucket}/{object_key}"
            except (ClientError, EndpointConnectionError) as e:
                logger.warning(f"Upload attempt {attempt} failed: {e}")
                if attempt < self.retry_attempts:
                    sleep_time = self.retry_delay * (2 ** (attempt - 1))
                    logger.info(f"Retrying in {sleep_time} seconds...")
                    time.sleep(sleep_time)

        raise ExportError(f"Failed to upload {file_path} after {self.retry_attempts} attempts")

    def upload_files(self, file_paths: List[str]) -> Dict[str, str]:
        """
        Upload several files under the same date partition.

        Returns:
            Mapping of local path to S3 URI
        """
        partition_date = time.strftime("%Y-%m-%d")
        return {path: self.upload_file(path, partition_date) for path in file_paths}
