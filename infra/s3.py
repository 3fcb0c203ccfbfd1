"""S3 blob store for staging table CSVs."""

import os
from pathlib import Path
from typing import List, Optional

import aioboto3
from botocore.exceptions import ClientError
from loguru import logger

from infra.blob import BlobStore


def get_region() -> str:
    """AWS region from environment."""
    return os.getenv("AWS_REGION", "eu-north-1")


class S3BlobStore(BlobStore):
    """
    Stages files under s3://bucket/prefix.

    References are s3:// URIs, which the relational store imports through
    the aws_s3 extension.
    """

    def __init__(self, bucket: str, prefix: str = "hotelbeds/csv/", region: Optional[str] = None):
        self.bucket = bucket
        self.prefix = prefix
        self.region = region or get_region()
        self._session = aioboto3.Session()

    def _client(self):
        return self._session.client("s3", region_name=self.region)

    def key_for(self, local_path: str) -> str:
        return f"{self.prefix}{Path(local_path).name}"

    async def put(self, local_path: str) -> str:
        """Upload a file.

        Returns:
            S3 URI (s3://bucket/key)

        Raises:
            ClientError: If upload fails
        """
        key = self.key_for(local_path)
        try:
            async with self._client() as s3:
                await s3.upload_file(
                    str(local_path), self.bucket, key, ExtraArgs={"ContentType": "text/csv"}
                )
        except ClientError as e:
            logger.error(f"Failed to upload {local_path} to s3://{self.bucket}/{key}: {e}")
            raise
        uri = f"s3://{self.bucket}/{key}"
        logger.info(f"Uploaded {Path(local_path).name} to {uri}")
        return uri

    async def list_objects(self) -> List[str]:
        refs = []
        async with self._client() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    refs.append(f"s3://{self.bucket}/{obj['Key']}")
        return refs

    async def delete_all(self) -> int:
        removed = 0
        async with self._client() as s3:
            paginator = s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                keys = [{"Key": obj["Key"]} for obj in page.get("Contents", [])]
                if not keys:
                    continue
                await s3.delete_objects(Bucket=self.bucket, Delete={"Objects": keys})
                removed += len(keys)
        logger.info(f"Deleted {removed} objects under s3://{self.bucket}/{self.prefix}")
        return removed
