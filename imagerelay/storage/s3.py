from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from imagerelay.exceptions import StorageUnavailable
from imagerelay.storage import BlobEntry, NamingFunc, StoredBlob, epoch_millis_name, is_image_name


class S3Storage:
    """Blob store on an S3-compatible object store.

    The access credential is taken from configuration. Missing credentials or
    a rejected request surface as ``StorageUnavailable`` on first use, so the
    upload service can still start and answer health checks.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        *,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        naming: NamingFunc = epoch_millis_name,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.naming = naming
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.bucket:
                raise StorageUnavailable("Blob store bucket is not configured")
            if not (self.access_key_id and self.secret_access_key):
                raise StorageUnavailable("Blob store credential is not configured", {"bucket": self.bucket})
            session = boto3.session.Session(
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
                region_name=self.region,
            )
            self._client = session.client("s3", endpoint_url=self.endpoint_url)
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    def _name_from_key(self, key: str) -> str:
        if self.prefix and key.startswith(f"{self.prefix}/"):
            return key[len(self.prefix) + 1:]
        return key

    def _url(self, s3_key: str, expires: int = 3600) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{s3_key}"
        return self.client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": s3_key},
            ExpiresIn=expires,
        )

    def save(
        self, name: str, data: bytes, content_type: str | None = None, *, now: datetime | None = None
    ) -> StoredBlob:
        stored_name = self.naming(name, now=now)
        s3_key = self._key(stored_name)
        extra: dict[str, Any] = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=self.bucket, Key=s3_key, Body=data, **extra)
            url = self._url(s3_key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageUnavailable(
                f"Blob store rejected upload: {exc}",
                {"bucket": self.bucket, "key": s3_key},
            ) from exc
        logger.debug("Stored {size} bytes at s3://{bucket}/{key}", size=len(data), bucket=self.bucket, key=s3_key)
        return StoredBlob(
            stored_name=stored_name,
            url=url,
            location=f"s3://{self.bucket}/{s3_key}",
            size=len(data),
        )

    def list(self) -> list[BlobEntry]:
        query_prefix = f"{self.prefix}/" if self.prefix else ""
        entries: list[BlobEntry] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=query_prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    name = self._name_from_key(key)
                    if not name or "/" in name or not is_image_name(name):
                        continue
                    entries.append(BlobEntry(name=name, url=self._url(key), size=int(obj.get("Size", 0))))
        except (BotoCoreError, ClientError) as exc:
            raise StorageUnavailable(f"Blob store listing failed: {exc}", {"bucket": self.bucket}) from exc
        return sorted(entries, key=lambda entry: entry.name)


__all__ = ["S3Storage"]
