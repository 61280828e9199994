"""S3-compatible object store access (MinIO in practice).

Only listing and whole-object reads are needed. Every botocore failure is
turned into a StoreError with a readable message; nothing is retried here.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ConfigError, StoreError


DEFAULT_REGION = "us-east-1"


@dataclass
class StoreConfig:
    """Connection settings for the bucket holding the tracks."""

    url: str = ""
    access_key: str = ""
    secret_key: str = ""
    bucket: str = ""
    region: str = ""

    def is_complete(self) -> bool:
        return all(
            value.strip()
            for value in (self.url, self.access_key, self.secret_key, self.bucket)
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "url": self.url,
            "accessKey": self.access_key,
            "secretKey": self.secret_key,
            "bucket": self.bucket,
            "region": self.region,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreConfig":
        """Build from saved JSON; camelCase and snake_case keys are both accepted."""
        def pick(*names: str) -> str:
            for name in names:
                value = data.get(name)
                if value is not None:
                    return str(value)
            return ""

        return cls(
            url=pick("url"),
            access_key=pick("accessKey", "access_key"),
            secret_key=pick("secretKey", "secret_key"),
            bucket=pick("bucket"),
            region=pick("region"),
        )


def describe_error(exc: Exception) -> str:
    """Turn a botocore exception into a one-line message."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "Unknown")
        message = error.get("Message") or str(exc)
        operation = getattr(exc, "operation_name", None) or "request"
        return f"{operation} failed ({code}): {message}"
    return str(exc) or type(exc).__name__


class ObjectStore:
    """Paginated listing and retrieval against one bucket."""

    def __init__(self, config: StoreConfig, client: Optional[Any] = None):
        if not config.is_complete():
            raise ConfigError("Object store config is incomplete")
        self.config = config
        self.bucket = config.bucket
        self._client = client or self._make_client(config)

    @staticmethod
    def _make_client(config: StoreConfig):
        return boto3.client(
            "s3",
            endpoint_url=config.url.strip(),
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region.strip() or DEFAULT_REGION,
            config=BotoConfig(s3={"addressing_style": "path"}),
        )

    def _list_pages(self, **params) -> Iterator[dict]:
        """Yield list_objects_v2 pages, following continuation tokens."""
        token: Optional[str] = None
        while True:
            request = dict(Bucket=self.bucket, **params)
            if token:
                request["ContinuationToken"] = token
            try:
                page = self._client.list_objects_v2(**request)
            except (ClientError, BotoCoreError) as e:
                raise StoreError(describe_error(e)) from e

            yield page

            if not page.get("IsTruncated"):
                return
            token = page.get("NextContinuationToken")
            if not token:
                return

    def list_common_prefixes(self, prefix: str = "", delimiter: str = "/") -> Iterator[str]:
        """Yield the common prefixes under a prefix, e.g. "2024-05-01/"."""
        for page in self._list_pages(Prefix=prefix, Delimiter=delimiter):
            for entry in page.get("CommonPrefixes") or []:
                value = entry.get("Prefix")
                if value:
                    yield value

    def list_keys(self, prefix: str = "") -> Iterator[str]:
        """Yield every object key under a prefix."""
        params = {"Prefix": prefix} if prefix else {}
        for page in self._list_pages(**params):
            for entry in page.get("Contents") or []:
                key = entry.get("Key")
                if key:
                    yield key

    def get_object(self, key: str) -> bytes:
        """Fetch an object's full body."""
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to download {key}: {describe_error(e)}") from e

    def download(self, key: str, dest: Path) -> Path:
        """Write an object to a local file, creating parent directories."""
        data = self.get_object(key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            dest.write_bytes(data)
        except OSError as e:
            raise StoreError(f"Failed to write file: {dest}: {e}") from e
        return dest

    def check(self) -> None:
        """Make the smallest listing call that proves the credentials work."""
        try:
            self._client.list_objects_v2(Bucket=self.bucket, MaxKeys=1)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(describe_error(e)) from e
