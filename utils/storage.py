"""Media persistence: local disk, optionally mirrored to S3."""
import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from werkzeug.utils import secure_filename


class StorageError(Exception):
    """Raised when a media object cannot be persisted."""


def _safe_key(key: str) -> str:
    parts = [secure_filename(part) for part in key.replace("\\", "/").split("/") if part]
    if not parts or any(not part for part in parts):
        raise StorageError(f"Rejected storage key: {key!r}")
    return "/".join(parts)


class LocalStorage:
    def __init__(self, root: str, base_url: str):
        self.root = os.path.abspath(root)
        self.base_url = base_url.rstrip("/")

    def path_for(self, key: str) -> str:
        return os.path.join(self.root, *_safe_key(key).split("/"))

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{_safe_key(key)}"

    def put(self, key: str, payload: bytes, content_type: str) -> str:
        path = self.path_for(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        try:
            with open(path, "wb") as f:
                f.write(payload)
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        return self.url_for(key)


class S3Storage(LocalStorage):
    """Writes the local copy first, then publishes it to a public-read bucket."""

    def __init__(self, root: str, base_url: str, bucket: str, region: str, client=None):
        super().__init__(root, base_url)
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{_safe_key(key)}"

    def put(self, key: str, payload: bytes, content_type: str) -> str:
        super().put(key, payload, content_type)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=_safe_key(key),
                Body=payload,
                ContentType=content_type,
                ACL="public-read",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"S3 upload failed: {exc}") from exc
        return self.url_for(key)


def build_storage(config) -> LocalStorage:
    root = config.get("MEDIA_ROOT")
    base_url = config.get("MEDIA_BASE_URL", "/media")
    bucket = config.get("AWS_BUCKET")
    if bucket:
        return S3Storage(root, base_url, bucket, config.get("AWS_REGION", "us-east-1"))
    return LocalStorage(root, base_url)


def get_storage() -> LocalStorage:
    storage = current_app.extensions.get("media_storage")
    if storage is None:
        storage = build_storage(current_app.config)
        current_app.extensions["media_storage"] = storage
    return storage
