"""
Storage Service
Filesystem-backed object storage for audio and image blobs, with public and signed URLs
"""

import hashlib
import hmac
import os
import time
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote
import logging

from soundnest.config import Settings
from soundnest.errors import NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


class StorageService:
    """Stores blobs under <storage_dir>/<bucket>/<path>"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.root = Path(settings.storage_dir).resolve()

    def _resolve(self, bucket: str, path: str) -> Path:
        """Absolute file path for an object, refusing anything outside the bucket"""
        if not bucket or "/" in bucket or bucket.startswith("."):
            raise ValidationError("Invalid bucket name")
        bucket_dir = (self.root / bucket).resolve()
        target = (bucket_dir / path.lstrip("/")).resolve()
        if target == bucket_dir or bucket_dir not in target.parents:
            raise ValidationError("Invalid object path")
        return target

    def upload(self, bucket: str, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Store data at bucket/path.

        Returns:
            The object path
        """
        target = self._resolve(bucket, path)
        if target.exists():
            raise ValidationError("Object already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Error writing {bucket}/{path}: {e}")
            raise UpstreamError("Failed to store file")

        logger.info(f"Stored {bucket}/{path} ({len(data)} bytes, {content_type or 'unknown type'})")
        return path

    def remove(self, bucket: str, paths: List[str]):
        """Delete objects; missing ones are ignored"""
        for path in paths:
            try:
                target = self._resolve(bucket, path)
                if target.exists():
                    os.remove(target)
            except (OSError, ValidationError) as e:
                logger.warning(f"Could not remove {bucket}/{path}: {e}")

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    def open_path(self, bucket: str, path: str) -> Path:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise NotFoundError("File not found")
        return target

    def is_public(self, bucket: str) -> bool:
        return bucket in self.settings.public_buckets

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.settings.public_base_url}/storage/{bucket}/{quote(path)}"

    def _signature(self, bucket: str, path: str, expires: int) -> str:
        message = f"{bucket}/{path}:{expires}".encode()
        return hmac.new(self.settings.jwt_secret.encode(), message, hashlib.sha256).hexdigest()

    def create_signed_url(self, bucket: str, path: str, ttl: Optional[int] = None) -> str:
        """Time-limited URL for an object in any bucket"""
        self._resolve(bucket, path)
        expires = int(time.time()) + (ttl if ttl is not None else self.settings.signed_url_ttl)
        signature = self._signature(bucket, path, expires)
        return f"{self.get_public_url(bucket, path)}?expires={expires}&signature={signature}"

    def verify_signature(self, bucket: str, path: str, expires: Optional[int], signature: Optional[str]) -> bool:
        if expires is None or not signature:
            return False
        if expires < int(time.time()):
            return False
        expected = self._signature(bucket, path, expires)
        return hmac.compare_digest(expected, signature)

