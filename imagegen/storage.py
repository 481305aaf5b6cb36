# imagegen/storage.py

import asyncio
import logging
from typing import Callable, Dict, Optional, Protocol

from google.cloud import storage

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        metadata: Dict[str, str],
    ) -> str:
        """Write the object, make it public and return its public URL."""
        ...


class GcsBlobStore:
    """
    Google Cloud Storage bucket (the Firebase Storage bucket is one of these).
    The storage client is blocking, so every call runs in a worker thread.
    """

    def __init__(
        self,
        bucket_name: Optional[str],
        client_factory: Callable[[], storage.Client] = storage.Client,
        client: Optional[storage.Client] = None,
    ):
        self.bucket_name = bucket_name
        self.client_factory = client_factory
        self._client = client
        self._bucket: Optional[storage.Bucket] = None

    @property
    def bucket(self) -> storage.Bucket:
        if self._bucket is None:
            if not self.bucket_name:
                raise ValueError("STORAGE_BUCKET is not configured")
            if self._client is None:
                self._client = self.client_factory()
            self._bucket = self._client.bucket(self.bucket_name)
        return self._bucket

    def _upload_sync(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        metadata: Dict[str, str],
    ) -> str:
        blob = self.bucket.blob(key)
        blob.cache_control = cache_control
        blob.metadata = metadata
        blob.upload_from_string(data, content_type=content_type)
        # uploads are private until published explicitly
        blob.make_public()
        logger.info("[Storage] Uploaded gs://%s/%s (%d bytes)", self.bucket_name, key, len(data))
        return blob.public_url

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str,
        cache_control: str,
        metadata: Dict[str, str],
    ) -> str:
        return await asyncio.to_thread(self._upload_sync, key, data, content_type, cache_control, metadata)
