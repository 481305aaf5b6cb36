# imagegen/persistence.py

import asyncio
import logging
from typing import List, Optional, Sequence

from .errors import PersistenceFailure
from .model import GeneratedImageRecord, RecordMetadata
from .storage import BlobStore
from .utils import make_storage_key

logger = logging.getLogger(__name__)

CONTENT_TYPE = "image/png"
CACHE_CONTROL = "public, max-age=31536000"  # one year


async def _persist_one(
    store: BlobStore,
    image: bytes,
    auxiliary_text: Optional[str],
    metadata: RecordMetadata,
    prefix: str,
) -> GeneratedImageRecord:
    url = await store.upload(
        key=make_storage_key(prefix),
        data=image,
        content_type=CONTENT_TYPE,
        cache_control=CACHE_CONTROL,
        metadata={"prompt": metadata.prompt or "", "mode": metadata.mode},
    )
    return GeneratedImageRecord(
        url=url,
        prompt=metadata.prompt,
        aspect_ratio=metadata.aspect_ratio,
        size_label=metadata.size_label,
        mode=metadata.mode,
        auxiliary_text=auxiliary_text,
    )


async def persist(
    store: BlobStore,
    images: Sequence[bytes],
    auxiliaries: Sequence[Optional[str]],
    metadata: RecordMetadata,
    prefix: str = "ai-images",
) -> List[GeneratedImageRecord]:
    """
    Upload every image in parallel and build the client-facing records.
    Output order follows input order. One failed upload fails the batch.
    """
    uploads = [
        _persist_one(
            store,
            image,
            auxiliaries[index] if index < len(auxiliaries) else None,
            metadata,
            prefix,
        )
        for index, image in enumerate(images)
    ]
    try:
        records = await asyncio.gather(*uploads)
    except Exception as e:
        logger.exception("[Storage] Upload failed")
        raise PersistenceFailure(f"Saving the generated image failed: {e}") from e
    return list(records)
