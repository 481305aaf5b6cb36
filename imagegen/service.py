# imagegen/service.py

import logging
from functools import lru_cache
from typing import List

from google.cloud import storage

from config.settings import Settings, settings

from .auth import TokenProvider
from .dispatcher import Dispatcher
from .model import GeneratedImageRecord, GenerationRequest
from .normalizer import normalize
from .persistence import persist
from .reconciler import reconcile
from .retry import RetryPolicy
from .storage import BlobStore, GcsBlobStore
from .vertex_client import VertexClient

logger = logging.getLogger(__name__)


class ImageService:
    """
    normalize -> token -> dispatch -> reconcile -> persist.

    Collaborators are passed in once at startup and shared by every request.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        dispatcher: Dispatcher,
        blob_store: BlobStore,
        storage_prefix: str = "ai-images",
        refusal_excerpt_chars: int = 200,
    ):
        self.token_provider = token_provider
        self.dispatcher = dispatcher
        self.blob_store = blob_store
        self.storage_prefix = storage_prefix
        self.refusal_excerpt_chars = refusal_excerpt_chars

    async def generate(self, request: GenerationRequest) -> List[GeneratedImageRecord]:
        # validation errors surface here, before any network call
        payload = normalize(request)
        logger.info(
            "[Service] mode=%s model=%s count=%d size=%s",
            payload.family.name, payload.family.model_id, payload.requested_count, payload.metadata.size_label,
        )

        token = await self.token_provider.get_token()
        results = await self.dispatcher.dispatch(payload, token)
        reconciled = reconcile(results, mode=payload.family.name, excerpt_chars=self.refusal_excerpt_chars)

        return await persist(
            self.blob_store,
            reconciled.images,
            reconciled.auxiliaries,
            payload.metadata,
            prefix=self.storage_prefix,
        )

    async def aclose(self) -> None:
        await self.dispatcher.client.aclose()


def build_service(config: Settings = settings) -> ImageService:
    token_provider = TokenProvider(config.GCP_CREDENTIALS, project_id=config.GCP_PROJECT_ID)
    client = VertexClient(
        config.GCP_PROJECT_ID,
        location=config.GCP_LOCATION,
        timeout=config.REQUEST_TIMEOUT,
        project_resolver=lambda: token_provider.project_id,
    )
    dispatcher = Dispatcher(
        client,
        RetryPolicy(max_attempts=config.MAX_ATTEMPTS, backoff=config.RETRY_BACKOFF),
        stagger=config.FANOUT_STAGGER,
    )
    blob_store = GcsBlobStore(
        config.STORAGE_BUCKET,
        client_factory=lambda: storage.Client(
            project=token_provider.project_id,
            credentials=token_provider.credentials,
        ),
    )
    return ImageService(
        token_provider,
        dispatcher,
        blob_store,
        storage_prefix=config.STORAGE_PREFIX,
        refusal_excerpt_chars=config.REFUSAL_EXCERPT_CHARS,
    )


@lru_cache(maxsize=1)
def get_service() -> ImageService:
    """Process-wide ImageService, built on first request."""
    return build_service()
