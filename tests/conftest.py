import base64
from typing import Dict, List, Optional, Set

import httpx
import pytest

from imagegen.dispatcher import Dispatcher
from imagegen.retry import RetryPolicy
from imagegen.service import ImageService
from imagegen.vertex_client import VertexClient

PROJECT = "test-project"
LOCATION = "us-central1"
VERTEX_BASE = f"https://{LOCATION}-aiplatform.googleapis.com"


def model_url(model_id: str, method: str = "predict", api_version: str = "v1") -> str:
    return (
        f"{VERTEX_BASE}/{api_version}/projects/{PROJECT}/locations/{LOCATION}"
        f"/publishers/google/models/{model_id}:{method}"
    )


IMAGEN_URL = model_url("imagen-4.0-generate-001")
ULTRA_URL = model_url("imagen-4.0-ultra-generate-001")
GEMINI_V1_URL = model_url("gemini-2.5-flash-image", "generateContent")
GEMINI_V2_URL = model_url("gemini-3-pro-image-preview", "generateContent", "v1beta1")

# Minimal valid 1x1 PNG
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\nIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-\xb4"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)
PNG_B64 = base64.b64encode(PNG_BYTES).decode()


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def imagen_response(count: int = 1) -> Dict:
    return {"predictions": [{"bytesBase64Encoded": PNG_B64, "mimeType": "image/png"} for _ in range(count)]}


def gemini_image_response(image: bytes = PNG_BYTES, text: Optional[str] = None) -> Dict:
    parts: List[Dict] = []
    if text:
        parts.append({"text": text})
    parts.append({"inlineData": {"mimeType": "image/png", "data": b64(image)}})
    return {"candidates": [{"content": {"role": "model", "parts": parts}, "finishReason": "STOP"}]}


def gemini_text_response(text: str) -> Dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


class RecordingSleep:
    """Stands in for asyncio.sleep; records delays without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeTokenProvider:
    def __init__(self, token: str = "test-token", project_id: str = PROJECT):
        self.token = token
        self.project_id = project_id
        self.calls = 0

    async def get_token(self) -> str:
        self.calls += 1
        return self.token


class FakeBlobStore:
    def __init__(self, fail_on: Optional[Set[int]] = None):
        self.fail_on = fail_on or set()
        self.uploads: List[Dict] = []

    async def upload(self, key, data, content_type, cache_control, metadata) -> str:
        index = len(self.uploads)
        self.uploads.append(
            {
                "key": key,
                "data": data,
                "content_type": content_type,
                "cache_control": cache_control,
                "metadata": metadata,
            }
        )
        if index in self.fail_on:
            raise RuntimeError("bucket unavailable")
        return f"https://storage.googleapis.com/test-bucket/{key}"


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def vertex_client():
    return VertexClient(PROJECT, location=LOCATION, http_client=httpx.AsyncClient())


@pytest.fixture
def dispatcher(vertex_client, sleep):
    return Dispatcher(vertex_client, RetryPolicy(max_attempts=3, backoff=2.0, sleep=sleep), stagger=0.8, sleep=sleep)


@pytest.fixture
def token_provider():
    return FakeTokenProvider()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def service(token_provider, dispatcher, blob_store):
    return ImageService(token_provider, dispatcher, blob_store)
