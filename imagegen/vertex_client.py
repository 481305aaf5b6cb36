# imagegen/vertex_client.py

import logging
from typing import Any, Callable, Dict, Optional

import httpx

from config.settings import settings

from .errors import PlatformTimeout, TransportFailure
from .families import ModelFamily

logger = logging.getLogger(__name__)


def extract_error_message(response: httpx.Response) -> str:
    """
    Vertex AI error bodies look like {"error": {"code": .., "message": ..}}.
    Fall back to the raw text when the body is anything else.
    """
    text = response.text
    try:
        data = response.json()
    except ValueError:
        return text
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return text


class VertexClient:
    """
    Thin async client for Vertex AI publisher-model endpoints.
    One instance per process; the underlying httpx.AsyncClient is created on first use.
    """

    def __init__(
        self,
        project_id: Optional[str],
        location: str = "us-central1",
        timeout: float = settings.REQUEST_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        project_resolver: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.project_id = project_id
        self.project_resolver = project_resolver
        self.location = location
        self.timeout = timeout
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def endpoint(self, family: ModelFamily) -> str:
        if not self.project_id and self.project_resolver is not None:
            self.project_id = self.project_resolver()
        if not self.project_id:
            raise TransportFailure("Google Cloud project id is not configured")
        return (
            f"https://{self.location}-aiplatform.googleapis.com/{family.api_version}"
            f"/projects/{self.project_id}/locations/{self.location}"
            f"/publishers/google/models/{family.model_id}:{family.method}"
        )

    async def post_json(self, url: str, payload: Dict[str, Any], token: str) -> Dict[str, Any]:
        """
        POST a JSON body with a bearer token and return the parsed JSON object.

        Raises:
            PlatformTimeout: the model did not answer before the read timeout
            TransportFailure: network error (connect timeouts included), non-2xx status
                or a body that is not a JSON object
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        try:
            r = await self.client.post(url, json=payload, headers=headers)
        except httpx.ReadTimeout as e:
            # connected, but the model did not answer in time
            logger.error("[VertexClient] Timed out calling %s", url)
            raise PlatformTimeout(f"Vertex AI request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.error("[VertexClient] Network error calling %s: %s", url, e)
            raise TransportFailure(f"Vertex AI request failed: {e}") from e

        if not r.is_success:
            logger.error("[VertexClient] ERROR: Vertex AI returned %s", r.status_code)
            logger.error("[VertexClient] Response: %s", r.text[:500])
            message = extract_error_message(r)
            raise TransportFailure(
                f"Vertex AI Error ({r.status_code}): {message}",
                status_code=r.status_code,
            )

        try:
            data = r.json()
        except ValueError as e:
            raise TransportFailure("Vertex AI returned a body that is not valid JSON") from e
        if not isinstance(data, dict):
            raise TransportFailure(f"Vertex AI returned an unexpected body: {str(data)[:200]}")
        return data

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
