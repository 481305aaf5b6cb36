# imagegen/auth.py

import asyncio
import json
import logging
import os
import threading
from typing import Any, Dict, Optional

import google.auth
from google.auth.credentials import Credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from .errors import TransportFailure

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def load_service_account_info(source: str) -> Dict[str, Any]:
    """
    GCP_CREDENTIALS may hold a path to a key file or the key JSON itself.
    """
    source = source.strip()
    if os.path.isfile(source):
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    try:
        info = json.loads(source)
    except json.JSONDecodeError as e:
        raise ValueError("GCP_CREDENTIALS is neither a readable file nor valid JSON") from e
    if not isinstance(info, dict):
        raise ValueError("GCP_CREDENTIALS JSON must be an object")
    return info


class TokenProvider:
    """
    Supplies bearer tokens for Vertex AI.

    Credentials are built once (lazily) and shared; the token itself is
    refreshed on every get_token() call so a request never starts with an
    expired credential.
    """

    def __init__(self, credentials_source: Optional[str] = None, project_id: Optional[str] = None):
        self.credentials_source = credentials_source
        self._project_id = project_id
        self._credentials: Optional[Credentials] = None
        self._lock = threading.RLock()

    @property
    def credentials(self) -> Credentials:
        with self._lock:
            if self._credentials is None:
                self._credentials = self._load_credentials()
            return self._credentials

    @property
    def project_id(self) -> Optional[str]:
        if self._project_id is None:
            # loading credentials fills in the project when it is known
            _ = self.credentials
        return self._project_id

    def _load_credentials(self) -> Credentials:
        if self.credentials_source:
            info = load_service_account_info(self.credentials_source)
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
            if self._project_id is None:
                self._project_id = info.get("project_id")
            logger.info("[Auth] Loaded service-account credentials")
            return credentials

        logger.info("[Auth] GCP_CREDENTIALS not set, using application default credentials")
        credentials, project = google.auth.default(scopes=SCOPES)
        if self._project_id is None:
            self._project_id = project
        return credentials

    def _refresh_token(self) -> str:
        # credentials are shared across requests; one refresh at a time
        with self._lock:
            credentials = self.credentials
            credentials.refresh(Request())
            return credentials.token

    async def get_token(self) -> str:
        try:
            return await asyncio.to_thread(self._refresh_token)
        except (GoogleAuthError, ValueError) as e:
            logger.error("[Auth] Could not obtain an access token: %s", e)
            raise TransportFailure(f"Could not obtain a Google Cloud access token: {e}") from e
