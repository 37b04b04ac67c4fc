"""HTTP remote store for pamsync.

Talks to a document backend that exposes per-user collections:

    PUT    {backend_url}/users/{user_id}/{collection}/{document_id}
    GET    {backend_url}/users/{user_id}/{collection}
    DELETE {backend_url}/users/{user_id}/{collection}/{document_id}

Timeouts are enforced by the HTTP client; a timeout surfaces as an
ordinary ``httpx`` exception for the caller to handle.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from pamsync.config import DEFAULT_REQUEST_TIMEOUT, Settings, load_credentials

from .base import Payload, collection_path

logger = logging.getLogger(__name__)


class HttpRemoteStore:
    """Remote store backed by a REST document API.

    Args:
        backend_url: Base URL of the backend (already validated).
        auth_token: Bearer token sent with every request.
        timeout: Request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient`` (tests, shared pools).
    """

    def __init__(
        self,
        backend_url: str,
        auth_token: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not backend_url:
            raise ValueError("backend_url is required")
        self.backend_url = backend_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpRemoteStore":
        creds = load_credentials(settings)
        if not creds["backend_url"] or not creds["auth_token"]:
            raise ValueError("No backend credentials configured")
        return cls(creds["backend_url"], creds["auth_token"], timeout=settings.request_timeout)

    def _get_headers(self):
        return {
            "Authorization": f"Bearer {self._auth_token}",
            "Content-Type": "application/json",
        }

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _url(self, user_id: str, collection: str, document_id: Optional[str] = None) -> str:
        url = f"{self.backend_url}/{collection_path(quote(user_id, safe=''), collection)}"
        if document_id is not None:
            url = f"{url}/{quote(document_id, safe='')}"
        return url

    async def upsert_document(
        self, user_id: str, collection: str, document_id: str, payload: Payload
    ) -> None:
        response = await self._http().put(
            self._url(user_id, collection, document_id),
            json=payload,
            headers=self._get_headers(),
        )
        response.raise_for_status()

    async def fetch_all_documents(self, user_id: str, collection: str) -> List[Payload]:
        response = await self._http().get(
            self._url(user_id, collection), headers=self._get_headers()
        )
        response.raise_for_status()
        body = response.json()
        documents = body.get("documents") if isinstance(body, dict) else body
        if not isinstance(documents, list):
            raise ValueError(f"Unexpected response shape for {collection}: {type(body).__name__}")
        logger.debug(f"Fetched {len(documents)} documents from {collection}")
        return documents

    async def delete_document(self, user_id: str, collection: str, document_id: str) -> None:
        response = await self._http().delete(
            self._url(user_id, collection, document_id), headers=self._get_headers()
        )
        if response.status_code == 404:
            logger.debug(f"Document {collection}/{document_id} already absent")
            return
        response.raise_for_status()

    async def health_check(self) -> bool:
        """Check whether the backend answers ``GET /health`` with 200."""
        try:
            response = await self._http().get(f"{self.backend_url}/health", timeout=5.0)
        except httpx.HTTPError as e:
            logger.debug("Remote health check failed: %s", e)
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "HttpRemoteStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
