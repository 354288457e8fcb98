"""Walrus HTTP API client (publisher writes, aggregator reads).

Every operation first targets the selected network's primary endpoints and,
on failure, retries once against a fallback pair picked at random from the
network's alternatives.

See https://docs.wal.app/usage/web-api.html
"""

from __future__ import annotations

import random
import ssl
from typing import Awaitable, Callable, TypeVar

import certifi
import httpx

from walrus_proxy.proxy.fetcher import BLOBS_PATH
from walrus_proxy.storage.models import BlobInfo, BlobStoreResponse
from walrus_proxy.utils.config import NetworkEndpoints, WalrusSettings
from walrus_proxy.utils.logging import get_logger

logger = get_logger(__name__)

PROXY_PATH = "/api/walrus-proxy"

T = TypeVar("T")


class WalrusError(RuntimeError):
    """Raised when a Walrus operation fails on every endpoint tried."""


class BlobTooLargeError(WalrusError):
    """Raised before upload when a payload exceeds ``max_file_size``."""


class WalrusClient:
    """Async client for storing and reading Walrus blobs.

    Usage
    -----
        async with WalrusClient(settings) as walrus:
            resp = await walrus.store_blob(png_bytes, content_type="image/png")
            info = walrus.blob_info(resp)
    """

    def __init__(
        self,
        settings: WalrusSettings,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout),
            verify=ssl.create_default_context(cafile=certifi.where()),
        )
        rng = rng or random.Random()
        self.primary = settings.primary
        self.fallback: NetworkEndpoints | None = (
            rng.choice(settings.alternatives) if settings.alternatives else None
        )

    async def __aenter__(self) -> "WalrusClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def store_blob(
        self,
        data: bytes,
        content_type: str | None = None,
        epochs: int | None = None,
    ) -> BlobStoreResponse:
        """Store raw bytes. Raises :class:`BlobTooLargeError` before any request."""
        if len(data) > self.settings.max_file_size:
            raise BlobTooLargeError(
                f"File size {len(data)} bytes exceeds maximum allowed size of "
                f"{self.settings.max_file_size} bytes"
            )
        n_epochs = epochs or self.settings.epochs or 1
        return await self._with_fallback(
            "upload to Walrus IPFS",
            lambda ep: self._put(ep.publisher, data, content_type or "application/octet-stream", n_epochs),
        )

    async def store_string(self, content: str, epochs: int | None = None) -> BlobStoreResponse:
        n_epochs = epochs or self.settings.epochs or 1
        return await self._with_fallback(
            "upload string to Walrus IPFS",
            lambda ep: self._put(ep.publisher, content.encode("utf-8"), "text/plain", n_epochs),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_blob(self, blob_id: str) -> bytes:
        response = await self._with_fallback(
            "read blob from Walrus IPFS", lambda ep: self._get(ep.aggregator, blob_id)
        )
        return response.content

    async def read_blob_as_text(self, blob_id: str) -> str:
        response = await self._with_fallback(
            "read blob as text from Walrus IPFS", lambda ep: self._get(ep.aggregator, blob_id)
        )
        return response.text

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    def gateway_url(self, blob_id: str) -> str:
        """Direct aggregator URL (browsers download rather than display)."""
        return f"{self.primary.aggregator}{BLOBS_PATH}/{blob_id}"

    def browser_url(self, blob_id: str) -> str:
        """URL of this service's proxy, which serves the blob inline."""
        return f"{self.settings.app_url}{PROXY_PATH}?blobId={blob_id}"

    def blob_info(self, response: BlobStoreResponse) -> BlobInfo | None:
        blob_id = response.blob_id
        if blob_id is None:
            return None
        return BlobInfo(
            blob_id=blob_id,
            gateway_url=self.gateway_url(blob_id),
            browser_url=self.browser_url(blob_id),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _with_fallback(
        self,
        action: str,
        op: Callable[[NetworkEndpoints], Awaitable[T]],
    ) -> T:
        try:
            return await op(self.primary)
        except (WalrusError, httpx.HTTPError) as exc:
            if self.fallback is None:
                raise WalrusError(f"Failed to {action}: {exc}") from exc
            logger.warning(f"[Walrus] Primary endpoint failed, trying fallback: {exc}")
        try:
            return await op(self.fallback)
        except (WalrusError, httpx.HTTPError) as exc:
            logger.error(f"[Walrus] Both primary and fallback endpoints failed: {exc}")
            raise WalrusError(f"Failed to {action}: {exc}") from exc

    async def _put(
        self,
        publisher: str,
        body: bytes,
        content_type: str,
        epochs: int,
    ) -> BlobStoreResponse:
        params: dict[str, str] = {}
        if epochs:
            params["epochs"] = str(epochs)
        if self.settings.deletable:
            params["deletable"] = "true"
        response = await self._client.put(
            f"{publisher}{BLOBS_PATH}",
            params=params,
            content=body,
            headers={"Content-Type": content_type},
        )
        _raise_for_status(response)
        try:
            return BlobStoreResponse.model_validate(response.json())
        except ValueError as exc:
            raise WalrusError(f"Unexpected publisher response: {exc}") from exc

    async def _get(self, aggregator: str, blob_id: str) -> httpx.Response:
        response = await self._client.get(f"{aggregator}{BLOBS_PATH}/{blob_id}")
        _raise_for_status(response)
        return response


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise WalrusError(f"Walrus API error: {response.status_code} {response.reason_phrase}")
