"""Blob proxy request handler.

Turns ``GET /api/walrus-proxy?blobId=<id>`` into the raw blob bytes with
headers that make browsers display images inline (instead of downloading),
hiding the multi-aggregator topology from the caller.

Status codes
------------
    200  blob bytes, fixed content type, 1 h public cache, permissive CORS
    400  ``blobId`` missing or empty
    404  every aggregator failed (``details`` carries the last failure)
    405  method other than GET
    500  unexpected error above the per-aggregator boundary
"""

from __future__ import annotations

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from walrus_proxy.proxy.fetcher import fetch_with_fallback
from walrus_proxy.utils.config import ProxySettings
from walrus_proxy.utils.logging import get_logger

logger = get_logger(__name__)

BLOB_ID_PARAM = "blobId"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _error(status_code: int, error: str, **extra: str | None) -> JSONResponse:
    return JSONResponse({"error": error, **extra}, status_code=status_code)


class BlobFetchProxy:
    """Stateless proxy over an ordered, read-only list of aggregators.

    Settings and the HTTP client are injected at construction, so one
    instance can serve any number of concurrent requests.
    """

    def __init__(self, settings: ProxySettings, client: httpx.AsyncClient):
        self.settings = settings
        self.client = client

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def __call__(self, request: Request) -> Response:
        if request.method == "OPTIONS":
            return self.preflight()
        return await self.handle(request.method, request.query_params.get(BLOB_ID_PARAM))

    def preflight(self) -> Response:
        """CORS preflight: 200, empty body, CORS headers."""
        return Response(status_code=200, headers=dict(CORS_HEADERS))

    async def handle(self, method: str, blob_id: str | None) -> Response:
        if method.upper() != "GET":
            return _error(405, "Method not allowed")
        if not blob_id:
            return _error(400, "Blob ID is required")

        try:
            result = await fetch_with_fallback(self.client, self.settings, blob_id)
            winner = result.winner
            if winner is None:
                logger.error(f"[Proxy] All aggregators failed. Last error: {result.last_error}")
                return _error(
                    404,
                    "Image not found or all aggregators unavailable",
                    details=result.last_error,
                )
            return self._blob_response(blob_id, winner.content)
        except Exception as exc:
            logger.exception(f"[Proxy] Proxy error: {exc}")
            return _error(500, "Internal server error", details=str(exc))

    # ------------------------------------------------------------------
    # Response construction
    # ------------------------------------------------------------------

    def content_type_for(self, blob_id: str) -> str:
        # TODO: use the aggregator's Content-Type or sniff magic bytes once
        # non-PNG uploads are supported.
        return self.settings.content_type

    def _blob_response(self, blob_id: str, content: bytes) -> Response:
        headers = {
            "Content-Type": self.content_type_for(blob_id),
            "Content-Length": str(len(content)),
            "Cache-Control": f"public, max-age={self.settings.cache_max_age}",
            **CORS_HEADERS,
        }
        return Response(content=content, status_code=200, headers=headers)
