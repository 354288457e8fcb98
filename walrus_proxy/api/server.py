"""FastAPI Walrus proxy server.

Launch
------
    python -m walrus_proxy.cli.serve          # default: 0.0.0.0:8001
    uvicorn walrus_proxy.api.server:app --port 8001

Endpoints
---------
    GET      /api/walrus-proxy?blobId=<id>   → blob bytes, served inline
    OPTIONS  /api/walrus-proxy               → CORS preflight
    GET      /api/test-proxy                 → liveness + usage hints

Any other method on the proxy path, custom verbs included, answers 405
with the JSON error shape.
"""

from __future__ import annotations

import ssl
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import certifi
import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from walrus_proxy.proxy.handler import BlobFetchProxy
from walrus_proxy.storage.walrus_client import PROXY_PATH
from walrus_proxy.utils.config import Settings, load_settings
from walrus_proxy.utils.logging import get_logger, set_level

logger = get_logger(__name__)

TEST_PATH = "/api/test-proxy"


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the app. *transport* replaces the network stack (tests)."""
    settings = settings or load_settings()
    set_level(settings.log_level)

    # ── Lifespan (startup / shutdown) ────────────────────────────────────
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(settings.proxy.timeout),
            verify=ssl.create_default_context(cafile=certifi.where()),
        )
        app.state.proxy = BlobFetchProxy(settings.proxy, client)
        logger.info(f"[Server] Proxying {len(settings.proxy.aggregators)} aggregators")

        yield

        await client.aclose()

    app = FastAPI(title="Walrus Proxy", lifespan=lifespan)
    app.state.settings = settings

    # ── Proxy ────────────────────────────────────────────────────────────
    async def walrus_proxy(request: Request) -> Response:
        return await request.app.state.proxy(request)

    # methods=None: every verb reaches the handler, which owns the 405 shape
    app.add_route(PROXY_PATH, walrus_proxy, methods=None, include_in_schema=False)

    # ── Liveness ─────────────────────────────────────────────────────────
    @app.get(TEST_PATH)
    def test_proxy() -> JSONResponse:
        payload = {
            "message": "Walrus Proxy is working!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {
                "proxy": f"{PROXY_PATH}?blobId=YOUR_BLOB_ID",
                "test": TEST_PATH,
            },
            "instructions": [
                "1. Upload an image with `python -m walrus_proxy.cli.store_blob IMAGE`",
                "2. Copy the blob ID from the output",
                f"3. Test the proxy: {PROXY_PATH}?blobId=YOUR_BLOB_ID",
                "4. The image should display in browser instead of downloading",
            ],
        }
        return JSONResponse(payload, headers={"Access-Control-Allow-Origin": "*"})

    return app


app = create_app()
