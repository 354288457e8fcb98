"""Sequential multi-aggregator blob retrieval.

Each configured aggregator gets exactly one attempt, strictly in order. The
first 2xx response wins; non-2xx statuses and transport errors are recorded
as :class:`Failure` values and the chain moves on to the next aggregator.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Union

import httpx

from walrus_proxy.utils.config import ProxySettings
from walrus_proxy.utils.logging import get_logger

logger = get_logger(__name__)

BLOBS_PATH = "/v1/blobs"


@dataclass(frozen=True)
class Success:
    """A 2xx attempt with its fully materialised body."""

    endpoint: str
    content: bytes

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A failed attempt: non-2xx status (``status_code`` set) or transport error."""

    endpoint: str
    reason: str
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Union[Success, Failure]


@dataclass
class FallbackResult:
    """Outcome of a whole fallback chain for one blob."""

    blob_id: str
    attempts: list[FetchOutcome] = field(default_factory=list)

    @property
    def winner(self) -> Success | None:
        for outcome in self.attempts:
            if isinstance(outcome, Success):
                return outcome
        return None

    @property
    def content(self) -> bytes | None:
        win = self.winner
        return win.content if win else None

    @property
    def last_error(self) -> str | None:
        for outcome in reversed(self.attempts):
            if isinstance(outcome, Failure):
                return outcome.reason
        return None


def blob_url(endpoint: str, blob_id: str) -> str:
    """Join an aggregator base URL with the blob path. *blob_id* is not altered."""
    return f"{endpoint.rstrip('/')}{BLOBS_PATH}/{blob_id}"


def _transport_reason(exc: Exception) -> str:
    # httpx timeouts often stringify to ""
    return str(exc) or exc.__class__.__name__


async def fetch_from_aggregator(
    client: httpx.AsyncClient,
    endpoint: str,
    blob_id: str,
    *,
    user_agent: str = "Walrus-Proxy/1.0",
    timeout: float | None = None,
) -> FetchOutcome:
    """Make a single GET attempt against one aggregator.

    *timeout* bounds the whole attempt, body included, not just each
    connect or read step.
    """
    url = blob_url(endpoint, blob_id)
    try:
        response = await asyncio.wait_for(
            client.get(
                url,
                headers={"User-Agent": user_agent},
                timeout=httpx.Timeout(timeout),
            ),
            timeout,
        )
    except asyncio.TimeoutError:
        return Failure(endpoint=endpoint, reason=f"Timed out after {timeout}s")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return Failure(endpoint=endpoint, reason=_transport_reason(exc))

    if response.is_success:
        return Success(endpoint=endpoint, content=response.content)
    return Failure(
        endpoint=endpoint,
        reason=f"HTTP {response.status_code}: {response.reason_phrase}",
        status_code=response.status_code,
    )


async def fetch_with_fallback(
    client: httpx.AsyncClient,
    settings: ProxySettings,
    blob_id: str,
) -> FallbackResult:
    """Walk ``settings.aggregators`` in order until one returns the blob."""
    result = FallbackResult(blob_id=blob_id)
    for endpoint in settings.aggregators:
        logger.info(f"[Proxy] Trying aggregator: {endpoint}")
        outcome = await fetch_from_aggregator(
            client,
            endpoint,
            blob_id,
            user_agent=settings.user_agent,
            timeout=settings.timeout,
        )
        result.attempts.append(outcome)
        if isinstance(outcome, Success):
            logger.info(f"[Proxy] Fetched {len(outcome.content)} bytes from {endpoint}")
            break
        logger.warning(f"[Proxy] Failed to fetch from {endpoint}: {outcome.reason}")
    return result
