"""CLI: Fetch one blob through the aggregator fallback chain.

Usage
-----
    python -m walrus_proxy.cli.fetch_blob <BLOB_ID>
    python -m walrus_proxy.cli.fetch_blob <BLOB_ID> --out trade.png
"""

from __future__ import annotations

import argparse
import asyncio
import ssl
import sys
from pathlib import Path

import certifi
import httpx

from walrus_proxy.proxy.fetcher import FallbackResult, Failure, fetch_with_fallback
from walrus_proxy.utils.config import ProxySettings, load_settings
from walrus_proxy.utils.logging import get_logger

logger = get_logger(__name__)


async def fetch(settings: ProxySettings, blob_id: str) -> FallbackResult:
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout),
        verify=ssl.create_default_context(cafile=certifi.where()),
    ) as client:
        return await fetch_with_fallback(client, settings, blob_id)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Download a Walrus blob with aggregator fallback")
    parser.add_argument("blob_id", type=str)
    parser.add_argument("--out", type=str, default=None, help="Output file (default: <blob_id>.bin)")
    parser.add_argument("--config", type=str, default=None)
    args = parser.parse_args(argv)

    if not args.blob_id:
        logger.error("Blob ID is required")
        return 2

    settings = load_settings(args.config)
    result = asyncio.run(fetch(settings.proxy, args.blob_id))

    for outcome in result.attempts:
        if isinstance(outcome, Failure):
            logger.info(f"  {outcome.endpoint}: {outcome.reason}")

    winner = result.winner
    if winner is None:
        logger.error(f"All aggregators failed. Last error: {result.last_error}")
        return 1

    out = Path(args.out or f"{args.blob_id}.bin")
    out.write_bytes(winner.content)
    logger.info(f"Saved {len(winner.content)} bytes from {winner.endpoint} to {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
