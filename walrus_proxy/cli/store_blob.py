"""CLI: Upload a file to Walrus and print its URLs.

Usage
-----
    python -m walrus_proxy.cli.store_blob chart.png
    python -m walrus_proxy.cli.store_blob notes.txt --epochs 5 --content-type text/plain
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from walrus_proxy.storage.models import BlobInfo
from walrus_proxy.storage.walrus_client import WalrusClient, WalrusError
from walrus_proxy.utils.config import WalrusSettings, load_settings
from walrus_proxy.utils.logging import get_logger

logger = get_logger(__name__)


async def store(
    settings: WalrusSettings,
    data: bytes,
    content_type: str | None,
    epochs: int | None,
) -> BlobInfo | None:
    async with WalrusClient(settings) as walrus:
        response = await walrus.store_blob(data, content_type=content_type, epochs=epochs)
        return walrus.blob_info(response)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Store a file on Walrus")
    parser.add_argument("path", type=str)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--content-type", type=str, default=None)
    parser.add_argument("--config", type=str, default=None)
    args = parser.parse_args(argv)

    path = Path(args.path)
    if not path.is_file():
        logger.error(f"No such file: {path}")
        return 2

    settings = load_settings(args.config)
    content_type = args.content_type or mimetypes.guess_type(path.name)[0]
    logger.info(f"Uploading {path} to Walrus {settings.walrus.network} …")

    try:
        info = asyncio.run(store(settings.walrus, path.read_bytes(), content_type, args.epochs))
    except WalrusError as exc:
        logger.error(str(exc))
        return 1

    if info is None:
        logger.error("Publisher response carried no blob ID")
        return 1

    print(json.dumps(info.model_dump(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
