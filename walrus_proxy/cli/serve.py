"""CLI: Run the Walrus proxy server.

Usage
-----
    python -m walrus_proxy.cli.serve
    python -m walrus_proxy.cli.serve --port 8080 --config configs/base.yaml
"""

from __future__ import annotations

import argparse

import uvicorn

from walrus_proxy.api.server import create_app
from walrus_proxy.utils.config import load_settings
from walrus_proxy.utils.logging import get_logger

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Serve Walrus blobs inline over HTTP")
    parser.add_argument("--config", type=str, default=None, help="YAML config (default: configs/base.yaml)")
    parser.add_argument("--host", type=str, default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    host = args.host or settings.host
    port = args.port or settings.port
    logger.info(f"Starting Walrus proxy on {host}:{port}")

    if args.reload:
        # Reload needs an import string; the module-level app reads configs/base.yaml
        uvicorn.run(
            "walrus_proxy.api.server:app",
            host=host,
            port=port,
            reload=True,
            log_level=settings.log_level.lower(),
        )
        return

    uvicorn.run(create_app(settings), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
