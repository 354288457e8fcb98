"""Rich-powered logging helpers for service and CLI output."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

ROOT_LOGGER = "walrus_proxy"

_CONFIGURED = False


def get_logger(name: str = "walrus_proxy", level: int | str = logging.INFO) -> logging.Logger:
    """Return a logger whose records reach a single shared Rich handler.

    The handler is attached once to the ``walrus_proxy`` root logger. Names
    outside the package (``__main__`` under ``python -m``) are nested below it
    so their records reach the handler too.
    """
    global _CONFIGURED
    root = logging.getLogger(ROOT_LOGGER)
    if not _CONFIGURED:
        root.setLevel(level)
        handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        root.addHandler(handler)
        _CONFIGURED = True
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    """Change the level of the shared ``walrus_proxy`` logger."""
    if isinstance(level, str):
        level = level.upper()
    logging.getLogger(ROOT_LOGGER).setLevel(level)
