"""YAML configuration loader with merging, env overrides and typed settings."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from walrus_proxy.utils.paths import default_config_path

TESTNET = "testnet"
MAINNET = "mainnet"

DEFAULTS: dict[str, Any] = {
    "network": TESTNET,
    "networks": {
        TESTNET: {
            "publisher": "https://publisher.walrus-testnet.walrus.space",
            "aggregator": "https://aggregator.walrus-testnet.walrus.space",
            "alternatives": [
                {
                    "publisher": "https://publisher.testnet.walrus.atalma.io",
                    "aggregator": "https://aggregator.testnet.walrus.atalma.io",
                },
                {
                    "publisher": "https://publisher.walrus-01.tududes.com",
                    "aggregator": "https://aggregator.walrus-01.tududes.com",
                },
                {
                    "publisher": "https://publisher.walrus.banansen.dev",
                    "aggregator": "https://aggregator.walrus.banansen.dev",
                },
            ],
        },
        MAINNET: {
            "publisher": "https://publisher.walrus-mainnet.walrus.space",
            "aggregator": "https://aggregator.walrus-mainnet.walrus.space",
            "alternatives": [],
        },
    },
    "storage": {
        "epochs": 1,
        "deletable": False,
        "max_file_size": 10 * 1024 * 1024,
    },
    "proxy": {
        # Fallback priority order
        "aggregators": [
            "https://aggregator.walrus-testnet.walrus.space",
            "https://aggregator.testnet.walrus.atalma.io",
            "https://aggregator.walrus-01.tududes.com",
            "https://aggregator.walrus.banansen.dev",
        ],
        "user_agent": "Walrus-Proxy/1.0",
        "content_type": "image/png",
        "cache_max_age": 3600,
    },
    "timeout": 10.0,
    "app_url": "http://localhost:3000",
    "server": {"host": "0.0.0.0", "port": 8001},
    "logging": {"level": "INFO"},
}

ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "WALRUS_NETWORK": ("network",),
    "WALRUS_EPOCHS": ("storage", "epochs"),
    "WALRUS_DELETABLE": ("storage", "deletable"),
    "WALRUS_MAX_FILE_SIZE": ("storage", "max_file_size"),
    "WALRUS_APP_URL": ("app_url",),
    "WALRUS_TIMEOUT": ("timeout",),
    "WALRUS_LOG_LEVEL": ("logging", "level"),
}


# ---------------------------------------------------------------------------
# Typed settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NetworkEndpoints:
    """A publisher (writes) and aggregator (reads) pair."""

    publisher: str
    aggregator: str


@dataclass(frozen=True)
class ProxySettings:
    """Read-only configuration for :class:`BlobFetchProxy`."""

    aggregators: tuple[str, ...]
    user_agent: str = "Walrus-Proxy/1.0"
    # Placeholder: every blob is served as PNG until upstream types are used.
    content_type: str = "image/png"
    cache_max_age: int = 3600
    timeout: float | None = 10.0


@dataclass(frozen=True)
class WalrusSettings:
    network: str
    primary: NetworkEndpoints
    alternatives: tuple[NetworkEndpoints, ...] = ()
    epochs: int = 1
    deletable: bool = False
    max_file_size: int = 10 * 1024 * 1024
    app_url: str = "http://localhost:3000"
    timeout: float | None = 10.0


@dataclass(frozen=True)
class Settings:
    proxy: ProxySettings
    walrus: WalrusSettings
    host: str = "0.0.0.0"
    port: int = 8001
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Deep-merge helper
# ---------------------------------------------------------------------------

def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into a copy of *base*."""
    merged = copy.deepcopy(base)
    for key, val in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = copy.deepcopy(val)
    return merged


def _convert_env_value(value: str) -> Any:
    """Convert an environment string to bool, int or float where it parses."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _apply_env_overrides(cfg: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    cfg = copy.deepcopy(cfg)
    for env_var, path in ENV_OVERRIDES.items():
        raw = env.get(env_var)
        if raw is None:
            continue
        current = cfg
        for key in path[:-1]:
            current = current.setdefault(key, {})
        current[path[-1]] = _convert_env_value(raw)
    return cfg


# ---------------------------------------------------------------------------
# Load helpers
# ---------------------------------------------------------------------------

def load_yaml(path: str | Path) -> dict[str, Any]:
    try:
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in configuration file {path}: {e}") from e


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return DEFAULTS merged with a YAML file and environment overrides.

    With no *path*, ``configs/base.yaml`` is used when it exists. An explicit
    *path* must exist.
    """
    cfg = copy.deepcopy(DEFAULTS)
    if path is None:
        candidate = default_config_path()
        if candidate.exists():
            cfg = _deep_merge(cfg, load_yaml(candidate))
    else:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        cfg = _deep_merge(cfg, load_yaml(path))
    return _apply_env_overrides(cfg, os.environ if env is None else env)


def _endpoints(raw: Mapping[str, str]) -> NetworkEndpoints:
    return NetworkEndpoints(
        publisher=str(raw["publisher"]).rstrip("/"),
        aggregator=str(raw["aggregator"]).rstrip("/"),
    )


def _timeout(value: Any) -> float | None:
    if value is None or value == 0:
        return None
    return float(value)


def settings_from_config(cfg: Mapping[str, Any]) -> Settings:
    """Build immutable :class:`Settings` from a resolved config dict."""
    networks = cfg.get("networks", {})
    network = str(cfg.get("network", TESTNET)).lower()
    if network not in networks:
        network = TESTNET
    net = networks[network]

    storage = cfg.get("storage", {})
    proxy = cfg.get("proxy", {})
    timeout = _timeout(cfg.get("timeout"))
    app_url = str(cfg.get("app_url", DEFAULTS["app_url"])).rstrip("/")

    walrus = WalrusSettings(
        network=network,
        primary=_endpoints(net),
        alternatives=tuple(_endpoints(alt) for alt in net.get("alternatives") or []),
        epochs=int(storage.get("epochs", 1)),
        deletable=bool(storage.get("deletable", False)),
        max_file_size=int(storage.get("max_file_size", 10 * 1024 * 1024)),
        app_url=app_url,
        timeout=timeout,
    )
    proxy_settings = ProxySettings(
        aggregators=tuple(str(a).rstrip("/") for a in proxy.get("aggregators") or []),
        user_agent=str(proxy.get("user_agent", "Walrus-Proxy/1.0")),
        content_type=str(proxy.get("content_type", "image/png")),
        cache_max_age=int(proxy.get("cache_max_age", 3600)),
        timeout=timeout,
    )
    server = cfg.get("server", {})
    return Settings(
        proxy=proxy_settings,
        walrus=walrus,
        host=str(server.get("host", "0.0.0.0")),
        port=int(server.get("port", 8001)),
        log_level=str(cfg.get("logging", {}).get("level", "INFO")).upper(),
    )


def load_settings(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    return settings_from_config(load_config(path, env))
