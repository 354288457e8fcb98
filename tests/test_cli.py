"""Tests for the command-line entry points (network calls stubbed)."""

from __future__ import annotations

import json
import os
import subprocess
import sys

from conftest import E1, E2, PNG_BYTES
from walrus_proxy.cli import fetch_blob, store_blob
from walrus_proxy.proxy.fetcher import Failure, FallbackResult, Success
from walrus_proxy.storage.models import BlobInfo
from walrus_proxy.utils.logging import get_logger
from walrus_proxy.utils.paths import project_root


class TestFetchBlob:
    def test_writes_winning_bytes(self, tmp_path, monkeypatch):
        async def _fake(settings, blob_id):
            return FallbackResult(
                blob_id=blob_id,
                attempts=[Failure(E1, "HTTP 503: Service Unavailable", 503), Success(E2, PNG_BYTES)],
            )

        monkeypatch.setattr(fetch_blob, "fetch", _fake)
        out = tmp_path / "img.png"
        assert fetch_blob.main(["abc123", "--out", str(out)]) == 0
        assert out.read_bytes() == PNG_BYTES

    def test_total_failure_exit_code(self, tmp_path, monkeypatch):
        async def _fake(settings, blob_id):
            return FallbackResult(blob_id=blob_id, attempts=[Failure(E1, "refused")])

        monkeypatch.setattr(fetch_blob, "fetch", _fake)
        out = tmp_path / "img.png"
        assert fetch_blob.main(["abc123", "--out", str(out)]) == 1
        assert not out.exists()


class TestStoreBlob:
    def test_missing_file(self, tmp_path):
        assert store_blob.main([str(tmp_path / "nope.png")]) == 2

    def test_prints_blob_info(self, tmp_path, monkeypatch, capsys):
        seen = {}

        async def _fake(settings, data, content_type, epochs):
            seen.update(data=data, content_type=content_type, epochs=epochs)
            return BlobInfo(blob_id="b1", gateway_url="g", browser_url="b")

        monkeypatch.setattr(store_blob, "store", _fake)
        path = tmp_path / "chart.png"
        path.write_bytes(PNG_BYTES)
        assert store_blob.main([str(path), "--epochs", "3"]) == 0
        assert seen == {"data": PNG_BYTES, "content_type": "image/png", "epochs": 3}
        assert json.loads(capsys.readouterr().out)["blob_id"] == "b1"


class TestCliLogging:
    """Progress lines must reach the Rich handler when run via ``python -m``."""

    def test_main_module_logger_nested_under_package(self):
        assert get_logger("__main__").name == "walrus_proxy.__main__"
        assert get_logger("walrus_proxy.cli.fetch_blob").name == "walrus_proxy.cli.fetch_blob"

    def test_store_blob_run_as_module_logs_progress(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text(
            "network: testnet\n"
            "networks:\n"
            "  testnet:\n"
            "    publisher: http://127.0.0.1:1\n"
            "    aggregator: http://127.0.0.1:1\n"
            "    alternatives: []\n"
            "timeout: 2\n"
        )
        image = tmp_path / "chart.png"
        image.write_bytes(PNG_BYTES)

        root = str(project_root())
        env = {k: v for k, v in os.environ.items() if not k.startswith("WALRUS_")}
        env.update(COLUMNS="400", PYTHONPATH=root)
        proc = subprocess.run(
            [sys.executable, "-m", "walrus_proxy.cli.store_blob", str(image), "--config", str(config)],
            cwd=root,
            env=env,
            capture_output=True,
            text=True,
            timeout=60,
        )
        assert proc.returncode == 1
        assert "Uploading" in proc.stderr
        assert "Failed to upload to Walrus IPFS" in proc.stderr
