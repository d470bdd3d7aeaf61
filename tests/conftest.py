"""Shared pytest fixtures for the Instant Compose CLI test suite.

Provides reusable fixtures for:
- Synthetic wizard archives
- Mocked httpx clients
- A runtime configuration pointing at temporary paths
"""

from __future__ import annotations

import io
import json
import subprocess
import zipfile
from pathlib import Path
from typing import Callable

import httpx
import pytest

from compose_cli.config import RuntimeConfig
from compose_cli.resources import TEMPLATES_DIR, DirectoryResourceProvider


# ---------------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------------

def build_zip(entries: dict[str, bytes]) -> bytes:
    """Build an in-memory zip; names ending with ``/`` become directory entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


SETTINGS_GRADLE = b'rootProject.name = "KotlinProject"\n\ninclude(":composeApp")\ninclude(":server")\n'


@pytest.fixture
def wizard_zip() -> bytes:
    """Archive shaped like a wizard response: everything under one folder."""
    return build_zip({
        "KotlinProject/": b"",
        "KotlinProject/settings.gradle.kts": SETTINGS_GRADLE,
        "KotlinProject/gradlew": b"#!/bin/sh\necho gradle\n",
        "KotlinProject/README.md": b"# Generated by the wizard\n",
        "KotlinProject/composeApp/": b"",
        "KotlinProject/composeApp/src/commonMain/kotlin/App.kt": b"fun App() {}\n",
        "KotlinProject/composeApp/src/webMain/resources/index.html": b"<html>wizard</html>",
    })


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def mock_client_factory(handler: Callable[[httpx.Request], httpx.Response]):
    """Return a ``build_client`` replacement serving every request from ``handler``."""
    def build_client(verify: bool = True) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(handler))
    return build_client


def release_index(tag: str = "v9.9.9") -> httpx.Response:
    return httpx.Response(200, text=json.dumps({"url": "https://api.test/releases/1", "tag_name": tag, "assets": []}))


# ---------------------------------------------------------------------------
# External transfer process
# ---------------------------------------------------------------------------

class FakeCurl:
    """Stand-in for ``subprocess.run`` that writes ``payload`` to the ``-o`` target."""

    def __init__(self, payload: bytes = b"new-artifact", returncode: int = 0):
        self.payload = payload
        self.returncode = returncode
        self.calls: list[list[str]] = []

    def __call__(self, args, *a, **kw):
        self.calls.append(list(args))
        output = Path(args[args.index("-o") + 1])
        output.write_bytes(self.payload)
        return subprocess.CompletedProcess(args, self.returncode)


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------

@pytest.fixture
def installed_cli(tmp_path: Path) -> Path:
    install_dir = tmp_path / "bin"
    install_dir.mkdir()
    artifact = install_dir / "compose.pyz"
    artifact.write_bytes(b"old-artifact")
    return artifact


@pytest.fixture
def runtime(installed_cli: Path) -> RuntimeConfig:
    return RuntimeConfig(
        install_path=installed_cli,
        resources=DirectoryResourceProvider(TEMPLATES_DIR),
        wizard_url="https://wizard.test/generateKmtProject",
        release_api_url="https://api.test/releases/latest",
        release_download_url="https://dl.test/releases/download",
    )
