"""Constants and the runtime configuration discovered once at startup."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from .resources import ResourceProvider, detect_resource_provider, find_container, TEMPLATES_DIR

REPO = "EmilFlach/instant-compose"
ARTIFACT_NAME = "compose.pyz"
DEFAULT_PROJECT_NAME = "KotlinProject"
DEFAULT_NAMESPACE = "org.example.project"

WIZARD_URL = "https://kmp.jetbrains.com/generateKmtProject"
RELEASE_API_URL = f"https://api.github.com/repos/{REPO}/releases/latest"
RELEASE_DOWNLOAD_URL = f"https://github.com/{REPO}/releases/download"


def _github_token(cli_token: str | None = None) -> str | None:
    """Return sanitized GitHub token (cli arg takes precedence) or None."""
    return ((cli_token or os.getenv("GH_TOKEN") or os.getenv("GITHUB_TOKEN") or "").strip()) or None


def github_auth_headers(cli_token: str | None = None) -> dict:
    """Return Authorization header dict only when a non-empty token exists."""
    token = _github_token(cli_token)
    return {"Authorization": f"Bearer {token}"} if token else {}


def locate_install_path() -> Path | None:
    """Path of the release artifact this CLI is running from.

    ``COMPOSE_INSTALL_PATH`` wins, then the zip container holding this
    package. Any other launch (pip install, ``python -m``) is not updatable
    in place and yields None.
    """
    override = os.getenv("COMPOSE_INSTALL_PATH")
    if override:
        return Path(override).expanduser().resolve()
    container = find_container(TEMPLATES_DIR)
    if container is not None:
        return container[0]
    return None


@dataclass
class RuntimeConfig:
    install_path: Path | None
    resources: ResourceProvider
    wizard_url: str = WIZARD_URL
    release_api_url: str = RELEASE_API_URL
    release_download_url: str = RELEASE_DOWNLOAD_URL
    artifact_name: str = ARTIFACT_NAME
    console: Console = field(default_factory=Console)
    err_console: Console = field(default_factory=lambda: Console(stderr=True))

    @classmethod
    def discover(cls) -> "RuntimeConfig":
        return cls(
            install_path=locate_install_path(),
            resources=detect_resource_provider(),
            wizard_url=os.getenv("COMPOSE_WIZARD_URL", WIZARD_URL),
            release_api_url=os.getenv("COMPOSE_RELEASE_API_URL", RELEASE_API_URL),
            release_download_url=os.getenv("COMPOSE_RELEASE_DOWNLOAD_URL", RELEASE_DOWNLOAD_URL),
        )

    def artifact_url(self, tag: str) -> str:
        return f"{self.release_download_url.rstrip('/')}/{tag}/{self.artifact_name}"
