"""Self-update: replace the running CLI artifact with the latest release."""

import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import httpx

from .errors import DownloadError, ReleaseLookupError, ReplaceError, UpdateError
from .tracker import StepTracker

TAG_PATTERN = re.compile(r'"tag_name"\s*:\s*"([^"]+)"')


@dataclass
class ReleaseInfo:
    tag: str
    artifact_url: str


def parse_tag(payload: str) -> str | None:
    """Pick the first ``tag_name`` value out of a release index payload."""
    match = TAG_PATTERN.search(payload)
    if match is None:
        return None
    return match.group(1).strip() or None


def fetch_latest_tag(client: httpx.Client, api_url: str, headers: dict | None = None) -> str:
    try:
        response = client.get(api_url, timeout=30, follow_redirects=True, headers=headers or {})
    except httpx.HTTPError as e:
        raise ReleaseLookupError(f"Failed to fetch latest version: {e}") from e
    tag = parse_tag(response.text)
    if not tag:
        raise ReleaseLookupError(f"Failed to fetch latest version (release index returned {response.status_code})")
    return tag


def temp_artifact_path(install_path: Path) -> Path:
    return install_path.with_name(install_path.name + ".tmp")


def download_artifact(url: str, destination: Path, runner: Callable | None = None) -> None:
    """Download ``url`` to ``destination`` with curl.

    On failure the partial download is removed before :class:`DownloadError`
    is raised.
    """
    runner = runner or subprocess.run
    try:
        result = runner(["curl", "-fSL", url, "-o", str(destination)])
    except FileNotFoundError as e:
        destination.unlink(missing_ok=True)
        raise DownloadError("curl is required to download updates") from e
    if result.returncode != 0:
        destination.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download new version (curl exited with {result.returncode})")


def replace_binary(temp_path: Path, install_path: Path) -> None:
    mode = install_path.stat().st_mode if install_path.exists() else None
    try:
        if mode is not None:
            os.chmod(temp_path, mode)
        os.replace(temp_path, install_path)
    except OSError as e:
        raise ReplaceError(f"Failed to replace {install_path.name}: {e.strerror or e}", temp_path) from e


def self_update(
    client: httpx.Client,
    install_path: Path | None,
    api_url: str,
    artifact_url_for: Callable[[str], str],
    *,
    headers: dict | None = None,
    runner: Callable | None = None,
    tracker: StepTracker | None = None,
) -> ReleaseInfo:
    """Replace ``install_path`` with the latest released artifact.

    The running artifact is only touched by the final rename; any earlier
    failure leaves it as it was. Uses tracker keys tag, download and replace.
    """
    if install_path is None:
        raise UpdateError("Not running from a release artifact; set COMPOSE_INSTALL_PATH to the file to replace")
    if tracker:
        tracker.start("tag", "querying release index")
    tag = fetch_latest_tag(client, api_url, headers=headers)
    release = ReleaseInfo(tag=tag, artifact_url=artifact_url_for(tag))
    if tracker:
        tracker.complete("tag", tag)

    temp_path = temp_artifact_path(install_path)
    if tracker:
        tracker.start("download", release.artifact_url)
    download_artifact(release.artifact_url, temp_path, runner=runner)
    if tracker:
        tracker.complete("download", temp_path.name)
        tracker.start("replace")
    replace_binary(temp_path, install_path)
    if tracker:
        tracker.complete("replace", str(install_path))
    return release
