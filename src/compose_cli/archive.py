"""Download the generated project archive and unpack it."""

import json
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path

import httpx
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from .config import DEFAULT_NAMESPACE
from .errors import DirectoryExistsError, ExtractionError, FetchError
from .tracker import StepTracker

WIZARD_SPEC = {
    "template_id": "kmt",
    "targets": {
        "android": {"ui": ["compose"]},
        "ios": {"ui": ["compose"]},
        "desktop": {"ui": ["compose"]},
        "web": {"ui": ["compose"]},
        "server": {"engine": ["ktor"]},
    },
    "include_tests": True,
}


def build_wizard_params(name: str) -> dict:
    return {
        "name": name,
        "id": DEFAULT_NAMESPACE,
        "spec": json.dumps(WIZARD_SPEC, separators=(",", ":")),
        "include_tests": "true",
    }


def download_archive(
    client: httpx.Client,
    url: str,
    destination: Path,
    *,
    params: dict | None = None,
    console: Console | None = None,
    show_progress: bool = False,
) -> int:
    """Stream ``url`` into ``destination`` and return the number of bytes written."""
    written = 0
    try:
        with client.stream("GET", url, params=params, timeout=60, follow_redirects=True) as response:
            if not response.is_success:
                raise FetchError(f"Project wizard returned {response.status_code} for {response.url}")
            total_size = int(response.headers.get("content-length", 0))
            with open(destination, "wb") as f:
                if total_size and show_progress and console is not None:
                    with Progress(
                        SpinnerColumn(),
                        TextColumn("[progress.description]{task.description}"),
                        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                        console=console,
                    ) as progress:
                        task = progress.add_task("Downloading...", total=total_size)
                        for chunk in response.iter_bytes(chunk_size=8192):
                            f.write(chunk)
                            written += len(chunk)
                            progress.update(task, completed=written)
                else:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
                        written += len(chunk)
    except httpx.HTTPError as e:
        raise FetchError(f"Could not download project archive: {e}") from e
    return written


def _strip_wrapping_dir(entry_name: str) -> list[str]:
    # The wizard nests everything under a single "<ProjectName>/" folder.
    parts = entry_name.split("/")
    if len(parts) < 2:
        return []
    relative = [p for p in parts[1:] if p]
    if any(p == ".." for p in relative):
        raise ExtractionError(f"Archive entry escapes the project directory: {entry_name}")
    return relative


def extract_archive(archive_path: Path, target_dir: Path) -> int:
    """Unpack ``archive_path`` into ``target_dir``, dropping the wrapping directory.

    ``target_dir`` is created here and must not exist yet. Returns the number
    of files written.
    """
    try:
        target_dir.mkdir(parents=True)
    except FileExistsError:
        raise DirectoryExistsError(target_dir) from None

    files_written = 0
    try:
        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                relative = _strip_wrapping_dir(info.filename)
                if not relative:
                    continue
                destination = target_dir.joinpath(*relative)
                if info.is_dir():
                    destination.mkdir(parents=True, exist_ok=True)
                    continue
                destination.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(destination, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                files_written += 1
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, zlib.error) as e:
        raise ExtractionError(f"Project archive is not readable: {e}") from e
    return files_written


def fetch_and_extract(
    client: httpx.Client,
    name: str,
    target_dir: Path,
    wizard_url: str,
    *,
    tracker: StepTracker | None = None,
    console: Console | None = None,
) -> int:
    """Download the wizard archive for ``name`` and unpack it into ``target_dir``.

    The temporary archive is removed whatever the outcome. Uses tracker keys
    fetch, extract and cleanup when a tracker is given.
    """
    with tempfile.NamedTemporaryFile(prefix="kmp-wizard", suffix=".zip", delete=False) as tmp:
        zip_path = Path(tmp.name)
    try:
        if tracker:
            tracker.start("fetch", "contacting project wizard")
        size = download_archive(
            client,
            wizard_url,
            zip_path,
            params=build_wizard_params(name),
            console=console,
            show_progress=tracker is None,
        )
        if tracker:
            tracker.complete("fetch", f"{size:,} bytes")
            tracker.start("extract")
        files_written = extract_archive(zip_path, target_dir)
        if tracker:
            tracker.complete("extract", f"{files_written} files")
        return files_written
    finally:
        zip_path.unlink(missing_ok=True)
        if tracker:
            tracker.complete("cleanup")
