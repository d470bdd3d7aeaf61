"""Access to the template files bundled with the CLI.

The CLI is either installed as a regular package, where the bundled templates
are loose files next to this module, or shipped as a single zip container
(a ``.pyz`` zipapp), where they are entries of that archive. Both cases are
hidden behind :class:`ResourceProvider`; the variant is picked once by
:func:`detect_resource_provider`.

Resource paths are always posix-style and relative to the templates root,
e.g. ``project/README.md``.
"""

import shutil
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path

from .errors import ResourceMissingError

TEMPLATES_DIR = Path(__file__).parent / "templates"


class ResourceProvider(ABC):
    @abstractmethod
    def read_bytes(self, resource_path: str) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def copy_tree(self, resource_path: str, target_dir: Path) -> int:
        """Copy every file below ``resource_path`` into ``target_dir``.

        Existing files are overwritten. Returns the number of files copied.
        """
        raise NotImplementedError

    def read_text(self, resource_path: str) -> str:
        return self.read_bytes(resource_path).decode("utf-8")

    def copy_file(self, resource_path: str, target: Path) -> Path:
        data = self.read_bytes(resource_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target


class DirectoryResourceProvider(ResourceProvider):
    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"DirectoryResourceProvider({str(self.root)!r})"

    def _resolve(self, resource_path: str) -> Path:
        return self.root.joinpath(*resource_path.strip("/").split("/"))

    def read_bytes(self, resource_path: str) -> bytes:
        path = self._resolve(resource_path)
        if not path.is_file():
            raise ResourceMissingError(resource_path)
        return path.read_bytes()

    def copy_tree(self, resource_path: str, target_dir: Path) -> int:
        source = self._resolve(resource_path)
        if not source.is_dir():
            raise ResourceMissingError(resource_path)
        shutil.copytree(source, target_dir, dirs_exist_ok=True)
        return sum(1 for p in source.rglob("*") if p.is_file())


class ArchiveResourceProvider(ResourceProvider):
    """Resources stored as entries of a zip container below ``root``."""

    def __init__(self, archive_path: Path, root: str = ""):
        self.archive_path = Path(archive_path)
        self.root = root.strip("/")

    def __repr__(self) -> str:
        return f"ArchiveResourceProvider({str(self.archive_path)!r}, root={self.root!r})"

    def _entry_name(self, resource_path: str) -> str:
        return "/".join(part for part in (self.root, resource_path.strip("/")) if part)

    def read_bytes(self, resource_path: str) -> bytes:
        with zipfile.ZipFile(self.archive_path) as zf:
            try:
                return zf.read(self._entry_name(resource_path))
            except KeyError:
                raise ResourceMissingError(resource_path) from None

    def copy_tree(self, resource_path: str, target_dir: Path) -> int:
        prefix = self._entry_name(resource_path) + "/"
        copied = 0
        with zipfile.ZipFile(self.archive_path) as zf:
            for info in zf.infolist():
                if info.is_dir() or not info.filename.startswith(prefix):
                    continue
                target = target_dir.joinpath(*info.filename[len(prefix):].split("/"))
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
                copied += 1
        if not copied:
            raise ResourceMissingError(resource_path)
        return copied


def find_container(path: Path) -> tuple[Path, str] | None:
    """Return ``(archive, inner_path)`` when ``path`` lies inside a zip file."""
    for parent in path.parents:
        if parent.is_file():
            if zipfile.is_zipfile(parent):
                return parent, path.relative_to(parent).as_posix()
            return None
    return None


def detect_resource_provider(templates_dir: Path = TEMPLATES_DIR) -> ResourceProvider:
    container = find_container(templates_dir)
    if container is not None:
        archive, inner = container
        return ArchiveResourceProvider(archive, inner)
    return DirectoryResourceProvider(templates_dir)
