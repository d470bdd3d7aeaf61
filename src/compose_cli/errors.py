"""Exceptions raised by the compose CLI."""

from pathlib import Path


class ComposeError(Exception):
    """Base class for every failure reported at a command boundary."""


class FetchError(ComposeError):
    """The wizard service could not be reached or returned a non-2xx status."""


class ExtractionError(ComposeError):
    """The downloaded project archive could not be read."""


class DirectoryExistsError(ComposeError):
    def __init__(self, path: Path):
        super().__init__(f"Directory '{path.name}' already exists")
        self.path = path


class ResourceMissingError(ComposeError):
    """A bundled template resource is not available."""

    def __init__(self, resource_path: str):
        super().__init__(f"Bundled resource not found: {resource_path}")
        self.resource_path = resource_path


class UpdateError(ComposeError):
    pass


class ReleaseLookupError(UpdateError):
    """The release index did not yield a version tag."""


class DownloadError(UpdateError):
    """The external transfer process failed."""


class ReplaceError(UpdateError):
    """The downloaded artifact could not be moved over the running one."""

    def __init__(self, message: str, temp_path: Path):
        super().__init__(message)
        self.temp_path = temp_path
