"""Error taxonomy shared by the checking pipeline.

Only ``MetadataFetchError`` is meant to escape ``pipeline.check_packages``;
every other error is caught at its task boundary and recorded.
"""
from __future__ import annotations

from typing import Iterable, Optional


class RevdepCheckError(Exception):
    """Base class for all errors raised by revdepcheck."""


class ConfigError(RevdepCheckError):
    """Invalid or unreadable configuration."""


class HttpFetchError(RevdepCheckError):
    """An HTTP request failed or returned a non-success status."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{url}: {reason}")


class MetadataFetchError(RevdepCheckError):
    """No upstream repository index could be fetched. Run-fatal."""


class UnsatisfiableDependency(RevdepCheckError):
    """Resolved dependencies that have no prebuilt artifact for this platform."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        super().__init__(
            "No binary available for this platform: " + ", ".join(self.names)
        )


class InstallFailure(RevdepCheckError):
    """A single dependency failed to install."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to install {name}: {reason}")


class FetchSourceFailure(RevdepCheckError):
    """The source archive of a target package could not be downloaded."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to fetch source for {name}: {reason}")


class CheckInvocationFailure(RevdepCheckError):
    """The validation check itself failed or crashed."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Check failed for {name}: {reason}")


class ToolchainError(RevdepCheckError):
    """An external R command could not be run or exited non-zero."""

    def __init__(self, command: Iterable[str], returncode: int, output: str = ""):
        self.command = tuple(command)
        self.returncode = returncode
        self.output = output
        message = f"command failed ({returncode}): {' '.join(self.command)}"
        detail = output.strip().splitlines()[-1] if output.strip() else ""
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
