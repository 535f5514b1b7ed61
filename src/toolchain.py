"""External R toolchain collaborators.

Thin wrappers around ``R CMD INSTALL``, ``R CMD check`` and ``Rscript`` queries.
Library search paths are always passed explicitly through the child process
environment rather than read from the parent's.
"""
from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from constants import Constants
from common.errors import InstallFailure, ToolchainError
from common.http_client import download_file
from versioning.models import PackageRecord

logger = logging.getLogger(__name__)

Downloader = Callable[..., str]


def library_env(library_paths: Sequence[str], extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Copy of ``os.environ`` with ``R_LIBS`` set to ``library_paths``."""
    env = os.environ.copy()
    if library_paths:
        env[Constants.LIBRARY_ENV_VAR] = os.pathsep.join(library_paths)
    if extra:
        env.update(extra)
    return env


def run_command(
    cmd: Sequence[str],
    *,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """Run ``cmd`` capturing combined output.

    Raises:
        ToolchainError: If the executable is missing or the timeout expires.
    """
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(  # noqa: S603
            list(cmd),
            env=env,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ToolchainError(cmd, 127, str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        output = exc.output or ""
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        raise ToolchainError(cmd, -1, f"{output}\ntimed out after {timeout} seconds") from exc


def _rscript(expr: str) -> str:
    cmd = [Constants.RSCRIPT_EXECUTABLE, "--vanilla", "-e", expr]
    result = run_command(cmd)
    if result.returncode != 0:
        raise ToolchainError(cmd, result.returncode, result.stdout or "")
    return (result.stdout or "").strip()


def r_version() -> str:
    """Return the running R's "major.minor" version, e.g. "4.4"."""
    return _rscript('cat(R.version$major, strsplit(R.version$minor, ".", fixed = TRUE)[[1]][1], sep = ".")')


def system_library_paths() -> List[str]:
    """Return R's default library search path."""
    out = _rscript('cat(.libPaths(), sep = "\\n")')
    return [line.strip() for line in out.splitlines() if line.strip()]


@dataclass
class CheckResult:
    """Outcome of one ``R CMD check`` invocation."""

    success: bool
    returncode: int
    log: str = ""


class RPackageInstaller:
    """Installs one package from its repository archive with ``R CMD INSTALL``.

    The archive named by the binary snapshot is downloaded into ``cache_dir``
    (reused when already present) and installed into the target library.
    """

    def __init__(self, cache_dir: str, *, download: Optional[Downloader] = None,
                 library_paths: Sequence[str] = ()):
        self.cache_dir = cache_dir
        self._download = download or download_file
        self.library_paths = list(library_paths)

    def _archive_for(self, record: PackageRecord) -> str:
        url = record.binary_url or record.source_url
        if not url:
            raise InstallFailure(record.name, "no archive URL in snapshot")
        local = os.path.join(self.cache_dir, url.rsplit("/", 1)[-1])
        if not os.path.exists(local):
            logger.debug("Downloading %s", record.name)
            self._download(url, local, context="install")
        return local

    def __call__(self, record: PackageRecord, library_path: str) -> None:
        archive = self._archive_for(record)
        cmd = [Constants.R_EXECUTABLE, "CMD", "INSTALL", f"--library={library_path}", archive]
        env = library_env([library_path] + self.library_paths)
        result = run_command(cmd, env=env)
        if result.returncode != 0:
            raise ToolchainError(cmd, result.returncode, result.stdout or "")


@dataclass
class RCmdCheck:
    """Runs ``R CMD check`` against a source archive."""

    args: List[str] = field(default_factory=lambda: list(Constants.CHECK_ARGS))
    env: Dict[str, str] = field(default_factory=lambda: dict(Constants.CHECK_ENV))
    timeout: Optional[float] = None

    def __call__(
        self,
        archive: str,
        *,
        output_dir: str,
        work_dir: str,
        library_paths: Sequence[str] = (),
    ) -> CheckResult:
        """Check ``archive``, writing ``<pkg>.Rcheck`` under ``output_dir``.

        ``work_dir`` is the process working directory and temp directory, so
        build artifacts of different packages never meet.
        """
        cmd = [Constants.R_EXECUTABLE, "CMD", "check", *self.args, "-o", output_dir, archive]
        env = library_env(library_paths, {**self.env, "TMPDIR": work_dir})
        result = run_command(cmd, env=env, cwd=work_dir, timeout=self.timeout)
        return CheckResult(
            success=result.returncode == 0,
            returncode=result.returncode,
            log=result.stdout or "",
        )
