"""Install missing or stale dependencies into the private library."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Callable, Dict, Mapping

from common.errors import HttpFetchError, InstallFailure, ToolchainError
from common.logging_utils import Timer
from versioning.models import PackageRecord

logger = logging.getLogger(__name__)

PackageInstaller = Callable[[PackageRecord, str], None]


@dataclass
class InstallReport:
    """What happened to each package handed to the installer."""

    installed: set = field(default_factory=set)
    failed: Dict[str, str] = field(default_factory=dict)


def install(
    to_install: AbstractSet[str],
    binary_snapshot: Mapping[str, PackageRecord],
    library_path: str,
    *,
    installer: PackageInstaller,
) -> InstallReport:
    """Install each package of ``to_install`` one at a time.

    Ordering between packages is left to the install mechanism. A failure is
    logged and recorded and the remaining packages are still attempted.
    """
    report = InstallReport()
    if to_install:
        logger.info("Installing %d missing/outdated dependencies", len(to_install))
    for name in sorted(to_install):
        record = binary_snapshot.get(name)
        if record is None:
            report.failed[name] = "not in binary snapshot"
            logger.warning("Cannot install %s: not in binary snapshot", name)
            continue
        logger.info("Installing %s", name)
        try:
            with Timer() as t:
                installer(record, library_path)
        except (InstallFailure, ToolchainError, HttpFetchError, OSError) as exc:
            report.failed[name] = str(exc)
            logger.warning("Failed to install %s: %s", name, exc)
            continue
        except Exception as exc:  # pylint: disable=broad-exception-caught
            report.failed[name] = f"{type(exc).__name__}: {exc}"
            logger.error("Unexpected error installing %s: %s", name, exc, exc_info=True)
            continue
        report.installed.add(name)
        logger.debug("Installed %s %s in %.1fs", name, record.version, t.duration())
    if report.failed:
        logger.warning("%d dependencies failed to install: %s",
                       len(report.failed), ", ".join(sorted(report.failed)))
    return report
